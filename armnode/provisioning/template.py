"""Provisioning request assembly: credentials, inbound ports, OS family."""

import logging
import re

from armnode.errors import ConfigurationError
from armnode.provisioning.types import OsFamily, ProvisioningRequest

logger = logging.getLogger(__name__)

MIN_PORT = 1
MAX_PORT = 65535

_PORT_TOKEN = re.compile(r"^[0-9]+$")


def parse_inbound_ports(raw, node_name=None, provider_name=None):
    """Parse a comma-separated port list.

    Empty tokens are skipped, duplicates dropped (first occurrence wins).

    Raises:
        ConfigurationError: a token is not a decimal integer or is outside 1-65535.
    """
    ports = []
    for token in str(raw or "").split(","):
        token = token.strip()
        if not token:
            continue
        if not _PORT_TOKEN.match(token):
            raise ConfigurationError(
                f"Invalid inbound port '{token}' for node {node_name}: not an integer",
                node_name=node_name,
                provider_name=provider_name,
                field="inbound-ports",
            )
        port = int(token)
        if not MIN_PORT <= port <= MAX_PORT:
            raise ConfigurationError(
                f"Invalid inbound port '{token}' for node {node_name}: must be in range {MIN_PORT}-{MAX_PORT}",
                node_name=node_name,
                provider_name=provider_name,
                field="inbound-ports",
            )
        if port in ports:
            logger.debug(f"Ignoring duplicate inbound port {port} for node {node_name}")
            continue
        ports.append(port)
    return ports


def _require_credential(value, label, key, node_spec):
    if not value:
        raise ConfigurationError(
            f"{label} for Azure virtual machine must be set (node {node_spec.name}, "
            f"cloud provider {node_spec.provider_name}, key '{key}')",
            node_name=node_spec.name,
            provider_name=node_spec.provider_name,
            field=key,
        )
    return value


def build_provisioning_request(node_spec, image, hardware_id=None):
    """Assemble a ProvisioningRequest for *node_spec*.

    Args:
        image: ResolvedImage from resolve_image().
        hardware_id: size id from validate_size(), or None for the backend default.
    """
    login_user = _require_credential(node_spec.ssh_user, "SSH user name", "ssh-user", node_spec)
    login_password = _require_credential(node_spec.ssh_password, "SSH password", "ssh-password", node_spec)

    inbound_ports = parse_inbound_ports(node_spec.inbound_ports, node_spec.name, node_spec.provider_name)
    os_family = OsFamily.WINDOWS if node_spec.is_windows else OsFamily.LINUX

    return ProvisioningRequest(
        node_name=node_spec.name,
        image_id=image.id,
        os_family=os_family,
        login_user=login_user,
        login_password=login_password,
        inbound_ports=tuple(inbound_ports),
        hardware_id=hardware_id,
    )
