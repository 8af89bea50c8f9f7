"""Node provisioning: resolve, validate, build, submit.

Each step runs strictly after the previous one succeeds; nothing is retried
here. Retry and polling policy belong to the provisioning backend.
"""

import logging

from armnode.errors import ProvisioningError
from armnode.provisioning.events import log_event
from armnode.provisioning.images import resolve_image
from armnode.provisioning.sizes import validate_size
from armnode.provisioning.template import build_provisioning_request
from armnode.provisioning.types import NodeMetadata, NodeSpec

logger = logging.getLogger(__name__)


class ProvisionedNode:
    """A node created by provision_node().

    ``initial_metadata`` is the snapshot returned at creation time;
    ``fresh_metadata()`` always asks the backend again.
    """

    def __init__(self, spec, request, initial_metadata, client):
        self.spec = spec
        self.request = request
        self._initial_metadata = initial_metadata
        self._client = client

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def initial_metadata(self) -> NodeMetadata:
        return self._initial_metadata

    def fresh_metadata(self) -> NodeMetadata:
        return self._client.get_node_metadata(self._initial_metadata.id)

    @property
    def image_name(self) -> str:
        """Provider id of the image the node was created from."""
        return self.request.image_id


def resolve_request(node_spec, client, emit=log_event):
    """Run image resolution, size validation and request assembly.

    *client* must provide the ImageLookup and SizeCatalog capabilities.

    Returns:
        ProvisioningRequest ready for submission.
    """
    image = resolve_image(node_spec.image, client, node_spec.name, node_spec.provider_name, emit=emit)
    hardware_id = validate_size(node_spec.size, client, node_spec.name, node_spec.provider_name, emit=emit)
    request = build_provisioning_request(node_spec, image, hardware_id)
    logger.debug(f"Built provisioning request for node '{node_spec.name}': {request.render()}")
    return request


def _dry_run_metadata(request, provider_name):
    return NodeMetadata(
        id=f"dry-run/{provider_name}/{request.node_name}",
        name=request.node_name,
        status="dry-run",
        hardware_id=request.hardware_id,
        image_id=request.image_id,
    )


def provision_node(node_spec, client, dry_run=False, emit=log_event):
    """Provision one node described by *node_spec* using *client*.

    Raises:
        ConfigurationError: invalid or missing configuration; no remote call is made.
        ResourceNotFoundError: the image does not exist.
        ProvisioningError: the backend failed the submission.
    """
    client.check()
    request = resolve_request(node_spec, client, emit=emit)

    if dry_run:
        logger.info(f"[dry-run] submit {node_spec.provider_name} node from template {request.render()}")
        return ProvisionedNode(node_spec, request, _dry_run_metadata(request, node_spec.provider_name), client)

    logger.info(f"Creating {node_spec.provider_name} node '{node_spec.name}' from template {request.render()}")
    try:
        metadata = client.submit(request)
    except Exception as e:
        raise ProvisioningError(
            f"Unable to create {node_spec.provider_name} node '{node_spec.name}' from template {request.render()}: {e}",
            request=request,
        ) from e

    public_address = metadata.public_addresses[0] if metadata.public_addresses else None
    logger.info(
        f"Started {node_spec.provider_name} node '{node_spec.name}' from image {request.image_id}, "
        f"its public IP address is {public_address}"
    )
    return ProvisionedNode(node_spec, request, metadata, client)


def create_node(name, properties, client, provider_name=None, dry_run=False, emit=log_event):
    """Build a NodeSpec from a property source and provision it."""
    node_spec = NodeSpec.from_properties(name, properties, provider_name=provider_name)
    return provision_node(node_spec, client, dry_run=dry_run, emit=emit)
