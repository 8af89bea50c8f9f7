"""Shared data types for node provisioning."""

import enum
from dataclasses import dataclass, field
from typing import Protocol

from armnode.errors import ConfigurationError

DEFAULT_INBOUND_PORTS = "22"
DEFAULT_CLASSIC_VERSION = "latest"

IMAGE_MODE_MANAGED = "image"
IMAGE_MODE_CLASSIC = "classic-vm"
IMAGE_MODES = (IMAGE_MODE_MANAGED, IMAGE_MODE_CLASSIC)


# ── Image selection ────────────────────────────────────────────────


@dataclass(frozen=True)
class ManagedImage:
    """Pre-registered image addressed by resource group + image name."""

    resource_group: str = ""
    image_name: str = ""

    kind = "managed image"

    def criteria(self) -> dict:
        return {"resource_group": self.resource_group, "image_name": self.image_name}

    def missing_fields(self) -> list[str]:
        return [k for k, v in self.criteria().items() if not v]


@dataclass(frozen=True)
class ClassicImage:
    """Marketplace image addressed by publisher/offer/sku/version in a location."""

    location: str = ""
    publisher: str = ""
    offer: str = ""
    sku: str = ""
    version: str = DEFAULT_CLASSIC_VERSION

    kind = "classic virtual machine image"

    def __post_init__(self):
        if not self.version:
            object.__setattr__(self, "version", DEFAULT_CLASSIC_VERSION)

    def criteria(self) -> dict:
        return {
            "location": self.location,
            "publisher": self.publisher,
            "offer": self.offer,
            "sku": self.sku,
            "version": self.version,
        }

    def missing_fields(self) -> list[str]:
        # version is defaulted, never required
        required = ("location", "publisher", "offer", "sku")
        return [k for k in required if not getattr(self, k)]


ImageSelection = ManagedImage | ClassicImage


@dataclass(frozen=True)
class ResolvedImage:
    """Provider-assigned image identifier. Only produced by resolve_image()."""

    id: str

    def __str__(self):
        return self.id


# ── Node spec ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class NodeSpec:
    """Declarative description of one node, read from its property source."""

    name: str
    provider_name: str
    image: ImageSelection
    size: str | None = None
    ssh_user: str = ""
    ssh_password: str = field(default="", repr=False)
    inbound_ports: str = DEFAULT_INBOUND_PORTS
    is_windows: bool = False

    @classmethod
    def from_properties(cls, name, properties, provider_name=None) -> "NodeSpec":
        """Build a NodeSpec from a NodeProperties source.

        Field presence is not checked here; the image resolver and template
        builder validate and report missing values with node context.
        """
        provider_name = provider_name or properties.get("provider", "")
        mode = properties.get("image-selection-mode", IMAGE_MODE_MANAGED) or IMAGE_MODE_MANAGED
        if mode == IMAGE_MODE_CLASSIC:
            image = ClassicImage(
                location=properties.get("location", ""),
                publisher=properties.get("publisher", ""),
                offer=properties.get("offer", ""),
                sku=properties.get("sku", ""),
                version=properties.get("version", DEFAULT_CLASSIC_VERSION) or DEFAULT_CLASSIC_VERSION,
            )
        elif mode == IMAGE_MODE_MANAGED:
            image = ManagedImage(
                resource_group=properties.get("resource-group", ""),
                image_name=properties.get("image-name", ""),
            )
        else:
            raise ConfigurationError(
                f"Unknown image-selection-mode '{mode}' for node {name} in cloud provider {provider_name}; "
                f"expected one of: {', '.join(IMAGE_MODES)}",
                node_name=name,
                provider_name=provider_name,
                field="image-selection-mode",
            )

        return cls(
            name=name,
            provider_name=provider_name,
            image=image,
            size=properties.get("size") or None,
            ssh_user=properties.get("ssh-user", ""),
            ssh_password=properties.get("ssh-password", ""),
            inbound_ports=properties.get("inbound-ports", DEFAULT_INBOUND_PORTS),
            is_windows=properties.get_bool("image-is-windows", False),
        )


# ── Provisioning request ───────────────────────────────────────────


class OsFamily(enum.Enum):
    LINUX = "Linux"
    WINDOWS = "Windows"


@dataclass(frozen=True)
class ProvisioningRequest:
    """Fully resolved, immutable description of a VM to create."""

    node_name: str
    image_id: str
    os_family: OsFamily
    login_user: str
    login_password: str = field(repr=False)
    inbound_ports: tuple[int, ...] = ()
    hardware_id: str | None = None

    def render(self) -> str:
        """Single-line rendering for logs and error messages (no password)."""
        ports = ",".join(str(p) for p in self.inbound_ports) or "none"
        return (
            f"{{node={self.node_name}, image={self.image_id}, hardware={self.hardware_id or 'default'}, "
            f"os={self.os_family.value}, user={self.login_user}, password=***, inboundPorts=[{ports}]}}"
        )

    def to_dict(self) -> dict:
        """Plain dict for YAML output, password masked."""
        return {
            "node": self.node_name,
            "image_id": self.image_id,
            "hardware_id": self.hardware_id,
            "os_family": self.os_family.value,
            "login_user": self.login_user,
            "login_password": "***",
            "inbound_ports": list(self.inbound_ports),
        }


# ── Node metadata ──────────────────────────────────────────────────


@dataclass(frozen=True)
class NodeMetadata:
    """Provider-returned description of a created VM."""

    id: str
    name: str
    status: str = ""
    location: str = ""
    hardware_id: str | None = None
    image_id: str | None = None
    public_addresses: tuple[str, ...] = ()
    private_addresses: tuple[str, ...] = ()
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_arm(cls, vm: dict) -> "NodeMetadata":
        """Build from an ARM Microsoft.Compute/virtualMachines resource."""
        props = vm.get("properties", {})
        image_ref = props.get("storageProfile", {}).get("imageReference", {})

        status = props.get("provisioningState", "")
        for st in props.get("instanceView", {}).get("statuses", []):
            code = st.get("code", "")
            if code.startswith("PowerState/"):
                status = code.split("/", 1)[1]

        return cls(
            id=vm.get("id", ""),
            name=vm.get("name", ""),
            status=status,
            location=vm.get("location", ""),
            hardware_id=props.get("hardwareProfile", {}).get("vmSize"),
            image_id=image_ref.get("id") or image_ref.get("exactVersion"),
            raw=vm,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "location": self.location,
            "hardware_id": self.hardware_id,
            "image_id": self.image_id,
            "public_addresses": list(self.public_addresses),
            "private_addresses": list(self.private_addresses),
        }


# ── Collaborator capabilities ──────────────────────────────────────


class ImageLookup(Protocol):
    """Finds provider image ids; returns None when the image does not exist."""

    def get_managed_image(self, resource_group: str, image_name: str) -> str | None: ...

    def get_classic_image(self, location: str, publisher: str, offer: str, sku: str, version: str) -> str | None: ...


class SizeCatalog(Protocol):
    def list_sizes(self) -> set[str]: ...


class ProvisioningBackend(Protocol):
    def check(self) -> None:
        """Raise ConfigurationError if the backend cannot submit; makes no remote call."""

    def submit(self, request: ProvisioningRequest) -> NodeMetadata: ...

    def get_node_metadata(self, node_id: str) -> NodeMetadata: ...
