"""Node provisioning: image resolution, size validation, request assembly, submission."""

from armnode.provisioning.azure import AzureArmClient, AzureCredentials
from armnode.provisioning.events import EventRecorder, TraceEvent, log_event
from armnode.provisioning.images import resolve_image
from armnode.provisioning.node import ProvisionedNode, create_node, provision_node, resolve_request
from armnode.provisioning.sizes import validate_size
from armnode.provisioning.template import build_provisioning_request, parse_inbound_ports
from armnode.provisioning.types import (
    ClassicImage,
    ManagedImage,
    NodeMetadata,
    NodeSpec,
    OsFamily,
    ProvisioningRequest,
    ResolvedImage,
)

__all__ = [
    "AzureArmClient",
    "AzureCredentials",
    "ClassicImage",
    "EventRecorder",
    "ManagedImage",
    "NodeMetadata",
    "NodeSpec",
    "OsFamily",
    "ProvisionedNode",
    "ProvisioningRequest",
    "ResolvedImage",
    "TraceEvent",
    "build_provisioning_request",
    "create_node",
    "log_event",
    "parse_inbound_ports",
    "provision_node",
    "resolve_image",
    "resolve_request",
    "validate_size",
]
