"""Config loading and per-node property sources."""

from armnode.config.loader import (
    ArmNodeConfig,
    ProviderConfig,
    deep_merge,
    load_config,
    node_properties,
    parse_overrides,
)
from armnode.config.properties import NodeProperties

__all__ = [
    "ArmNodeConfig",
    "NodeProperties",
    "ProviderConfig",
    "deep_merge",
    "load_config",
    "node_properties",
    "parse_overrides",
]
