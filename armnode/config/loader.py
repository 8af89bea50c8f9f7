"""Config file loading: providers and nodes from YAML."""

import os
from dataclasses import dataclass, field

import yaml

from armnode.config.properties import NodeProperties
from armnode.errors import ConfigurationError

PROVIDER_TYPE_AZURE_ARM = "azure-arm"


@dataclass
class ProviderConfig:
    """Azure ARM provider settings shared by all nodes that reference it."""

    name: str
    type: str = PROVIDER_TYPE_AZURE_ARM
    subscription_id: str = ""
    location: str = ""
    resource_group: str = ""
    subnet_id: str = ""
    api_url: str = ""
    timeout: int = 60

    @classmethod
    def from_dict(cls, name, d: dict) -> "ProviderConfig":
        provider_type = d.get("type", PROVIDER_TYPE_AZURE_ARM)
        if provider_type != PROVIDER_TYPE_AZURE_ARM:
            raise ConfigurationError(
                f"Cloud provider '{name}' has unsupported type '{provider_type}' (supported: {PROVIDER_TYPE_AZURE_ARM})",
                provider_name=name,
                field="type",
            )
        return cls(
            name=name,
            type=provider_type,
            subscription_id=str(d.get("subscription-id") or os.environ.get("AZURE_SUBSCRIPTION_ID", "")),
            location=str(d.get("location", "")),
            resource_group=str(d.get("resource-group", "")),
            subnet_id=str(d.get("subnet-id", "")),
            api_url=str(d.get("api-url", "")),
            timeout=int(d.get("timeout", 60)),
        )


@dataclass
class ArmNodeConfig:
    """Parsed config file."""

    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    nodes: dict[str, dict] = field(default_factory=dict)

    def provider_for(self, node_name) -> ProviderConfig:
        node = self.nodes.get(node_name)
        if node is None:
            available = ", ".join(sorted(self.nodes)) or "none"
            raise ConfigurationError(f"Unknown node '{node_name}'. Available nodes: {available}", node_name=node_name)
        provider_name = node.get("provider")
        if not provider_name:
            if len(self.providers) != 1:
                raise ConfigurationError(
                    f"Node '{node_name}' must name its cloud provider ('provider' key)",
                    node_name=node_name,
                    field="provider",
                )
            provider_name = next(iter(self.providers))
        if provider_name not in self.providers:
            raise ConfigurationError(
                f"Node '{node_name}' references unknown cloud provider '{provider_name}'",
                node_name=node_name,
                provider_name=provider_name,
                field="provider",
            )
        return self.providers[provider_name]


def deep_merge(base, override):
    """Recursive dict merge. Override wins for scalars."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _section(config, key, path):
    value = config.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{key}' in {path} must be a mapping")
    for name, entry in value.items():
        if not isinstance(entry, dict):
            raise ConfigurationError(f"'{key}.{name}' in {path} must be a mapping")
    return value


def load_config(path) -> ArmNodeConfig:
    """Load providers and nodes from a YAML config file."""
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        try:
            config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file {path}: {e}") from e
    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    providers = {name: ProviderConfig.from_dict(name, d) for name, d in _section(config, "providers", path).items()}
    nodes = {str(name): d for name, d in _section(config, "nodes", path).items()}
    return ArmNodeConfig(providers=providers, nodes=nodes)


def parse_overrides(items):
    """Parse ``key=value`` CLI overrides into a dict."""
    overrides = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ConfigurationError(f"Invalid override '{item}': expected key=value")
        overrides[key.strip()] = value
    return overrides


def node_properties(config, node_name, overrides=None) -> NodeProperties:
    """Property source for *node_name*, with *overrides* merged on top."""
    provider = config.provider_for(node_name)
    values = deep_merge(config.nodes[node_name], overrides or {})
    values.setdefault("provider", provider.name)
    return NodeProperties(node_name, values)
