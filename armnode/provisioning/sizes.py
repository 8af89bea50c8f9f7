"""Hardware size validation against the provider's live catalog."""

from armnode.errors import ConfigurationError
from armnode.provisioning.events import TraceEvent, log_event


def validate_size(size, catalog, node_name, provider_name, emit=log_event):
    """Check *size* against ``catalog.list_sizes()``.

    An absent size means "backend default" and returns None without
    listing. Otherwise the catalog is fetched once per call and matched by
    exact string equality.

    Returns:
        The validated size id, or None.
    """
    if not size:
        return None

    emit(TraceEvent("size.lookup.started", node_name, {"size": size}))
    available = catalog.list_sizes()
    if size not in available:
        raise ConfigurationError(
            f"Azure virtual machine size doesn't exist: {size} (node {node_name}, cloud provider {provider_name})",
            node_name=node_name,
            provider_name=provider_name,
            field="size",
        )

    emit(TraceEvent("size.lookup.found", node_name, {"size": size}))
    return size
