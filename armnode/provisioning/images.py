"""Image resolution: declarative image selection -> provider image id."""

from armnode.errors import ConfigurationError, ResourceNotFoundError
from armnode.provisioning.events import TraceEvent, log_event
from armnode.provisioning.types import ClassicImage, ManagedImage, ResolvedImage


def _format_criteria(criteria):
    return "{ " + ", ".join(f'"{k}" : "{v}"' for k, v in criteria.items()) + " }"


def check_image_selection(selection, node_name, provider_name):
    """Raise ConfigurationError for the first empty required field of *selection*."""
    missing = selection.missing_fields()
    if missing:
        field_name = missing[0]
        raise ConfigurationError(
            f"Azure {selection.kind} {field_name.replace('_', ' ')} was not provided for node {node_name} "
            f"in cloud provider {provider_name}",
            node_name=node_name,
            provider_name=provider_name,
            field=field_name,
        )


def resolve_image(selection, lookup, node_name, provider_name, emit=log_event):
    """Resolve an ImageSelection to a ResolvedImage.

    All required fields are checked before *lookup* is touched, so a
    misconfigured node never costs a remote round trip. The id returned by
    the lookup is wrapped as-is; nothing is cached.

    Raises:
        ConfigurationError: a required selection field is empty.
        ResourceNotFoundError: the lookup reported no such image.
    """
    check_image_selection(selection, node_name, provider_name)
    criteria = selection.criteria()

    emit(TraceEvent("image.lookup.started", node_name, {"kind": selection.kind, **criteria}))

    if isinstance(selection, ManagedImage):
        image_id = lookup.get_managed_image(selection.resource_group, selection.image_name)
    elif isinstance(selection, ClassicImage):
        image_id = lookup.get_classic_image(
            selection.location,
            selection.publisher,
            selection.offer,
            selection.sku,
            selection.version,
        )
    else:
        raise TypeError(f"Unsupported image selection: {selection!r}")

    if not image_id:
        emit(TraceEvent("image.lookup.not_found", node_name, dict(criteria)))
        raise ResourceNotFoundError(
            f"Azure {selection.kind} must exist: {_format_criteria(criteria)} for node {node_name} "
            f"in cloud provider {provider_name}",
            criteria=criteria,
            node_name=node_name,
            provider_name=provider_name,
        )

    emit(TraceEvent("image.lookup.resolved", node_name, {**criteria, "image_id": image_id}))
    return ResolvedImage(image_id)
