"""Read-only per-node property source with typed accessors."""

from armnode.errors import ConfigurationError

_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


def _to_str(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class NodeProperties:
    """Key/value configuration of one node.

    Values from *overrides* win over *values*. Scalars are exposed as
    strings, the way they would read from a properties file.
    """

    def __init__(self, node_name, values=None, overrides=None):
        self.node_name = node_name
        self._values = {**(values or {}), **(overrides or {})}

    def __contains__(self, key):
        return self._values.get(key) is not None

    def get(self, key, default=None):
        value = self._values.get(key)
        if value is None:
            return default
        return _to_str(value)

    def get_bool(self, key, default=False):
        raw = self.get(key)
        if raw is None or raw == "":
            return default
        lowered = raw.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ConfigurationError(
            f"Property '{key}' of node {self.node_name} must be a boolean, got '{raw}'",
            node_name=self.node_name,
            field=key,
        )

    def get_int(self, key, default=None):
        raw = self.get(key)
        if raw is None or raw == "":
            return default
        try:
            return int(raw)
        except ValueError:
            raise ConfigurationError(
                f"Property '{key}' of node {self.node_name} must be an integer, got '{raw}'",
                node_name=self.node_name,
                field=key,
            ) from None

    def __repr__(self):
        return f"NodeProperties({self.node_name!r}, keys={sorted(self._values)})"
