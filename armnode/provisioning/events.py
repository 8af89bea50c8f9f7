"""Trace events emitted while resolving a node.

Resolution code never logs directly; it hands TraceEvents to an ``emit``
callable. The default sink writes them at DEBUG level to the
``armnode.trace`` logger.
"""

import logging
from dataclasses import dataclass, field

trace_logger = logging.getLogger("armnode.trace")


@dataclass(frozen=True)
class TraceEvent:
    name: str
    node: str
    fields: dict = field(default_factory=dict)

    def describe(self) -> str:
        details = ", ".join(f"{k}={v!r}" for k, v in self.fields.items())
        return f"{self.name} node={self.node!r}" + (f" {details}" if details else "")


def log_event(event: TraceEvent) -> None:
    """Default sink: debug log line with the event attached as ``extra``."""
    if trace_logger.isEnabledFor(logging.DEBUG):
        trace_logger.debug(event.describe(), extra={"trace_event": event.name, "trace_node": event.node, "trace_fields": event.fields})


class EventRecorder:
    """Collecting sink, usable as ``emit=recorder``."""

    def __init__(self):
        self.events: list[TraceEvent] = []

    def __call__(self, event: TraceEvent) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [e.name for e in self.events]
