"""
Event sink interfaces.

Sinks consume domain events emitted by the assignment engine, the order
progression and the movement driver.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


class EventSink(Protocol):
    def on_event(self, event: Any) -> None:
        """Consume a domain event."""


@runtime_checkable
class ClosableEventSink(EventSink, Protocol):
    def close(self) -> None:
        """Flush and release any resource held by the sink."""
