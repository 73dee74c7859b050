from __future__ import annotations

from typing import Any

from courier_dispatch.core.events.event_bus import EventBus


class _NullSink:
    """Event sink that discards all events."""

    def on_event(self, event: Any) -> None:
        return


class NullEventBus(EventBus):
    """EventBus that discards all events (used for tests and bare services)."""

    def __init__(self) -> None:
        super().__init__(sinks=[_NullSink()])


class CollectingSink:
    """Event sink that keeps every event in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    def on_event(self, event: Any) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[Any]:
        return [e for e in self.events if isinstance(e, event_type)]
