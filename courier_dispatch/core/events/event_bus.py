"""
Synchronous event bus for dispatch domain events.

Sinks run on the emitting thread, so concurrent requests may call the
same sink at the same time. Delivery is best-effort: a failing sink is
logged and skipped, it never fails the dispatch operation that emitted
the event.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable

from courier_dispatch.core.events.event_sink import ClosableEventSink, EventSink

LOGGER = logging.getLogger(__name__)


class EventBus:
    """Dispatches events to registered sinks, optionally filtered by type."""

    def __init__(self, sinks: Iterable[EventSink] | None = None) -> None:
        self._routes: list[tuple[EventSink, tuple[type, ...] | None]] = [
            (sink, None) for sink in (sinks or ())
        ]
        self._closed = False

    def register(self, sink: EventSink, event_types: Iterable[type] | None = None) -> None:
        """Register a sink for all events, or only for the given event types."""
        types = tuple(event_types) if event_types is not None else None
        self._routes.append((sink, types))

    def emit(self, event: Any) -> None:
        """Emit an event to every sink subscribed to its type."""
        for sink, types in self._routes:
            if types is not None and not isinstance(event, types):
                continue
            try:
                sink.on_event(event)
            except Exception:  # pylint: disable=broad-exception-caught
                LOGGER.exception(
                    "Event sink failed",
                    extra={"sink": type(sink).__name__, "event_type": type(event).__name__},
                )

    def close(self) -> None:
        """
        Finalize all sinks that expose a close() method.
        """
        if self._closed:
            return

        for sink, _ in self._routes:
            if isinstance(sink, ClosableEventSink):
                sink.close()

        self._closed = True
