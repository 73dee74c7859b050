"""
Domain event models.

These events represent immutable facts observed while dispatching orders.
They are consumed by loggers, recorders, and monitoring pipelines.
Statuses and locations are stored as plain values so every event is
JSON-serializable as-is.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class OrderStateTransitionEvent:
    ts_ns_local: int
    order_id: str
    courier_id: str | None
    prev_state: str
    next_state: str
    note: str = ""


@dataclass(slots=True)
class CourierAssignedEvent:
    ts_ns_local: int
    order_id: str
    courier_id: str
    distance: int
    candidates: int


@dataclass(slots=True)
class AssignmentFailedEvent:
    ts_ns_local: int
    order_id: str
    outcome: str
    reason: str
    candidates: int


@dataclass(slots=True)
class CourierReleasedEvent:
    ts_ns_local: int
    courier_id: str
    prev_order_id: str | None


@dataclass(slots=True)
class CourierMovedEvent:
    ts_ns_local: int
    courier_id: str
    order_id: str

    from_x: int
    from_y: int
    to_x: int
    to_y: int

    distance_to_target: int
