"""Automatic order progression driven by courier position.

Called once per simulation tick after the courier has moved. Every status
change is a compare-and-set from the status the order was read with, so a
concurrent writer (for example a cancellation) makes the tick a no-op
instead of overwriting its result.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from courier_dispatch.core.config.dispatch_config import DispatchConfig
from courier_dispatch.core.domain.distance import within_threshold
from courier_dispatch.core.domain.order_state_machine import is_terminal_state, is_valid_progression
from courier_dispatch.core.domain.types import Courier, Order, OrderStatus, Point
from courier_dispatch.core.events.events import OrderStateTransitionEvent

if TYPE_CHECKING:
    from courier_dispatch.core.assignment.assignment_engine import AssignmentEngine
    from courier_dispatch.core.events.event_bus import EventBus
    from courier_dispatch.core.ports.dispatch_store import DispatchStore

LOGGER = logging.getLogger(__name__)

NOTE_TERMINAL = "Order is in terminal state"
NOTE_PICKED_UP = "Courier reached pickup location"
NOTE_DELIVERED = "Courier reached drop location. Order delivered!"
NOTE_IN_TRANSIT = "Courier started moving to drop location"
NOTE_NO_PROGRESS = "No state progression needed"
NOTE_CONCURRENT = "Order status changed concurrently"


@dataclass(slots=True)
class ProgressionResult:
    updated: bool
    new_status: OrderStatus | None
    note: str


class OrderProgression:
    """Advances ASSIGNED -> PICKED_UP -> IN_TRANSIT -> DELIVERED by proximity."""

    def __init__(
        self,
        store: DispatchStore,
        assignment: AssignmentEngine,
        event_bus: EventBus,
        config: DispatchConfig | None = None,
    ) -> None:
        self._store = store
        self._assignment = assignment
        self._event_bus = event_bus
        self._config = config if config is not None else DispatchConfig()

    def _at(self, courier: Courier, target: Point) -> bool:
        return within_threshold(courier.location, target, self._config.arrival_threshold)

    def auto_progress(self, order: Order, courier: Courier) -> ProgressionResult:
        """Advance ``order`` one step if the courier's position warrants it."""
        if is_terminal_state(order.status):
            return ProgressionResult(updated=False, new_status=order.status, note=NOTE_TERMINAL)

        if order.status == OrderStatus.ASSIGNED:
            if self._at(courier, order.pickup_location):
                return self._transition(order, OrderStatus.PICKED_UP, NOTE_PICKED_UP)

        elif order.status in (OrderStatus.PICKED_UP, OrderStatus.IN_TRANSIT):
            if self._at(courier, order.drop_location):
                # From PICKED_UP this is the proximity-only move (drop one step
                # from pickup, or the same cell).
                result = self._transition(order, OrderStatus.DELIVERED, NOTE_DELIVERED)
                # DELIVERED is durable before the courier is released. A crash in
                # between leaves a delivered order with a busy courier, never the
                # inverse.
                if result.updated:
                    self._assignment.release(courier.id)
                return result

            if order.status == OrderStatus.PICKED_UP:
                return self._transition(order, OrderStatus.IN_TRANSIT, NOTE_IN_TRANSIT)

        return ProgressionResult(updated=False, new_status=order.status, note=NOTE_NO_PROGRESS)

    def _transition(self, order: Order, new_status: OrderStatus, note: str) -> ProgressionResult:
        if not is_valid_progression(order.status, new_status):
            raise ValueError(
                f"Progression cannot move order from {order.status.value} to {new_status.value}"
            )

        updated = self._store.compare_and_set_order_status(order.id, order.status, new_status)
        if updated is None:
            LOGGER.info(
                "Order progression skipped",
                extra={"order_id": order.id, "expected": order.status.value},
            )
            return ProgressionResult(updated=False, new_status=None, note=NOTE_CONCURRENT)

        self._event_bus.emit(
            OrderStateTransitionEvent(
                ts_ns_local=time.time_ns(),
                order_id=order.id,
                courier_id=order.courier_id,
                prev_state=order.status.value,
                next_state=new_status.value,
                note=note,
            )
        )
        return ProgressionResult(updated=True, new_status=new_status, note=note)
