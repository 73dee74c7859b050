"""Courier movement driver.

One call moves a courier one grid step toward its current target and then
asks the order progression whether the order should advance. Movement is
deliberately simple: one unit per tick, no diagonals, no velocity.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from courier_dispatch.core.domain.distance import manhattan_distance
from courier_dispatch.core.domain.errors import (
    CourierNotFound,
    NoActiveOrderError,
    OrderNotFound,
    OrderNotMovableError,
)
from courier_dispatch.core.domain.types import Courier, Order, OrderStatus, Point
from courier_dispatch.core.events.events import CourierMovedEvent

if TYPE_CHECKING:
    from courier_dispatch.core.events.event_bus import EventBus
    from courier_dispatch.core.lifecycle.progression import OrderProgression, ProgressionResult
    from courier_dispatch.core.ports.dispatch_store import DispatchStore

LOGGER = logging.getLogger(__name__)


def _sign(value: int) -> int:
    return 1 if value > 0 else -1


def step_toward(current: Point, target: Point) -> Point:
    """Return the position one unit closer to ``target``.

    Horizontal when |dx| > |dy|, otherwise vertical, and horizontal again
    when dy is zero. At the target the position is returned unchanged.
    """
    dx = target.x - current.x
    dy = target.y - current.y

    if abs(dx) + abs(dy) == 0:
        return current
    if abs(dx) > abs(dy):
        return Point(x=current.x + _sign(dx), y=current.y)
    if dy != 0:
        return Point(x=current.x, y=current.y + _sign(dy))
    return Point(x=current.x + _sign(dx), y=current.y)


def movement_target(order: Order) -> Point | None:
    """Pickup while ASSIGNED, drop while PICKED_UP / IN_TRANSIT, else None."""
    if order.status == OrderStatus.ASSIGNED:
        return order.pickup_location
    if order.status in (OrderStatus.PICKED_UP, OrderStatus.IN_TRANSIT):
        return order.drop_location
    return None


@dataclass(slots=True)
class MoveOutcome:
    courier: Courier
    order: Order
    moved: bool
    distance_to_target: int
    progression: ProgressionResult


class MovementDriver:
    """Moves couriers with an active order and triggers order progression."""

    def __init__(
        self,
        store: DispatchStore,
        progression: OrderProgression,
        event_bus: EventBus,
    ) -> None:
        self._store = store
        self._progression = progression
        self._event_bus = event_bus

    def move(self, courier_id: str) -> MoveOutcome:
        """Advance one courier by one tick.

        Raises:
            CourierNotFound / OrderNotFound: unknown ids
            NoActiveOrderError: the courier is idle
            OrderNotMovableError: the active order has no movement target
        """
        courier = self._store.get_courier(courier_id)
        if courier is None:
            raise CourierNotFound(courier_id)
        if courier.active_order_id is None:
            raise NoActiveOrderError(f"Courier {courier_id} has no active order to move towards")

        order = self._store.get_order(courier.active_order_id)
        if order is None:
            raise OrderNotFound(courier.active_order_id)

        target = movement_target(order)
        if target is None:
            raise OrderNotMovableError(
                f"Cannot move courier. Order status is {order.status.value}"
            )

        next_location = step_toward(courier.location, target)
        moved = next_location != courier.location
        if moved:
            updated = self._store.update_courier_location(courier_id, next_location)
            if updated is None:
                raise CourierNotFound(courier_id)
            self._event_bus.emit(
                CourierMovedEvent(
                    ts_ns_local=time.time_ns(),
                    courier_id=courier_id,
                    order_id=order.id,
                    from_x=courier.location.x,
                    from_y=courier.location.y,
                    to_x=next_location.x,
                    to_y=next_location.y,
                    distance_to_target=manhattan_distance(next_location, target),
                )
            )
            courier = updated

        progression = self._progression.auto_progress(order, courier)

        refreshed_courier = self._store.get_courier(courier_id) or courier
        refreshed_order = self._store.get_order(order.id) or order

        LOGGER.debug(
            "Courier tick",
            extra={
                "courier_id": courier_id,
                "order_id": order.id,
                "moved": moved,
                "status": refreshed_order.status.value,
            },
        )

        return MoveOutcome(
            courier=refreshed_courier,
            order=refreshed_order,
            moved=moved,
            distance_to_target=manhattan_distance(refreshed_courier.location, target),
            progression=progression,
        )
