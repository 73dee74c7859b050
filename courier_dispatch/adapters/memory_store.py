"""In-memory implementation of the dispatch store port.

Each operation runs under one internal lock, which plays the role a
database row lock plays for a conditional update. The lock is private to
the store: callers still only see single-call check-and-set semantics and
never hold it across a read and a later write.
"""

from __future__ import annotations

import threading

from courier_dispatch.core.domain.errors import StoreError
from courier_dispatch.core.domain.types import (
    Courier,
    DeliveryType,
    Order,
    OrderStatus,
    Point,
)


class InMemoryDispatchStore:
    """Dict-backed store. Records are copied on the way in and out."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # dicts preserve insertion order, which is the listing order
        self._couriers: dict[str, Courier] = {}
        self._orders: dict[str, Order] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_courier(self, courier_id: str) -> Courier | None:
        with self._lock:
            courier = self._couriers.get(courier_id)
            return courier.model_copy() if courier is not None else None

    def get_order(self, order_id: str) -> Order | None:
        with self._lock:
            order = self._orders.get(order_id)
            return order.model_copy() if order is not None else None

    def list_couriers(self, *, available: bool | None = None) -> list[Courier]:
        with self._lock:
            return [
                c.model_copy()
                for c in self._couriers.values()
                if available is None or c.is_available == available
            ]

    def find_available_couriers(self) -> list[Courier]:
        with self._lock:
            return [
                c.model_copy()
                for c in self._couriers.values()
                if c.is_available and c.active_order_id is None
            ]

    def list_orders(
        self,
        *,
        status: OrderStatus | None = None,
        delivery_type: DeliveryType | None = None,
    ) -> list[Order]:
        with self._lock:
            return [
                o.model_copy()
                for o in self._orders.values()
                if (status is None or o.status == status)
                and (delivery_type is None or o.delivery_type == delivery_type)
            ]

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def insert_courier(self, courier: Courier) -> Courier:
        with self._lock:
            if courier.id in self._couriers:
                raise StoreError(f"Duplicate courier id: {courier.id}")
            self._couriers[courier.id] = courier.model_copy()
            return courier.model_copy()

    def insert_order(self, order: Order) -> Order:
        with self._lock:
            if order.id in self._orders:
                raise StoreError(f"Duplicate order id: {order.id}")
            self._orders[order.id] = order.model_copy()
            return order.model_copy()

    # ------------------------------------------------------------------
    # Conditional writes
    # ------------------------------------------------------------------

    def claim_courier(self, courier_id: str, order_id: str) -> Courier | None:
        with self._lock:
            current = self._couriers.get(courier_id)
            if current is None or not current.is_available or current.active_order_id is not None:
                return None
            claimed = current.model_copy(
                update={"is_available": False, "active_order_id": order_id}
            )
            self._couriers[courier_id] = claimed
            return claimed.model_copy()

    def compare_and_set_order_status(
        self,
        order_id: str,
        expected: OrderStatus,
        new: OrderStatus,
        *,
        courier_id: str | None = None,
    ) -> Order | None:
        with self._lock:
            current = self._orders.get(order_id)
            if current is None or current.status != expected:
                return None
            update: dict[str, object] = {"status": new}
            if courier_id is not None:
                update["courier_id"] = courier_id
            updated = current.model_copy(update=update)
            self._orders[order_id] = updated
            return updated.model_copy()

    # ------------------------------------------------------------------
    # Unconditional writes
    # ------------------------------------------------------------------

    def release_courier(self, courier_id: str) -> Courier | None:
        with self._lock:
            current = self._couriers.get(courier_id)
            if current is None:
                return None
            released = current.model_copy(update={"is_available": True, "active_order_id": None})
            self._couriers[courier_id] = released
            return released.model_copy()

    def update_courier_location(self, courier_id: str, location: Point) -> Courier | None:
        with self._lock:
            current = self._couriers.get(courier_id)
            if current is None:
                return None
            moved = current.model_copy(update={"location": location})
            self._couriers[courier_id] = moved
            return moved.model_copy()
