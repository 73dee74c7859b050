"""Storage port for couriers and orders.

This module defines the store-facing boundary used by the assignment
engine, the order progression and the movement driver. Concrete adapters
map it onto a specific backing store.

Contract:
- Conditional writes (``claim_courier``, ``compare_and_set_order_status``)
  must be a single atomic check-and-set inside the store. The core never
  locks around a read followed by a write.
- Returned records are copies. Mutating them has no effect on the store.
- Listing methods return records in insertion order.
- Any failure to reach the backing store raises ``StoreError``.
"""

from __future__ import annotations

from typing import Protocol

from courier_dispatch.core.domain.types import (
    Courier,
    DeliveryType,
    Order,
    OrderStatus,
    Point,
)


class DispatchStore(Protocol):
    """Courier / order persistence boundary."""

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_courier(self, courier_id: str) -> Courier | None:
        """Return the courier, or None if it does not exist."""

    def get_order(self, order_id: str) -> Order | None:
        """Return the order, or None if it does not exist."""

    def list_couriers(self, *, available: bool | None = None) -> list[Courier]:
        """Return all couriers, optionally filtered by ``is_available``."""

    def find_available_couriers(self) -> list[Courier]:
        """Return couriers with is_available=True and no active order."""

    def list_orders(
        self,
        *,
        status: OrderStatus | None = None,
        delivery_type: DeliveryType | None = None,
    ) -> list[Order]:
        """Return all orders, optionally filtered."""

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def insert_courier(self, courier: Courier) -> Courier:
        """Persist a new courier. Duplicate ids raise StoreError."""

    def insert_order(self, order: Order) -> Order:
        """Persist a new order. Duplicate ids raise StoreError."""

    # ------------------------------------------------------------------
    # Conditional writes
    # ------------------------------------------------------------------

    def claim_courier(self, courier_id: str, order_id: str) -> Courier | None:
        """Bind the courier to the order if it is still available.

        Sets is_available=False, active_order_id=order_id only if the stored
        record still has is_available=True and active_order_id=None.
        Returns the updated courier, or None if the claim was lost.
        """

    def compare_and_set_order_status(
        self,
        order_id: str,
        expected: OrderStatus,
        new: OrderStatus,
        *,
        courier_id: str | None = None,
    ) -> Order | None:
        """Move the order from ``expected`` to ``new`` if it is still ``expected``.

        When ``courier_id`` is given it is written together with the status.
        Returns the updated order, or None if the stored status differed.
        """

    # ------------------------------------------------------------------
    # Unconditional writes
    # ------------------------------------------------------------------

    def release_courier(self, courier_id: str) -> Courier | None:
        """Set is_available=True, active_order_id=None. None if unknown id."""

    def update_courier_location(self, courier_id: str, location: Point) -> Courier | None:
        """Overwrite the courier location. None if unknown id."""
