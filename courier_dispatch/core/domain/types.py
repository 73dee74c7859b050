"""Core shared data models.

This module defines the canonical Pydantic models used across the system for
grid positions, couriers and orders. These types are treated as schema
definitions: the JSON schemas under ``core/schemas`` describe exactly the
fields dumped from these models.
"""

# pylint: disable=missing-class-docstring
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, StrictInt, model_validator

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class DeliveryType(str, Enum):
    EXPRESS = "EXPRESS"
    NORMAL = "NORMAL"


class OrderStatus(str, Enum):
    CREATED = "CREATED"
    ASSIGNED = "ASSIGNED"
    PICKED_UP = "PICKED_UP"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


# ---------------------------------------------------------------------------
# Grid models
# ---------------------------------------------------------------------------


class Point(BaseModel):
    """Immutable grid coordinate. No bounds."""

    x: StrictInt
    y: StrictInt

    model_config = ConfigDict(extra="forbid", frozen=True)

    def __str__(self) -> str:
        return f"({self.x}, {self.y})"


# ---------------------------------------------------------------------------
# Courier / order records
# ---------------------------------------------------------------------------


class Courier(BaseModel):
    """
    Courier record.

    Invariant:
    - is_available is False iff active_order_id is set.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    location: Point
    is_available: bool = True
    active_order_id: str | None = Field(default=None, min_length=1)

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    @model_validator(mode="after")
    def validate_availability_binding(self) -> Courier:
        if self.is_available and self.active_order_id is not None:
            raise ValueError("an available courier must not have an active order")
        if not self.is_available and self.active_order_id is None:
            raise ValueError("a busy courier must have an active order")
        return self


class Order(BaseModel):
    """
    Delivery order record.

    Notes:
    - courier_id is retained after DELIVERED / CANCELLED for history, even though
      the courier itself has been released.
    - status only moves forward along the order state machine.
    """

    id: str = Field(..., min_length=1)
    pickup_location: Point
    drop_location: Point
    delivery_type: DeliveryType
    status: OrderStatus = OrderStatus.CREATED
    courier_id: str | None = Field(default=None, min_length=1)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_courier_binding(self) -> Order:
        needs_courier = {
            OrderStatus.ASSIGNED,
            OrderStatus.PICKED_UP,
            OrderStatus.IN_TRANSIT,
            OrderStatus.DELIVERED,
        }
        if self.status in needs_courier and self.courier_id is None:
            raise ValueError(f"courier_id is required when status is {self.status.value}")
        if self.status == OrderStatus.CREATED and self.courier_id is not None:
            raise ValueError("courier_id must be None while the order is CREATED")
        return self

    def is_terminal(self) -> bool:
        return self.status in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)
