"""Boundary request models.

Inputs are validated here, before anything reaches the core. These models
mirror what an HTTP layer would accept as request bodies.
"""

# pylint: disable=missing-class-docstring
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from courier_dispatch.core.domain.types import DeliveryType, Point


class CreateCourierRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Display name. Surrounding whitespace is stripped.")
    location: Point

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class CreateOrderRequest(BaseModel):
    pickup_location: Point
    drop_location: Point
    delivery_type: DeliveryType

    model_config = ConfigDict(extra="forbid")


class UpdateLocationRequest(BaseModel):
    location: Point

    model_config = ConfigDict(extra="forbid")


# Default fleet used when seeding an empty store.
DEFAULT_FLEET: tuple[CreateCourierRequest, ...] = (
    CreateCourierRequest(name="Courier Alpha", location=Point(x=0, y=0)),
    CreateCourierRequest(name="Courier Beta", location=Point(x=5, y=5)),
    CreateCourierRequest(name="Courier Gamma", location=Point(x=10, y=10)),
    CreateCourierRequest(name="Courier Delta", location=Point(x=15, y=15)),
    CreateCourierRequest(name="Courier Echo", location=Point(x=20, y=20)),
)
