"""Dispatch boundary service.

This is the layer an HTTP framework or a CLI calls into. It validates raw
payloads, maps unknown ids to NotFound errors and wires the assignment
engine, the order progression and the movement driver around one
explicitly passed store handle.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Iterable, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from courier_dispatch.core.assignment.assignment_engine import AssignmentEngine, AssignmentResult
from courier_dispatch.core.config.dispatch_config import DispatchConfig
from courier_dispatch.core.domain.errors import (
    CourierNotFound,
    DispatchValidationError,
    OrderNotFound,
)
from courier_dispatch.core.domain.order_state_machine import InvalidTransition, validate_transition
from courier_dispatch.core.domain.types import (
    Courier,
    DeliveryType,
    Order,
    OrderStatus,
)
from courier_dispatch.core.events.event_bus import EventBus
from courier_dispatch.core.events.events import OrderStateTransitionEvent
from courier_dispatch.core.events.sinks.null_event_bus import NullEventBus
from courier_dispatch.core.lifecycle.progression import OrderProgression
from courier_dispatch.core.ports.dispatch_store import DispatchStore
from courier_dispatch.service.requests import (
    DEFAULT_FLEET,
    CreateCourierRequest,
    CreateOrderRequest,
    UpdateLocationRequest,
)
from courier_dispatch.simulation.movement import MoveOutcome, MovementDriver

LOGGER = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)


def _new_id() -> str:
    return uuid.uuid4().hex


def _parse(model: type[RequestT], payload: Any) -> RequestT:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise DispatchValidationError(
            f"Invalid {model.__name__}: {exc.error_count()} error(s)",
            errors=exc.errors(include_url=False),
        ) from exc


@dataclass(slots=True)
class OrderPlacement:
    """A freshly created order and the outcome of assigning it."""

    order: Order
    assignment: AssignmentResult


@dataclass(slots=True)
class CancellationResult:
    success: bool
    order: Order
    error: InvalidTransition | None = None


class DispatchService:
    """Courier / order operations on top of one store handle."""

    # pylint: disable=too-many-instance-attributes

    def __init__(
        self,
        store: DispatchStore,
        *,
        event_bus: EventBus | None = None,
        config: DispatchConfig | None = None,
    ) -> None:
        self.store = store
        self.config = config if config is not None else DispatchConfig()
        self.event_bus = event_bus if event_bus is not None else NullEventBus()

        self.assignment = AssignmentEngine(store, self.event_bus, self.config)
        self.progression = OrderProgression(store, self.assignment, self.event_bus, self.config)
        self.driver = MovementDriver(store, self.progression, self.event_bus)

    # ------------------------------------------------------------------
    # Couriers
    # ------------------------------------------------------------------

    def create_courier(self, payload: Any) -> Courier:
        request = _parse(CreateCourierRequest, payload)
        courier = Courier(
            id=_new_id(),
            name=request.name,
            location=request.location,
            is_available=True,
            active_order_id=None,
        )
        created = self.store.insert_courier(courier)
        LOGGER.info("Courier created", extra={"courier_id": created.id, "courier_name": created.name})
        return created

    def seed_couriers(self, fleet: Iterable[Any] | None = None) -> list[Courier]:
        """Create the given couriers, or the default fleet."""
        return [self.create_courier(entry) for entry in (fleet if fleet is not None else DEFAULT_FLEET)]

    def get_courier(self, courier_id: str) -> Courier:
        courier = self.store.get_courier(courier_id)
        if courier is None:
            raise CourierNotFound(courier_id)
        return courier

    def list_couriers(self, available: bool | None = None) -> list[Courier]:
        return self.store.list_couriers(available=available)

    def update_courier_location(self, courier_id: str, payload: Any) -> Courier:
        request = _parse(UpdateLocationRequest, payload)
        courier = self.store.update_courier_location(courier_id, request.location)
        if courier is None:
            raise CourierNotFound(courier_id)
        return courier

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def create_order(self, payload: Any) -> OrderPlacement:
        """Create an order and try to assign a courier right away.

        An order that could not be assigned stays CREATED; the assignment
        result says why.
        """
        request = _parse(CreateOrderRequest, payload)
        order = self.store.insert_order(
            Order(
                id=_new_id(),
                pickup_location=request.pickup_location,
                drop_location=request.drop_location,
                delivery_type=request.delivery_type,
                status=OrderStatus.CREATED,
            )
        )

        result = self.assignment.assign(order)
        refreshed = self.store.get_order(order.id)
        if refreshed is None:
            raise OrderNotFound(order.id)
        return OrderPlacement(order=refreshed, assignment=result)

    def get_order(self, order_id: str) -> Order:
        order = self.store.get_order(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def list_orders(
        self,
        status: OrderStatus | str | None = None,
        delivery_type: DeliveryType | str | None = None,
    ) -> list[Order]:
        try:
            status_f = OrderStatus(status) if status is not None else None
            type_f = DeliveryType(delivery_type) if delivery_type is not None else None
        except ValueError as exc:
            raise DispatchValidationError(str(exc)) from exc
        return self.store.list_orders(status=status_f, delivery_type=type_f)

    def cancel_order(self, order_id: str) -> CancellationResult:
        """Cancel an order that has not been picked up yet.

        The status write is a compare-and-set. If another writer moved the
        order first, the new status is re-validated; because status only
        moves forward this settles after a handful of rounds.
        """
        order = self.get_order(order_id)

        while True:
            error = validate_transition(order.status, OrderStatus.CANCELLED)
            if error is not None:
                LOGGER.info(
                    "Cancellation rejected",
                    extra={"order_id": order_id, "status": order.status.value},
                )
                return CancellationResult(success=False, order=order, error=error)

            cancelled = self.store.compare_and_set_order_status(
                order_id, order.status, OrderStatus.CANCELLED
            )
            if cancelled is not None:
                break
            order = self.get_order(order_id)

        self.event_bus.emit(
            OrderStateTransitionEvent(
                ts_ns_local=time.time_ns(),
                order_id=order_id,
                courier_id=cancelled.courier_id,
                prev_state=order.status.value,
                next_state=OrderStatus.CANCELLED.value,
                note="Order cancelled",
            )
        )

        if cancelled.courier_id is not None:
            self.assignment.release(cancelled.courier_id)

        return CancellationResult(success=True, order=cancelled)

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def simulate_move(self, courier_id: str) -> MoveOutcome:
        return self.driver.move(courier_id)
