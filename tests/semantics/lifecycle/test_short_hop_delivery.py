"""
Semantic test: drop point next to (or at) the pickup point.

Invariants:
- The courier is at the drop on the tick after pickup, so the order goes
  PICKED_UP -> DELIVERED without passing through IN_TRANSIT, and the courier
  is released.
- That move is proximity-only: the progression may write it, a caller can
  never request it, and the cancellation table is unchanged.
"""

from __future__ import annotations

from courier_dispatch.adapters.memory_store import InMemoryDispatchStore
from courier_dispatch.core.domain.order_state_machine import (
    PROXIMITY_ONLY_TRANSITIONS,
    is_valid_progression,
    validate_transition,
)
from courier_dispatch.core.domain.types import OrderStatus, Point
from courier_dispatch.core.events.event_bus import EventBus
from courier_dispatch.core.events.events import OrderStateTransitionEvent
from courier_dispatch.core.events.sinks.null_event_bus import CollectingSink
from courier_dispatch.service.dispatch_service import DispatchService


def _deliver(drop: dict) -> tuple[DispatchService, CollectingSink, str, str]:
    sink = CollectingSink()
    service = DispatchService(InMemoryDispatchStore(), event_bus=EventBus(sinks=[sink]))
    courier = service.create_courier({"name": "Hopper", "location": {"x": 0, "y": 0}})
    placement = service.create_order(
        {
            "pickup_location": {"x": 0, "y": 0},
            "drop_location": drop,
            "delivery_type": "NORMAL",
        }
    )
    assert placement.assignment.success
    return service, sink, courier.id, placement.order.id


def _transitions(sink: CollectingSink) -> list[tuple[str, str]]:
    return [(e.prev_state, e.next_state) for e in sink.of_type(OrderStateTransitionEvent)]


def test_drop_one_step_from_pickup() -> None:
    service, sink, courier_id, order_id = _deliver({"x": 0, "y": 1})

    first = service.simulate_move(courier_id)
    assert first.order.status == OrderStatus.PICKED_UP

    second = service.simulate_move(courier_id)
    assert second.courier.location == Point(x=0, y=1)
    assert second.order.status == OrderStatus.DELIVERED
    assert second.progression.updated

    assert _transitions(sink) == [
        ("CREATED", "ASSIGNED"),
        ("ASSIGNED", "PICKED_UP"),
        ("PICKED_UP", "DELIVERED"),
    ]
    assert service.get_courier(courier_id).is_available
    assert service.get_order(order_id).courier_id == courier_id


def test_drop_equal_to_pickup() -> None:
    service, sink, courier_id, order_id = _deliver({"x": 0, "y": 0})

    first = service.simulate_move(courier_id)
    second = service.simulate_move(courier_id)

    assert not first.moved
    assert not second.moved
    assert first.order.status == OrderStatus.PICKED_UP
    assert second.order.status == OrderStatus.DELIVERED
    assert _transitions(sink)[-1] == ("PICKED_UP", "DELIVERED")
    assert service.get_courier(courier_id).active_order_id is None
    assert service.get_order(order_id).status == OrderStatus.DELIVERED


def test_every_written_transition_is_a_valid_progression() -> None:
    service, sink, courier_id, _ = _deliver({"x": 0, "y": 1})
    service.simulate_move(courier_id)
    service.simulate_move(courier_id)

    # CREATED -> ASSIGNED is written by the assignment engine, not the progression
    for prev_state, next_state in _transitions(sink)[1:]:
        assert is_valid_progression(prev_state, next_state)


def test_short_hop_is_not_a_requestable_transition() -> None:
    assert PROXIMITY_ONLY_TRANSITIONS == frozenset({(OrderStatus.PICKED_UP, OrderStatus.DELIVERED)})

    error = validate_transition(OrderStatus.PICKED_UP, OrderStatus.DELIVERED)

    assert error is not None
    assert error.message.endswith("Valid transitions: IN_TRANSIT")
    assert not is_valid_progression(OrderStatus.PICKED_UP, OrderStatus.CANCELLED)
