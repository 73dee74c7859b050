"""
Order lifecycle state machine definitions.

This module defines the canonical delivery order states and the allowed
transitions between them. It is passive and validation-only: writers
consult it before performing a guarded status update.

Cancellation policy: an order may only be cancelled while it is CREATED or
ASSIGNED. Once the package has been picked up it can no longer be cancelled.
"""

from __future__ import annotations

from dataclasses import dataclass

from courier_dispatch.core.domain.types import OrderStatus

# Terminal order states: no outgoing transitions.
ORDER_TERMINAL_STATES: frozenset[OrderStatus] = frozenset(
    {
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    }
)


# Allowed order state transitions.
#
# Key   : current state
# Value : set of allowed next states
#
# Notes:
# - Status only moves forward; there are no self-transitions.
# - CANCELLED is reachable from CREATED and ASSIGNED only.
ORDER_ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.CREATED: frozenset(
        {
            OrderStatus.ASSIGNED,
            OrderStatus.CANCELLED,
        }
    ),

    OrderStatus.ASSIGNED: frozenset(
        {
            OrderStatus.PICKED_UP,
            OrderStatus.CANCELLED,
        }
    ),

    OrderStatus.PICKED_UP: frozenset({OrderStatus.IN_TRANSIT}),

    OrderStatus.IN_TRANSIT: frozenset({OrderStatus.DELIVERED}),

    OrderStatus.DELIVERED: frozenset(),

    OrderStatus.CANCELLED: frozenset(),
}


# Moves only the automatic progression may write, never requested by a caller.
# A drop point one step from pickup (or the same cell) is reached on the tick
# after pickup, before the order could pass through IN_TRANSIT.
PROXIMITY_ONLY_TRANSITIONS: frozenset[tuple[OrderStatus, OrderStatus]] = frozenset(
    {
        (OrderStatus.PICKED_UP, OrderStatus.DELIVERED),
    }
)

# Lifecycle order, used to render allowed targets in table order.
_LIFECYCLE_RANK: dict[OrderStatus, int] = {s: i for i, s in enumerate(OrderStatus)}


@dataclass(frozen=True, slots=True)
class InvalidTransition:
    """A requested status change that the table does not allow."""

    from_status: OrderStatus
    to_status: OrderStatus
    allowed: frozenset[OrderStatus]

    @property
    def message(self) -> str:
        ordered = sorted(self.allowed, key=_LIFECYCLE_RANK.__getitem__)
        allowed = ", ".join(s.value for s in ordered) or "none"
        return (
            f"Invalid state transition from {self.from_status.value} to "
            f"{self.to_status.value}. Valid transitions: {allowed}"
        )


def allowed_targets(state: OrderStatus) -> frozenset[OrderStatus]:
    """Return the states reachable from ``state`` in one transition."""
    return ORDER_ALLOWED_TRANSITIONS[OrderStatus(state)]


def is_terminal_state(state: OrderStatus) -> bool:
    """Return True if the given state is terminal."""
    return state in ORDER_TERMINAL_STATES


def is_valid_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    """Return True if the transition current -> requested is allowed."""
    return requested in allowed_targets(current)


def is_valid_progression(current: OrderStatus, requested: OrderStatus) -> bool:
    """Return True if the automatic progression may write current -> requested."""
    current = OrderStatus(current)
    requested = OrderStatus(requested)
    return is_valid_transition(current, requested) or (current, requested) in PROXIMITY_ONLY_TRANSITIONS


def is_cancellable(state: OrderStatus) -> bool:
    """Return True if an order in ``state`` may still be cancelled."""
    return is_valid_transition(state, OrderStatus.CANCELLED)


def validate_transition(current: OrderStatus, requested: OrderStatus) -> InvalidTransition | None:
    """Check a requested transition without side effects.

    Returns None when the transition is allowed, otherwise an
    InvalidTransition describing what would have been legal.
    """
    current = OrderStatus(current)
    requested = OrderStatus(requested)
    allowed = allowed_targets(current)
    if requested in allowed:
        return None
    return InvalidTransition(from_status=current, to_status=requested, allowed=allowed)
