"""Assignment outcome codes and their human-readable reasons."""

from __future__ import annotations


class AssignmentOutcome:
    """Canonical outcome codes for an assignment attempt."""

    ASSIGNED = "assigned"
    NO_AVAILABLE_COURIERS = "no_available_couriers"
    NO_ELIGIBLE_COURIER = "no_eligible_courier"
    CONCURRENT_CONFLICT = "concurrent_conflict"
    ORDER_NOT_ASSIGNABLE = "order_not_assignable"


NO_AVAILABLE_COURIERS_REASON = "No available couriers at the moment"
NO_ELIGIBLE_COURIERS_REASON = "No eligible couriers found"
CONCURRENT_CONFLICT_REASON = (
    "All eligible couriers were assigned to other orders (concurrent request conflict)"
)


def express_out_of_range_reason(threshold: int) -> str:
    return f"No courier available within {threshold} units for EXPRESS delivery"


def order_not_assignable_reason(status: str) -> str:
    return f"Order is no longer awaiting assignment (status: {status})"
