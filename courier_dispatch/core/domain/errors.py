"""Exception hierarchy for the dispatch boundary.

Only boundary rejections (malformed input, unknown ids, moves that make no
sense) and backing-store failures are raised. Expected outcomes of the core
(illegal transitions, no eligible courier, lost claims) are returned as
values instead, see ``order_state_machine.InvalidTransition`` and
``reasons.AssignmentOutcome``.
"""

from __future__ import annotations

from typing import Any


class DispatchError(Exception):
    """Base class for all dispatch errors."""


class DispatchValidationError(DispatchError, ValueError):
    """Malformed input rejected before it reaches the core."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors: list[dict[str, Any]] = list(errors) if errors else []


class InvalidPointError(DispatchValidationError):
    """A grid point is missing a coordinate or has a non-integer one."""


class NotFoundError(DispatchError, LookupError):
    """A referenced record does not exist."""

    kind = "record"

    def __init__(self, record_id: str) -> None:
        super().__init__(f"{self.kind.capitalize()} not found: {record_id}")
        self.record_id = record_id


class CourierNotFound(NotFoundError):
    kind = "courier"


class OrderNotFound(NotFoundError):
    kind = "order"


class NoActiveOrderError(DispatchError):
    """The courier has no active order to move towards."""


class OrderNotMovableError(DispatchError):
    """The courier's active order is not in a status that has a target."""


class StoreError(DispatchError):
    """The backing store failed. This is the only hard failure of the core."""
