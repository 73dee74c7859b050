"""Assignment engine: nearest eligible courier with an atomic claim loop."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from courier_dispatch.core.config.dispatch_config import DispatchConfig
from courier_dispatch.core.domain import reasons
from courier_dispatch.core.domain.distance import manhattan_distance
from courier_dispatch.core.domain.reasons import AssignmentOutcome
from courier_dispatch.core.domain.types import Courier, DeliveryType, Order, OrderStatus
from courier_dispatch.core.events.events import (
    AssignmentFailedEvent,
    CourierAssignedEvent,
    CourierReleasedEvent,
    OrderStateTransitionEvent,
)

if TYPE_CHECKING:
    from courier_dispatch.core.events.event_bus import EventBus
    from courier_dispatch.core.ports.dispatch_store import DispatchStore

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result models (internal, not part of JSON schema)
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Candidate:
    courier: Courier
    distance: int


@dataclass(slots=True)
class AssignmentResult:
    """Result of a single assignment attempt.

    - success: the order is ASSIGNED to ``courier``
    - outcome: one of AssignmentOutcome
    - reason: human-readable explanation when success is False
    - order: the order as stored after the attempt (None if not re-read)
    """

    success: bool
    outcome: str
    courier: Courier | None = None
    reason: str | None = None
    order: Order | None = None
    distance: int | None = None


class AssignmentEngine:
    """Selects and atomically claims the best available courier for an order.

    The engine holds no mutable state of its own. Concurrent callers are
    arbitrated only by the store's conditional writes:
    - a courier is claimed with one check-and-set (available and unbound)
    - the order is moved CREATED -> ASSIGNED with one compare-and-set

    A call makes a single pass over the candidates. It never retries the
    same courier and never loops waiting for one to become free.
    """

    def __init__(
        self,
        store: DispatchStore,
        event_bus: EventBus,
        config: DispatchConfig | None = None,
    ) -> None:
        self._store = store
        self._event_bus = event_bus
        self._config = config if config is not None else DispatchConfig()

    @property
    def express_distance_threshold(self) -> int:
        return self._config.express_distance_threshold

    # ---------------------------------------------------------------------
    # Candidate selection
    # ---------------------------------------------------------------------

    def rank_candidates(self, order: Order, couriers: list[Courier]) -> list[Candidate]:
        """Filter by delivery-type policy and sort nearest first.

        The sort is stable, so couriers at equal distance keep the order in
        which the store returned them.
        """
        candidates = [
            Candidate(courier=c, distance=manhattan_distance(c.location, order.pickup_location))
            for c in couriers
        ]

        if order.delivery_type == DeliveryType.EXPRESS:
            threshold = self.express_distance_threshold
            candidates = [c for c in candidates if c.distance <= threshold]

        return sorted(candidates, key=lambda c: c.distance)

    # ---------------------------------------------------------------------
    # Assignment
    # ---------------------------------------------------------------------

    def assign(self, order: Order) -> AssignmentResult:
        """Assign the nearest eligible courier to ``order``.

        Store failures propagate as StoreError. Every other failure is
        returned as an unsuccessful AssignmentResult.
        """
        if order.status != OrderStatus.CREATED:
            return self._fail(
                order,
                AssignmentOutcome.ORDER_NOT_ASSIGNABLE,
                reasons.order_not_assignable_reason(order.status.value),
                candidates=0,
            )

        available = self._store.find_available_couriers()
        if not available:
            return self._fail(
                order,
                AssignmentOutcome.NO_AVAILABLE_COURIERS,
                reasons.NO_AVAILABLE_COURIERS_REASON,
                candidates=0,
            )

        ranked = self.rank_candidates(order, available)
        if not ranked:
            if order.delivery_type == DeliveryType.EXPRESS:
                reason = reasons.express_out_of_range_reason(self.express_distance_threshold)
            else:
                reason = reasons.NO_ELIGIBLE_COURIERS_REASON
            return self._fail(
                order,
                AssignmentOutcome.NO_ELIGIBLE_COURIER,
                reason,
                candidates=len(available),
            )

        for candidate in ranked:
            claimed = self._store.claim_courier(candidate.courier.id, order.id)
            if claimed is None:
                LOGGER.debug(
                    "Courier claim lost",
                    extra={"order_id": order.id, "courier_id": candidate.courier.id},
                )
                continue

            return self._commit(order, claimed, candidate.distance, len(ranked))

        return self._fail(
            order,
            AssignmentOutcome.CONCURRENT_CONFLICT,
            reasons.CONCURRENT_CONFLICT_REASON,
            candidates=len(ranked),
        )

    def _commit(
        self,
        order: Order,
        courier: Courier,
        distance: int,
        candidates: int,
    ) -> AssignmentResult:
        assigned = self._store.compare_and_set_order_status(
            order.id,
            OrderStatus.CREATED,
            OrderStatus.ASSIGNED,
            courier_id=courier.id,
        )

        if assigned is None:
            # The order moved on (e.g. cancelled) between read and claim.
            # Give the courier back so nothing stays half-assigned.
            self.release(courier.id)
            current = self._store.get_order(order.id)
            status = current.status.value if current is not None else "missing"
            return self._fail(
                order,
                AssignmentOutcome.ORDER_NOT_ASSIGNABLE,
                reasons.order_not_assignable_reason(status),
                candidates=candidates,
                current=current,
            )

        now = time.time_ns()
        self._event_bus.emit(
            CourierAssignedEvent(
                ts_ns_local=now,
                order_id=order.id,
                courier_id=courier.id,
                distance=distance,
                candidates=candidates,
            )
        )
        self._event_bus.emit(
            OrderStateTransitionEvent(
                ts_ns_local=now,
                order_id=order.id,
                courier_id=courier.id,
                prev_state=OrderStatus.CREATED.value,
                next_state=OrderStatus.ASSIGNED.value,
                note="Courier assigned",
            )
        )
        LOGGER.info(
            "Courier assigned",
            extra={"order_id": order.id, "courier_id": courier.id, "distance": distance},
        )

        return AssignmentResult(
            success=True,
            outcome=AssignmentOutcome.ASSIGNED,
            courier=courier,
            order=assigned,
            distance=distance,
        )

    def _fail(
        self,
        order: Order,
        outcome: str,
        reason: str,
        *,
        candidates: int,
        current: Order | None = None,
    ) -> AssignmentResult:
        self._event_bus.emit(
            AssignmentFailedEvent(
                ts_ns_local=time.time_ns(),
                order_id=order.id,
                outcome=outcome,
                reason=reason,
                candidates=candidates,
            )
        )
        LOGGER.info(
            "Order left unassigned",
            extra={"order_id": order.id, "outcome": outcome, "reason": reason},
        )
        return AssignmentResult(
            success=False,
            outcome=outcome,
            reason=reason,
            order=current if current is not None else order,
        )

    # ---------------------------------------------------------------------
    # Release
    # ---------------------------------------------------------------------

    def release(self, courier_id: str) -> Courier | None:
        """Make the courier available again. Idempotent.

        Returns the released courier, or None if the id is unknown.
        """
        before = self._store.get_courier(courier_id)
        released = self._store.release_courier(courier_id)
        if released is None:
            return None

        prev_order_id = before.active_order_id if before is not None else None
        if prev_order_id is not None:
            self._event_bus.emit(
                CourierReleasedEvent(
                    ts_ns_local=time.time_ns(),
                    courier_id=courier_id,
                    prev_order_id=prev_order_id,
                )
            )
        return released
