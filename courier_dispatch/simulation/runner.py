"""Tick-based simulation loop.

Invariant:
- One tick moves every busy courier at most once, in store order.
- A courier whose order turned terminal (e.g. cancelled) mid-tick, or whose
  active order is missing from the store, is skipped, not treated as an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from courier_dispatch.core.domain.errors import NoActiveOrderError, OrderNotFound, OrderNotMovableError
from courier_dispatch.core.domain.types import OrderStatus

if TYPE_CHECKING:
    from courier_dispatch.core.ports.dispatch_store import DispatchStore
    from courier_dispatch.simulation.movement import MoveOutcome, MovementDriver

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SimulationSummary:
    ticks: int = 0
    moves: int = 0
    deliveries: int = 0
    delivered_order_ids: list[str] = field(default_factory=list)


class SimulationRunner:
    """Drives the movement driver until every courier is idle."""

    def __init__(self, store: DispatchStore, driver: MovementDriver) -> None:
        self._store = store
        self._driver = driver

    def busy_courier_ids(self) -> list[str]:
        return [c.id for c in self._store.list_couriers(available=False)]

    def tick(self) -> list[MoveOutcome]:
        """Move every busy courier once."""
        outcomes: list[MoveOutcome] = []
        for courier_id in self.busy_courier_ids():
            try:
                outcomes.append(self._driver.move(courier_id))
            except (NoActiveOrderError, OrderNotFound, OrderNotMovableError) as exc:
                LOGGER.info("Courier skipped", extra={"courier_id": courier_id, "reason": str(exc)})
        return outcomes

    def run(self, max_ticks: int) -> SimulationSummary:
        """Tick until no courier is busy or ``max_ticks`` is reached."""
        summary = SimulationSummary()

        while summary.ticks < max_ticks and self.busy_courier_ids():
            outcomes = self.tick()
            summary.ticks += 1
            for outcome in outcomes:
                if outcome.moved:
                    summary.moves += 1
                if outcome.progression.updated and outcome.progression.new_status == OrderStatus.DELIVERED:
                    summary.deliveries += 1
                    summary.delivered_order_ids.append(outcome.order.id)

        LOGGER.info(
            "Simulation finished",
            extra={"ticks": summary.ticks, "moves": summary.moves, "deliveries": summary.deliveries},
        )
        return summary
