from __future__ import annotations

import argparse
import json
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Any

from courier_dispatch.adapters.memory_store import InMemoryDispatchStore
from courier_dispatch.adapters.sqlite_store import SQLiteDispatchStore
from courier_dispatch.core.config.dispatch_config import DispatchConfig
from courier_dispatch.core.domain.errors import DispatchError, DispatchValidationError
from courier_dispatch.core.events.event_bus import EventBus
from courier_dispatch.core.events.events import AssignmentFailedEvent, CourierAssignedEvent
from courier_dispatch.core.events.sinks.file_recorder import FileRecorderSink
from courier_dispatch.core.events.sinks.sink_logging import LoggingEventSink
from courier_dispatch.core.ports.dispatch_store import DispatchStore
from courier_dispatch.runtime.prometheus_metrics import (
    AssignmentMetricsSink,
    PrometheusMetricsClient,
)
from courier_dispatch.service.dispatch_service import DispatchService
from courier_dispatch.simulation.runner import SimulationRunner, SimulationSummary

LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Scenario must be a JSON object: {path}")
    return data


def _build_store(config: DispatchConfig) -> DispatchStore:
    if config.database_path:
        return SQLiteDispatchStore(config.database_path)
    return InMemoryDispatchStore()


def _build_event_bus(config: DispatchConfig, metrics_sink: AssignmentMetricsSink) -> EventBus:
    bus = EventBus(sinks=[LoggingEventSink(logging.getLogger("bus"))])
    if config.event_log_path:
        bus.register(FileRecorderSink(config.event_log_path))
    bus.register(metrics_sink, event_types=(CourierAssignedEvent, AssignmentFailedEvent))
    return bus


def _print_summary(service: DispatchService, summary: SimulationSummary) -> None:
    by_status = Counter(o.status.value for o in service.list_orders())
    print("Simulation summary")
    print(f"  ticks:      {summary.ticks}")
    print(f"  moves:      {summary.moves}")
    print(f"  deliveries: {summary.deliveries}")
    print("  orders by status:")
    for status, count in sorted(by_status.items()):
        print(f"    {status:<11} {count}")
    idle = len(service.list_couriers(available=True))
    print(f"  idle couriers: {idle}/{len(service.list_couriers())}")


def _push_metrics(
    summary: SimulationSummary,
    metrics_sink: AssignmentMetricsSink,
    service: DispatchService,
) -> None:
    metrics = PrometheusMetricsClient()
    if not metrics.is_enabled():
        return

    try:
        metrics_sink.export(metrics)
        metrics.set_gauge(name="dispatch_simulation_ticks", value=float(summary.ticks), labels={})
        metrics.set_gauge(
            name="dispatch_simulation_deliveries",
            value=float(summary.deliveries),
            labels={},
        )
        for status, count in Counter(o.status.value for o in service.list_orders()).items():
            metrics.set_gauge(
                name="dispatch_orders_by_status",
                value=float(count),
                labels={"status": status},
            )
        metrics.push_all(job="courier_dispatch_simulation")
    except Exception:  # pylint: disable=broad-exception-caught
        LOGGER.exception("Prometheus push failed")


def run_scenario(scenario: dict[str, Any], config: DispatchConfig) -> SimulationSummary:
    """Seed couriers, place orders and simulate until idle or max_ticks."""
    metrics_sink = AssignmentMetricsSink()
    bus = _build_event_bus(config, metrics_sink)
    service = DispatchService(_build_store(config), event_bus=bus, config=config)

    try:
        service.seed_couriers(scenario.get("couriers"))

        for payload in scenario.get("orders", []):
            placement = service.create_order(payload)
            if not placement.assignment.success:
                print(f"Order {placement.order.id} left unassigned: {placement.assignment.reason}")

        runner = SimulationRunner(service.store, service.driver)
        summary = runner.run(max_ticks=config.max_ticks)

        _print_summary(service, summary)
        _push_metrics(summary, metrics_sink, service)
        return summary
    finally:
        bus.close()


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Courier dispatch simulation (seed, assign, move until delivered)"
    )

    parser.add_argument(
        "--scenario",
        type=Path,
        required=True,
        help="Path to scenario JSON (config, couriers, orders).",
    )

    parser.add_argument(
        "--ticks",
        type=int,
        default=None,
        help="Override config.max_ticks.",
    )

    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="SQLite database file (default: in-memory store).",
    )

    parser.add_argument(
        "--events",
        type=Path,
        default=None,
        help="Write domain events as JSON lines to this file.",
    )

    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Root log level.",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    # ------------------------------------------------------------------
    # Load scenario and config
    # ------------------------------------------------------------------

    try:
        scenario = _load_json(args.scenario)
        overrides: dict[str, Any] = dict(scenario.get("config") or {})
        if args.ticks is not None:
            overrides["max_ticks"] = args.ticks
        if args.db is not None:
            overrides["database_path"] = str(args.db)
        if args.events is not None:
            overrides["event_log_path"] = str(args.events)
        config = DispatchConfig.from_json_obj(overrides)
    except (OSError, ValueError) as exc:
        print(f"Error: cannot load scenario: {exc}", file=sys.stderr)
        return 2

    try:
        run_scenario(scenario, config)
    except DispatchValidationError as exc:
        print(f"Error: invalid scenario entry: {exc}", file=sys.stderr)
        for err in exc.errors:
            print(f"  {err.get('loc')}: {err.get('msg')}", file=sys.stderr)
        return 2
    except DispatchError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
