from __future__ import annotations

import json
import logging
import os
from collections import Counter
from typing import Any

from prometheus_client import CollectorRegistry, Gauge, push_to_gateway

from courier_dispatch.core.events.events import AssignmentFailedEvent, CourierAssignedEvent

LOGGER = logging.getLogger(__name__)


class PrometheusMetricsClient:
    """Minimal Prometheus Pushgateway client for simulation runs.

    Expected environment:
    - PROMETHEUS_PUSHGATEWAY_URL: URL to the Pushgateway.
      Example: http://pushgateway.monitoring.svc.cluster.local:9091

    Optional:
    - PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON: JSON object used as grouping key,
      e.g. {"scenario": "lunch-rush"}.

    Metrics are a side-effect: callers log push failures and carry on.
    """

    def __init__(self, pushgateway_url: str | None = None) -> None:
        self._pushgateway_url = pushgateway_url or os.environ.get("PROMETHEUS_PUSHGATEWAY_URL")
        self._grouping_key = self._load_grouping_key()
        self._registry = CollectorRegistry()
        self._gauges: dict[str, Gauge] = {}

    def is_enabled(self) -> bool:
        return self._pushgateway_url is not None

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    @staticmethod
    def _load_grouping_key() -> dict[str, str]:
        raw = os.environ.get("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON")
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning(
                "Invalid PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON; ignoring"
            )
            return {}

        if not isinstance(data, dict):
            return {}

        return {k: v for k, v in data.items() if isinstance(k, str) and isinstance(v, str)}

    def set_gauge(
        self,
        *,
        name: str,
        value: float,
        labels: dict[str, str],
    ) -> None:
        """Set a gauge sample in the local registry (registered on first use)."""
        gauge = self._gauges.get(name)
        if gauge is None:
            gauge = Gauge(
                name,
                documentation=name.replace("_", " "),
                labelnames=sorted(labels.keys()),
                registry=self._registry,
            )
            self._gauges[name] = gauge

        if labels:
            gauge.labels(**labels).set(value)
        else:
            gauge.set(value)

    def push_all(self, *, job: str) -> None:
        if not self._pushgateway_url:
            return

        push_to_gateway(
            gateway=self._pushgateway_url,
            job=job,
            registry=self._registry,
            grouping_key=self._grouping_key,
        )

        LOGGER.info(
            "Prometheus metrics pushed",
            extra={"job": job, "grouping_key": self._grouping_key},
        )


class AssignmentMetricsSink:
    """Event sink that counts assignment outcomes for a metrics push."""

    def __init__(self) -> None:
        self.outcomes: Counter[str] = Counter()

    def on_event(self, event: Any) -> None:
        if isinstance(event, CourierAssignedEvent):
            self.outcomes["assigned"] += 1
        elif isinstance(event, AssignmentFailedEvent):
            self.outcomes[event.outcome] += 1

    def export(self, client: PrometheusMetricsClient) -> None:
        for outcome, count in sorted(self.outcomes.items()):
            client.set_gauge(
                name="dispatch_assignment_outcomes",
                value=float(count),
                labels={"outcome": outcome},
            )
