"""Dispatch configuration model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from courier_dispatch.core.domain.distance import ARRIVAL_THRESHOLD

EXPRESS_DISTANCE_THRESHOLD: int = 10


class DispatchConfig(BaseModel):
    """Structured dispatch configuration.

    JSON example:
        "config": {
          "express_distance_threshold": 10,
          "max_ticks": 200,
          "database_path": "dispatch.sqlite3",
          "event_log_path": "events.jsonl"
        }
    """

    express_distance_threshold: int = Field(default=EXPRESS_DISTANCE_THRESHOLD, ge=0)
    arrival_threshold: float = Field(default=ARRIVAL_THRESHOLD, ge=0)

    max_ticks: int = Field(default=1000, gt=0)

    # None -> in-memory store
    database_path: str | None = Field(default=None, min_length=1)
    event_log_path: str | None = Field(default=None, min_length=1)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any] | None) -> DispatchConfig:
        """Create a DispatchConfig instance from a JSON-compatible object."""
        return cls.model_validate(obj or {})
