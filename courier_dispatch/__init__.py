"""Public API for the courier_dispatch package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Store adapters
# ----------------------------------------------------------------------
from courier_dispatch.adapters.memory_store import InMemoryDispatchStore
from courier_dispatch.adapters.sqlite_store import SQLiteDispatchStore

# ----------------------------------------------------------------------
# Core
# ----------------------------------------------------------------------
from courier_dispatch.core.assignment.assignment_engine import (
    AssignmentEngine,
    AssignmentResult,
)
from courier_dispatch.core.config.dispatch_config import DispatchConfig
from courier_dispatch.core.domain.distance import manhattan_distance, within_threshold
from courier_dispatch.core.domain.errors import (
    CourierNotFound,
    DispatchError,
    DispatchValidationError,
    NotFoundError,
    OrderNotFound,
    StoreError,
)
from courier_dispatch.core.domain.order_state_machine import (
    InvalidTransition,
    allowed_targets,
    is_valid_progression,
    validate_transition,
)
from courier_dispatch.core.domain.reasons import AssignmentOutcome
from courier_dispatch.core.domain.types import (
    Courier,
    DeliveryType,
    Order,
    OrderStatus,
    Point,
)
from courier_dispatch.core.lifecycle.progression import OrderProgression, ProgressionResult
from courier_dispatch.core.ports.dispatch_store import DispatchStore

# ----------------------------------------------------------------------
# Service / simulation
# ----------------------------------------------------------------------
from courier_dispatch.service.dispatch_service import (
    CancellationResult,
    DispatchService,
    OrderPlacement,
)
from courier_dispatch.simulation.movement import MoveOutcome, MovementDriver, step_toward
from courier_dispatch.simulation.runner import SimulationRunner, SimulationSummary

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Domain
    "Point",
    "Courier",
    "Order",
    "OrderStatus",
    "DeliveryType",
    "manhattan_distance",
    "within_threshold",
    "allowed_targets",
    "validate_transition",
    "is_valid_progression",
    "InvalidTransition",
    "AssignmentOutcome",

    # Errors
    "DispatchError",
    "DispatchValidationError",
    "NotFoundError",
    "CourierNotFound",
    "OrderNotFound",
    "StoreError",

    # Core services
    "DispatchConfig",
    "DispatchStore",
    "AssignmentEngine",
    "AssignmentResult",
    "OrderProgression",
    "ProgressionResult",

    # Stores
    "InMemoryDispatchStore",
    "SQLiteDispatchStore",

    # Boundary / simulation
    "DispatchService",
    "OrderPlacement",
    "CancellationResult",
    "MovementDriver",
    "MoveOutcome",
    "step_toward",
    "SimulationRunner",
    "SimulationSummary",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("courier-dispatch")
except PackageNotFoundError:
    __version__ = "0.0.0"
