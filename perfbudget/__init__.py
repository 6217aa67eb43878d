"""Performance budget evaluation with adaptive degradation."""

from .budgets import (
    BudgetCategory,
    BudgetDefinition,
    BudgetEngine,
    EngineConfig,
    EventType,
    Severity,
    Unit,
)
from .errors import BudgetError, ConfigError, NotFoundError

__version__ = "0.1.0"

__all__ = [
    "BudgetCategory",
    "BudgetDefinition",
    "BudgetEngine",
    "BudgetError",
    "ConfigError",
    "EngineConfig",
    "EventType",
    "NotFoundError",
    "Severity",
    "Unit",
    "__version__",
]
