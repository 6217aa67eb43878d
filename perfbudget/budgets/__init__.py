"""Budget definitions, evaluation and adaptive degradation."""

from .models import (
    BudgetCategory,
    BudgetDefinition,
    BudgetStatus,
    ClassificationResult,
    DegradationLevel,
    DegradationState,
    Sample,
    Severity,
    TrendDirection,
    TrendSummary,
    Unit,
    ViolationRecord,
)
from .defaults import default_budgets
from .degradation import DegradationController
from .detector import ViolationDetector, classify, default_classify
from .events import AlertThrottle, BudgetEvent, EventBus, EventType
from .history import SampleHistory
from .registry import BudgetRegistry
from .reporting import BudgetComplianceReport, ComplianceReport
from .trend import TrendAnalyzer, percentile, trend_direction
from .units import format_value
from .engine import BudgetEngine, EngineConfig

__all__ = [
    "AlertThrottle",
    "BudgetCategory",
    "BudgetComplianceReport",
    "BudgetDefinition",
    "BudgetEngine",
    "BudgetEvent",
    "BudgetRegistry",
    "BudgetStatus",
    "ClassificationResult",
    "ComplianceReport",
    "DegradationController",
    "DegradationLevel",
    "DegradationState",
    "EngineConfig",
    "EventBus",
    "EventType",
    "Sample",
    "SampleHistory",
    "Severity",
    "TrendAnalyzer",
    "TrendDirection",
    "TrendSummary",
    "Unit",
    "ViolationDetector",
    "ViolationRecord",
    "classify",
    "default_budgets",
    "default_classify",
    "format_value",
    "percentile",
    "trend_direction",
]
