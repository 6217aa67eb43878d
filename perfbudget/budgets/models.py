"""Value types shared by the budget engine components."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple


class BudgetCategory(str, Enum):
    VITALS = "vitals"
    BUNDLE = "bundle"
    RUNTIME = "runtime"
    NETWORK = "network"
    MEMORY = "memory"
    CUSTOM = "custom"

    @classmethod
    def coerce(cls, value: "BudgetCategory | str") -> "BudgetCategory":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unknown budget category: {value!r}") from exc


class Unit(str, Enum):
    MS = "ms"
    BYTES = "bytes"
    SCORE = "score"
    COUNT = "count"
    PERCENT = "percent"
    FPS = "fps"

    @classmethod
    def coerce(cls, value: "Unit | str") -> "Unit":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unknown unit: {value!r}") from exc


class Severity(str, Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def compliant(self) -> bool:
        return self in {Severity.OK, Severity.WARNING}


class DegradationLevel(str, Enum):
    NONE = "none"
    LIGHT = "light"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"

    @classmethod
    def for_count(cls, count: int) -> "DegradationLevel":
        if count <= 0:
            return cls.NONE
        if count == 1:
            return cls.LIGHT
        if count == 2:
            return cls.MODERATE
        return cls.AGGRESSIVE


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DEGRADING = "degrading"


Enforcer = Callable[[float, "BudgetDefinition"], "ClassificationResult"]


@dataclass(frozen=True)
class BudgetDefinition:
    """Thresholds and mitigation actions for one named metric.

    For ``lower_is_better`` budgets the thresholds must satisfy
    ``warning < error <= critical``; for higher-is-better budgets (frame
    rate) the inequalities invert. The registry enforces this on
    registration.
    """

    name: str
    warning_threshold: float
    error_threshold: float
    critical_threshold: Optional[float] = None
    unit: Unit = Unit.MS
    category: BudgetCategory = BudgetCategory.CUSTOM
    lower_is_better: bool = True
    degradation_actions: frozenset[str] = frozenset()
    enable_degradation: bool = True
    enforcer: Optional[Enforcer] = field(default=None, compare=False, repr=False)
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit", Unit.coerce(self.unit))
        object.__setattr__(self, "category", BudgetCategory.coerce(self.category))
        object.__setattr__(self, "degradation_actions", frozenset(self.degradation_actions))

    def with_updates(self, **changes: Any) -> "BudgetDefinition":
        if "name" in changes and changes["name"] != self.name:
            raise ValueError("budget name cannot be changed by an update")
        return replace(self, **changes)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category.value,
            "warning_threshold": self.warning_threshold,
            "error_threshold": self.error_threshold,
            "critical_threshold": self.critical_threshold,
            "unit": self.unit.value,
            "lower_is_better": self.lower_is_better,
            "degradation_actions": sorted(self.degradation_actions),
            "enable_degradation": self.enable_degradation,
            "custom_enforcer": self.enforcer is not None,
            "description": self.description,
        }


def threshold_order_error(
    warning: float,
    error: float,
    critical: Optional[float],
    *,
    lower_is_better: bool,
) -> str | None:
    """Return a description of a threshold ordering problem, or ``None``."""

    if lower_is_better:
        if not warning < error:
            return f"warning threshold {warning} must be below error threshold {error}"
        if critical is not None and not error <= critical:
            return f"critical threshold {critical} must be at or above error threshold {error}"
        return None
    if not warning > error:
        return f"warning threshold {warning} must be above error threshold {error}"
    if critical is not None and not error >= critical:
        return f"critical threshold {critical} must be at or below error threshold {error}"
    return None


@dataclass(frozen=True, slots=True)
class Sample:
    value: float
    timestamp: float
    compliant: bool


@dataclass
class ViolationRecord:
    """One violation episode of a budget; updated in place until recovery."""

    id: str
    budget_name: str
    value: float
    threshold: float
    severity: Severity
    overage: float
    overage_percent: float
    timestamp: float
    last_violation_at: float
    consecutive_violations: int
    context: Mapping[str, Any] = field(default_factory=dict)

    def snapshot(self) -> "ViolationRecord":
        return replace(self, context=dict(self.context))

    def as_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["severity"] = self.severity.value
        payload["context"] = dict(self.context)
        return payload


@dataclass
class ClassificationResult:
    compliant: bool
    severity: Severity
    value: float
    threshold: float
    overage: float
    overage_percent: float
    actions_triggered: Tuple[str, ...] = ()
    timestamp: float = 0.0
    message: str = ""
    violation: Optional[ViolationRecord] = None

    @classmethod
    def passing(cls, value: float, *, timestamp: float) -> "ClassificationResult":
        return cls(
            compliant=True,
            severity=Severity.OK,
            value=value,
            threshold=0.0,
            overage=0.0,
            overage_percent=0.0,
            timestamp=timestamp,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "compliant": self.compliant,
            "severity": self.severity.value,
            "value": self.value,
            "threshold": self.threshold,
            "overage": self.overage,
            "overage_percent": self.overage_percent,
            "actions_triggered": list(self.actions_triggered),
            "timestamp": self.timestamp,
            "message": self.message,
            "violation": self.violation.as_dict() if self.violation else None,
        }


@dataclass(frozen=True)
class DegradationState:
    is_active: bool
    level: DegradationLevel
    active_strategies: Tuple[str, ...]
    reason: Optional[str]
    activated_at: Optional[float]

    @classmethod
    def inactive(cls) -> "DegradationState":
        return cls(
            is_active=False,
            level=DegradationLevel.NONE,
            active_strategies=(),
            reason=None,
            activated_at=None,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "is_active": self.is_active,
            "level": self.level.value,
            "active_strategies": list(self.active_strategies),
            "reason": self.reason,
            "activated_at": self.activated_at,
        }


@dataclass(frozen=True)
class TrendSummary:
    budget_name: str
    count: int
    average: float
    min: float
    max: float
    p50: float
    p75: float
    p90: float
    p95: float
    p99: float
    trend: TrendDirection
    change_percent: float
    compliance_rate: float
    violation_rate: float
    last_updated: float

    def as_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["trend"] = self.trend.value
        return payload


@dataclass(frozen=True)
class BudgetStatus:
    budget_name: str
    definition: BudgetDefinition
    current_value: Optional[float]
    status: str
    trend: Optional[TrendSummary]
    recent_violations: List[ViolationRecord]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "budget_name": self.budget_name,
            "threshold": self.definition.as_dict(),
            "current_value": self.current_value,
            "status": self.status,
            "trend": self.trend.as_dict() if self.trend else None,
            "recent_violations": [record.as_dict() for record in self.recent_violations],
        }


def sorted_actions(actions: Iterable[str]) -> Tuple[str, ...]:
    return tuple(sorted({str(action) for action in actions}))


__all__ = [
    "BudgetCategory",
    "BudgetDefinition",
    "BudgetStatus",
    "ClassificationResult",
    "DegradationLevel",
    "DegradationState",
    "Enforcer",
    "Sample",
    "Severity",
    "TrendDirection",
    "TrendSummary",
    "Unit",
    "ViolationRecord",
    "sorted_actions",
    "threshold_order_error",
]
