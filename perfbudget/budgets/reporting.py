"""Compliance reports, health score and plain-text summaries."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import (
    BudgetCategory,
    BudgetDefinition,
    BudgetStatus,
    DegradationState,
    Sample,
    Severity,
    ViolationRecord,
)
from .trend import compliance_rate
from .units import format_value

__all__ = [
    "BudgetComplianceReport",
    "ComplianceReport",
    "build_budget_report",
    "build_compliance_report",
    "health_score",
    "percent_of_budget",
    "recommendations",
    "render_report",
]

_UTILIZATION_CAP = 200.0
_UTILIZATION_WARN = 80.0


@dataclass(frozen=True)
class BudgetComplianceReport:
    name: str
    category: BudgetCategory
    is_compliant: bool
    current_value: float
    warning_threshold: float
    error_threshold: float
    utilization_percent: float
    headroom: float
    samples: int
    average: float
    peak: float
    compliance_rate: float
    active_degradations: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category.value,
            "is_compliant": self.is_compliant,
            "current_value": self.current_value,
            "warning_threshold": self.warning_threshold,
            "error_threshold": self.error_threshold,
            "utilization_percent": self.utilization_percent,
            "headroom": self.headroom,
            "samples": self.samples,
            "average": self.average,
            "peak": self.peak,
            "compliance_rate": self.compliance_rate,
            "active_degradations": list(self.active_degradations),
        }


@dataclass(frozen=True)
class ComplianceReport:
    id: str
    timestamp: float
    period_start: float
    period_end: float
    overall_compliant: bool
    compliance_score: int
    budgets: List[BudgetComplianceReport]
    active_violations: List[ViolationRecord]
    recommendations: List[str]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "period_start": self.period_start,
            "period_end": self.period_end,
            "overall_compliant": self.overall_compliant,
            "compliance_score": self.compliance_score,
            "budgets": [report.as_dict() for report in self.budgets],
            "active_violations": [record.as_dict() for record in self.active_violations],
            "recommendations": list(self.recommendations),
        }


def _ratio_percent(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0 if numerator == 0 else _UTILIZATION_CAP
    return numerator / denominator * 100.0


def percent_of_budget(value: float, definition: BudgetDefinition) -> float:
    """Share of the warning threshold consumed by ``value`` (100 == at warning)."""

    if definition.lower_is_better:
        return _ratio_percent(value, definition.warning_threshold)
    return _ratio_percent(definition.warning_threshold, value)


def build_budget_report(
    definition: BudgetDefinition,
    samples: Sequence[Sample],
    *,
    violation: Optional[ViolationRecord],
    active_degradations: Iterable[str] = (),
) -> BudgetComplianceReport:
    values = [sample.value for sample in samples]
    current = values[-1] if values else 0.0
    average = sum(values) / len(values) if values else 0.0
    peak = max(values) if values else 0.0
    error = float(definition.error_threshold)
    warning = float(definition.warning_threshold)
    if definition.lower_is_better:
        utilization = _ratio_percent(current, error)
        headroom = warning - current
    else:
        utilization = _ratio_percent(error, current)
        headroom = current - warning
    return BudgetComplianceReport(
        name=definition.name,
        category=definition.category,
        is_compliant=violation is None,
        current_value=current,
        warning_threshold=warning,
        error_threshold=error,
        utilization_percent=min(utilization, _UTILIZATION_CAP),
        headroom=max(headroom, 0.0),
        samples=len(values),
        average=average,
        peak=peak,
        compliance_rate=compliance_rate(samples),
        active_degradations=sorted(active_degradations),
    )


def recommendations(reports: Iterable[BudgetComplianceReport]) -> List[str]:
    advice: List[str] = []
    for report in reports:
        if not report.is_compliant:
            if report.category is BudgetCategory.VITALS:
                if report.name == "LCP":
                    advice.append(
                        "Optimize LCP by preloading critical resources and using responsive images"
                    )
                elif report.name == "CLS":
                    advice.append(
                        "Reduce CLS by setting explicit dimensions on images and avoiding dynamic content insertion"
                    )
                elif report.name == "INP":
                    advice.append("Improve INP by breaking up long tasks and optimizing event handlers")
            elif report.category is BudgetCategory.BUNDLE:
                advice.append(f"Consider code splitting to reduce {report.name}")
                advice.append("Review and remove unused dependencies")
            elif report.category is BudgetCategory.RUNTIME:
                advice.append("Profile and optimize expensive computations")
                advice.append("Consider moving heavy processing off the critical path")
            elif report.category is BudgetCategory.MEMORY:
                advice.append("Review for memory leaks and unnecessary caching")
                advice.append("Consider implementing data virtualization")
            elif report.category is BudgetCategory.NETWORK:
                advice.append(f"Reduce request volume or payload size for {report.name}")
        elif report.utilization_percent > _UTILIZATION_WARN:
            advice.append(
                f"{report.name} is at {report.utilization_percent:.0f}% of budget - "
                "consider optimization before it exceeds threshold"
            )
    return list(dict.fromkeys(advice))


def build_compliance_report(
    reports: Sequence[BudgetComplianceReport],
    active_violations: Sequence[ViolationRecord],
    *,
    period_start: float,
    now: float,
) -> ComplianceReport:
    compliant = sum(1 for report in reports if report.is_compliant)
    score = round(compliant / len(reports) * 100) if reports else 100
    return ComplianceReport(
        id=f"report-{uuid.uuid4().hex[:12]}",
        timestamp=now,
        period_start=period_start,
        period_end=now,
        overall_compliant=not active_violations,
        compliance_score=int(score),
        budgets=list(reports),
        active_violations=list(active_violations),
        recommendations=recommendations(reports),
    )


def health_score(current: Iterable[tuple[BudgetDefinition, float]]) -> int:
    """Average 0..100 score of budgets that have a current value."""

    total = 0.0
    count = 0
    for definition, value in current:
        percent = percent_of_budget(value, definition)
        total += max(0.0, min(100.0, 100.0 - (percent - 100.0)))
        count += 1
    if not count:
        return 100
    return int(round(total / count))


def _indicator(status: str) -> str:
    if status == Severity.OK.value:
        return "[OK]"
    if status == Severity.WARNING.value:
        return "[WARN]"
    if status == "unknown":
        return "[----]"
    return "[CRIT]"


def render_report(
    statuses: Sequence[BudgetStatus],
    *,
    score: int,
    degradation: DegradationState,
    violations: Sequence[ViolationRecord],
    units: Dict[str, Any],
    generated_at: float,
) -> str:
    rule = "=" * 60
    stamp = datetime.fromtimestamp(generated_at, tz=timezone.utc).isoformat()
    if degradation.is_active:
        degradation_line = f"Active ({degradation.level.value})"
        if degradation.active_strategies:
            degradation_line += f": {', '.join(degradation.active_strategies)}"
    else:
        degradation_line = "Inactive"
    lines = [
        rule,
        "PERFORMANCE BUDGET REPORT",
        rule,
        "",
        f"Generated: {stamp}",
        f"Health Score: {score}/100",
        f"Degradation: {degradation_line}",
        "",
        "--- Budget Status ---",
        "",
    ]
    for status in statuses:
        if status.current_value is None:
            value = "N/A"
        else:
            value = format_value(status.current_value, status.definition.unit)
        lines.append(f"{_indicator(status.status)} {status.budget_name}: {value}")

    if violations:
        lines.extend(["", "--- Recent Violations ---", ""])
        for record in list(violations)[-10:]:
            unit = units.get(record.budget_name, "ms")
            lines.append(
                f"  - {record.budget_name}: {format_value(record.value, unit)} "
                f"({record.severity.value}, +{record.overage_percent:.1f}%)"
            )
    lines.extend(["", rule])
    return "\n".join(lines)
