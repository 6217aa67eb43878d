from __future__ import annotations

import math
from typing import Optional, Sequence

from .models import Sample, TrendDirection, TrendSummary

__all__ = [
    "TREND_CHANGE_PERCENT",
    "TrendAnalyzer",
    "change_percent",
    "compliance_rate",
    "percentile",
    "trend_direction",
]

TREND_CHANGE_PERCENT = 5.0


def percentile(sorted_values: Sequence[float], pct: float) -> float:
    """Nearest-rank percentile of an ascending sequence (0.0 when empty)."""

    if not sorted_values:
        return 0.0
    size = len(sorted_values)
    index = math.ceil(pct / 100.0 * size) - 1
    index = max(0, min(index, size - 1))
    return float(sorted_values[index])


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def change_percent(values: Sequence[float]) -> float:
    if len(values) < 2:
        return 0.0
    midpoint = len(values) // 2
    early = _mean(values[:midpoint])
    late = _mean(values[midpoint:])
    if early == 0:
        return 0.0
    return (late - early) / early * 100.0


def trend_direction(values: Sequence[float], *, lower_is_better: bool = True) -> TrendDirection:
    """Compare the early and late halves of ``values`` (arrival order).

    A rise of more than 5% is degrading for lower-is-better metrics and
    improving for higher-is-better ones.
    """

    if len(values) < 2:
        return TrendDirection.STABLE
    change = change_percent(values)
    if not lower_is_better:
        change = -change
    if change < -TREND_CHANGE_PERCENT:
        return TrendDirection.IMPROVING
    if change > TREND_CHANGE_PERCENT:
        return TrendDirection.DEGRADING
    return TrendDirection.STABLE


def compliance_rate(samples: Sequence[Sample]) -> float:
    if not samples:
        return 100.0
    compliant = sum(1 for sample in samples if sample.compliant)
    return compliant / len(samples) * 100.0


class TrendAnalyzer:
    """Read-only statistics over a history snapshot; never mutates input."""

    def summarize(
        self,
        budget_name: str,
        samples: Sequence[Sample],
        *,
        lower_is_better: bool = True,
        now: float,
    ) -> Optional[TrendSummary]:
        if not samples:
            return None
        ordered = [sample.value for sample in samples]
        ascending = sorted(ordered)
        rate = compliance_rate(samples)
        return TrendSummary(
            budget_name=budget_name,
            count=len(ordered),
            average=_mean(ordered),
            min=ascending[0],
            max=ascending[-1],
            p50=percentile(ascending, 50),
            p75=percentile(ascending, 75),
            p90=percentile(ascending, 90),
            p95=percentile(ascending, 95),
            p99=percentile(ascending, 99),
            trend=trend_direction(ordered, lower_is_better=lower_is_better),
            change_percent=change_percent(ordered),
            compliance_rate=rate,
            violation_rate=100.0 - rate,
            last_updated=now,
        )
