"""Prometheus metrics describing budget evaluation and degradation."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from prometheus_client import Counter, Gauge

if TYPE_CHECKING:
    from ..budgets.models import DegradationState

LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Metric definitions

SAMPLES_COUNTER = Counter(
    "perfbudget_samples_total",
    "Samples recorded per budget and classification",
    ("budget", "severity"),
)

BUDGET_VALUE_GAUGE = Gauge(
    "perfbudget_budget_value",
    "Most recent recorded value per budget",
    ("budget",),
)

VIOLATIONS_COUNTER = Counter(
    "perfbudget_violations_total",
    "Violation episodes opened per budget",
    ("budget", "severity"),
)

RECOVERIES_COUNTER = Counter(
    "perfbudget_recoveries_total",
    "Violation episodes closed by a compliant sample",
    ("budget",),
)

DEGRADATION_LEVEL_GAUGE = Gauge(
    "perfbudget_degradation_level",
    "Degradation level (0=none, 1=light, 2=moderate, 3=aggressive)",
)
DEGRADATION_LEVEL_GAUGE.set(0.0)

STRATEGY_ACTIVE_GAUGE = Gauge(
    "perfbudget_strategy_active",
    "Mitigation strategy active (0/1)",
    ("strategy",),
)

SUBSCRIBER_ERRORS_COUNTER = Counter(
    "perfbudget_subscriber_errors_total",
    "Exceptions raised by event subscribers",
    ("event",),
)

_LEVEL_VALUES = {"none": 0.0, "light": 1.0, "moderate": 2.0, "aggressive": 3.0}

# strategies ever exported, so released ones can be reported as 0
_SEEN_STRATEGIES: set[str] = set()
_SEEN_LOCK = threading.Lock()

# ---------------------------------------------------------------------------
# Helper functions


def _label(value: str | None) -> str:
    return (value or "unknown").strip() or "unknown"


def observe_sample(budget: str, value: float, severity: str) -> None:
    label = _label(budget)
    SAMPLES_COUNTER.labels(budget=label, severity=_label(severity)).inc()
    BUDGET_VALUE_GAUGE.labels(budget=label).set(float(value))


def record_violation(budget: str, severity: str) -> None:
    VIOLATIONS_COUNTER.labels(budget=_label(budget), severity=_label(severity)).inc()


def record_recovery(budget: str) -> None:
    RECOVERIES_COUNTER.labels(budget=_label(budget)).inc()


def record_subscriber_error(event: str) -> None:
    SUBSCRIBER_ERRORS_COUNTER.labels(event=_label(event)).inc()


def set_degradation_state(state: DegradationState) -> None:
    """Mirror ``state`` into the level gauge and per-strategy gauges."""

    DEGRADATION_LEVEL_GAUGE.set(_LEVEL_VALUES.get(state.level.value, 0.0))
    active = set(state.active_strategies)
    with _SEEN_LOCK:
        _SEEN_STRATEGIES.update(active)
        known = set(_SEEN_STRATEGIES)
    for strategy in known:
        STRATEGY_ACTIVE_GAUGE.labels(strategy=strategy).set(1.0 if strategy in active else 0.0)


def forget_budget(budget: str) -> None:
    label = _label(budget)
    try:
        BUDGET_VALUE_GAUGE.remove(label)
    except KeyError:
        pass


def reset_for_tests() -> None:  # pragma: no cover - used only in tests
    """Reset metric state to a deterministic baseline."""

    for collector in (
        SAMPLES_COUNTER,
        BUDGET_VALUE_GAUGE,
        VIOLATIONS_COUNTER,
        RECOVERIES_COUNTER,
        STRATEGY_ACTIVE_GAUGE,
        SUBSCRIBER_ERRORS_COUNTER,
    ):
        try:
            collector.clear()
        except Exception as exc:
            LOGGER.debug("failed to reset collector=%s error=%s", collector, exc)
    with _SEEN_LOCK:
        _SEEN_STRATEGIES.clear()
    DEGRADATION_LEVEL_GAUGE.set(0.0)


__all__ = [
    "BUDGET_VALUE_GAUGE",
    "DEGRADATION_LEVEL_GAUGE",
    "RECOVERIES_COUNTER",
    "SAMPLES_COUNTER",
    "STRATEGY_ACTIVE_GAUGE",
    "SUBSCRIBER_ERRORS_COUNTER",
    "VIOLATIONS_COUNTER",
    "forget_budget",
    "observe_sample",
    "record_recovery",
    "record_subscriber_error",
    "record_violation",
    "reset_for_tests",
    "set_degradation_state",
]
