"""Prometheus collectors exported by perfbudget."""

from .budgets import (
    BUDGET_VALUE_GAUGE,
    DEGRADATION_LEVEL_GAUGE,
    RECOVERIES_COUNTER,
    SAMPLES_COUNTER,
    STRATEGY_ACTIVE_GAUGE,
    SUBSCRIBER_ERRORS_COUNTER,
    VIOLATIONS_COUNTER,
    reset_for_tests,
)

__all__ = [
    "BUDGET_VALUE_GAUGE",
    "DEGRADATION_LEVEL_GAUGE",
    "RECOVERIES_COUNTER",
    "SAMPLES_COUNTER",
    "STRATEGY_ACTIVE_GAUGE",
    "SUBSCRIBER_ERRORS_COUNTER",
    "VIOLATIONS_COUNTER",
    "reset_for_tests",
]
