"""Default budget catalogue covering web vitals, bundle sizes and runtime."""

from __future__ import annotations

from typing import List

from .models import BudgetCategory, BudgetDefinition, Unit

_KB = 1024
_MB = 1024 * 1024

DEFAULT_VITALS_BUDGETS: tuple[BudgetDefinition, ...] = (
    BudgetDefinition(
        name="LCP",
        category=BudgetCategory.VITALS,
        warning_threshold=2500,
        error_threshold=4000,
        critical_threshold=6000,
        unit=Unit.MS,
        description="Largest Contentful Paint",
        degradation_actions=frozenset({"disable-animations", "reduce-image-quality"}),
    ),
    BudgetDefinition(
        name="INP",
        category=BudgetCategory.VITALS,
        warning_threshold=200,
        error_threshold=500,
        critical_threshold=1000,
        unit=Unit.MS,
        description="Interaction to Next Paint",
        degradation_actions=frozenset({"disable-animations", "reduce-polling"}),
    ),
    BudgetDefinition(
        name="CLS",
        category=BudgetCategory.VITALS,
        warning_threshold=0.1,
        error_threshold=0.25,
        critical_threshold=0.5,
        unit=Unit.SCORE,
        description="Cumulative Layout Shift",
    ),
    BudgetDefinition(
        name="FCP",
        category=BudgetCategory.VITALS,
        warning_threshold=1800,
        error_threshold=3000,
        critical_threshold=5000,
        unit=Unit.MS,
        description="First Contentful Paint",
    ),
    BudgetDefinition(
        name="TTFB",
        category=BudgetCategory.VITALS,
        warning_threshold=800,
        error_threshold=1800,
        critical_threshold=3000,
        unit=Unit.MS,
        description="Time to First Byte",
    ),
)

DEFAULT_BUNDLE_BUDGETS: tuple[BudgetDefinition, ...] = (
    BudgetDefinition(
        name="total-bundle",
        category=BudgetCategory.BUNDLE,
        warning_threshold=300 * _KB,
        error_threshold=500 * _KB,
        critical_threshold=1 * _MB,
        unit=Unit.BYTES,
        description="Total JavaScript bundle size",
        degradation_actions=frozenset({"disable-feature"}),
    ),
    BudgetDefinition(
        name="initial-bundle",
        category=BudgetCategory.BUNDLE,
        warning_threshold=150 * _KB,
        error_threshold=250 * _KB,
        critical_threshold=400 * _KB,
        unit=Unit.BYTES,
        description="Initial JavaScript bundle size",
    ),
    BudgetDefinition(
        name="css-bundle",
        category=BudgetCategory.BUNDLE,
        warning_threshold=50 * _KB,
        error_threshold=100 * _KB,
        critical_threshold=200 * _KB,
        unit=Unit.BYTES,
        description="Total CSS bundle size",
    ),
)

DEFAULT_RUNTIME_BUDGETS: tuple[BudgetDefinition, ...] = (
    BudgetDefinition(
        name="long-tasks",
        category=BudgetCategory.RUNTIME,
        warning_threshold=50,
        error_threshold=100,
        critical_threshold=200,
        unit=Unit.MS,
        description="Maximum long task duration",
        degradation_actions=frozenset({"disable-animations"}),
    ),
    BudgetDefinition(
        name="frame-rate",
        category=BudgetCategory.RUNTIME,
        warning_threshold=55,
        error_threshold=45,
        critical_threshold=30,
        unit=Unit.FPS,
        lower_is_better=False,
        description="Target frame rate",
        degradation_actions=frozenset({"disable-animations"}),
    ),
    BudgetDefinition(
        name="memory-usage",
        category=BudgetCategory.MEMORY,
        warning_threshold=50 * _MB,
        error_threshold=100 * _MB,
        critical_threshold=200 * _MB,
        unit=Unit.BYTES,
        description="JavaScript heap usage",
        degradation_actions=frozenset({"disable-prefetch"}),
    ),
)


def default_budgets() -> List[BudgetDefinition]:
    return [*DEFAULT_VITALS_BUDGETS, *DEFAULT_BUNDLE_BUDGETS, *DEFAULT_RUNTIME_BUDGETS]


__all__ = [
    "DEFAULT_BUNDLE_BUDGETS",
    "DEFAULT_RUNTIME_BUDGETS",
    "DEFAULT_VITALS_BUDGETS",
    "default_budgets",
]
