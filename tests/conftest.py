from __future__ import annotations

import pytest

from perfbudget.budgets.engine import BudgetEngine, EngineConfig
from perfbudget.budgets.models import BudgetCategory, BudgetDefinition, Unit
from perfbudget.metrics import reset_for_tests


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture(autouse=True)
def reset_metrics():
    reset_for_tests()
    yield
    reset_for_tests()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def lcp_budget() -> BudgetDefinition:
    return BudgetDefinition(
        name="LCP",
        category=BudgetCategory.VITALS,
        warning_threshold=2500,
        error_threshold=4000,
        critical_threshold=6000,
        unit=Unit.MS,
        degradation_actions=frozenset({"reduce-images"}),
    )


@pytest.fixture
def engine(clock: FakeClock, lcp_budget: BudgetDefinition) -> BudgetEngine:
    config = EngineConfig(include_default_budgets=False)
    return BudgetEngine(config, budgets=[lcp_budget], clock=clock)
