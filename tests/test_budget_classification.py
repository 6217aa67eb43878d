import pytest

from perfbudget.budgets.detector import classify, default_classify
from perfbudget.budgets.models import (
    BudgetDefinition,
    ClassificationResult,
    Severity,
    Unit,
)

_RANK = {Severity.OK: 0, Severity.WARNING: 1, Severity.ERROR: 2, Severity.CRITICAL: 3}


def _fps_budget(**overrides) -> BudgetDefinition:
    params = dict(
        name="frame-rate",
        warning_threshold=55,
        error_threshold=45,
        critical_threshold=30,
        unit=Unit.FPS,
        lower_is_better=False,
        degradation_actions=frozenset({"disable-animations"}),
    )
    params.update(overrides)
    return BudgetDefinition(**params)


@pytest.mark.parametrize(
    "value, severity",
    [
        (2499, Severity.OK),
        (2500, Severity.WARNING),
        (3999, Severity.WARNING),
        (4000, Severity.ERROR),
        (5999, Severity.ERROR),
        (6000, Severity.CRITICAL),
        (9000, Severity.CRITICAL),
    ],
)
def test_lower_is_better_boundaries_are_inclusive(lcp_budget, value, severity):
    result = default_classify(lcp_budget, value, now=10.0)
    assert result.severity is severity
    assert result.compliant is severity.compliant


@pytest.mark.parametrize(
    "value, severity",
    [
        (60, Severity.OK),
        (55, Severity.WARNING),
        (46, Severity.WARNING),
        (45, Severity.ERROR),
        (31, Severity.ERROR),
        (30, Severity.CRITICAL),
        (10, Severity.CRITICAL),
    ],
)
def test_higher_is_better_boundaries_are_inclusive(value, severity):
    result = default_classify(_fps_budget(), value, now=10.0)
    assert result.severity is severity


def test_severity_is_monotonic_in_value(lcp_budget):
    ranks = [_RANK[default_classify(lcp_budget, value, now=0.0).severity] for value in range(0, 8000, 50)]
    assert ranks == sorted(ranks)

    fps = _fps_budget()
    ranks = [_RANK[default_classify(fps, value, now=0.0).severity] for value in range(120, 0, -1)]
    assert ranks == sorted(ranks)


def test_overage_is_measured_against_error_threshold(lcp_budget):
    result = default_classify(lcp_budget, 4700, now=5.0)
    assert result.overage == pytest.approx(700.0)
    assert result.overage_percent == pytest.approx(17.5)
    assert result.threshold == pytest.approx(4000.0)
    assert result.timestamp == 5.0
    assert result.message.startswith("ERROR: LCP exceeds budget")


def test_overage_inverted_for_higher_is_better():
    result = default_classify(_fps_budget(), 40, now=0.0)
    assert result.severity is Severity.ERROR
    assert result.overage == pytest.approx(5.0)
    assert result.overage_percent == pytest.approx(5.0 / 45.0 * 100.0)


def test_passing_value_reports_error_threshold_and_no_overage(lcp_budget):
    result = default_classify(lcp_budget, 1000, now=0.0)
    assert result.compliant is True
    assert result.threshold == pytest.approx(4000.0)
    assert result.overage == 0.0
    assert result.actions_triggered == ()


def test_zero_error_threshold_has_zero_overage_percent():
    budget = BudgetDefinition(name="errors", warning_threshold=-1, error_threshold=0, unit=Unit.COUNT)
    result = default_classify(budget, 5, now=0.0)
    assert result.severity is Severity.ERROR
    assert result.overage == pytest.approx(5.0)
    assert result.overage_percent == 0.0


def test_actions_only_when_non_compliant_and_enabled(lcp_budget):
    warning = default_classify(lcp_budget, 3000, now=0.0)
    assert warning.actions_triggered == ()

    failing = default_classify(lcp_budget, 4500, now=0.0)
    assert failing.actions_triggered == ("reduce-images",)

    disabled = default_classify(lcp_budget, 4500, now=0.0, auto_degradation=False)
    assert disabled.actions_triggered == ()

    opted_out = lcp_budget.with_updates(enable_degradation=False)
    assert default_classify(opted_out, 4500, now=0.0).actions_triggered == ()


def test_critical_message_mentions_critical_threshold(lcp_budget):
    result = default_classify(lcp_budget, 7000, now=0.0)
    assert result.message == "CRITICAL: LCP is 7.00s (critical threshold: 6.00s)"


def test_custom_enforcer_replaces_default(lcp_budget):
    def enforcer(value, definition):
        return ClassificationResult(
            compliant=False,
            severity=Severity.CRITICAL,
            value=value,
            threshold=1.0,
            overage=value,
            overage_percent=100.0,
            actions_triggered=("b", "a", "a"),
        )

    budget = lcp_budget.with_updates(enforcer=enforcer)
    result = classify(budget, 10, now=42.0)
    assert result.severity is Severity.CRITICAL
    assert result.timestamp == 42.0
    assert result.actions_triggered == ("a", "b", "reduce-images")


def test_enforcer_result_uses_budget_actions(lcp_budget):
    budget = lcp_budget.with_updates(
        enforcer=lambda value, definition: {"compliant": value < 100, "severity": "error"}
    )
    failing = classify(budget, 500, now=0.0)
    assert failing.actions_triggered == ("reduce-images",)

    passing = classify(budget, 50, now=0.0)
    assert passing.actions_triggered == ()

    assert classify(budget, 500, now=0.0, auto_degradation=False).actions_triggered == ()


def test_failing_enforcer_falls_back_to_default(lcp_budget, caplog):
    def enforcer(value, definition):
        raise RuntimeError("boom")

    budget = lcp_budget.with_updates(enforcer=enforcer)
    with caplog.at_level("ERROR"):
        result = classify(budget, 4500, now=0.0)
    assert result.severity is Severity.ERROR
    assert "custom enforcer failed" in caplog.text


def test_enforcer_returning_wrong_type_falls_back(lcp_budget):
    budget = lcp_budget.with_updates(enforcer=lambda value, definition: "ok")
    result = classify(budget, 4500, now=0.0)
    assert result.severity is Severity.ERROR

    incomplete = lcp_budget.with_updates(enforcer=lambda value, definition: {"compliant": True})
    assert classify(incomplete, 4500, now=0.0).severity is Severity.ERROR


def test_enforcer_may_return_a_mapping(lcp_budget):
    def enforcer(value, definition):
        return {
            "compliant": False,
            "severity": "critical",
            "overage": 3.0,
            "overage_percent": 30.0,
            "actions_triggered": ["reduce-images"],
        }

    budget = lcp_budget.with_updates(enforcer=enforcer)
    result = classify(budget, 13, now=7.0)
    assert result.compliant is False
    assert result.severity is Severity.CRITICAL
    assert result.threshold == pytest.approx(4000.0)
    assert result.actions_triggered == ("reduce-images",)
    assert result.timestamp == 7.0
