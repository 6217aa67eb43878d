import pytest
from prometheus_client import REGISTRY

from perfbudget.budgets.engine import BudgetEngine, EngineConfig
from perfbudget.budgets.models import BudgetCategory, BudgetDefinition, DegradationLevel, Severity, Unit
from perfbudget.errors import ConfigError, NotFoundError


def test_lcp_violation_engages_and_recovery_releases_degradation(engine):
    first = engine.record("LCP", 4500)
    second = engine.record("LCP", 4600)
    assert first.violation is None and second.violation is None
    assert engine.get_degradation_state().is_active is False

    third = engine.record("LCP", 4700)
    assert third.compliant is False
    assert third.violation is not None
    assert third.violation.severity is Severity.ERROR
    assert third.violation.overage == pytest.approx(700.0)
    state = engine.get_degradation_state()
    assert state.is_active is True
    assert state.active_strategies == ("reduce-images",)
    assert state.level is DegradationLevel.LIGHT
    assert engine.is_strategy_active("reduce-images")

    recovered = engine.record("LCP", 2000)
    assert recovered.compliant is True
    assert engine.get_degradation_state().is_active is False
    assert engine.get_active_violations() == []
    assert len(engine.get_violations("LCP")) == 1


def test_enforcer_budget_drives_degradation_through_hysteresis(engine, lcp_budget):
    engine.register_budget(
        lcp_budget.with_updates(
            enforcer=lambda value, definition: {"compliant": value < 100, "severity": "error"}
        )
    )
    engine.record("LCP", 500)
    engine.record("LCP", 500)
    assert engine.is_strategy_active("reduce-images") is False

    result = engine.record("LCP", 500)
    assert result.violation is not None
    assert engine.is_strategy_active("reduce-images") is True

    engine.record("LCP", 50)
    assert engine.is_strategy_active("reduce-images") is False
    assert engine.get_active_violations() == []


def test_unknown_budget_is_neutral(engine):
    result = engine.record("nope", 1e9)
    assert result.compliant is True
    assert result.severity is Severity.OK
    assert result.violation is None
    assert engine.get_status("nope") is None
    assert engine.get_trend("nope") is None
    assert engine.check("nope", 5).compliant is True


def test_check_has_no_side_effects(engine):
    for _ in range(5):
        result = engine.check("LCP", 9000)
    assert result.severity is Severity.CRITICAL
    assert engine.get_trend("LCP") is None
    assert engine.get_active_violations() == []


def test_record_batch(engine):
    results = engine.record_batch({"LCP": 3000, "missing": 1})
    assert results["LCP"].severity is Severity.WARNING
    assert results["missing"].severity is Severity.OK


def test_update_budget_validates_and_reports_missing(engine):
    updated = engine.update_budget("LCP", error_threshold=5000)
    assert updated.error_threshold == 5000
    assert engine.record("LCP", 4500).severity is Severity.WARNING

    with pytest.raises(NotFoundError):
        engine.update_budget("missing", error_threshold=1)
    with pytest.raises(ConfigError):
        engine.update_budget("LCP", warning_threshold=9000)
    with pytest.raises(ConfigError):
        engine.update_budget("LCP", name="other")
    assert engine.get_budget("LCP").warning_threshold == 2500


def test_register_rejects_bad_threshold_order(engine):
    with pytest.raises(ConfigError):
        engine.register_budget(BudgetDefinition(name="bad", warning_threshold=10, error_threshold=5))
    with pytest.raises(ConfigError):
        engine.register_budget(
            BudgetDefinition(name="fps", warning_threshold=30, error_threshold=45, lower_is_better=False)
        )
    with pytest.raises(ValueError):
        engine.register_budget(BudgetDefinition(name="", warning_threshold=1, error_threshold=2))
    assert engine.get_budget("bad") is None


def test_remove_budget_purges_state(engine):
    for value in (4500, 4600, 4700):
        engine.record("LCP", value)
    assert engine.get_degradation_state().is_active is True

    assert engine.remove_budget("LCP") is True
    assert engine.remove_budget("LCP") is False
    assert engine.get_budget("LCP") is None
    assert engine.get_active_violations() == []
    assert engine.get_violations("LCP") == []
    assert engine.get_degradation_state().is_active is False


def test_shared_actions_are_reference_counted(clock):
    budgets = [
        BudgetDefinition(
            name="LCP",
            warning_threshold=2500,
            error_threshold=4000,
            degradation_actions=frozenset({"disable-animations", "reduce-images"}),
        ),
        BudgetDefinition(
            name="INP",
            warning_threshold=200,
            error_threshold=500,
            degradation_actions=frozenset({"disable-animations"}),
        ),
    ]
    engine = BudgetEngine(
        EngineConfig(include_default_budgets=False, violation_threshold=1),
        budgets=budgets,
        clock=clock,
    )
    engine.record("LCP", 5000)
    engine.record("INP", 800)
    assert engine.get_degradation_state().level is DegradationLevel.MODERATE

    engine.record("LCP", 1000)
    state = engine.get_degradation_state()
    assert state.active_strategies == ("disable-animations",)

    engine.record("INP", 100)
    assert engine.get_degradation_state().is_active is False


def test_auto_degradation_disabled_keeps_state_inactive(clock, lcp_budget):
    engine = BudgetEngine(
        EngineConfig(include_default_budgets=False, violation_threshold=1, auto_degradation=False),
        budgets=[lcp_budget],
        clock=clock,
    )
    result = engine.record("LCP", 5000)
    assert result.violation is not None
    assert result.actions_triggered == ()
    assert engine.get_degradation_state().is_active is False


def test_degradation_handlers_invoked(clock, lcp_budget):
    calls = []
    engine = BudgetEngine(
        EngineConfig(include_default_budgets=False, violation_threshold=1),
        budgets=[lcp_budget],
        degradation_handlers={"reduce-images": lambda: calls.append("reduce-images")},
        clock=clock,
    )
    engine.record("LCP", 5000)
    engine.record("LCP", 5100)
    assert calls == ["reduce-images"]


def test_manual_degradation_controls(engine):
    assert engine.activate_degradation("disable-prefetch") is True
    assert engine.get_degradation_state().reason == "manual override: disable-prefetch"
    assert engine.deactivate_degradation("disable-prefetch") is True
    assert engine.get_degradation_state().is_active is False

    engine.activate_degradation("a")
    engine.activate_degradation("b")
    assert engine.deactivate_degradation() is True
    assert engine.reset_degradations() is False


def test_clear_violation_releases_strategies(engine):
    for value in (4500, 4600, 4700):
        engine.record("LCP", value)
    assert engine.clear_violation("LCP") is True
    assert engine.get_active_violations() == []
    assert engine.get_degradation_state().is_active is False
    assert engine.clear_violation("LCP") is False


def test_status_reports_current_value_and_recent_violations(engine):
    assert engine.get_status("LCP").status == "unknown"
    for value in (4500, 4600, 4700, 3000):
        engine.record("LCP", value)
    status = engine.get_status("LCP")
    assert status.current_value == 3000
    assert status.status == "warning"
    assert len(status.recent_violations) == 1
    assert status.trend.count == 4
    payload = status.as_dict()
    assert payload["threshold"]["name"] == "LCP"
    assert [entry.budget_name for entry in engine.get_all_statuses()] == ["LCP"]


def test_compliance_report_and_health_score(clock):
    budgets = [
        BudgetDefinition(name="LCP", warning_threshold=2500, error_threshold=4000, category=BudgetCategory.VITALS),
        BudgetDefinition(
            name="total-bundle",
            warning_threshold=100,
            error_threshold=200,
            unit=Unit.BYTES,
            category=BudgetCategory.BUNDLE,
        ),
    ]
    engine = BudgetEngine(
        EngineConfig(include_default_budgets=False, violation_threshold=1),
        budgets=budgets,
        clock=clock,
    )
    assert engine.get_health_score() == 100
    assert engine.get_compliance_report().compliance_score == 100

    engine.record("LCP", 2500)
    engine.record("total-bundle", 300)
    report = engine.get_compliance_report()
    assert report.overall_compliant is False
    assert report.compliance_score == 50
    assert [entry.is_compliant for entry in report.budgets] == [True, False]
    assert report.budgets[1].utilization_percent == pytest.approx(150.0)
    assert report.budgets[0].headroom == 0.0
    assert "Consider code splitting to reduce total-bundle" in report.recommendations
    assert "Optimize LCP by preloading critical resources and using responsive images" not in report.recommendations
    assert len(report.active_violations) == 1

    # LCP at 100% of warning scores 100, bundle at 300% scores 0
    assert engine.get_health_score() == 50


def test_generate_report_lists_budgets(engine):
    for value in (4500, 4600, 4700):
        engine.record("LCP", value)
    text = engine.generate_report()
    assert "PERFORMANCE BUDGET REPORT" in text
    assert "[CRIT] LCP: 4.70s" in text
    assert "Degradation: Active (light): reduce-images" in text
    assert "--- Recent Violations ---" in text


def test_metrics_track_samples_and_violations(engine):
    for value in (4500, 4600, 4700, 1000):
        engine.record("LCP", value)
    assert REGISTRY.get_sample_value("perfbudget_samples_total", {"budget": "LCP", "severity": "error"}) == 3.0
    assert REGISTRY.get_sample_value("perfbudget_violations_total", {"budget": "LCP", "severity": "error"}) == 1.0
    assert REGISTRY.get_sample_value("perfbudget_recoveries_total", {"budget": "LCP"}) == 1.0
    assert REGISTRY.get_sample_value("perfbudget_budget_value", {"budget": "LCP"}) == 1000.0
    assert REGISTRY.get_sample_value("perfbudget_degradation_level") == 0.0
    assert REGISTRY.get_sample_value("perfbudget_strategy_active", {"strategy": "reduce-images"}) == 0.0


def test_reset_keeps_budgets_and_clears_state(engine):
    for value in (4500, 4600, 4700):
        engine.record("LCP", value)
    engine.reset()
    assert engine.get_budget("LCP") is not None
    assert engine.get_trend("LCP") is None
    assert engine.get_violations() == []
    assert engine.get_degradation_state().is_active is False
    engine.record("LCP", 4500)
    engine.record("LCP", 4500)
    assert engine.get_active_violations() == []


def test_default_catalogue_registered():
    engine = BudgetEngine()
    names = [definition.name for definition in engine.all_budgets()]
    assert names[:3] == ["LCP", "INP", "CLS"]
    assert "frame-rate" in names
    assert [definition.name for definition in engine.budgets_by_category("memory")] == ["memory-usage"]
    assert engine.check("frame-rate", 20).severity is Severity.CRITICAL
