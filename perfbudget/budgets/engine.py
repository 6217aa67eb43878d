"""Budget engine: records samples, tracks violations and drives degradation."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from ..metrics.budgets import (
    forget_budget,
    observe_sample,
    record_recovery,
    record_violation,
    set_degradation_state,
)
from .defaults import default_budgets
from .degradation import DegradationController, DegradationHandler
from .detector import ViolationDetector, classify
from .events import AlertThrottle, BudgetEvent, EventBus, EventType, Subscriber
from .history import SampleHistory
from .models import (
    BudgetCategory,
    BudgetDefinition,
    BudgetStatus,
    ClassificationResult,
    DegradationState,
    Sample,
    Severity,
    TrendSummary,
    ViolationRecord,
)
from .registry import BudgetRegistry
from .reporting import (
    ComplianceReport,
    build_budget_report,
    build_compliance_report,
    health_score,
    render_report,
)
from .trend import TrendAnalyzer
from .violations import ViolationLog

LOGGER = logging.getLogger(__name__)

_RECENT_VIOLATIONS = 10


@dataclass(frozen=True)
class EngineConfig:
    violation_threshold: int = 3
    alert_cooldown_s: float = 60.0
    history_retention_s: float = 86400.0
    max_history_entries: int = 1000
    auto_degradation: bool = True
    max_violation_log: int = 1000
    include_default_budgets: bool = True


class BudgetEngine:
    """Evaluate samples against registered budgets.

    Samples of one budget are processed in arrival order under that budget's
    lock. Degradation state is shared by all budgets and guarded by the
    controller's own lock. Subscribers run synchronously on the recording
    thread; failures are logged and never reach the caller of :meth:`record`.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        budgets: Iterable[BudgetDefinition] | None = None,
        on_violation: Callable[[ViolationRecord], None] | None = None,
        on_recovery: Callable[[str], None] | None = None,
        on_degradation_change: Callable[[DegradationState], None] | None = None,
        degradation_handlers: Mapping[str, DegradationHandler] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._clock = clock or time.time
        self._registry = BudgetRegistry()
        self._detector = ViolationDetector(self._config.violation_threshold)
        self._analyzer = TrendAnalyzer()
        self._violations = ViolationLog(self._config.max_violation_log)
        self._events = EventBus()
        self._throttle = AlertThrottle(self._config.alert_cooldown_s, clock=self._clock)
        self._degradation = DegradationController(
            clock=self._clock,
            handlers=degradation_handlers,
            on_change=self._on_degradation_state,
        )
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}
        self._histories: Dict[str, SampleHistory] = {}
        self._last_severity: Dict[str, Severity] = {}

        if on_violation is not None:
            self.on(EventType.VIOLATION, lambda event: on_violation(event.violation))
        if on_recovery is not None:
            self.on(EventType.RECOVERY, lambda event: on_recovery(event.budget_name))
        if on_degradation_change is not None:
            self.on(EventType.DEGRADATION_CHANGE, lambda event: on_degradation_change(event.degradation))

        if self._config.include_default_budgets:
            for definition in default_budgets():
                self.register_budget(definition)
        for definition in budgets or ():
            self.register_budget(definition)

    # ------------------------------------------------------------------
    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def degradation(self) -> DegradationController:
        return self._degradation

    def _now(self) -> float:
        return float(self._clock())

    def _lock_for(self, name: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = threading.RLock()
                self._locks[name] = lock
            return lock

    def _history_for(self, name: str) -> SampleHistory:
        with self._guard:
            history = self._histories.get(name)
            if history is None:
                history = SampleHistory(
                    max_entries=self._config.max_history_entries,
                    retention_s=self._config.history_retention_s,
                )
                self._histories[name] = history
            return history

    def _samples(self, name: str) -> List[Sample]:
        with self._guard:
            history = self._histories.get(name)
        if history is None:
            return []
        history.prune(self._now())
        return history.all()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------
    def record(
        self,
        name: str,
        value: float,
        *,
        timestamp: float | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> ClassificationResult:
        """Classify ``value`` for budget ``name`` and update engine state.

        Unknown budgets yield a neutral passing result and nothing is stored.
        """

        now = self._now() if timestamp is None else float(timestamp)
        value = float(value)
        definition = self._registry.get(name)
        if definition is None:
            LOGGER.debug("sample for unknown budget ignored budget=%s value=%s", name, value)
            return ClassificationResult.passing(value, timestamp=now)

        with self._lock_for(name):
            result = classify(
                definition,
                value,
                now=now,
                auto_degradation=self._config.auto_degradation,
            )
            self._history_for(name).append(Sample(value, now, result.compliant), now=now)
            with self._guard:
                self._last_severity[name] = result.severity
            observation = self._detector.observe(definition, result, now=now, context=context)
            observe_sample(name, value, result.severity.value)
            LOGGER.debug(
                "budget sample budget=%s value=%s severity=%s consecutive=%s",
                name,
                value,
                result.severity.value,
                observation.consecutive,
            )

            if observation.recovered:
                self._handle_recovery(name, now)
                return result

            record = observation.record
            if record is None:
                return result
            result.violation = record
            self._violations.upsert(record)
            if observation.escalated:
                record_violation(name, record.severity.value)
                LOGGER.info(
                    "budget violation budget=%s severity=%s value=%s threshold=%s consecutive=%s",
                    name,
                    record.severity.value,
                    record.value,
                    record.threshold,
                    record.consecutive_violations,
                )
            if result.actions_triggered:
                self._degradation.engage(name, result.actions_triggered, reason=result.message or None)
            if self._throttle.allow(name, now):
                self._events.emit(
                    BudgetEvent(
                        type=EventType.VIOLATION,
                        timestamp=now,
                        budget_name=name,
                        violation=record,
                    )
                )
            else:
                LOGGER.debug("violation alert throttled budget=%s", name)
        return result

    def _handle_recovery(self, name: str, now: float) -> None:
        record_recovery(name)
        LOGGER.info("budget recovered budget=%s", name)
        self._degradation.release(name)
        self._events.emit(BudgetEvent(type=EventType.RECOVERY, timestamp=now, budget_name=name))

    def check(self, name: str, value: float) -> ClassificationResult:
        """Classify ``value`` without touching history, hysteresis or events."""

        now = self._now()
        definition = self._registry.get(name)
        if definition is None:
            return ClassificationResult.passing(float(value), timestamp=now)
        return classify(definition, float(value), now=now, auto_degradation=self._config.auto_degradation)

    def record_batch(self, values: Mapping[str, float]) -> Dict[str, ClassificationResult]:
        return {name: self.record(name, value) for name, value in values.items()}

    # ------------------------------------------------------------------
    # Budget management
    # ------------------------------------------------------------------
    def register_budget(self, definition: BudgetDefinition) -> BudgetDefinition:
        registered = self._registry.register(definition)
        self._history_for(registered.name)
        return registered

    def update_budget(self, name: str, **changes: Any) -> BudgetDefinition:
        return self._registry.update(name, **changes)

    def remove_budget(self, name: str) -> bool:
        with self._lock_for(name):
            removed = self._registry.remove(name)
            if not removed:
                return False
            with self._guard:
                self._histories.pop(name, None)
                self._last_severity.pop(name, None)
            self._detector.clear(name)
            self._violations.discard_budget(name)
            self._throttle.forget(name)
            self._degradation.release(name)
            forget_budget(name)
        with self._guard:
            self._locks.pop(name, None)
        LOGGER.info("budget removed budget=%s", name)
        return True

    def get_budget(self, name: str) -> Optional[BudgetDefinition]:
        return self._registry.get(name)

    def all_budgets(self) -> List[BudgetDefinition]:
        return self._registry.all()

    def budgets_by_category(self, category: BudgetCategory | str) -> List[BudgetDefinition]:
        return self._registry.by_category(category)

    # ------------------------------------------------------------------
    # Status and analysis
    # ------------------------------------------------------------------
    def get_status(self, name: str) -> Optional[BudgetStatus]:
        definition = self._registry.get(name)
        if definition is None:
            return None
        samples = self._samples(name)
        with self._guard:
            severity = self._last_severity.get(name)
        current = samples[-1].value if samples else None
        status = severity.value if (samples and severity is not None) else "unknown"
        return BudgetStatus(
            budget_name=name,
            definition=definition,
            current_value=current,
            status=status,
            trend=self._summarize(definition, samples),
            recent_violations=self._violations.records(name, limit=_RECENT_VIOLATIONS),
        )

    def get_all_statuses(self) -> List[BudgetStatus]:
        statuses = []
        for definition in self._registry.all():
            status = self.get_status(definition.name)
            if status is not None:
                statuses.append(status)
        return statuses

    def _summarize(self, definition: BudgetDefinition, samples: List[Sample]) -> Optional[TrendSummary]:
        return self._analyzer.summarize(
            definition.name,
            samples,
            lower_is_better=definition.lower_is_better,
            now=self._now(),
        )

    def get_trend(self, name: str) -> Optional[TrendSummary]:
        definition = self._registry.get(name)
        if definition is None:
            return None
        return self._summarize(definition, self._samples(name))

    def get_all_trends(self) -> Dict[str, TrendSummary]:
        trends: Dict[str, TrendSummary] = {}
        for definition in self._registry.all():
            summary = self._summarize(definition, self._samples(definition.name))
            if summary is not None:
                trends[definition.name] = summary
        return trends

    def get_compliance_report(self) -> ComplianceReport:
        now = self._now()
        strategies = self._degradation.active_strategies()
        reports = []
        period_start = now
        for definition in self._registry.all():
            samples = self._samples(definition.name)
            if samples:
                period_start = min(period_start, samples[0].timestamp)
            mine = [
                action
                for action in strategies
                if definition.name in self._degradation.contributors(action)
            ]
            reports.append(
                build_budget_report(
                    definition,
                    samples,
                    violation=self._detector.violation_for(definition.name),
                    active_degradations=mine,
                )
            )
        return build_compliance_report(
            reports,
            self._detector.active(),
            period_start=period_start,
            now=now,
        )

    def get_health_score(self) -> int:
        current = []
        for definition in self._registry.all():
            samples = self._samples(definition.name)
            if samples:
                current.append((definition, samples[-1].value))
        return health_score(current)

    def generate_report(self) -> str:
        units = {definition.name: definition.unit for definition in self._registry.all()}
        return render_report(
            self.get_all_statuses(),
            score=self.get_health_score(),
            degradation=self._degradation.state(),
            violations=self._violations.records(),
            units=units,
            generated_at=self._now(),
        )

    # ------------------------------------------------------------------
    # Violations
    # ------------------------------------------------------------------
    def get_active_violations(self) -> List[ViolationRecord]:
        return self._detector.active()

    def get_violations(self, name: str | None = None, limit: int | None = None) -> List[ViolationRecord]:
        return self._violations.records(name, limit=limit)

    def clear_violation(self, name: str) -> bool:
        """Close the open episode of ``name`` and release its strategies."""

        with self._lock_for(name):
            record = self._detector.clear(name)
            self._degradation.release(name)
        if record is None:
            return False
        LOGGER.info("budget violation cleared budget=%s id=%s", name, record.id)
        return True

    # ------------------------------------------------------------------
    # Degradation
    # ------------------------------------------------------------------
    def get_degradation_state(self) -> DegradationState:
        return self._degradation.state()

    def is_strategy_active(self, action: str) -> bool:
        return self._degradation.is_active(action)

    def activate_degradation(self, action: str) -> bool:
        return self._degradation.activate(action)

    def deactivate_degradation(self, action: str | None = None) -> bool:
        return self._degradation.deactivate(action)

    def reset_degradations(self) -> bool:
        return self._degradation.reset()

    def _on_degradation_state(self, state: DegradationState) -> None:
        set_degradation_state(state)
        self._events.emit(
            BudgetEvent(
                type=EventType.DEGRADATION_CHANGE,
                timestamp=self._now(),
                degradation=state,
            )
        )

    # ------------------------------------------------------------------
    # Events and lifecycle
    # ------------------------------------------------------------------
    def on(self, event_type: EventType | str, callback: Subscriber) -> Callable[[], None]:
        return self._events.on(event_type, callback)

    def clear_history(self) -> None:
        with self._guard:
            histories = list(self._histories.values())
            self._last_severity.clear()
        for history in histories:
            history.clear()

    def reset(self) -> None:
        """Drop samples, violations, alert cooldowns and degradation state.

        Registered budgets and subscribers are kept.
        """

        self.clear_history()
        self._detector.reset()
        self._violations.clear()
        self._throttle.clear()
        self._degradation.reset()
        LOGGER.info("budget engine reset")


__all__ = ["BudgetEngine", "EngineConfig"]
