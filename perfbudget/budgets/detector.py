"""Threshold classification and consecutive-violation hysteresis."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .models import (
    BudgetDefinition,
    ClassificationResult,
    Severity,
    ViolationRecord,
    sorted_actions,
)
from .units import format_value

LOGGER = logging.getLogger(__name__)

__all__ = ["Observation", "ViolationDetector", "classify", "default_classify"]


def _breaches(value: float, threshold: float, *, lower_is_better: bool) -> bool:
    if lower_is_better:
        return value >= threshold
    return value <= threshold


def _message(definition: BudgetDefinition, value: float, severity: Severity) -> str:
    unit = definition.unit
    formatted = format_value(value, unit)
    limit = format_value(definition.error_threshold, unit)
    if severity is Severity.CRITICAL and definition.critical_threshold is not None:
        critical = format_value(definition.critical_threshold, unit)
        return f"CRITICAL: {definition.name} is {formatted} (critical threshold: {critical})"
    if severity in {Severity.CRITICAL, Severity.ERROR}:
        return f"ERROR: {definition.name} exceeds budget at {formatted} (limit: {limit})"
    if severity is Severity.WARNING:
        return f"WARNING: {definition.name} is {formatted} (approaching limit: {limit})"
    return f"{definition.name}: {formatted}"


def default_classify(
    definition: BudgetDefinition,
    value: float,
    *,
    now: float,
    auto_degradation: bool = True,
) -> ClassificationResult:
    """Classify ``value`` against the thresholds of ``definition``.

    Every boundary is inclusive: reaching a threshold counts as crossing it.
    ``warning`` stays compliant; ``error`` and ``critical`` do not.
    """

    lower = definition.lower_is_better
    critical = definition.critical_threshold
    if critical is not None and _breaches(value, critical, lower_is_better=lower):
        severity, threshold = Severity.CRITICAL, float(critical)
    elif _breaches(value, definition.error_threshold, lower_is_better=lower):
        severity, threshold = Severity.ERROR, float(definition.error_threshold)
    elif _breaches(value, definition.warning_threshold, lower_is_better=lower):
        severity, threshold = Severity.WARNING, float(definition.warning_threshold)
    else:
        severity, threshold = Severity.OK, float(definition.error_threshold)

    error_threshold = float(definition.error_threshold)
    if lower:
        overage = max(0.0, value - error_threshold)
    else:
        overage = max(0.0, error_threshold - value)
    overage_percent = overage / error_threshold * 100.0 if error_threshold != 0 else 0.0

    compliant = severity.compliant
    actions: tuple[str, ...] = ()
    if not compliant and auto_degradation and definition.enable_degradation:
        actions = sorted_actions(definition.degradation_actions)

    return ClassificationResult(
        compliant=compliant,
        severity=severity,
        value=value,
        threshold=threshold,
        overage=overage,
        overage_percent=overage_percent,
        actions_triggered=actions,
        timestamp=now,
        message=_message(definition, value, severity),
    )


def _result_from_mapping(
    definition: BudgetDefinition,
    value: float,
    payload: Mapping[str, Any],
) -> ClassificationResult:
    severity = Severity(str(payload["severity"]).lower())
    compliant = bool(payload.get("compliant", severity.compliant))
    return ClassificationResult(
        compliant=compliant,
        severity=severity,
        value=float(payload.get("value", value)),
        threshold=float(payload.get("threshold", definition.error_threshold)),
        overage=float(payload.get("overage", 0.0)),
        overage_percent=float(payload.get("overage_percent", 0.0)),
        actions_triggered=tuple(payload.get("actions_triggered", ())),
        timestamp=float(payload.get("timestamp", 0.0)),
        message=str(payload.get("message", "")),
    )


def classify(
    definition: BudgetDefinition,
    value: float,
    *,
    now: float,
    auto_degradation: bool = True,
) -> ClassificationResult:
    """Classify through the budget's custom enforcer when it has one.

    A failing enforcer is logged and the default thresholds apply instead.
    """

    enforcer = definition.enforcer
    if enforcer is None:
        return default_classify(definition, value, now=now, auto_degradation=auto_degradation)
    try:
        result = enforcer(value, definition)
    except Exception:
        LOGGER.exception("custom enforcer failed budget=%s value=%s", definition.name, value)
        return default_classify(definition, value, now=now, auto_degradation=auto_degradation)
    if isinstance(result, Mapping):
        try:
            result = _result_from_mapping(definition, value, result)
        except (KeyError, TypeError, ValueError):
            LOGGER.exception("custom enforcer returned an invalid mapping budget=%s", definition.name)
            return default_classify(definition, value, now=now, auto_degradation=auto_degradation)
    if not isinstance(result, ClassificationResult):
        LOGGER.warning(
            "custom enforcer returned %s for budget=%s; using default thresholds",
            type(result).__name__,
            definition.name,
        )
        return default_classify(definition, value, now=now, auto_degradation=auto_degradation)
    if not result.timestamp:
        result.timestamp = now
    if result.compliant or not (auto_degradation and definition.enable_degradation):
        result.actions_triggered = ()
    else:
        result.actions_triggered = sorted_actions(
            (*definition.degradation_actions, *result.actions_triggered)
        )
    return result


@dataclass(frozen=True)
class Observation:
    """Outcome of feeding one classified sample through the hysteresis."""

    consecutive: int
    previous_consecutive: int = 0
    escalated: bool = False
    updated: bool = False
    recovered: bool = False
    record: Optional[ViolationRecord] = None


class ViolationDetector:
    """Track consecutive non-compliant samples and active violation episodes.

    A :class:`ViolationRecord` is created only when a budget's counter reaches
    ``violation_threshold``; later non-compliant samples update that record in
    place so its id stays stable until the budget recovers.
    """

    def __init__(self, violation_threshold: int = 3) -> None:
        self._threshold = max(int(violation_threshold), 1)
        self._lock = threading.RLock()
        self._counts: Dict[str, int] = {}
        self._active: Dict[str, ViolationRecord] = {}

    @property
    def violation_threshold(self) -> int:
        return self._threshold

    # ------------------------------------------------------------------
    def observe(
        self,
        definition: BudgetDefinition,
        result: ClassificationResult,
        *,
        now: float,
        context: Mapping[str, Any] | None = None,
    ) -> Observation:
        name = definition.name
        with self._lock:
            previous = self._counts.get(name, 0)
            if result.compliant:
                self._counts[name] = 0
                record = self._active.pop(name, None)
                return Observation(
                    consecutive=0,
                    previous_consecutive=previous,
                    recovered=record is not None,
                    record=record.snapshot() if record is not None else None,
                )

            count = previous + 1
            self._counts[name] = count
            if count < self._threshold:
                return Observation(consecutive=count, previous_consecutive=previous)

            existing = self._active.get(name)
            if existing is None:
                record = ViolationRecord(
                    id=f"budget-{uuid.uuid4().hex[:12]}",
                    budget_name=name,
                    value=result.value,
                    threshold=result.threshold,
                    severity=result.severity,
                    overage=result.overage,
                    overage_percent=result.overage_percent,
                    timestamp=now,
                    last_violation_at=now,
                    consecutive_violations=count,
                    context=dict(context or {}),
                )
                self._active[name] = record
                return Observation(
                    consecutive=count,
                    previous_consecutive=previous,
                    escalated=True,
                    record=record.snapshot(),
                )

            existing.value = result.value
            existing.threshold = result.threshold
            existing.severity = result.severity
            existing.overage = result.overage
            existing.overage_percent = result.overage_percent
            existing.last_violation_at = now
            existing.consecutive_violations = count
            return Observation(
                consecutive=count,
                previous_consecutive=previous,
                updated=True,
                record=existing.snapshot(),
            )

    # ------------------------------------------------------------------
    def consecutive(self, name: str) -> int:
        with self._lock:
            return self._counts.get(name, 0)

    def violation_for(self, name: str) -> Optional[ViolationRecord]:
        with self._lock:
            record = self._active.get(name)
            return record.snapshot() if record is not None else None

    def active(self) -> List[ViolationRecord]:
        with self._lock:
            return [record.snapshot() for record in self._active.values()]

    def is_violating(self, name: str) -> bool:
        with self._lock:
            return name in self._active

    def clear(self, name: str) -> Optional[ViolationRecord]:
        with self._lock:
            self._counts.pop(name, None)
            return self._active.pop(name, None)

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()
            self._active.clear()
