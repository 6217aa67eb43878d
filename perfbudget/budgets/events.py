"""Synchronous in-process pub/sub for budget events."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..metrics.budgets import record_subscriber_error
from .models import DegradationState, ViolationRecord

LOGGER = logging.getLogger(__name__)


class EventType(str, Enum):
    VIOLATION = "violation"
    RECOVERY = "recovery"
    DEGRADATION_CHANGE = "degradation_change"

    @classmethod
    def coerce(cls, value: "EventType | str") -> "EventType":
        if isinstance(value, cls):
            return value
        token = str(value).strip()
        aliases = {"degradationChange": cls.DEGRADATION_CHANGE}
        if token in aliases:
            return aliases[token]
        try:
            return cls(token.lower())
        except ValueError as exc:
            raise ValueError(f"Unknown event type: {value!r}") from exc


@dataclass(frozen=True)
class BudgetEvent:
    type: EventType
    timestamp: float
    budget_name: Optional[str] = None
    violation: Optional[ViolationRecord] = None
    degradation: Optional[DegradationState] = None


Subscriber = Callable[[BudgetEvent], None]


class EventBus:
    """Deliver events to subscribers in subscription order.

    A raising subscriber is logged and skipped; delivery to the remaining
    subscribers continues and nothing propagates to the publisher.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._subscribers: Dict[EventType, List[Subscriber]] = {kind: [] for kind in EventType}

    def on(self, event_type: EventType | str, callback: Subscriber) -> Callable[[], None]:
        kind = EventType.coerce(event_type)
        with self._lock:
            self._subscribers[kind].append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                try:
                    self._subscribers[kind].remove(callback)
                except ValueError:
                    pass

        return _unsubscribe

    def emit(self, event: BudgetEvent) -> int:
        """Deliver ``event``; return the number of subscribers that succeeded."""

        with self._lock:
            subscribers = tuple(self._subscribers[event.type])
        delivered = 0
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                record_subscriber_error(event.type.value)
                LOGGER.exception(
                    "budget event subscriber failed event=%s budget=%s",
                    event.type.value,
                    event.budget_name,
                )
                continue
            delivered += 1
        return delivered

    def subscriber_count(self, event_type: EventType | str) -> int:
        kind = EventType.coerce(event_type)
        with self._lock:
            return len(self._subscribers[kind])

    def clear(self) -> None:
        with self._lock:
            for subscribers in self._subscribers.values():
                subscribers.clear()


class AlertThrottle:
    """Allow at most one alert per key within ``cooldown_s`` seconds."""

    def __init__(self, cooldown_s: float = 60.0, *, clock: Callable[[], float] | None = None) -> None:
        self._cooldown = max(float(cooldown_s), 0.0)
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._last_sent: Dict[str, float] = {}

    @property
    def cooldown_s(self) -> float:
        return self._cooldown

    def allow(self, key: str, now: float | None = None) -> bool:
        timestamp = self._clock() if now is None else float(now)
        with self._lock:
            last = self._last_sent.get(key)
            if last is not None and timestamp - last < self._cooldown:
                return False
            self._last_sent[key] = timestamp
            return True

    def forget(self, key: str) -> None:
        with self._lock:
            self._last_sent.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._last_sent.clear()


__all__ = ["AlertThrottle", "BudgetEvent", "EventBus", "EventType", "Subscriber"]
