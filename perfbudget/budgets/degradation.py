"""Shared degradation state machine driven by budget violations."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set

from .models import DegradationLevel, DegradationState

LOGGER = logging.getLogger(__name__)

MANUAL_SOURCE = "manual"

DegradationHandler = Callable[[], None]
StateListener = Callable[[DegradationState], None]


class DegradationController:
    """Track which mitigation strategies are active and who requires them.

    Each active strategy keeps the set of contributors (budget names or the
    manual override) that require it. A strategy is dropped only once its
    last contributor releases it; when no strategy remains the controller
    returns to the inactive state. The level is derived from the number of
    active strategies and is never stored.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] | None = None,
        handlers: Mapping[str, DegradationHandler] | None = None,
        on_change: StateListener | None = None,
    ) -> None:
        self._clock = clock or time.time
        self._handlers: Dict[str, DegradationHandler] = dict(handlers or {})
        self._on_change = on_change
        self._lock = threading.RLock()
        self._contributors: Dict[str, Set[str]] = {}
        self._reason: Optional[str] = None
        self._activated_at: Optional[float] = None
        # handlers run outside this lock; the listener runs inside it
        self._notify_lock = threading.RLock()
        self._version = 0
        self._delivered_version = 0

    # ------------------------------------------------------------------
    # Threshold driven transitions
    # ------------------------------------------------------------------
    def engage(self, budget_name: str, actions: Iterable[str], *, reason: str | None = None) -> bool:
        """Union ``actions`` into the active set on behalf of ``budget_name``."""

        requested = sorted({str(action) for action in actions if action})
        if not requested:
            return False
        with self._lock:
            before = set(self._contributors)
            for action in requested:
                self._contributors.setdefault(action, set()).add(budget_name)
            newly_active = [action for action in requested if action not in before]
            if not newly_active:
                return False
            if self._activated_at is None:
                self._activated_at = self._clock()
            self._reason = reason or f"budget {budget_name!r} exceeded its violation threshold"
            self._version += 1
            state = self._snapshot()
        LOGGER.info(
            "degradation engaged budget=%s actions=%s level=%s",
            budget_name,
            ",".join(newly_active),
            state.level.value,
        )
        self._run_handlers(newly_active)
        self._publish()
        return True

    def release(self, budget_name: str) -> bool:
        """Drop every contribution of ``budget_name``; return whether the set changed."""

        with self._lock:
            before = set(self._contributors)
            for action in list(self._contributors):
                sources = self._contributors[action]
                sources.discard(budget_name)
                if not sources:
                    del self._contributors[action]
            removed = sorted(before - set(self._contributors))
            if not removed:
                return False
            if not self._contributors:
                self._reason = None
                self._activated_at = None
            self._version += 1
            state = self._snapshot()
        LOGGER.info(
            "degradation released budget=%s actions=%s level=%s",
            budget_name,
            ",".join(removed),
            state.level.value,
        )
        self._publish()
        return True

    # ------------------------------------------------------------------
    # Manual overrides
    # ------------------------------------------------------------------
    def activate(self, action: str) -> bool:
        return self.engage(MANUAL_SOURCE, [action], reason=f"manual override: {action}")

    def deactivate(self, action: str | None = None) -> bool:
        """Force ``action`` off regardless of contributors; ``None`` resets all."""

        if action is None:
            return self.reset()
        with self._lock:
            if self._contributors.pop(str(action), None) is None:
                return False
            if not self._contributors:
                self._reason = None
                self._activated_at = None
            self._version += 1
            state = self._snapshot()
        LOGGER.info("degradation deactivated action=%s level=%s", action, state.level.value)
        self._publish()
        return True

    def reset(self) -> bool:
        with self._lock:
            if not self._contributors and self._activated_at is None:
                return False
            self._contributors.clear()
            self._reason = None
            self._activated_at = None
            self._version += 1
            state = self._snapshot()
        LOGGER.info("degradation reset")
        self._publish()
        return True

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------
    def state(self) -> DegradationState:
        with self._lock:
            return self._snapshot()

    def is_active(self, action: str) -> bool:
        with self._lock:
            return str(action) in self._contributors

    def active_strategies(self) -> List[str]:
        with self._lock:
            return sorted(self._contributors)

    def contributors(self, action: str) -> Set[str]:
        with self._lock:
            return set(self._contributors.get(str(action), ()))

    def set_handler(self, action: str, handler: DegradationHandler | None) -> None:
        with self._lock:
            if handler is None:
                self._handlers.pop(action, None)
            else:
                self._handlers[action] = handler

    def set_listener(self, listener: StateListener | None) -> None:
        self._on_change = listener

    # ------------------------------------------------------------------
    def _snapshot(self) -> DegradationState:
        strategies = tuple(sorted(self._contributors))
        if not strategies:
            return DegradationState.inactive()
        return DegradationState(
            is_active=True,
            level=DegradationLevel.for_count(len(strategies)),
            active_strategies=strategies,
            reason=self._reason,
            activated_at=self._activated_at,
        )

    def _run_handlers(self, actions: Iterable[str]) -> None:
        for action in actions:
            with self._lock:
                handler = self._handlers.get(action)
            if handler is None:
                continue
            try:
                handler()
            except Exception:
                LOGGER.exception("degradation handler failed action=%s", action)

    def _publish(self) -> None:
        """Deliver the current state to the listener, newest version only.

        The state is re-read under the notification lock, so a transition
        that finished later is never overwritten by an older snapshot.
        """

        with self._notify_lock:
            with self._lock:
                version = self._version
                state = self._snapshot()
            if version <= self._delivered_version:
                return
            self._delivered_version = version
            listener = self._on_change
            if listener is None:
                return
            try:
                listener(state)
            except Exception:
                LOGGER.exception("degradation listener failed")


__all__ = ["DegradationController", "DegradationHandler", "MANUAL_SOURCE", "StateListener"]
