"""In-memory registry of budget definitions."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from ..errors import ConfigError, NotFoundError
from .models import BudgetCategory, BudgetDefinition, threshold_order_error

LOGGER = logging.getLogger(__name__)


def validate_definition(definition: BudgetDefinition) -> BudgetDefinition:
    """Raise :class:`ConfigError` when ``definition`` cannot be classified."""

    name = str(definition.name or "").strip()
    if not name:
        raise ConfigError("budget name must not be empty")
    problem = threshold_order_error(
        float(definition.warning_threshold),
        float(definition.error_threshold),
        None if definition.critical_threshold is None else float(definition.critical_threshold),
        lower_is_better=definition.lower_is_better,
    )
    if problem:
        raise ConfigError(f"budget {name!r}: {problem}")
    return definition


class BudgetRegistry:
    """Thread-safe map of budget name to definition, in registration order."""

    def __init__(self, budgets: Iterable[BudgetDefinition] = ()) -> None:
        self._lock = threading.RLock()
        self._budgets: Dict[str, BudgetDefinition] = {}
        for definition in budgets:
            self.register(definition)

    # ------------------------------------------------------------------
    def register(self, definition: BudgetDefinition) -> BudgetDefinition:
        validate_definition(definition)
        with self._lock:
            replaced = definition.name in self._budgets
            self._budgets[definition.name] = definition
        LOGGER.debug("budget registered name=%s replaced=%s", definition.name, replaced)
        return definition

    # ------------------------------------------------------------------
    def update(self, name: str, **changes: Any) -> BudgetDefinition:
        with self._lock:
            existing = self._budgets.get(name)
            if existing is None:
                raise NotFoundError(name)
            try:
                updated = existing.with_updates(**changes)
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"budget {name!r}: {exc}") from exc
            validate_definition(updated)
            self._budgets[name] = updated
        LOGGER.debug("budget updated name=%s fields=%s", name, sorted(changes))
        return updated

    # ------------------------------------------------------------------
    def remove(self, name: str) -> bool:
        with self._lock:
            removed = self._budgets.pop(name, None) is not None
        if removed:
            LOGGER.debug("budget removed name=%s", name)
        return removed

    # ------------------------------------------------------------------
    def get(self, name: str) -> Optional[BudgetDefinition]:
        with self._lock:
            return self._budgets.get(name)

    def all(self) -> List[BudgetDefinition]:
        with self._lock:
            return list(self._budgets.values())

    def names(self) -> List[str]:
        with self._lock:
            return list(self._budgets)

    def by_category(self, category: BudgetCategory | str) -> List[BudgetDefinition]:
        resolved = BudgetCategory.coerce(category)
        return [definition for definition in self.all() if definition.category is resolved]

    def clear(self) -> None:
        with self._lock:
            self._budgets.clear()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._budgets

    def __len__(self) -> int:
        with self._lock:
            return len(self._budgets)


__all__ = ["BudgetRegistry", "validate_definition"]
