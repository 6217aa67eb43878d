from __future__ import annotations


class BudgetError(Exception):
    """Base class for errors raised by the budget engine."""


class ConfigError(BudgetError, ValueError):
    """Raised when a budget or engine configuration is invalid."""


class NotFoundError(BudgetError, KeyError):
    """Raised when an operation targets a budget that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"budget {self.name!r} not found"


__all__ = ["BudgetError", "ConfigError", "NotFoundError"]
