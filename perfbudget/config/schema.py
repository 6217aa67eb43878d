from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..budgets.engine import EngineConfig
from ..budgets.models import BudgetCategory, BudgetDefinition, Unit, threshold_order_error


class EngineSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    violation_threshold: int = Field(3, ge=1)
    alert_cooldown_s: float = Field(60.0, ge=0.0)
    history_retention_s: float = Field(86400.0, gt=0.0)
    max_history_entries: int = Field(1000, ge=1)
    auto_degradation: bool = True
    max_violation_log: int = Field(1000, ge=1)
    include_default_budgets: bool = True

    def to_engine_config(self) -> EngineConfig:
        return EngineConfig(**self.model_dump())


class BudgetSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    warning_threshold: float
    error_threshold: float
    critical_threshold: float | None = None
    unit: Unit = Unit.MS
    category: BudgetCategory = BudgetCategory.CUSTOM
    lower_is_better: bool = True
    degradation_actions: List[str] = Field(default_factory=list)
    enable_degradation: bool = True
    description: str = ""

    @field_validator("name")
    def validate_name(cls, v: str) -> str:
        name = v.strip()
        if not name:
            raise ValueError("name must not be blank")
        return name

    @field_validator("unit", mode="before")
    def validate_unit(cls, v: object) -> Unit:
        return Unit.coerce(v)  # type: ignore[arg-type]

    @field_validator("category", mode="before")
    def validate_category(cls, v: object) -> BudgetCategory:
        return BudgetCategory.coerce(v)  # type: ignore[arg-type]

    @model_validator(mode="after")
    def _validate_order(self) -> "BudgetSpec":
        problem = threshold_order_error(
            self.warning_threshold,
            self.error_threshold,
            self.critical_threshold,
            lower_is_better=self.lower_is_better,
        )
        if problem:
            raise ValueError(problem)
        return self

    def to_definition(self) -> BudgetDefinition:
        return BudgetDefinition(
            name=self.name,
            warning_threshold=self.warning_threshold,
            error_threshold=self.error_threshold,
            critical_threshold=self.critical_threshold,
            unit=self.unit,
            category=self.category,
            lower_is_better=self.lower_is_better,
            degradation_actions=frozenset(self.degradation_actions),
            enable_degradation=self.enable_degradation,
            description=self.description,
        )


class PerfBudgetConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    engine: EngineSettings = Field(default_factory=EngineSettings)
    budgets: List[BudgetSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_unique_names(self) -> "PerfBudgetConfig":
        seen: set[str] = set()
        for spec in self.budgets:
            if spec.name in seen:
                raise ValueError(f"duplicate budget name: {spec.name}")
            seen.add(spec.name)
        return self

    def definitions(self) -> List[BudgetDefinition]:
        return [spec.to_definition() for spec in self.budgets]


@dataclass
class LoadedConfig:
    path: Path
    data: PerfBudgetConfig


__all__ = ["BudgetSpec", "EngineSettings", "LoadedConfig", "PerfBudgetConfig"]
