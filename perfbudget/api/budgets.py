"""HTTP endpoints exposing budget status, compliance and degradation control."""

from __future__ import annotations

import math
from typing import Any

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel, Field, field_validator

from ..budgets.engine import BudgetEngine

router = APIRouter()


class SamplePayload(BaseModel):
    value: float = Field(..., description="Measured value in the budget's unit")

    @field_validator("value")
    def validate_value(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("value must be finite")
        return v


def _engine(request: Request) -> BudgetEngine:
    engine = getattr(request.app.state, "budget_engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="budget engine not configured",
        )
    return engine


def _not_found(name: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"budget {name!r} not found")


@router.get("/budgets")
def list_budgets(request: Request) -> dict[str, Any]:
    engine = _engine(request)
    return {
        "budgets": [entry.as_dict() for entry in engine.get_all_statuses()],
        "health_score": engine.get_health_score(),
    }


@router.get("/budgets/{name}")
def get_budget(name: str, request: Request) -> dict[str, Any]:
    snapshot = _engine(request).get_status(name)
    if snapshot is None:
        raise _not_found(name)
    return snapshot.as_dict()


@router.get("/budgets/{name}/trend")
def get_trend(name: str, request: Request) -> dict[str, Any]:
    engine = _engine(request)
    if engine.get_budget(name) is None:
        raise _not_found(name)
    summary = engine.get_trend(name)
    if summary is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"no samples for {name!r}")
    return summary.as_dict()


@router.post("/budgets/{name}/samples")
def record_sample(name: str, payload: SamplePayload, request: Request) -> dict[str, Any]:
    engine = _engine(request)
    if engine.get_budget(name) is None:
        raise _not_found(name)
    result = engine.record(name, payload.value)
    return result.as_dict()


@router.get("/compliance")
def compliance(request: Request) -> dict[str, Any]:
    return _engine(request).get_compliance_report().as_dict()


@router.get("/violations")
def violations(request: Request, budget: str | None = None, active: bool = False) -> dict[str, Any]:
    engine = _engine(request)
    if active:
        records = engine.get_active_violations()
        if budget is not None:
            records = [record for record in records if record.budget_name == budget]
    else:
        records = engine.get_violations(budget)
    return {"violations": [record.as_dict() for record in records]}


@router.get("/degradation")
def degradation(request: Request) -> dict[str, Any]:
    return _engine(request).get_degradation_state().as_dict()


@router.post("/degradation/reset")
def reset_degradation(request: Request) -> dict[str, Any]:
    engine = _engine(request)
    changed = engine.reset_degradations()
    return {"changed": changed, "degradation": engine.get_degradation_state().as_dict()}


@router.post("/degradation/{action}/activate")
def activate_strategy(action: str, request: Request) -> dict[str, Any]:
    engine = _engine(request)
    changed = engine.activate_degradation(action)
    return {"changed": changed, "degradation": engine.get_degradation_state().as_dict()}


@router.post("/degradation/{action}/deactivate")
def deactivate_strategy(action: str, request: Request) -> dict[str, Any]:
    engine = _engine(request)
    changed = engine.deactivate_degradation(action)
    return {"changed": changed, "degradation": engine.get_degradation_state().as_dict()}


__all__ = ["router"]
