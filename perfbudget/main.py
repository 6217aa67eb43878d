from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from . import __version__
from .api import budgets
from .budgets.engine import BudgetEngine
from .config.loader import build_engine, config_from_env, load_config

logger = logging.getLogger(__name__)


def _engine_from_environment() -> BudgetEngine:
    path = os.getenv("PERFBUDGET_CONFIG")
    base = load_config(path).data if path else None
    config = config_from_env(base)
    logger.info(
        "budget engine configured source=%s violation_threshold=%s cooldown_s=%s auto_degradation=%s",
        path or "defaults",
        config.engine.violation_threshold,
        config.engine.alert_cooldown_s,
        config.engine.auto_degradation,
    )
    return build_engine(config)


def create_app(engine: BudgetEngine | None = None) -> FastAPI:
    app = FastAPI(title="perfbudget", version=__version__)
    app.state.budget_engine = engine if engine is not None else _engine_from_environment()

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz", include_in_schema=False)
    def healthz() -> dict[str, object]:
        current = app.state.budget_engine
        state = current.get_degradation_state()
        return {
            "ok": True,
            "budgets": len(current.all_budgets()),
            "health_score": current.get_health_score(),
            "degradation_level": state.level.value,
        }

    app.include_router(budgets.router, prefix="/api/perf", tags=["perf"])
    return app


__all__ = ["create_app"]
