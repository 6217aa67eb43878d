from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict

import yaml
from pydantic import ValidationError

from ..budgets.engine import BudgetEngine
from ..errors import ConfigError
from .schema import LoadedConfig, PerfBudgetConfig

LOGGER = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on", "y"}
_FALSE = {"0", "false", "no", "off", "n"}


def load_yaml(path: Path | str) -> dict[str, Any]:
    cfg_path = Path(path)
    try:
        with cfg_path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise ConfigError(f"cannot read configuration {cfg_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {cfg_path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"Configuration root must be a mapping, got {type(payload)!r}")
    return payload


def _format_errors(exc: ValidationError) -> list[str]:
    errors: list[str] = []
    for entry in exc.errors():
        location = ".".join(str(part) for part in entry.get("loc", ()))
        message = str(entry.get("msg") or "invalid")
        if location:
            errors.append(f"{location}: {message}")
        else:
            errors.append(message)
    return errors


def parse_config(payload: Any) -> PerfBudgetConfig:
    try:
        return PerfBudgetConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError("; ".join(_format_errors(exc))) from exc


def load_config(path: str | Path) -> LoadedConfig:
    cfg_path = Path(path)
    config = parse_config(load_yaml(cfg_path))
    return LoadedConfig(path=cfg_path, data=config)


def _parse_bool(raw: str) -> bool:
    token = raw.strip().lower()
    if token in _TRUE:
        return True
    if token in _FALSE:
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def _parse_int(raw: str) -> int:
    return int(float(raw))


_ENV_OVERRIDES: Dict[str, tuple[str, Callable[[str], Any]]] = {
    "PERFBUDGET_VIOLATION_THRESHOLD": ("violation_threshold", _parse_int),
    "PERFBUDGET_ALERT_COOLDOWN_SEC": ("alert_cooldown_s", float),
    "PERFBUDGET_HISTORY_RETENTION_SEC": ("history_retention_s", float),
    "PERFBUDGET_MAX_HISTORY_ENTRIES": ("max_history_entries", _parse_int),
    "PERFBUDGET_AUTO_DEGRADATION": ("auto_degradation", _parse_bool),
}


def config_from_env(base: PerfBudgetConfig | None = None) -> PerfBudgetConfig:
    """Apply ``PERFBUDGET_*`` environment overrides to ``base``.

    Values that fail to parse or validate are ignored.
    """

    config = base or PerfBudgetConfig()
    settings = config.engine.model_dump()
    for env_name, (field, parser) in _ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is None or not raw.strip():
            continue
        try:
            candidate = dict(settings, **{field: parser(raw)})
            type(config.engine).model_validate(candidate)
        except (ValueError, ValidationError) as exc:
            LOGGER.debug("ignoring invalid env override name=%s value=%r error=%s", env_name, raw, exc)
            continue
        settings = candidate
    engine = type(config.engine).model_validate(settings)
    return config.model_copy(update={"engine": engine})


def validate_payload(payload: Any) -> list[str]:
    """Return a list of validation errors for ``payload``.

    The function returns an empty list when the payload is valid.
    """

    try:
        PerfBudgetConfig.model_validate(payload)
    except ValidationError as exc:
        return _format_errors(exc)
    except (TypeError, ValueError) as exc:
        return [str(exc)]
    return []


def build_engine(config: PerfBudgetConfig | None = None, **kwargs: Any) -> BudgetEngine:
    """Create a :class:`BudgetEngine` from ``config``; ``kwargs`` go to the engine."""

    config = config or PerfBudgetConfig()
    return BudgetEngine(
        config.engine.to_engine_config(),
        budgets=config.definitions(),
        **kwargs,
    )


__all__ = [
    "build_engine",
    "config_from_env",
    "load_config",
    "load_yaml",
    "parse_config",
    "validate_payload",
]
