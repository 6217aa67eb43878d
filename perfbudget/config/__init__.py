from .loader import build_engine, config_from_env, load_config, load_yaml, parse_config, validate_payload
from .schema import BudgetSpec, EngineSettings, LoadedConfig, PerfBudgetConfig

__all__ = [
    "BudgetSpec",
    "EngineSettings",
    "LoadedConfig",
    "PerfBudgetConfig",
    "build_engine",
    "config_from_env",
    "load_config",
    "load_yaml",
    "parse_config",
    "validate_payload",
]
