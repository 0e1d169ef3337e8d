"""Configuration loader for AWS Cost Monitor."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable

import yaml

from aws_cost_monitor.config.schema import Config


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir() -> Path:
    """Find the config directory, searching up from current directory."""
    if config_dir := os.environ.get("COST_MONITOR_CONFIG_DIR"):
        return Path(config_dir)

    current = Path.cwd()
    while current != current.parent:
        config_path = current / "config"
        if config_path.is_dir():
            return config_path
        current = current.parent

    return Path("config")


def load_config(
    config_path: str | Path | None = None,
    environment: str | None = None,
) -> Config:
    """
    Load configuration from YAML files.

    Loads config.yaml as base, then merges environment-specific overrides
    (e.g., config.dev.yaml, config.prod.yaml).

    Args:
        config_path: Path to config directory. If None, searches for config/ directory.
        environment: Environment name (dev, staging, prod). If None, uses COST_MONITOR_ENV
                    environment variable or defaults to 'dev'.

    Returns:
        Config: Validated configuration object.
    """
    config_dir = Path(config_path) if config_path else _find_config_dir()
    environment = environment or os.environ.get("COST_MONITOR_ENV", "dev")

    base_config_path = config_dir / "config.yaml"
    config_data: dict = {}

    if base_config_path.exists():
        with open(base_config_path) as f:
            config_data = yaml.safe_load(f) or {}

    env_config_path = config_dir / f"config.{environment}.yaml"
    if env_config_path.exists():
        with open(env_config_path) as f:
            env_data = yaml.safe_load(f) or {}
            config_data = _deep_merge(config_data, env_data)

    config_data = _apply_env_overrides(config_data)
    config_data["environment"] = environment

    return Config(**config_data)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


# Variable -> (config path, converter). The profile uses a project-specific
# name because AWS_PROFILE is set by most AWS tooling for unrelated reasons.
ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], Callable[[str], Any]]] = {
    "AWS_REGION": (("aws", "region"), str),
    "COST_MONITOR_PROFILE": (("aws", "default_profile"), str),
    "COST_MONITOR_MONTHLY_BUDGET": (("budgets", "monthly_budget"), float),
    "COST_MONITOR_ANOMALY_DETECTION": (("anomaly_detection", "enabled"), _parse_bool),
    "COST_MONITOR_ALERTS": (("alerts", "enabled"), _parse_bool),
    "COST_MONITOR_SLACK": (("slack", "enabled"), _parse_bool),
    "COST_MONITOR_STORAGE": (("storage", "backend"), str),
    "COST_MONITOR_TABLE": (("storage", "table_name"), str),
    "COST_MONITOR_BREAKER_SCOPE": (("circuit_breaker", "scope"), str),
}


def _apply_env_overrides(config_data: dict) -> dict:
    """Apply COST_MONITOR_* (and AWS_REGION) overrides on top of the YAML data."""
    for env_var, (path, convert) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if not value:
            continue

        section = config_data
        for key in path[:-1]:
            section = section.setdefault(key, {})
        try:
            section[path[-1]] = convert(value)
        except ValueError as e:
            raise ValueError(f"Invalid value for {env_var}: {value!r}") from e

    return config_data


@lru_cache(maxsize=1)
def get_cached_config() -> Config:
    """
    Get cached configuration singleton.

    Lambda warm starts reuse it.
    """
    return load_config()
