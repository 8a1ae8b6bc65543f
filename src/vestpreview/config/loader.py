"""Configuration loader from YAML with environment profiles and env-var fallbacks.

Environment variables are read here and nowhere else; the resulting Config is
passed explicitly to the components that need it.
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from ..errors import ConfigurationError
from .schema import Config

DEFAULT_ENVIRONMENT = "development"

# env var -> (section, field)
_BOOL_OVERRIDES = {
    "ENABLE_CACHE_SWR": ("dedup", "enabled"),
    "ENABLE_CACHE_HTTP": ("http_cache", "enabled"),
    "ENABLE_CACHE_REDIS": ("durable_cache", "redis_enabled"),
}
_STR_OVERRIDES = {
    "REDIS_URL": ("durable_cache", "redis_url"),
    "VESTPREVIEW_API_URL": ("data_source", "api_base_url"),
    "VESTPREVIEW_LOG_LEVEL": ("logging", "level"),
}


def _deep_merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _env_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def apply_env_overrides(data: Dict[str, Any], env: Mapping[str, str]) -> Dict[str, Any]:
    """
    Apply env-var fallbacks on top of a config dictionary.

    Args:
        data: Config dictionary
        env: Environment mapping (usually os.environ)

    Returns:
        New dictionary with overrides applied
    """
    overrides: Dict[str, Dict[str, Any]] = {}
    for var, (section, name) in _BOOL_OVERRIDES.items():
        if env.get(var) is not None:
            overrides.setdefault(section, {})[name] = _env_bool(env[var])
    for var, (section, name) in _STR_OVERRIDES.items():
        if env.get(var):
            overrides.setdefault(section, {})[name] = env[var]
    return _deep_merge(data, overrides)


def config_from_dict(
    data: Dict[str, Any],
    environment: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None
) -> Config:
    """
    Create config from a dictionary that may contain an `environments` table.

    Args:
        data: Configuration dictionary
        environment: Profile name (falls back to VESTPREVIEW_ENV, then development)
        env: Environment mapping for overrides (None disables env overrides)

    Returns:
        Config object

    Raises:
        ConfigurationError: If the profile is unknown
    """
    data = dict(data)
    profiles = data.pop("environments", None) or {}
    if environment is None:
        environment = (env or {}).get("VESTPREVIEW_ENV") or DEFAULT_ENVIRONMENT
    if profiles and environment not in profiles:
        raise ConfigurationError(f"Unknown environment profile: {environment!r}")

    merged = _deep_merge(data, profiles.get(environment, {}))
    merged["environment"] = environment
    if env is not None:
        merged = apply_env_overrides(merged, env)
    return Config.from_dict(merged)


def load_config(
    yaml_path: str = None,
    environment: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None
) -> Config:
    """
    Load configuration from YAML file.

    Args:
        yaml_path: Path to YAML file (defaults to defaults.yaml)
        environment: Profile name (falls back to VESTPREVIEW_ENV)
        env: Environment mapping (defaults to os.environ)

    Returns:
        Config object
    """
    if yaml_path is None:
        yaml_path = Path(__file__).parent / "defaults.yaml"
    if env is None:
        env = os.environ

    with open(yaml_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    return config_from_dict(data, environment=environment, env=env)
