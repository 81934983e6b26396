"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Environment variable overrides
- Config caching
- Conversion from dict to the typed Config dataclass
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path
from typing import Any, TypeVar

import yaml

from mindcanvas.config.merge import merge_configs
from mindcanvas.config.paths import get_config_paths
from mindcanvas.config.schema import (
    Config,
    HistoryConfig,
    LayoutConfig,
    LoggingConfig,
    PersistenceConfig,
    PlacementConfig,
    SuggestionConfig,
    SyncConfig,
)

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("mindcanvas.config")

_cached_config: Config | None = None

_SECTIONS: dict[str, type] = {
    "sync": SyncConfig,
    "history": HistoryConfig,
    "layout": LayoutConfig,
    "placement": PlacementConfig,
    "suggestions": SuggestionConfig,
    "persistence": PersistenceConfig,
    "logging": LoggingConfig,
}

T = TypeVar("T")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning an empty dict if missing or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def env_overrides() -> dict[str, Any]:
    """Build a config dict from environment variables (highest priority)."""
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("MC_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    api_base = os.environ.get("MC_API_BASE")
    if api_base:
        overrides.setdefault("persistence", {})["api_base"] = api_base

    return overrides


def _build_section(cls: type[T], name: str, data: Any) -> T:
    if not isinstance(data, dict):
        if data is not None:
            _log.warning("Config section %r must be a mapping, ignoring", name)
        return cls()
    known = {f.name for f in dataclasses.fields(cls)}  # type: ignore[arg-type]
    unknown = set(data) - known
    if unknown:
        _log.debug("Ignoring unknown keys in %r: %s", name, sorted(unknown))
    return cls(**{k: v for k, v in data.items() if k in known})


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert a merged dict to the typed Config dataclass."""
    sections = {name: _build_section(cls, name, data.get(name)) for name, cls in _SECTIONS.items()}
    extra = {k: v for k, v in data.items() if k not in _SECTIONS}
    return Config(**sections, extra=extra)


def load_config(project_root: str | None = None) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables (MC_LOG, MC_API_BASE)
    2. Project config (<project_root>/.mc/config.yaml)
    3. User config
    4. System config

    Only the global config (no ``project_root``) is cached.
    """
    global _cached_config

    if _cached_config is not None and project_root is None:
        return _cached_config

    configs: list[dict[str, Any]] = []
    for path in get_config_paths(project_root):
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            configs.append(config_data)

    env_config = env_overrides()
    if env_config:
        configs.append(env_config)

    config = dict_to_config(merge_configs(*configs))

    if project_root is None:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Drop the cached config (tests use this between cases)."""
    global _cached_config
    _cached_config = None
