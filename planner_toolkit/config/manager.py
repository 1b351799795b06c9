from __future__ import annotations

"""Configuration loading and access helpers.

This module centralises the tunable planner settings (history depth,
autosave debounce, storage location, drag autoscroll) and the logging
configuration. It loads YAML files packaged with *planner_toolkit* and
optionally merges them with user overrides.

Override directory, first match wins:
- ``$PLANNER_CONFIG_DIR``
- On Windows: ``%LOCALAPPDATA%\\PlannerToolkit\\config``
- On Unix: ``~/.planner_toolkit``

Override files are merged section by section over the packaged defaults, so
a user file only needs the keys it changes.
"""

import copy
import importlib.resources as pkg_resources
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

__all__ = ["ConfigManager"]


def _get_user_config_dir() -> Path:
    """Get the user configuration directory."""
    override = os.environ.get("PLANNER_CONFIG_DIR", "").strip()
    if override:
        return Path(override).expanduser()
    if os.name == 'nt':  # Windows
        local_appdata = os.environ.get('LOCALAPPDATA')
        if local_appdata:
            return Path(local_appdata) / "PlannerToolkit" / "config"
        return Path.home() / "AppData" / "Local" / "PlannerToolkit" / "config"
    return Path.home() / ".planner_toolkit"


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class _Singleton(type):
    _instance: "ConfigManager" | None = None

    def __call__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__call__(*args, **kwargs)
        return cls._instance


class ConfigManager(metaclass=_Singleton):
    """Lazy-loads and exposes configuration sections as dictionaries."""

    _DEFAULT_FILENAMES = {
        "planner": "default_planner.yml",
        "logging": "logging.yml",
    }

    def __init__(self, user_config_dir: Optional[Path] = None) -> None:
        self._user_config_dir = Path(user_config_dir) if user_config_dir else _get_user_config_dir()
        self._data: Dict[str, Dict[str, Any]] = {}
        self._ensure_loaded()

    @classmethod
    def reset(cls) -> None:
        """Drop the cached instance so the next call reloads from disk."""
        cls._instance = None

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------
    @property
    def user_config_dir(self) -> Path:
        return self._user_config_dir

    def get_planner_config(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data.get("planner", {}))

    def get_logging_config(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data.get("logging", {}))

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Return ``planner.<section>.<key>``, or ``default`` when unset."""
        value = self._data.get("planner", {}).get(section, {})
        if not isinstance(value, dict):
            return default
        return copy.deepcopy(value.get(key, default))

    # ------------------------------------------------------------------
    # Internal loading logic
    # ------------------------------------------------------------------
    def _ensure_loaded(self) -> None:
        if self._data:
            return  # already loaded

        startup_summary = []
        for key, filename in self._DEFAULT_FILENAMES.items():
            merged_cfg: Dict[str, Any] = {}
            status = "missing"

            # 1. load packaged default
            try:
                text = pkg_resources.files(__package__).joinpath(filename).read_text(encoding="utf-8")
                merged_cfg.update(yaml.safe_load(text) or {})
                status = "loaded"
            except (FileNotFoundError, OSError):
                logger.error("Missing packaged config for %s (%s)", key, filename)
            except yaml.YAMLError as exc:
                logger.error("Invalid packaged config for %s (%s): %s", key, filename, exc)
                status = "invalid"

            # 2. merge user overrides
            user_path = self._user_config_dir / filename
            if user_path.is_file():
                try:
                    user_data = yaml.safe_load(user_path.read_text(encoding="utf-8")) or {}
                except (OSError, yaml.YAMLError) as exc:
                    logger.error("Could not parse user config %s: %s", user_path, exc)
                else:
                    if isinstance(user_data, dict):
                        merged_cfg = _deep_merge(merged_cfg, user_data)
                        if status == "loaded":
                            status = "loaded+overrides"
                    else:
                        logger.error("Ignoring user config %s: top level must be a mapping", user_path)

            self._data[key] = merged_cfg
            startup_summary.append(f"{key}: {status}")

        logger.info("Config startup: %s", " | ".join(startup_summary))
