"""Packaged YAML defaults and the ConfigManager that merges user overrides."""

from .manager import ConfigManager

__all__ = [
    "ConfigManager",
]
