from __future__ import annotations

"""Central logging configuration for Planner Toolkit.

Import and call :func:`setup_logging` at application start-up.
"""

import logging
import logging.config
import os

from planner_toolkit.config import ConfigManager

__all__ = ["setup_logging"]

_DRAG_LOGGERS = (
    "planner_toolkit.core.services.drag_service",
    "planner_toolkit.core.services.placement_service",
)
_TRUTHY = {"1", "true", "yes", "on"}


def setup_logging() -> None:
    """Configure logging for the application using configuration from YAML files."""
    log_dir = os.environ.get("PLANNER_LOG_DIR", "logs")
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, "planner.log")

    logging_config = ConfigManager().get_logging_config()
    if logging_config and isinstance(logging_config, dict) and logging_config.get("version"):
        if "handlers" in logging_config and "file" in logging_config["handlers"]:
            logging_config["handlers"]["file"]["filename"] = log_file
        try:
            logging.config.dictConfig(logging_config)
        except (ValueError, TypeError, AttributeError, ImportError) as exc:
            _setup_minimal_logging()
            logging.getLogger(__name__).error("Invalid logging config, using minimal fallback: %s", exc)
        else:
            logging.getLogger(__name__).info("===== Logging initialised from config files =====")
    else:
        _setup_minimal_logging()
        logging.getLogger(__name__).warning("===== Logging initialised with minimal fallback (no config) =====")

    _apply_debug_overrides()


def _setup_minimal_logging() -> None:
    """Set up console-only logging when config is unavailable."""
    minimal_config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'simple': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'simple',
                'level': 'INFO',
            },
        },
        'root': {
            'level': 'INFO',
            'handlers': ['console'],
        },
    }
    logging.config.dictConfig(minimal_config)


def _apply_debug_overrides() -> None:
    """Apply environment-driven module-specific debug overrides.

    Supports:
    - PLANNER_DEBUG_DRAG=true  -> DEBUG for drag and placement services
    - PLANNER_DEBUG_MODULES=comma,separated,logger,names -> DEBUG for listed loggers
    """
    targets = []
    if os.environ.get('PLANNER_DEBUG_DRAG', '').strip().lower() in _TRUTHY:
        targets.extend(_DRAG_LOGGERS)
    extra_modules = os.environ.get('PLANNER_DEBUG_MODULES', '').strip()
    if extra_modules:
        targets.extend(m.strip() for m in extra_modules.split(',') if m.strip())

    for name in targets:
        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)
        # Ensure at least one handler emits DEBUG for this logger
        if not any(h.level <= logging.DEBUG for h in logger.handlers):
            handler = logging.StreamHandler()
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            logger.addHandler(handler)
        logger.info("Debug override active for logger '%s'", name)
