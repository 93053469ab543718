"""
Logging configuration.

The packaged YAML (`src/geoattend/config/logging.yaml`) is the base; the settings
passed in decide the level (`GEOATTEND_LOG_LEVEL`). The `geoattend` package logger
follows that level, while httpx stays at WARNING unless DEBUG is requested, in which
case its per-request lines to the HR backend are shown too.
"""

from __future__ import annotations

import copy
import logging
import logging.config
from typing import Any

from geoattend.config.settings import Settings, get_logging_config

PACKAGE_LOGGER = "geoattend"


def build_logging_config(settings: Settings, *, verbose: bool = False) -> dict[str, Any]:
    """Return a dictConfig mapping for `settings` without applying it."""
    level = "DEBUG" if verbose else settings.app.log_level.upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown log level: {settings.app.log_level!r}")

    # The cached YAML mapping is shared; never mutate it in place.
    config = copy.deepcopy(get_logging_config())
    config.setdefault("root", {})["level"] = level
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict) and "level" in handler:
            handler["level"] = level

    loggers = config.setdefault("loggers", {})
    loggers.setdefault(PACKAGE_LOGGER, {"propagate": True})["level"] = level
    loggers.setdefault("httpx", {"propagate": True})["level"] = "INFO" if level == "DEBUG" else "WARNING"
    return config


def configure_logging(settings: Settings, *, verbose: bool = False) -> None:
    """Apply the packaged logging config, adjusted for `settings`."""
    logging.config.dictConfig(build_logging_config(settings, verbose=verbose))
