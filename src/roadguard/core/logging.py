"""
Logging setup shared by the API and the CLI.

The packaged `logging.yaml` is the base. One level (from the caller, else
`app.log_level` / `ROADGUARD_LOG_LEVEL`) is applied to the root logger, the
`roadguard` package logger and every handler. Loggers that `logging.yaml` quiets
(httpx, uvicorn.access) keep their own level unless the level is DEBUG.
"""

from __future__ import annotations

import copy
import logging
import logging.config
from typing import Any

from roadguard.config.settings import get_logging_config, get_settings

PACKAGE_LOGGER = "roadguard"


def resolve_level(level: str | None = None) -> str:
    """Normalize a level name; unknown names raise `ValueError`."""
    name = (level or get_settings().app.log_level).strip().upper()
    if not isinstance(logging.getLevelName(name), int):
        raise ValueError(f"unknown log level: {name!r}")
    return name


def build_logging_config(level: str) -> dict[str, Any]:
    config = copy.deepcopy(get_logging_config())
    config.setdefault("root", {})["level"] = level
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict) and "level" in handler:
            handler["level"] = level

    loggers = config.setdefault("loggers", {})
    loggers.setdefault(PACKAGE_LOGGER, {})["level"] = level
    if level == "DEBUG":
        for name, logger_config in loggers.items():
            if name != PACKAGE_LOGGER and isinstance(logger_config, dict):
                logger_config["level"] = level
    return config


def configure_logging(level: str | None = None) -> str:
    """Apply the logging config and return the level name in effect."""
    name = resolve_level(level)
    logging.config.dictConfig(build_logging_config(name))
    return name
