"""Logging setup for the aquarium runner."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

APP_LOGGER_NAME = "calm_aquarium"
PACKAGE_LOGGERS = ("aquarium_core", "aquarium_backend")


def configure_logging(level: str | None = None) -> logging.Logger:
    """Configure root, package and application loggers.

    ``level`` falls back to ``AQUARIUM_LOG_LEVEL`` and then INFO. The
    asyncio logger stays at WARNING unless DEBUG is requested, since the
    scheduler and persistence tasks would otherwise flood it.

    Returns:
        The application logger (``calm_aquarium``)
    """
    resolved = (level or os.getenv("AQUARIUM_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT, datefmt=LOG_DATEFMT)

    for name in (APP_LOGGER_NAME, *PACKAGE_LOGGERS):
        logging.getLogger(name).setLevel(resolved)
    logging.getLogger("asyncio").setLevel(resolved if resolved == "DEBUG" else "WARNING")

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.debug(f"Logging configured at {resolved}")
    return app_logger
