"""Developer diagnostics logging for boxflow.

Library modules log through ``logging.getLogger(__name__)``
under the ``boxflow`` namespace. Nothing is emitted until a
caller (the CLI, or an embedding application) configures a
handler.
"""
from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "BOXFLOW_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"
_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def resolve_log_level(raw: str | None = None) -> int:
    """Map a level name (or BOXFLOW_LOG_LEVEL) to a logging level.

    Unknown names fall back to WARNING.
    """
    name = (raw or os.environ.get(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL)
    level = logging.getLevelName(name.strip().upper())
    if isinstance(level, int):
        return level
    return logging.WARNING


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach a stderr handler to the ``boxflow`` logger."""
    logger = logging.getLogger("boxflow")
    logger.setLevel(resolve_log_level(level))

    # Don't add handlers if already configured
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(_LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"),
    )
    logger.addHandler(handler)
    return logger
