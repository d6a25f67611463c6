from __future__ import annotations

import logging
import os
from typing import Optional

_DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DEFAULT_DATEFMT = "%Y-%m-%dT%H:%M:%SZ"
_QUIET_LOGGERS = ("urllib3",)


def setup_logging(level: Optional[str] = None, fmt: str = _DEFAULT_FORMAT, datefmt: str = _DEFAULT_DATEFMT, log_file: Optional[str] = None) -> None:
    """Configure root logger.

    Respect `LOG_LEVEL` and `QUOTA_LOG_FILE` env vars when arguments are not supplied.
    """

    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    handlers = [logging.StreamHandler()]
    log_file = log_file or os.getenv("QUOTA_LOG_FILE")
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(level=getattr(logging, log_level, logging.INFO), format=fmt, datefmt=datefmt, handlers=handlers, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return module-specific logger."""

    if logging.getLogger().handlers:
        return logging.getLogger(name)

    # Auto-setup if not configured.
    setup_logging()
    return logging.getLogger(name)
