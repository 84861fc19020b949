"""Logging for the allocation API, the idempotency sweeper and the CLI scripts.

Services log commit, replay and cancellation events as pipe-separated
`key=value` pairs so a booking can be traced by id through stdout.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from backend.utils.config import get_settings


_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_LOGGER_INITIALIZED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Send every seatplan logger to stdout at `SEATPLAN_LOG_LEVEL`, once per process."""

    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    resolved_level = (level or get_settings().log_level).upper()
    logging.basicConfig(level=resolved_level, format=_LOG_FORMAT, stream=sys.stdout)
    _LOGGER_INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    """Module logger; the first call in a process installs the stdout handler."""
    configure_logging()
    return logging.getLogger(name)
