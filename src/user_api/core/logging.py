"""Loguru structured logging configuration.

Provides human-readable and JSON-formatted logging with a configurable log
level.  Optionally writes to rotating log files when a ``log_dir`` is
provided.  Failures that must never surface to API clients (audit writes,
background tasks) are logged on the *operational* channel through
:data:`operational_logger`, which gets its own file sink.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"

OPERATIONAL_CHANNEL = "operational"

operational_logger = logger.bind(channel=OPERATIONAL_CHANNEL)


def _is_operational(record: dict) -> bool:
    return record["extra"].get("channel") == OPERATIONAL_CHANNEL


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Configure Loguru sinks.

    Args:
        log_level: Minimum log level to emit.
        log_dir: Optional directory for log files.  When set, a rotating
            application log and a separate operational error log are added
            (rotated every 24 hours, retained 7 days).
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level.upper(),
        format=_LOG_FORMAT,
        serialize=False,
    )
    logger.add(
        sys.stderr,
        level=log_level.upper(),
        serialize=True,
        filter=lambda record: record["extra"].get("json_output", False),
    )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / "user-api.log",
            level=log_level.upper(),
            format=_LOG_FORMAT,
            rotation="24h",
            retention="7 days",
        )
        logger.add(
            log_path / "operational-errors.log",
            level="WARNING",
            serialize=True,
            filter=_is_operational,
            rotation="24h",
            retention="7 days",
        )
