"""
Loguru setup for the Meilidown indexer.

Everything goes to the console and ``app.log``; errors are copied to
``errors.log``. Records bound to a channel (``request`` for the HTTP host,
``cycle`` for indexing cycle timings) are additionally written to their own
file so a cycle history can be read without the surrounding noise.
"""

import sys
from pathlib import Path
from typing import Optional

from fastapi import Request
from loguru import logger

from meilidown.config.settings import settings

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
CHANNEL_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"

# file name -> (level, rotation, retention, channel)
FILE_SINKS = {
    "app.log": ("DEBUG", "10 MB", "7 days", None),
    "errors.log": ("ERROR", "5 MB", "30 days", None),
    "requests.log": ("INFO", "20 MB", "14 days", "request"),
    "cycles.log": ("INFO", "10 MB", "30 days", "cycle"),
}


def _channel_filter(channel: str):
    return lambda record: record["extra"].get("channel") == channel


class LoguruConfig:
    """Owns the log directory and installs the sinks."""

    def __init__(self, logs_dir: str = "logs"):
        self.logs_dir = Path(logs_dir)
        self.logs_dir.mkdir(parents=True, exist_ok=True)

    def setup_logger(self, log_level: str = "INFO") -> None:
        logger.remove()

        logger.add(
            sys.stdout,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
            level=log_level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )

        for filename, (level, rotation, retention, channel) in FILE_SINKS.items():
            logger.add(
                self.logs_dir / filename,
                format=CHANNEL_FORMAT if channel else FILE_FORMAT,
                level=level,
                rotation=rotation,
                retention=retention,
                compression="zip",
                encoding="utf-8",
                filter=_channel_filter(channel) if channel else None,
            )


def log_request(
    request: Request,
    status_code: Optional[int],
    duration: float,
    error: Optional[Exception] = None,
) -> None:
    """One line per HTTP request; ``error`` is set when the handler raised."""
    channel_logger = logger.bind(channel="request")
    line = f"{request.method} {request.url.path}"
    if error is not None:
        channel_logger.error(f"{line} - {type(error).__name__}: {error} ({duration:.3f}s)")
    else:
        channel_logger.info(f"{line} - {status_code} ({duration:.3f}s)")


def log_cycle(elapsed_seconds: float, **counts: int) -> None:
    """Record how long an indexing cycle took, with its counters."""
    details = " ".join(f"{key}={value}" for key, value in counts.items())
    logger.bind(channel="cycle").info(f"Indexing cycle took {elapsed_seconds:.2f}s {details}".rstrip())


loguru_config = LoguruConfig(logs_dir=settings.LOGS_DIR)
loguru_config.setup_logger(settings.LOG_LEVEL)

app_logger = logger
