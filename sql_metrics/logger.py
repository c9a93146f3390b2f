"""Rich-based logging utilities.

``init_logger`` configures the package logger with a pretty console output,
or with one JSON object per line on stdout for log shippers, and an optional
plain-text log file. The ``log_call`` decorator traces collaborator calls.

Structured fields travel through ``extra={"data": {...}}`` and end up under
the ``data`` key of JSON records.

Example
-------
>>> from sql_metrics.logger import init_logger, Settings, log_call
>>> log = init_logger(Settings(json_logs=True))
>>> log.info("Metric sent successfully", extra={"data": {"metric": "m"}})
"""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass
from functools import wraps
from time import perf_counter
from typing import Any, Callable, Optional

from rich.logging import RichHandler

__all__ = ["Settings", "JSONFormatter", "init_logger", "log_call"]

LOGGER_NAME = "sql_metrics"


@dataclass
class Settings:
    """Optional logger settings."""

    debug: bool = False
    json_logs: bool = False
    log_file: Optional[str] = None


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname.lower(),
            "message": record.getMessage(),
        }
        extra = getattr(record, "data", None)
        if extra is not None:
            data["data"] = extra
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


def init_logger(settings: Settings | None = None) -> logging.Logger:
    """Configure and return the package logger.

    Parameters
    ----------
    settings:
        Optional :class:`Settings`; defaults to an INFO level rich console.
    """

    settings = settings or Settings()
    level = logging.DEBUG if settings.debug else logging.INFO
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    # console handler
    if settings.json_logs:
        console: logging.Handler = logging.StreamHandler(sys.stdout)
        console.setFormatter(JSONFormatter())
    else:
        console = RichHandler(rich_tracebacks=True)
    console.setLevel(level)
    logger.addHandler(console)

    # optional file handler
    if settings.log_file:
        directory = os.path.dirname(settings.log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        file_fmt = logging.Formatter(
            "[%(asctime)s] %(levelname)s %(name)s - %(message)s",
            "%Y-%m-%d %H:%M:%S",
        )
        file_handler.setFormatter(file_fmt)
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

    return logger


def log_call(func: Callable) -> Callable:
    """Decorator that logs calls and their execution time at DEBUG level.

    Failures are logged without traceback and re-raised; reporting them is
    left to the caller.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        log = logging.getLogger(func.__module__)
        # args[0] is ``self``; only methods are decorated
        log.debug("%s args=%r kwargs=%r", func.__qualname__, args[1:], kwargs)
        start = perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as err:
            elapsed_ms = (perf_counter() - start) * 1000
            log.debug(
                "%s failed after %.1fms: %s",
                func.__qualname__,
                elapsed_ms,
                err,
                extra={"data": {"call": func.__qualname__, "elapsed_ms": elapsed_ms}},
            )
            raise
        elapsed_ms = (perf_counter() - start) * 1000
        log.debug(
            "%s completed in %.1fms",
            func.__qualname__,
            elapsed_ms,
            extra={"data": {"call": func.__qualname__, "elapsed_ms": elapsed_ms}},
        )
        return result

    return wrapper
