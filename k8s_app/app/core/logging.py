"""Loguru sink setup.

Records carry ``service_name`` and ``event`` in ``extra`` (see ``logger.bind`` calls
across the service). With ``serialize=True`` every record is written as one JSON
line so cluster log collectors can index those fields; otherwise a plain console
format is used. uvicorn logs through stdlib ``logging``; its loggers are
intercepted so they land in the same sink and format.
"""
from __future__ import annotations

import logging
import sys
from typing import Iterable

from loguru import logger

from k8s_app.app.core import SERVICE_NAME

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "{extra[service_name]} | {extra[event]} | "
    "<level>{message}</level>"
)

STDLIB_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru, keeping level and caller."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.bind(service_name=SERVICE_NAME, event=record.name).opt(
            depth=depth, exception=record.exc_info
        ).log(level, record.getMessage())


def intercept_stdlib_loggers(names: Iterable[str] = STDLIB_LOGGERS) -> None:
    for name in names:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False


def configure_logging(level: str = "INFO", *, serialize: bool = False) -> None:
    logger.remove()
    logger.configure(extra={"service_name": "-", "event": "-"})
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=CONSOLE_FORMAT,
        serialize=serialize,
        backtrace=False,
        diagnose=False,
    )
    intercept_stdlib_loggers()
