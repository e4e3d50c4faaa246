"""Logging configuration and error reporting helpers."""

from __future__ import annotations

import logging
from typing import Optional, Union

from ..contracts.base import Error, ReplayError

DEFAULT_LOGGER_NAME = "tracereplay"
DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def resolve_level(level: Union[int, str, None]) -> int:
    """Accept numeric levels or level names such as 'debug'."""
    if level is None:
        return DEFAULT_LOG_LEVEL
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def configure_logging(
    level: Union[int, str, None] = DEFAULT_LOG_LEVEL,
    *,
    logger_name: str = DEFAULT_LOGGER_NAME,
    fmt: str = DEFAULT_LOG_FORMAT,
    force: bool = False,
) -> logging.Logger:
    numeric = resolve_level(level)
    logging.basicConfig(level=numeric, format=fmt, force=force)
    logger = logging.getLogger(logger_name)
    logger.setLevel(numeric)
    return logger


def describe_error(error: Optional[Error]) -> str:
    if error is None:
        return ""
    if not error.context:
        return f"{error.code.name}: {error.message}"
    context = ", ".join(f"{key}={value}" for key, value in error.context)
    return f"{error.code.name}: {error.message} ({context})"


def log_exception(
    logger: logging.Logger,
    exc: BaseException,
    *,
    show_traceback: bool = False,
) -> str:
    if isinstance(exc, ReplayError):
        message = describe_error(exc.error)
    else:
        message = f"Unexpected error: {exc}"
    logger.error(message)
    if show_traceback:
        logger.error("Detailed traceback:", exc_info=exc)
    else:
        logger.debug("Detailed traceback:", exc_info=exc)
    return message


__all__ = [
    "DEFAULT_LOGGER_NAME",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_LOG_FORMAT",
    "resolve_level",
    "configure_logging",
    "describe_error",
    "log_exception",
]
