"""
Logging for the survey intake backend.

Everything is written to one named logger ("survey_intake") with a single
file handler. Service calls are traced with the log_action decorator, which
records the call and, when it raises, the failure before re-raising it.
"""

from __future__ import annotations

import logging
import os
from functools import wraps
from typing import Any, Callable, TypeVar, cast

F = TypeVar("F", bound=Callable[..., Any])

LOGGER_NAME = "survey_intake"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

_LOGGER: logging.Logger | None = None


def configure_logger(log_path: str, level: int = logging.INFO) -> logging.Logger:
    """Point the application logger at log_path, replacing any earlier file."""
    global _LOGGER

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()

    log_dir = os.path.dirname(log_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)

    _LOGGER = logger
    return logger


def get_logger() -> logging.Logger:
    return _LOGGER or logging.getLogger(LOGGER_NAME)


def log_action(action_name: str) -> Callable[[F], F]:
    """
    Trace calls to the decorated function as action=<name> function=<fn>.

    Exceptions are logged as "action=<name> failed error=<type>" and then
    propagate unchanged.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = get_logger()
            logger.info("action=%s function=%s", action_name, func.__name__)
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                logger.warning("action=%s failed error=%s", action_name, type(exc).__name__)
                raise

        return cast(F, wrapper)

    return decorator
