"""
Logging helpers for pgcrud.

Both the record access facade and the storage helper log through loggers
below the ``pgcrud`` namespace, which only carries a ``NullHandler`` until
the application opts in. Importing pgcrud never touches the root logger
or third-party loggers.

Applications that want pgcrud's own console/file output call
:func:`setup_logging`; it is driven by environment variables so verbosity
can be tuned without code changes.
"""

import functools
import inspect
import logging
import logging.config
import os
import sys
import time
from typing import Dict, Any, Optional


class ContextFilter(logging.Filter):
    """Add contextual information to log records."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.context = context or {}

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.context.items():
            setattr(record, key, value)
        return True


def get_log_level() -> str:
    """Get log level from environment variable or default to INFO."""
    return os.getenv("PGCRUD_LOG_LEVEL", "INFO").upper()


def get_log_format() -> str:
    """Get log format based on environment."""
    env = os.getenv("PGCRUD_ENV", "development").lower()

    if env == "production":
        return "%(asctime)s | %(name)s | %(levelname)s | %(message)s | %(pathname)s:%(lineno)d"
    return "%(asctime)s | %(name)-24s | %(levelname)-8s | %(message)s"


def get_logging_config(quiet_dependencies: bool = True) -> Dict[str, Any]:
    """
    Get the logging configuration dictionary.

    Only the ``pgcrud`` logger receives handlers; the root logger is left
    to the application. With ``quiet_dependencies`` the asyncpg and boto
    loggers are raised to WARNING.
    """
    log_level = get_log_level()

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": get_log_format(),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "standard",
                "stream": sys.stdout,
            },
        },
        "loggers": {
            "pgcrud": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }

    if quiet_dependencies:
        # Levels only; records still reach whatever handlers the host installed
        for name in ("asyncpg", "botocore", "boto3"):
            config["loggers"][name] = {"level": "WARNING"}

    log_file = os.getenv("PGCRUD_LOG_FILE")
    if log_file:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "detailed",
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 5,
        }
        config["loggers"]["pgcrud"]["handlers"].append("file")

    return config


def setup_logging(quiet_dependencies: bool = True) -> None:
    """Opt in to pgcrud's console (and optional file) output."""
    logging.config.dictConfig(get_logging_config(quiet_dependencies))

    logger = logging.getLogger("pgcrud.logging")
    logger.debug("Logging configured with level: %s", get_log_level())

    if os.getenv("PGCRUD_LOG_FILE"):
        logger.info("File logging enabled: %s", os.getenv("PGCRUD_LOG_FILE"))


def get_logger(name: str, context: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """
    Get a logger with the specified name and optional context.

    Args:
        name: Logger name (typically __name__ of the module)
        context: Optional context dictionary to add to all log records

    Returns:
        Configured logger instance
    """
    if not name.startswith("pgcrud"):
        if name == "__main__":
            name = "pgcrud.main"
        else:
            name = f"pgcrud.{name}"

    logger = logging.getLogger(name)

    if context:
        logger.addFilter(ContextFilter(context))

    return logger


def log_performance(logger: logging.Logger, operation: str):
    """
    Decorator to log performance timing of operations.

    Args:
        logger: Logger instance to use
        operation: Description of the operation being timed
    """

    def decorator(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                duration = time.perf_counter() - start_time
                logger.error("Operation '%s' failed after %.3fs: %s", operation, duration, e)
                raise
            logger.debug("Operation '%s' completed in %.3fs", operation, time.perf_counter() - start_time)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration = time.perf_counter() - start_time
                logger.error("Operation '%s' failed after %.3fs: %s", operation, duration, e)
                raise
            logger.debug("Operation '%s' completed in %.3fs", operation, time.perf_counter() - start_time)
            return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


# Silent until the application configures logging or calls setup_logging()
logging.getLogger("pgcrud").addHandler(logging.NullHandler())
