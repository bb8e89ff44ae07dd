"""
Centralized logging utilities with scoped loggers and decorators.
Provides structured logging with consistent field names across services.
"""

import asyncio
import functools
import logging
import sys
import time
from typing import Any, Callable

import structlog

from shared_utils.constants import Defaults, LogScope


# Configure structlog for JSON output
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = Defaults.LOG_LEVEL) -> None:
    """Route stdlib logging (and therefore structlog) to stdout at *level*."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )


def get_scoped_logger(scope: str) -> structlog.BoundLogger:
    """Get a scoped logger for a specific service/component.

    Args:
        scope: LogScope value (control_plane, composition, api, ...)

    Returns:
        Structured logger bound to scope.
    """
    logger = structlog.get_logger()
    return logger.bind(scope=scope)


def log_execution(scope: str = LogScope.API):
    """Decorator to log execution time and outcome of sync or async callables.

    Args:
        scope: Log scope identifier

    Example:
        @log_execution(scope=LogScope.COMPOSITION)
        async def compose(chunks):
            ...
    """
    def decorator(func: Callable) -> Callable:
        def _log_failure(logger, start_time: float, exc: Exception) -> None:
            logger.error(
                f"{func.__name__}_failed",
                func_name=func.__name__,
                elapsed_seconds=time.time() - start_time,
                error_type=type(exc).__name__,
                error_message=str(exc),
            )

        def _log_success(logger, start_time: float, result: Any) -> None:
            logger.info(
                f"{func.__name__}_success",
                func_name=func.__name__,
                elapsed_seconds=time.time() - start_time,
                result_type=type(result).__name__,
            )

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                logger = get_scoped_logger(scope)
                start_time = time.time()
                logger.debug(f"{func.__name__}_start", func_name=func.__name__)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _log_failure(logger, start_time, e)
                    raise
                _log_success(logger, start_time, result)
                return result

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            logger = get_scoped_logger(scope)
            start_time = time.time()
            logger.debug(f"{func.__name__}_start", func_name=func.__name__)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _log_failure(logger, start_time, e)
                raise
            _log_success(logger, start_time, result)
            return result

        return wrapper
    return decorator


class ContextualLogger:
    """Helper class for managing contextual logging within a scope."""

    def __init__(self, scope: str):
        self.scope = scope
        self.logger = get_scoped_logger(scope)

    def info(self, event_name: str, **kwargs):
        """Log info message with scope."""
        self.logger.info(event_name, **kwargs)

    def debug(self, event_name: str, **kwargs):
        """Log debug message with scope."""
        self.logger.debug(event_name, **kwargs)

    def warning(self, event_name: str, **kwargs):
        """Log warning message with scope."""
        self.logger.warning(event_name, **kwargs)

    def error(self, event_name: str, **kwargs):
        """Log error message with scope."""
        self.logger.error(event_name, **kwargs)
