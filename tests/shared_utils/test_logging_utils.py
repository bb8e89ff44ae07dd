"""
Comprehensive tests for shared_utils.logging_utils.

Covers get_scoped_logger(), configure_logging(), the log_execution()
decorator on sync and async callables, and ContextualLogger.
"""

import logging
from unittest.mock import patch

import pytest

from shared_utils.logging_utils import (
    ContextualLogger,
    configure_logging,
    get_scoped_logger,
    log_execution,
)
from shared_utils.constants import LogScope


# ---------------------------------------------------------------------------
# get_scoped_logger / configure_logging
# ---------------------------------------------------------------------------


class TestGetScopedLogger:
    def test_returns_bound_logger(self) -> None:
        logger = get_scoped_logger(LogScope.API)
        # structlog BoundLogger exposes .info, .error, etc.
        assert callable(getattr(logger, "info", None))
        assert callable(getattr(logger, "error", None))

    def test_different_scopes(self) -> None:
        """Calling with different scopes should not crash."""
        for scope in (LogScope.CONTROL_PLANE, LogScope.COMPOSITION, LogScope.DEDUPE):
            assert get_scoped_logger(scope) is not None


class TestConfigureLogging:
    @patch("shared_utils.logging_utils.logging.basicConfig")
    def test_level_name_resolved(self, mock_basic) -> None:
        configure_logging("debug")
        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    @patch("shared_utils.logging_utils.logging.basicConfig")
    def test_unknown_level_defaults_to_info(self, mock_basic) -> None:
        configure_logging("chatty")
        assert mock_basic.call_args[1]["level"] == logging.INFO


# ---------------------------------------------------------------------------
# log_execution decorator
# ---------------------------------------------------------------------------


class TestLogExecution:
    def test_passes_through_return_value(self) -> None:
        @log_execution(scope=LogScope.API)
        def add(a: int, b: int) -> int:
            return a + b

        assert add(2, 3) == 5

    def test_propagates_exception(self) -> None:
        @log_execution(scope=LogScope.API)
        def boom() -> None:
            raise ValueError("oops")

        with pytest.raises(ValueError, match="oops"):
            boom()

    def test_preserves_function_name(self) -> None:
        @log_execution(scope=LogScope.API)
        def my_func() -> None:
            pass

        assert my_func.__name__ == "my_func"

    @pytest.mark.asyncio
    async def test_async_return_value(self) -> None:
        @log_execution(scope=LogScope.EXECUTION)
        async def answer(question: str) -> str:
            return question.upper()

        assert await answer("hi") == "HI"

    @pytest.mark.asyncio
    async def test_async_propagates_exception(self) -> None:
        @log_execution(scope=LogScope.EXECUTION)
        async def fail() -> None:
            raise RuntimeError("fail")

        with pytest.raises(RuntimeError, match="fail"):
            await fail()


# ---------------------------------------------------------------------------
# ContextualLogger
# ---------------------------------------------------------------------------


class TestContextualLogger:
    def test_all_levels_callable(self) -> None:
        cl = ContextualLogger(scope=LogScope.COMPOSITION)
        for method_name in ("info", "debug", "warning", "error"):
            assert callable(getattr(cl, method_name))

    def test_info_does_not_raise(self) -> None:
        cl = ContextualLogger(scope=LogScope.CONTROL_PLANE)
        cl.info("test_event", key="value")

    def test_error_does_not_raise(self) -> None:
        cl = ContextualLogger(scope=LogScope.ERROR_HANDLER)
        cl.error("bad_thing_happened", detail="x")

    def test_scope_stored(self) -> None:
        cl = ContextualLogger(scope=LogScope.DEDUPE)
        assert cl.scope == LogScope.DEDUPE
