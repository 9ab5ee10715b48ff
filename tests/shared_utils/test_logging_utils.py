"""
Comprehensive tests for shared_utils.logging_utils.

Covers get_scoped_logger(), LogLevel enum, configure_logging(),
log_execution() decorator and ContextualLogger.
"""

import logging
from unittest.mock import MagicMock, patch

import pytest

from shared_utils.logging_utils import (
    ContextualLogger,
    LogLevel,
    configure_logging,
    get_scoped_logger,
    log_execution,
)
from shared_utils.constants import LogScope


# ---------------------------------------------------------------------------
# get_scoped_logger
# ---------------------------------------------------------------------------


class TestGetScopedLogger:
    def test_returns_bound_logger(self) -> None:
        logger = get_scoped_logger(LogScope.API)
        # structlog BoundLogger exposes .info, .error, etc.
        assert callable(getattr(logger, "info", None))
        assert callable(getattr(logger, "error", None))

    def test_different_scopes(self) -> None:
        """Calling with different scopes should not crash."""
        for scope in (LogScope.API, LogScope.PIPELINE, LogScope.STAGING, LogScope.DECODER, LogScope.WORKER):
            logger = get_scoped_logger(scope)
            assert logger is not None


# ---------------------------------------------------------------------------
# LogLevel enum
# ---------------------------------------------------------------------------


class TestLogLevel:
    def test_values(self) -> None:
        assert LogLevel.DEBUG == "DEBUG"
        assert LogLevel.INFO == "INFO"
        assert LogLevel.WARNING == "WARNING"
        assert LogLevel.ERROR == "ERROR"
        assert LogLevel.CRITICAL == "CRITICAL"

    def test_membership(self) -> None:
        assert len(LogLevel) == 5


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    @patch("shared_utils.logging_utils.logging.basicConfig")
    def test_level_name(self, mock_basic) -> None:
        configure_logging("debug")
        assert mock_basic.call_args.kwargs["level"] == logging.DEBUG

    @patch("shared_utils.logging_utils.logging.basicConfig")
    def test_unknown_level_falls_back_to_info(self, mock_basic) -> None:
        configure_logging("chatty")
        assert mock_basic.call_args.kwargs["level"] == logging.INFO


# ---------------------------------------------------------------------------
# log_execution decorator
# ---------------------------------------------------------------------------


class TestLogExecution:
    def test_passes_through_return_value(self) -> None:
        @log_execution(scope=LogScope.WORKER)
        def add(a: int, b: int) -> int:
            return a + b

        assert add(2, 3) == 5

    def test_propagates_exception(self) -> None:
        @log_execution(scope=LogScope.WORKER)
        def boom() -> None:
            raise ValueError("oops")

        with pytest.raises(ValueError, match="oops"):
            boom()

    def test_preserves_function_name(self) -> None:
        @log_execution(scope=LogScope.WORKER)
        def my_func() -> None:
            pass

        assert my_func.__name__ == "my_func"

    def test_emits_start_and_success(self) -> None:
        mock_logger = MagicMock()
        with patch("shared_utils.logging_utils.get_scoped_logger", return_value=mock_logger):
            @log_execution(scope=LogScope.WORKER)
            def run() -> int:
                return 0

            run()

        events = [c.args[0] for c in mock_logger.info.call_args_list]
        assert events == ["run_start", "run_success"]


# ---------------------------------------------------------------------------
# ContextualLogger
# ---------------------------------------------------------------------------


class TestContextualLogger:
    def test_all_levels_callable(self) -> None:
        cl = ContextualLogger(scope=LogScope.API)
        for method_name in ("info", "debug", "warning", "error", "critical"):
            method = getattr(cl, method_name)
            assert callable(method)

    def test_info_does_not_raise(self) -> None:
        cl = ContextualLogger(scope=LogScope.API)
        cl.info("test_event", key="value")

    def test_error_does_not_raise(self) -> None:
        cl = ContextualLogger(scope=LogScope.ERROR_HANDLER)
        cl.error("bad_thing_happened", detail="x")

    def test_scope_stored(self) -> None:
        cl = ContextualLogger(scope=LogScope.WORKER)
        assert cl.scope == LogScope.WORKER

    def test_bind_returns_new_logger(self) -> None:
        cl = ContextualLogger(scope=LogScope.API)
        bound = cl.bind(owner_id="u1")
        assert bound is not cl
        assert bound.scope == LogScope.API
        bound.info("bound_event")
