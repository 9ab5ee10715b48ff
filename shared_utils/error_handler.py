"""
Structured error handling and response formatting.
Provides consistent error responses with error codes and context.

Pipeline error taxonomy:
    InputError   (400)  caller sent something we cannot accept
      StorageError        local staging I/O failed; reported as input-class
      PayloadTooLargeError  upload exceeded the configured ceiling
    DecodeError  (500)  the staged artifact is not a valid replay
    RelayError   (502)  the artifact store rejected or timed out a put
"""

from typing import Optional, Dict, Any
import logging

from shared_utils.constants import ErrorCode, LogScope
from shared_utils.logging_utils import get_scoped_logger


class AppException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        error_code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        http_status: int = 500
    ):
        self.error_code = error_code
        self.message = message
        self.context = context or {}
        self.http_status = http_status
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to response dictionary."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "context": self.context
            }
        }

    def to_text(self) -> str:
        """Short plain-text form used as an HTTP response body."""
        return f"{self.error_code}: {self.message}"


class InputError(AppException):
    """Malformed or missing request input."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        error_code: str = ErrorCode.INVALID_INPUT.value,
    ):
        super().__init__(
            error_code=error_code,
            message=message,
            context=context,
            http_status=400
        )


class ValidationError(InputError):
    """Validation/input error raised by InputValidator."""


class PayloadTooLargeError(InputError):
    """Upload exceeded the configured size ceiling."""

    def __init__(self, limit_bytes: int, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Upload exceeds the {limit_bytes} byte limit",
            context={**(context or {}), "limit_bytes": limit_bytes},
            error_code=ErrorCode.PAYLOAD_TOO_LARGE.value,
        )
        self.limit_bytes = limit_bytes


class StorageError(InputError):
    """Local staging failure (disk full, permissions, truncated body)."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            context=context,
            error_code=ErrorCode.STORAGE_ERROR.value,
        )


class DecodeError(AppException):
    """The staged artifact could not be decoded."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.DECODE_FAILED.value,
            message=message,
            context=context,
            http_status=500
        )


class RelayError(AppException):
    """Artifact store upload failed."""

    def __init__(
        self,
        store: str,
        message: str,
        key: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = {**(context or {}), "store": store}
        if key:
            ctx["key"] = key
        super().__init__(
            error_code=ErrorCode.RELAY_FAILED.value,
            message=f"{store} relay failed: {message}",
            context=ctx,
            http_status=502
        )


class ConfigurationError(AppException):
    """Configuration error."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.INVALID_CONFIG.value,
            message=message,
            context=context,
            http_status=500
        )


def log_exception(
    exc: Exception,
    scope: str = LogScope.ERROR_HANDLER,
    logger: Optional[logging.Logger] = None
) -> None:
    """Log exception with structured context.

    Args:
        exc: Exception to log
        scope: Log scope identifier
        logger: Optional custom logger (uses structlog if not provided)
    """
    if logger is None:
        logger = get_scoped_logger(scope)

    if isinstance(exc, AppException):
        logger.error(
            "app_exception",
            error_code=exc.error_code,
            message=exc.message,
            http_status=exc.http_status,
            context=exc.context
        )
    else:
        logger.error(
            "unexpected_exception",
            error_type=type(exc).__name__,
            message=str(exc),
            exc_info=True
        )


def handle_error(
    exc: Exception,
    scope: str = LogScope.ERROR_HANDLER,
    default_error_code: str = ErrorCode.INTERNAL_ERROR.value
) -> Dict[str, Any]:
    """Handle exception and return structured error response.

    Args:
        exc: Exception to handle
        scope: Log scope
        default_error_code: Default error code for non-AppException errors

    Returns:
        Structured error response dictionary
    """
    log_exception(exc, scope)

    if isinstance(exc, AppException):
        return exc.to_dict()
    # Unexpected errors never leak their message to the caller
    return {
        "error": {
            "code": default_error_code,
            "message": "An unexpected error occurred",
            "context": {"error_type": type(exc).__name__}
        }
    }
