"""
Centralized logging and error handling utilities for Sparkle chat.

This module provides decorators and helper functions to standardize logging
and error handling across the reformatter endpoint and the reply renderer.

Features:
- Structured logging with contextual information
- Automatic error type detection and classification
- Conversion of failures into the endpoint's JSON error response
- Performance timing
"""

from __future__ import annotations

import functools
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, ParamSpec, TypeVar

import httpx
import structlog
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .llm.exceptions import UpstreamError

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(colors=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

# Type variables for generic decorators
P = ParamSpec("P")
T = TypeVar("T")
AsyncCallable = Callable[P, Awaitable[T]]

logger = structlog.get_logger(__name__)

PUBLIC_ERROR_MESSAGE = "Failed to process chat request"


class ChatErrorHandler:
    """Centralized endpoint error handling with structured logging."""

    @staticmethod
    def classify_error(error: Exception) -> tuple[int, str]:
        """
        Classify an error and return the HTTP status and error category.

        Args:
            error: The exception to classify

        Returns:
            Tuple of (http_status, error_category)
        """
        if isinstance(error, UpstreamError):
            return 502, "upstream_error"
        if isinstance(error, ValidationError):
            return 400, "validation_error"
        if isinstance(error, TimeoutError | httpx.TimeoutException):
            return 504, "timeout_error"
        if isinstance(error, httpx.TransportError | ConnectionError | OSError):
            return 502, "connection_error"
        return 500, "unknown_error"

    @staticmethod
    def error_response(
        error: Exception,
        operation: str,
        context: dict[str, Any] | None = None,
        custom_message: str | None = None,
    ) -> JSONResponse:
        """
        Log a failure and convert it into the endpoint's JSON error response.

        The client only sees a fixed message; details stay in the log.
        """
        status_code, error_category = ChatErrorHandler.classify_error(error)
        context = context or {}

        log_data: dict[str, Any] = {
            "operation": operation,
            "error_type": type(error).__name__,
            "error_category": error_category,
            "status_code": status_code,
            "error_message": str(error),
            **context,
        }
        if isinstance(error, UpstreamError):
            log_data["upstream_status"] = error.status_code
            log_data["upstream_body"] = error.body

        logger.error("Operation failed", **log_data)

        return JSONResponse(
            {"error": custom_message or PUBLIC_ERROR_MESSAGE},
            status_code=status_code,
        )


def log_operation(
    operation: str,
    *,
    log_args: bool = False,
    log_result: bool = False,
    log_timing: bool = True,
    context: dict[str, Any] | None = None,
) -> Callable[[AsyncCallable[P, T]], AsyncCallable[P, T]]:
    """
    Decorator for logging async operations with structured context.

    Args:
        operation: Description of the operation being performed
        log_args: Whether to log function arguments
        log_result: Whether to log function result
        log_timing: Whether to log execution timing
        context: Additional context to include in logs

    Returns:
        Decorated function with logging
    """
    def decorator(func: AsyncCallable[P, T]) -> AsyncCallable[P, T]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            operation_logger = logger.bind(
                operation=operation,
                function=func.__name__,
                **(context or {}),
            )

            log_data = {}
            if log_args:
                log_data.update({
                    "args": args[1:] if args else [],  # Skip 'self' if present
                    "kwargs": kwargs,
                })

            operation_logger.info("Operation started", **log_data)

            start_time = time.perf_counter() if log_timing else None

            try:
                result = await func(*args, **kwargs)

                end_log_data: dict[str, Any] = {}
                if log_timing and start_time is not None:
                    duration = round((time.perf_counter() - start_time) * 1000, 2)
                    end_log_data["duration_ms"] = duration
                if log_result:
                    end_log_data["result"] = result

                operation_logger.info(
                    "Operation completed successfully", **end_log_data
                )
                return result

            except Exception as e:
                error_log_data: dict[str, Any] = {
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                }
                if log_timing and start_time is not None:
                    duration = round((time.perf_counter() - start_time) * 1000, 2)
                    error_log_data["duration_ms"] = duration

                operation_logger.error("Operation failed", **error_log_data)
                raise

        return wrapper
    return decorator


@asynccontextmanager
async def operation_context(
    operation: str,
    *,
    context: dict[str, Any] | None = None,
    log_timing: bool = True,
):
    """
    Async context manager for operation logging.

    Args:
        operation: Description of the operation
        context: Additional context for logging
        log_timing: Whether to log operation timing

    Yields:
        Bound logger for the operation
    """
    operation_logger = logger.bind(
        operation=operation,
        **(context or {}),
    )

    operation_logger.info("Operation started")
    start_time = time.perf_counter() if log_timing else None

    try:
        yield operation_logger

        log_data: dict[str, Any] = {}
        if log_timing and start_time is not None:
            duration = round((time.perf_counter() - start_time) * 1000, 2)
            log_data["duration_ms"] = duration

        operation_logger.info("Operation completed successfully", **log_data)

    except Exception as e:
        error_log_data: dict[str, Any] = {
            "error_type": type(e).__name__,
            "error_message": str(e),
        }
        if log_timing and start_time is not None:
            duration = round((time.perf_counter() - start_time) * 1000, 2)
            error_log_data["duration_ms"] = duration

        operation_logger.error("Operation failed", **error_log_data)
        raise


class ContextualLogger:
    """Logger that maintains context across related operations."""

    def __init__(self, base_context: dict[str, Any] | None = None):
        self.base_context = base_context or {}
        self._logger = logger.bind(**self.base_context)

    def bind(self, **context: Any) -> ContextualLogger:
        """Create a new logger with additional context."""
        merged_context = {**self.base_context, **context}
        return ContextualLogger(merged_context)

    def info(self, message: str, **context: Any) -> None:
        self._logger.info(message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._logger.warning(message, **context)

    def error(self, message: str, **context: Any) -> None:
        self._logger.error(message, **context)

    def debug(self, message: str, **context: Any) -> None:
        self._logger.debug(message, **context)
