"""Error handling for the readgye client.

Provides custom exceptions and error handling decorators. The client never
retries on its own: every failure is either surfaced to the caller or
degraded to an empty/default state where the caller asked for that.
"""

import inspect
from functools import wraps
from typing import Any, Callable, Optional, Type
from loguru import logger


# Custom Exception Classes

class ReadgyeError(Exception):
    """Base exception for all readgye client errors."""
    pass


class ApiError(ReadgyeError):
    """Raised when the backend answers with a non-2xx status."""

    def __init__(self, status_code: int, detail: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail or f"Backend returned HTTP {status_code}")


class ResponseFormatError(ReadgyeError):
    """Raised when a backend response body cannot be decoded."""
    pass


class AuthenticationError(ReadgyeError):
    """Raised when an operation needs a bearer token and none is available."""
    pass


class StorageError(ReadgyeError):
    """Raised when local persisted storage fails."""
    pass


class ValidationError(ReadgyeError):
    """Raised when user input fails local validation."""
    pass


class DocumentValidationError(ValidationError):
    """Raised when a contract file is rejected before upload."""
    pass


def handle_errors(
    error_type: Type[ReadgyeError],
    default_return: Any = None,
    reraise: bool = True
) -> Callable:
    """Decorator to handle errors and convert them to custom exception types.

    Works for plain functions and coroutine functions.

    Args:
        error_type: Custom exception type to raise
        default_return: Default value to return on error (if not reraising)
        reraise: Whether to reraise the exception after logging

    Returns:
        Decorated function with error handling
    """
    def _convert(func: Callable, e: Exception) -> Any:
        logger.error(
            f"Error in {func.__name__}",
            error=str(e),
            error_type=type(e).__name__
        )
        if reraise:
            raise error_type(f"Error in {func.__name__}: {str(e)}") from e
        return default_return

    def decorator(func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                try:
                    return await func(*args, **kwargs)
                except ReadgyeError:
                    # Already a custom exception, just reraise
                    raise
                except Exception as e:
                    return _convert(func, e)

            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            try:
                return func(*args, **kwargs)
            except ReadgyeError:
                raise
            except Exception as e:
                return _convert(func, e)

        return wrapper
    return decorator


def graceful_degradation(fallback: Optional[Callable[[], Any]] = None) -> Callable:
    """Decorator that returns a default value instead of propagating failures.

    Args:
        fallback: Optional zero-argument factory for the degraded value
            (``None`` is returned when omitted)

    Returns:
        Decorated function with graceful degradation
    """
    def _degrade(func: Callable, e: Exception) -> Any:
        logger.warning(
            f"Function {func.__name__} failed, degrading to default",
            error=str(e),
            error_type=type(e).__name__
        )
        return fallback() if fallback else None

    def decorator(func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    return _degrade(func, e)

            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                return _degrade(func, e)

        return wrapper
    return decorator
