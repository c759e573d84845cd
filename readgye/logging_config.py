"""Logging configuration using Loguru for structured logging.

Provides user-aware logging with JSON formatting, rotation, and retention policies.
"""

import inspect
import sys
import time
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Optional
from loguru import logger


# Remove default handler
logger.remove()


def setup_logging(
    log_dir: Optional[str] = "logs",
    level: str = "INFO",
    rotation: str = "20 MB",
    retention: str = "14 days",
    compression: str = "zip"
) -> None:
    """Configure Loguru logging.

    Args:
        log_dir: Directory for log files (None logs to stderr only)
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        rotation: When to rotate log files
        retention: How long to keep old logs
        compression: Compression format for rotated logs
    """
    logger.remove()

    # Console handler with colored output
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>",
        level=level,
        colorize=True
    )

    if log_dir is None:
        logger.info("Logging system initialized (console only)", level=level)
        return

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_path / "readgye_client_{time}.log",
        format="{time} | {level} | {name}:{function}:{line} | {message}",
        level=level,
        rotation=rotation,
        retention=retention,
        compression=compression,
        serialize=False
    )

    # JSON structured log for parsing and analysis
    logger.add(
        log_path / "readgye_client_json_{time}.log",
        level=level,
        rotation=rotation,
        retention=retention,
        compression=compression,
        serialize=True
    )

    # Error-only log file
    logger.add(
        log_path / "errors_{time}.log",
        format="{time} | {level} | {name}:{function}:{line} | {message}",
        level="ERROR",
        rotation=rotation,
        retention=retention,
        compression=compression
    )

    logger.info("Logging system initialized", log_dir=log_dir, level=level)


def get_user_logger(user_id: Optional[str], component: Optional[str] = None):
    """Get a logger bound to the signed-in user and optionally a component.

    Args:
        user_id: Current user identifier (None when signed out)
        component: Optional component name (auth, poller, chat, ...)

    Returns:
        Logger instance with user context
    """
    context = {"user_id": user_id or "anonymous"}
    if component:
        context["component"] = component
    return logger.bind(**context)


def log_api_call(operation: str) -> Callable:
    """Decorator to log backend API calls with timing.

    Args:
        operation: Name of the backend operation

    Returns:
        Decorated coroutine function with logging
    """
    def decorator(func: Callable) -> Callable:
        if not inspect.iscoroutinefunction(func):
            raise TypeError("log_api_call expects a coroutine function")

        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            logger.debug(f"Calling API: {operation}")
            start_time = time.monotonic()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.debug(
                    f"API {operation} failed",
                    error=str(e),
                    error_type=type(e).__name__
                )
                raise
            logger.debug(
                f"API {operation} completed",
                duration_seconds=round(time.monotonic() - start_time, 3)
            )
            return result

        return wrapper
    return decorator
