"""
Logging configuration for the Account Service application.
Provides structured logging for account management operations.
"""

import logging
import sys
from typing import Any, Dict

import structlog
from structlog.stdlib import LoggerFactory

from app.core.config import is_production, settings


def setup_logging() -> None:
    """
    Configure structured logging for the application.
    Sets up different log formats for development and production environments.
    """

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
            _get_processor(),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL.upper()),
    )

    # Set specific logger levels
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("motor").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


def _get_processor():
    """
    Get the appropriate processor based on environment.

    Returns:
        Processor function for structlog
    """
    if is_production() or settings.LOG_FORMAT == "json":
        return structlog.processors.JSONRenderer()
    else:
        return structlog.dev.ConsoleRenderer(colors=True)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        structlog.stdlib.BoundLogger: Configured logger instance
    """
    return structlog.get_logger(name)


# Specialized logging functions for account operations

def log_account_operation(
    operation: str,
    account_id: str = None,
    username: str = None,
    **kwargs
) -> None:
    """
    Log account management operations.

    Args:
        operation: Operation type (register, login, logout, change_password, ...)
        account_id: Account identifier
        username: Account username
        **kwargs: Additional context
    """
    logger = get_logger("account.operation")
    logger.info(
        "Account operation",
        operation=operation,
        account_id=account_id,
        username=username,
        **kwargs
    )


def log_token_operation(
    operation: str,
    account_id: str = None,
    status: str = "success",
    **kwargs
) -> None:
    """
    Log token issuance and rotation. Token values are never logged.

    Args:
        operation: Operation type (issue, rotate, revoke)
        account_id: Account identifier
        status: Operation status
        **kwargs: Additional context
    """
    logger = get_logger("token.operation")
    logger.info(
        "Token operation",
        operation=operation,
        account_id=account_id,
        status=status,
        **kwargs
    )


def log_upload_operation(
    operation: str,
    file_name: str = None,
    file_size: int = None,
    url: str = None,
    status: str = "success",
    **kwargs
) -> None:
    """
    Log media upload operations.

    Args:
        operation: Operation type (stage, upload, cleanup)
        file_name: Local file name
        file_size: File size in bytes
        url: Resulting media URL
        status: Operation status
        **kwargs: Additional context
    """
    logger = get_logger("media.upload")
    logger.info(
        "Upload operation",
        operation=operation,
        file_name=file_name,
        file_size=file_size,
        url=url,
        status=status,
        **kwargs
    )


def log_error(error: Exception, context: Dict[str, Any] = None) -> None:
    """
    Log an error with context.

    Args:
        error: Exception instance
        context: Additional context information
    """
    logger = get_logger("error")
    logger.error(
        "An error occurred",
        error=str(error),
        error_type=type(error).__name__,
        context=context or {},
        exc_info=True
    )


def log_request(method: str, url: str, status_code: int, duration: float, **kwargs) -> None:
    """
    Log HTTP request details.

    Args:
        method: HTTP method
        url: Request URL
        status_code: Response status code
        duration: Request duration in seconds
        **kwargs: Additional context to log
    """
    logger = get_logger("http.request")
    logger.info(
        "HTTP request completed",
        method=method,
        url=url,
        status_code=status_code,
        duration=duration,
        **kwargs
    )
