"""
Structured Logging Configuration
=================================

Provides centralized logging configuration for the client and its scripts.
Supports both JSON structured logging (for production) and human-readable
format (for development).

Features:
- JSON structured logs for production
- Color-coded console logs for development
- Request ID tracking across write/query calls
- Performance and API call logging

The library itself never calls ``setup_logging``; applications and the
bundled scripts do.
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from tsdb_client.core.config import settings


# =================================================================
# LOG FORMATTERS
# =================================================================

class StructuredFormatter(logging.Formatter):
    """
    JSON structured logging formatter for production.

    Outputs logs in JSON format with standard fields:
    - timestamp: ISO 8601 format
    - level: Log level (INFO, ERROR, etc.)
    - logger: Logger name
    - message: Log message
    - module: Python module name
    - function: Function name
    - line: Line number
    - request_id: Request ID (if available)
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "request_id"):
            log_data["request_id"] = record.request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """
    Color-coded console formatter for development.

    Provides visual distinction between log levels:
    - DEBUG: Gray
    - INFO: Green
    - WARNING: Yellow
    - ERROR: Red
    - CRITICAL: Red background
    """

    COLORS = {
        "DEBUG": "\033[37m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[41m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = (
                f"{self.COLORS[levelname]}{levelname:8}{self.RESET}"
            )

        formatted = super().format(record)

        # Reset levelname for next handler
        record.levelname = levelname

        return formatted


# =================================================================
# LOG HANDLERS
# =================================================================

def get_console_handler() -> logging.StreamHandler:
    """
    Get console handler with appropriate formatter.

    Returns:
        StreamHandler: Console handler for stdout
    """
    handler = logging.StreamHandler(sys.stdout)

    if settings.ENVIRONMENT == "production":
        formatter = StructuredFormatter()
    else:
        formatter = ColoredFormatter(
            fmt="%(asctime)s - %(name)-30s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    handler.setFormatter(formatter)
    return handler


def get_file_handler(log_file: Path) -> Optional[logging.FileHandler]:
    """
    Get file handler with JSON formatter.

    Args:
        log_file: Path to log file

    Returns:
        FileHandler for JSON logs, or None if the directory can't be created
    """
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logging.getLogger(__name__).warning(
            f"⚠️ Could not create log directory: {e}. File logging disabled."
        )
        return None

    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(StructuredFormatter())

    return handler


# =================================================================
# LOGGER SETUP
# =================================================================

def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None
) -> None:
    """
    Configure logging for an application using the client.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                  Defaults to settings.LOG_LEVEL
        log_file: Optional path to a JSON log file

    Example:
        >>> setup_logging(log_level="DEBUG")
        >>> logger = logging.getLogger(__name__)
        >>> logger.info("Application started")
    """
    level = log_level or settings.LOG_LEVEL
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()
    root_logger.addHandler(get_console_handler())

    if log_file is not None:
        file_handler = get_file_handler(log_file)
        if file_handler:
            root_logger.addHandler(file_handler)

    # The client logs its own requests; silence the transport's duplicates
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"🔧 Logging configured: level={level}, environment={settings.ENVIRONMENT}")
    if log_file is not None:
        logger.info(f"📝 File logging enabled: {log_file}")


# =================================================================
# REQUEST ID CONTEXT
# =================================================================

request_id_context: contextvars.ContextVar[str] = contextvars.ContextVar(
    "request_id", default="no-request-id"
)


class RequestIDFilter(logging.Filter):
    """
    Logging filter that adds request_id to log records.

    Lets a caller correlate every log line of one write or query call.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_context.get()
        return True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with request ID tracking.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger: Logger instance with request ID filter
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIDFilter) for f in logger.filters):
        logger.addFilter(RequestIDFilter())
    return logger


# =================================================================
# PERFORMANCE LOGGING
# =================================================================

class PerformanceLogger:
    """
    Context manager for performance logging.

    Example:
        >>> with PerformanceLogger("write_1000_points"):
        ...     client.write(batch)
    """

    def __init__(self, operation_name: str, logger_name: Optional[str] = None):
        self.operation_name = operation_name
        self.logger = get_logger(logger_name or __name__)
        self.start_time = None
        self.elapsed = None

    def __enter__(self):
        self.start_time = datetime.now()
        self.logger.debug(f"⏱️  Started: {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = (datetime.now() - self.start_time).total_seconds()

        if exc_type:
            self.logger.error(
                f"❌ Failed: {self.operation_name} ({self.elapsed:.2f}s)",
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            self.logger.info(
                f"✅ Completed: {self.operation_name} ({self.elapsed:.2f}s)"
            )


# =================================================================
# UTILITY FUNCTIONS
# =================================================================

def log_api_call(
    logger: logging.Logger,
    method: str,
    url: str,
    status_code: int,
    elapsed_ms: float,
    **extra_data
):
    """
    Log a server round trip with structured data.

    Args:
        logger: Logger instance
        method: HTTP method (GET, POST, etc.)
        url: Request URL, without query string
        status_code: HTTP status code
        elapsed_ms: Request duration in milliseconds
        **extra_data: Additional data to log

    Example:
        >>> log_api_call(
        ...     logger,
        ...     method="POST",
        ...     url="http://localhost:8086/write",
        ...     status_code=204,
        ...     elapsed_ms=12.5,
        ...     points=1000
        ... )
    """
    log_data = {
        "api_call": {
            "method": method,
            "url": url,
            "status_code": status_code,
            "elapsed_ms": elapsed_ms,
            **extra_data
        }
    }

    level = logging.INFO if status_code < 400 else logging.ERROR
    logger.log(
        level,
        f"API Call: {method} {url} [{status_code}] ({elapsed_ms:.1f}ms)",
        extra={"extra_data": log_data}
    )
