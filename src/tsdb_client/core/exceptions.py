"""
Custom Exceptions Module
=========================

Domain-specific exceptions for the time-series client.

Exception Hierarchy:
    TSDBClientException (base)
    ├── InvalidPoint
    ├── EncodingError
    ├── InvalidConfig
    ├── TransportError
    │   └── TransportTimeoutError
    ├── ServerError
    └── DecodingError

Query-level errors (the server executed the request but rejected the
command) are not exceptions: they are returned on ``QueryResponse.error()``.

Usage:
    from tsdb_client.core.exceptions import ServerError, TransportError

    try:
        client.write(batch)
    except TransportError as e:
        logger.error(f"Write never reached the server: {e}")
    except ServerError as e:
        logger.error(f"Server rejected write [{e.status_code}]: {e.server_message}")
"""

from typing import Optional, Dict, Any


# =================================================================
# BASE EXCEPTION
# =================================================================

class TSDBClientException(Exception):
    """
    Base exception for all client errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logs."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details
        }


# =================================================================
# DATA MODEL EXCEPTIONS
# =================================================================

class InvalidPoint(TSDBClientException):
    """Point failed construction-time validation."""

    def __init__(self, reason: str, measurement: Optional[str] = None):
        super().__init__(
            message=f"Invalid point: {reason}",
            details={"measurement": measurement, "reason": reason},
            error_code="INVALID_POINT"
        )


class EncodingError(TSDBClientException):
    """Batch content cannot be serialized to (or parsed from) line protocol."""

    def __init__(self, reason: str, content: Optional[str] = None):
        if content is not None and len(content) > 100:
            content = content[:100] + "..."
        super().__init__(
            message=f"Line protocol encoding failed: {reason}",
            details={"content": content, "reason": reason},
            error_code="ENCODING_FAILED"
        )


class InvalidConfig(TSDBClientException):
    """Client configuration rejected at construction time."""

    def __init__(self, field: str, reason: str):
        super().__init__(
            message=f"Invalid configuration for '{field}': {reason}",
            details={"field": field, "reason": reason},
            error_code="INVALID_CONFIG"
        )


# =================================================================
# TRANSPORT / SERVER EXCEPTIONS
# =================================================================

class TransportError(TSDBClientException):
    """The request never completed: connection failure or timeout."""

    timeout = False

    def __init__(self, url: str, reason: str):
        super().__init__(
            message=f"Request to {url} failed: {reason}",
            details={"url": url, "reason": reason, "timeout": self.timeout},
            error_code="TRANSPORT_TIMEOUT" if self.timeout else "TRANSPORT_FAILED"
        )


class TransportTimeoutError(TransportError):
    """The request exceeded the configured timeout."""

    timeout = True


class ServerError(TSDBClientException):
    """Server answered with a non-2xx status."""

    def __init__(self, status_code: int, server_message: str):
        self.status_code = status_code
        self.server_message = server_message
        super().__init__(
            message=f"Server error [{status_code}]: {server_message}",
            details={"status_code": status_code, "server_message": server_message},
            error_code="SERVER_ERROR"
        )


class DecodingError(TSDBClientException):
    """Success response whose body could not be decoded."""

    def __init__(self, reason: str, body: Optional[str] = None):
        if body is not None and len(body) > 200:
            body = body[:200] + "..."
        super().__init__(
            message=f"Failed to decode server response: {reason}",
            details={"body": body, "reason": reason},
            error_code="DECODING_FAILED"
        )
