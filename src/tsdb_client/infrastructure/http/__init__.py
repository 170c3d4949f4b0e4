"""
HTTP Infrastructure Module
==========================

Transport clients, response decoding and the opt-in retry policy.
"""

from .client import (
    AsyncTSDBClient,
    TSDBClient
)

from .response import (
    decode_response,
    extract_error_message
)

from .retry import (
    RetryPolicy,
    with_retries,
    with_retries_async
)

__all__ = [
    "AsyncTSDBClient",
    "TSDBClient",
    "decode_response",
    "extract_error_message",
    "RetryPolicy",
    "with_retries",
    "with_retries_async",
]
