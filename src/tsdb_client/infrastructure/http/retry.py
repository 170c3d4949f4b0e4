"""
Caller-Owned Retry Policy
=========================

The clients never retry on their own. Callers that want retries wrap a call
with ``with_retries`` (or ``with_retries_async``) and a ``RetryPolicy``.

Only ``TransportError`` (connection failure, timeout) is retried. A
``ServerError`` means the server answered, and retrying an ``InvalidPoint``
or ``EncodingError`` can never succeed.

Usage:
    from tsdb_client.infrastructure.http.retry import RetryPolicy, with_retries

    with_retries(lambda: client.write(batch), RetryPolicy(attempts=5))
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential
)

from tsdb_client.core.exceptions import TransportError
from tsdb_client.core.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff settings.

    Args:
        attempts: Total attempts, including the first one
        multiplier: Backoff multiplier in seconds
        wait_min: Lower bound of each wait in seconds
        wait_max: Upper bound of each wait in seconds
    """

    attempts: int = 3
    multiplier: float = 1.0
    wait_min: float = 2.0
    wait_max: float = 10.0

    def __post_init__(self):
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        if self.wait_min < 0 or self.wait_max < self.wait_min:
            raise ValueError("require 0 <= wait_min <= wait_max")

    def _kwargs(self) -> dict:
        return {
            "stop": stop_after_attempt(self.attempts),
            "wait": wait_exponential(multiplier=self.multiplier, min=self.wait_min, max=self.wait_max),
            "retry": retry_if_exception_type(TransportError),
            "before_sleep": before_sleep_log(logger, logging.WARNING),
            "reraise": True,
        }

    def retrying(self) -> Retrying:
        return Retrying(**self._kwargs())

    def async_retrying(self) -> AsyncRetrying:
        return AsyncRetrying(**self._kwargs())


def with_retries(fn: Callable[[], T], policy: RetryPolicy = RetryPolicy()) -> T:
    """
    Call ``fn`` until it succeeds, raises a non-transport error, or attempts
    run out. The last ``TransportError`` is re-raised unchanged.
    """
    return policy.retrying()(fn)


async def with_retries_async(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy = RetryPolicy()
) -> T:
    """Async counterpart of ``with_retries``."""
    return await policy.async_retrying()(fn)
