"""Bounded retry with exponential backoff for external calls.

Completion requests, speech-to-text, web fetches and blob uploads all go
through :func:`retry_async` so there is a single retry policy instead of
ad-hoc loops at each call site.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

import httpx

from studyforge.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry logic with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (including initial attempt)
        backoff_factor: Multiplier for exponential backoff (delay = backoff_factor * 2^attempt)
        max_backoff: Maximum backoff delay in seconds
        retry_exceptions: Exception types that should trigger a retry
    """

    max_attempts: int = 3
    backoff_factor: float = 1.0
    max_backoff: float = 30.0
    retry_exceptions: Tuple[Type[BaseException], ...] = (
        httpx.ConnectError,
        httpx.ReadTimeout,
        httpx.PoolTimeout,
    )

    def delay_for(self, attempt: int) -> float:
        return min(self.backoff_factor * (2**attempt), self.max_backoff)

    @classmethod
    def from_settings(cls, retry_exceptions: Optional[Tuple[Type[BaseException], ...]] = None) -> "RetryConfig":
        config = cls(
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            backoff_factor=settings.RETRY_BACKOFF_SECONDS,
            max_backoff=settings.RETRY_MAX_BACKOFF_SECONDS,
        )
        if retry_exceptions is not None:
            config.retry_exceptions = retry_exceptions
        return config


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig,
    description: str = "operation",
) -> T:
    """Run ``operation`` until it succeeds or the attempts are exhausted.

    Only exceptions listed in ``config.retry_exceptions`` are retried; anything
    else propagates immediately. After the last attempt the final exception is
    re-raised unchanged.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        config: Retry policy
        description: Label used in log messages

    Returns:
        The operation's result
    """
    attempts = max(1, config.max_attempts)
    for attempt in range(attempts):
        try:
            return await operation()
        except config.retry_exceptions as e:
            # Don't retry on last attempt
            if attempt + 1 >= attempts:
                logger.error(f"{description} failed after {attempts} attempts: {e}")
                raise
            delay = config.delay_for(attempt)
            logger.warning(
                f"{description} failed with {type(e).__name__}: {e}, "
                f"retrying in {delay:.1f}s (attempt {attempt + 1}/{attempts})"
            )
            await asyncio.sleep(delay)
    raise RuntimeError("unreachable")
