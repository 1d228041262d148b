"""Bounded exponential-backoff retry for rate-limited model calls."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

from rire.config import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_BASE_DELAY_SECONDS

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_INDICATORS = ("429", "Resource exhausted", "quota")


class RateLimitError(RuntimeError):
    """Raised when a call is still rate limited after every retry attempt."""

    def __init__(self, message: str = "Rate limit exceeded. Maximum retry attempts reached.") -> None:
        super().__init__(message)


def is_rate_limited(error: BaseException) -> bool:
    """Classify an error as a transient rate limit by its message (case sensitive)."""
    message = str(error)
    return any(indicator in message for indicator in RATE_LIMIT_INDICATORS)


def backoff_delay(attempt: int, base_delay_seconds: float) -> float:
    return base_delay_seconds * (2**attempt)


def with_retry(
    action: Callable[[], T],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_seconds: float = DEFAULT_RETRY_BASE_DELAY_SECONDS,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """Run ``action`` and retry it while it fails with a rate-limit error.

    Args:
        action: Zero-argument callable performing exactly one model call.
        max_attempts: Total number of attempts, including the first one.
        base_delay_seconds: Delay before the second attempt; doubles after each retry.
        sleep: Replacement for :func:`time.sleep`, mainly for tests.

    Returns:
        Whatever ``action`` returns on its first successful attempt.

    Raises:
        RateLimitError: If the final attempt is still rate limited.
        ValueError: If ``max_attempts`` is less than one.
        Exception: Any non rate-limit error, re-raised unchanged on first sight.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be positive, got {max_attempts}")
    pause = sleep or time.sleep
    last_attempt = max_attempts - 1
    for attempt in range(max_attempts):
        try:
            return action()
        except Exception as exc:
            if not is_rate_limited(exc):
                raise
            if attempt == last_attempt:
                raise RateLimitError() from exc
            delay = backoff_delay(attempt, base_delay_seconds)
            logger.warning(
                f"Rate limited (attempt {attempt + 1}/{max_attempts}), retrying in {delay:.1f}s"
            )
            pause(delay)
    raise RateLimitError()


__all__ = ["RateLimitError", "backoff_delay", "is_rate_limited", "with_retry"]
