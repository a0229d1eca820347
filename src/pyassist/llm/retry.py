from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

T = TypeVar("T")

RETRYABLE_MESSAGES = (
    "econnreset",
    "etimedout",
    "socket hang up",
    "network",
    "fetch failed",
    "timed out",
    "timeout",
    "connection reset",
    "temporarily unavailable",
)

JITTER = 0.25


def is_retryable(err: BaseException) -> bool:
    """Rate limits, timeouts, 5xx and transient network failures."""
    status = getattr(err, "status", None)
    if isinstance(status, int) and (status in (408, 429) or 500 <= status < 600):
        return True
    msg = str(err).lower()
    return any(s in msg for s in RETRYABLE_MESSAGES)


@dataclass
class RetryOptions:
    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    retry_on: Callable[[BaseException], bool] = is_retryable
    on_retry: Optional[Callable[[int, int, BaseException], None]] = None


def backoff_delay_ms(attempt: int, options: RetryOptions, rng: Callable[[], float] = random.random) -> int:
    """Exponential backoff for a zero-based attempt, with +/-25% jitter."""
    jitter = 1 + (rng() * 2 - 1) * JITTER
    return int(min(options.max_delay_ms, options.base_delay_ms * (2 ** attempt) * jitter))


def with_retry(
    operation: Callable[[], T],
    options: RetryOptions | None = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
    rng: Callable[[], float] = random.random,
) -> T:
    """Call operation, retrying retryable failures with backoff.

    The last exception is re-raised unchanged once retries run out or when
    retry_on rejects it.
    """
    options = options or RetryOptions()
    attempt = 0
    while True:
        try:
            return operation()
        except Exception as e:
            if attempt >= options.max_retries or not options.retry_on(e):
                raise
            delay_ms = backoff_delay_ms(attempt, options, rng)
            if options.on_retry is not None:
                options.on_retry(attempt + 1, delay_ms, e)
            sleep(delay_ms / 1000)
            attempt += 1
