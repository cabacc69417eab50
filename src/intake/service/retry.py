"""Retry with exponential backoff."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from intake.utils.logging import get_logger


logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
BASE_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS = 5.0


def backoff_delay(attempt: int) -> float:
    """Delay after failed attempt ``attempt`` (1-based): 1s, 2s, 4s, then 5s."""
    return min(BASE_DELAY_SECONDS * 2 ** (attempt - 1), MAX_DELAY_SECONDS)


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Optional[Callable[[int, Exception], None]] = None,
) -> T:
    """Await ``operation`` up to ``max_retries`` times; the last error propagates."""
    attempts = max(1, max_retries)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            if attempt == attempts:
                raise
            delay = backoff_delay(attempt)
            if on_retry is not None:
                on_retry(attempt, exc)
            await sleep(delay)
            logger.warning(
                "retry.attempt %s/%s after %.1fs error=%s",
                attempt + 1,
                attempts,
                delay,
                exc,
            )

    raise RuntimeError("retry loop exited without a result")
