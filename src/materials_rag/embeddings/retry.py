"""Exponential backoff for provider calls that fail with transient errors."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from materials_rag.exceptions import ProviderTransientError
from materials_rag.observability.logger import get_logger

logger = get_logger("retry")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """``max_retries`` counts retries after the first attempt (3 gives delays of 2s, 4s, 8s)."""

    max_retries: int = 3
    base_delay_s: float = 2.0
    exponential_base: float = 2.0

    def delay(self, attempt: int) -> float:
        return self.base_delay_s * (self.exponential_base**attempt)


async def call_with_retry(
    request_func: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    operation: str = "request",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``request_func``, retrying only ``ProviderTransientError``.

    Permanent errors propagate on the first attempt. The last transient error is
    re-raised once the retry budget is spent.
    """
    for attempt in range(policy.max_retries + 1):
        try:
            return await request_func()
        except ProviderTransientError as e:
            if attempt >= policy.max_retries:
                logger.error(
                    "retries_exhausted",
                    operation=operation,
                    attempts=attempt + 1,
                    error=str(e),
                )
                raise
            delay = policy.delay(attempt)
            logger.warning(
                "retrying_after_transient_error",
                operation=operation,
                attempt=attempt + 1,
                max_attempts=policy.max_retries + 1,
                delay_s=delay,
                error=str(e),
            )
            await sleep(delay)
    raise AssertionError("unreachable")
