"""Composable retry policy for storage calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Optional, TypeVar

from .errors import TransientStorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 0.2
    multiplier: float = 2.0
    max_delay: float = 2.0
    retry_on: tuple[type[BaseException], ...] = (TransientStorageError,)
    backoff: Optional[Callable[[int], float]] = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay_for(self, attempt: int) -> float:
        """Delay after failed ``attempt`` (1-based) before the next one."""
        if self.backoff is not None:
            return self.backoff(attempt)
        return min(self.max_delay, self.base_delay * self.multiplier ** (attempt - 1))

    async def run(
        self,
        operation: Callable[[int], Awaitable[T]],
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> T:
        """Call ``operation(attempt)`` until it succeeds or the budget is spent.

        Only exceptions listed in ``retry_on`` are retried; the last one is
        re-raised once ``max_attempts`` calls have failed.
        """
        attempt = 1
        while True:
            try:
                return await operation(attempt)
            except self.retry_on as exc:
                if attempt >= self.max_attempts:
                    logger.warning("Giving up after %s attempts: %s", attempt, exc)
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "Attempt %s/%s failed (%s); retrying in %.2fs",
                    attempt,
                    self.max_attempts,
                    exc,
                    delay,
                )
                await sleep(delay)
                attempt += 1
