"""Reusable retry policy with exponential backoff."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded attempts with ``base_delay * multiplier ** attempt`` backoff."""

    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 30.0

    def delay_for(self, attempt: int) -> float:
        """Delay before the retry following ``attempt`` (0-based)."""
        return min(self.base_delay * self.multiplier ** attempt, self.max_delay)

    async def run(
        self,
        fn: Callable[[], Awaitable[T]],
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> T:
        """Await ``fn()`` until it succeeds or attempts run out.

        The last error is re-raised. There is no sleep after the final attempt.
        """
        last_error: BaseException | None = None
        for attempt in range(self.max_attempts):
            try:
                return await fn()
            except retry_on as e:
                last_error = e
                if attempt < self.max_attempts - 1:
                    delay = self.delay_for(attempt)
                    logger.warning(
                        "Attempt %d/%d failed (%s), retrying in %.1fs",
                        attempt + 1, self.max_attempts, e, delay,
                    )
                    await sleep(delay)

        assert last_error is not None
        raise last_error
