"""Request pacing: randomized delays and a token-bucket rate limiter.

No fixed asyncio.sleep() in the crawl path except via these helpers.
"""

import asyncio
import logging
import random
import time

logger = logging.getLogger(__name__)


async def random_sleep(min_s: float, max_s: float) -> float:
    """Sleep for a random duration between min_s and max_s seconds.

    Floor enforcement: min_s is always respected as the absolute minimum.
    If max_s < min_s, max_s is raised to min_s.

    Returns the actual sleep duration (useful for testing).
    """
    floor = max(min_s, 0.0)
    ceiling = max(max_s, floor)
    duration = random.uniform(floor, ceiling)
    await asyncio.sleep(duration)
    return duration


class RateLimiter:
    """Token bucket shared by all workers.

    Usage::

        limiter = RateLimiter(max_tokens=10, refill_rate=2.0)
        await limiter.acquire()  # waits when the bucket is empty
    """

    def __init__(self, max_tokens: float = 10, refill_rate: float = 2.0) -> None:
        if refill_rate <= 0:
            msg = "refill_rate must be positive"
            raise ValueError(msg)
        self._max_tokens = float(max_tokens)
        self._tokens = float(max_tokens)
        self._refill_rate = refill_rate
        self._last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    @property
    def tokens(self) -> float:
        return self._tokens

    async def acquire(self) -> float:
        """Take one token, waiting for a refill if needed. Returns seconds waited."""
        waited = 0.0
        async with self._lock:
            self._refill()
            if self._tokens < 1:
                wait = (1 - self._tokens) / self._refill_rate
                logger.debug("Rate limit reached, waiting %.2fs", wait)
                await asyncio.sleep(wait)
                waited = wait
                self._refill()
            self._tokens = max(self._tokens - 1, 0.0)
        return waited

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(self._max_tokens, self._tokens + elapsed * self._refill_rate)
        self._last_refill = now
