"""Job quota: the run-wide cap on how many listings are produced.

One instance is shared by every handler invocation of a run. ``claim()`` is
the only mutation and does its check-and-increment under a lock, so the
cap holds even with many requests in flight.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


class JobQuota:
    """Counts produced listings against ``max_jobs`` (0 = unbounded).

    Usage::

        quota = JobQuota(max_jobs=100)
        for job in page_jobs:
            if not await quota.claim():
                break  # cap reached, stop this page
            ...
    """

    def __init__(self, max_jobs: int) -> None:
        if max_jobs < 0:
            msg = "max_jobs must be >= 0"
            raise ValueError(msg)
        self._max_jobs = max_jobs
        self._count = 0
        self._lock = asyncio.Lock()

    @property
    def max_jobs(self) -> int:
        return self._max_jobs

    @property
    def count(self) -> int:
        """Listings claimed so far."""
        return self._count

    def can_continue(self) -> bool:
        """Return True while the cap has not been reached."""
        return self._max_jobs == 0 or self._count < self._max_jobs

    def remaining(self) -> int | None:
        """Slots left, or None when unbounded."""
        if self._max_jobs == 0:
            return None
        return max(0, self._max_jobs - self._count)

    async def claim(self) -> bool:
        """Reserve one slot. Returns False (and counts nothing) once the cap is hit."""
        async with self._lock:
            if not self.can_continue():
                return False
            self._count += 1
            if self._max_jobs and self._count == self._max_jobs:
                logger.info("Max jobs limit reached (%d)", self._max_jobs)
            return True
