"""Request queue and worker pool.

Requests are de-duplicated by ``key`` (unique key, else URL) for the
lifetime of the crawler, so re-adding a scheduled request is a no-op.
Fetch errors are retried with exponential backoff. The request handler runs
once, after a successful fetch, so quota claims and persistence are never
repeated. A request whose fetch exhausts its retries, or whose handler
raises, goes to the failed-request handler and the run goes on.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Protocol

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

from src.core.schemas import CrawlRequest
from src.crawler.actions import RateLimiter, random_sleep
from src.crawler.fetcher import Fetcher, FetchResponse

logger = logging.getLogger(__name__)


class RequestScheduler(Protocol):
    """What handlers may do with the queue: add more requests."""

    async def add_requests(self, requests: Iterable[CrawlRequest]) -> int: ...


RequestHandler = Callable[[CrawlRequest, FetchResponse, RequestScheduler], Awaitable[None]]
FailedRequestHandler = Callable[[CrawlRequest, BaseException], Awaitable[None]]


class Crawler:
    """Drains a request queue with a bounded number of concurrent workers."""

    def __init__(
        self,
        fetcher: Fetcher,
        request_handler: RequestHandler,
        *,
        max_concurrency: int = 10,
        max_request_retries: int = 3,
        retry_backoff_s: float = 1.0,
        rate_limiter: RateLimiter | None = None,
        min_delay_s: float = 0.0,
        max_delay_s: float = 0.0,
        failed_request_handler: FailedRequestHandler | None = None,
    ) -> None:
        if max_concurrency < 1:
            msg = "max_concurrency must be at least 1"
            raise ValueError(msg)
        self._fetcher = fetcher
        self._request_handler = request_handler
        self._failed_request_handler = failed_request_handler
        self._max_concurrency = max_concurrency
        self._max_request_retries = max_request_retries
        self._retry_backoff_s = retry_backoff_s
        self._rate_limiter = rate_limiter
        self._min_delay_s = min_delay_s
        self._max_delay_s = max_delay_s
        self._queue: asyncio.Queue[CrawlRequest] = asyncio.Queue()
        self._seen_keys: set[str] = set()
        self.handled_count = 0
        self.failed_count = 0

    async def add_requests(self, requests: Iterable[CrawlRequest]) -> int:
        """Queue requests whose key has not been seen. Returns how many were added."""
        added = 0
        for request in requests:
            if request.key in self._seen_keys:
                logger.debug("Skipping already scheduled request '%s'", request.key)
                continue
            self._seen_keys.add(request.key)
            self._queue.put_nowait(request)
            added += 1
        return added

    async def run(self, requests: Iterable[CrawlRequest] = ()) -> None:
        """Queue the seed requests and process until the queue is drained."""
        await self.add_requests(requests)
        workers = [
            asyncio.create_task(self._worker(i), name=f"crawler-worker-{i}")
            for i in range(self._max_concurrency)
        ]
        try:
            await self._queue.join()
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
        logger.info(
            "Crawler finished: %d requests handled, %d failed",
            self.handled_count, self.failed_count,
        )

    async def _worker(self, worker_id: int) -> None:
        while True:
            request = await self._queue.get()
            try:
                await self._process(request)
            finally:
                self._queue.task_done()

    async def _process(self, request: CrawlRequest) -> None:
        try:
            response = await self._fetch_with_retries(request)
            await self._request_handler(request, response, self)
        except Exception as exc:
            self.failed_count += 1
            logger.error("Request failed: %s (%s)", request.url, exc)
            if self._failed_request_handler is not None:
                await self._failed_request_handler(request, exc)
        else:
            self.handled_count += 1

    async def _fetch_with_retries(self, request: CrawlRequest) -> FetchResponse:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_request_retries + 1),
            wait=wait_exponential(multiplier=self._retry_backoff_s, max=60),
            before_sleep=self._log_retry(request),
            reraise=True,
        ):
            with attempt:
                return await self._fetch_once(request)
        msg = f"retry loop ended without a response for {request.url}"
        raise RuntimeError(msg)

    async def _fetch_once(self, request: CrawlRequest) -> FetchResponse:
        if self._rate_limiter is not None:
            await self._rate_limiter.acquire()
        if self._max_delay_s > 0:
            await random_sleep(self._min_delay_s, self._max_delay_s)
        return await self._fetcher.fetch(request)

    @staticmethod
    def _log_retry(request: CrawlRequest) -> Callable[[RetryCallState], None]:
        def _before_sleep(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome is not None else None
            logger.warning(
                "Attempt %d for %s failed (%s) - retrying",
                state.attempt_number, request.url, exc,
            )

        return _before_sleep
