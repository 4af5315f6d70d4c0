"""Dice request router: label dispatch, pagination, and the job cap.

Labels:
  SEARCH_API - one page of search API results
  SEARCH     - one HTML search-results page (fallback surface)
  JOB_DETAIL - one job detail page, optionally carrying its basic listing

Before each page and before each job the quota is consulted; once it is
exhausted the current page stops and no further pages or detail requests
are queued. Requests already queued still run.
"""

import logging
from typing import Any

from src.core.schemas import (
    CrawlRequest,
    JobDetailRequest,
    JobListingBasic,
    RunStatistics,
    SearchApiRequest,
    SearchHtmlRequest,
)
from src.crawler.engine import RequestScheduler
from src.crawler.fetcher import FetchResponse
from src.pipeline.quota_manager import JobQuota
from src.pipeline.sink import JobSink
from src.platforms.base import SiteRouter
from src.platforms.dice.parser import (
    DiceCardParser,
    ensure_id,
    extract_job_details,
    parse_job_from_api,
)
from src.platforms.dice.searcher import api_page_key, build_api_request_url, with_page

logger = logging.getLogger(__name__)

DETAIL_FAILURE_MARKER = "Failed to extract full details"


class CrawlContext:
    """Run-scoped state handed to every handler invocation.

    ``quota`` is the only state mutated across requests; ``scrape_job_details``
    is fixed for the run.
    """

    def __init__(
        self,
        quota: JobQuota,
        sink: JobSink,
        stats: RunStatistics,
        *,
        scrape_job_details: bool = True,
    ) -> None:
        self.quota = quota
        self.sink = sink
        self.stats = stats
        self.scrape_job_details = scrape_job_details


class DiceRouter(SiteRouter):
    """Routes dice.com requests to the API, HTML search, or detail handler."""

    def __init__(self, ctx: CrawlContext, card_parser: DiceCardParser | None = None) -> None:
        self._ctx = ctx
        self._card_parser = card_parser or DiceCardParser()

    @property
    def site_id(self) -> str:
        return "dice"

    async def handle(
        self,
        request: CrawlRequest,
        response: FetchResponse,
        scheduler: RequestScheduler,
    ) -> None:
        if isinstance(request, SearchApiRequest):
            await self.handle_search_api(request, response, scheduler)
        elif isinstance(request, SearchHtmlRequest):
            await self.handle_search(request, response, scheduler)
        elif isinstance(request, JobDetailRequest):
            await self.handle_job_detail(request, response)
        else:
            logger.warning("Unhandled request: %s", getattr(request, "url", request))

    # --- SEARCH_API ---

    async def handle_search_api(
        self,
        request: SearchApiRequest,
        response: FetchResponse,
        scheduler: RequestScheduler,
    ) -> None:
        params = request.search_params
        logger.info("Processing API search page %d: %s", params.page, request.url)

        if not self._ctx.quota.can_continue():
            logger.info("Max jobs limit reached, stopping")
            return

        data = response.json()
        if not isinstance(data, dict) or not isinstance(data.get("data"), list):
            logger.warning("No data received from API: %s", request.url)
            return

        jobs: list[Any] = data["data"]
        meta = data.get("meta") or {}
        total_jobs = meta.get("totalJobs") or 0
        total_pages = meta.get("totalPages") or 1
        self._ctx.stats.jobs_found += len(jobs)
        logger.info(
            "Found %d total jobs, processing page %d/%d (%d on page)",
            total_jobs, params.page, total_pages, len(jobs),
        )

        listings: list[JobListingBasic] = []
        for api_job in jobs:
            if not self._ctx.quota.can_continue():
                break
            if not isinstance(api_job, dict):
                logger.debug("Skipping malformed API job entry: %r", api_job)
                continue
            job = ensure_id(parse_job_from_api(api_job))
            if not await self._ctx.quota.claim():
                break
            listings.append(job)

        await self._emit(listings, scheduler)

        if self._ctx.quota.can_continue() and params.page < total_pages:
            next_params = params.next_page()
            added = await scheduler.add_requests([
                SearchApiRequest(
                    url=build_api_request_url(next_params),
                    search_params=next_params,
                    unique_key=api_page_key(next_params.page),
                ),
            ])
            if added:
                logger.info("Added request for page %d", next_params.page)

    # --- SEARCH (HTML fallback) ---

    async def handle_search(
        self,
        request: SearchHtmlRequest,
        response: FetchResponse,
        scheduler: RequestScheduler,
    ) -> None:
        page = request.page
        logger.info("Processing HTML search page %d: %s", page, request.url)

        if not self._ctx.quota.can_continue():
            logger.info("Max jobs limit reached, stopping")
            return

        document = response.document()
        cards = self._card_parser.find_cards(document)
        if not cards:
            logger.warning("No job cards found on page: %s", request.url)
            return

        logger.info(
            "Found %d job cards on page %d (%s total)",
            len(cards), page, self._card_parser.total_jobs(document) or "unknown",
        )
        self._ctx.stats.jobs_found += len(cards)

        listings: list[JobListingBasic] = []
        for index, card in enumerate(cards):
            if not self._ctx.quota.can_continue():
                break
            try:
                job = self._card_parser.parse_card(card, index)
            except Exception:
                logger.debug("Failed to parse card %d, skipping", index, exc_info=True)
                continue
            if job is None:
                continue
            if not await self._ctx.quota.claim():
                break
            listings.append(job)

        await self._emit(listings, scheduler)

        if self._ctx.quota.can_continue() and self._card_parser.has_next_page(document):
            next_page = page + 1
            await scheduler.add_requests([
                SearchHtmlRequest(url=with_page(request.url, next_page), page=next_page),
            ])
            logger.info("Added HTML search request for page %d", next_page)

    # --- JOB_DETAIL ---

    async def handle_job_detail(self, request: JobDetailRequest, response: FetchResponse) -> None:
        job_basic = request.job_basic
        logger.info(
            "Processing job detail: %s (%s)",
            job_basic.title if job_basic else "Unknown", request.url,
        )

        try:
            job = extract_job_details(response.document(), job_basic, request.url)
        except Exception:
            logger.error("Error processing job detail: %s", request.url, exc_info=True)
            if job_basic is not None:
                await self._ctx.sink.persist(job_basic.to_record(error=DETAIL_FAILURE_MARKER))
            return

        if await self._ctx.sink.persist(job.to_record()):
            self._ctx.stats.jobs_with_details += 1
        logger.debug("Saved job: %s (%s)", job.title, job.id)

    # --- Helpers ---

    async def _emit(self, listings: list[JobListingBasic], scheduler: RequestScheduler) -> None:
        """Queue a detail request per listing, or persist listings as-is."""
        if not listings:
            return

        if self._ctx.scrape_job_details:
            added = await scheduler.add_requests([
                JobDetailRequest(url=job.url, job_basic=job) for job in listings
            ])
            logger.info("Added %d job detail requests (%s)", added, self._quota_left())
            return

        for job in listings:
            await self._ctx.sink.persist(job.to_record())
        logger.info("Saved %d jobs without details (%s)", len(listings), self._quota_left())

    def _quota_left(self) -> str:
        remaining = self._ctx.quota.remaining()
        return "no job cap" if remaining is None else f"{remaining} left under cap"
