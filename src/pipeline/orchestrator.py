"""Orchestrator: seeds requests, wires router + crawler, records run statistics.

Data flow:
  1. Seed requests (custom start URLs, else API page 1 + HTML page 1)
  2. Crawler fetches; router parses, caps, paginates, queues details
  3. Finalized records go through the de-duplicating sink
  4. Run statistics stored once the queue drains
"""

import json
import logging
import sqlite3
from typing import Any

from src.core.config import CrawlInput, Settings
from src.core.db import count_jobs, fetch_jobs, insert_run_statistics
from src.core.schemas import (
    CrawlRequest,
    JobDetailRequest,
    RunStatistics,
    SearchApiRequest,
    SearchHtmlRequest,
    utc_now,
)
from src.crawler.actions import RateLimiter
from src.crawler.engine import Crawler
from src.crawler.fetcher import Fetcher
from src.pipeline.quota_manager import JobQuota
from src.pipeline.sink import SqliteJobSink
from src.platforms.dice.router import CrawlContext, DiceRouter
from src.platforms.dice.searcher import (
    api_page_key,
    build_api_request_url,
    build_search_url,
    html_page_key,
    is_detail_url,
    search_params_from_input,
)

logger = logging.getLogger(__name__)


def build_start_requests(crawl_input: CrawlInput) -> list[CrawlRequest]:
    """Build the seed requests for a run.

    Custom start URLs replace the configured search entirely: detail URLs
    are routed JOB_DETAIL, everything else SEARCH. Without start URLs the
    run seeds one API and one HTML search request for page 1.
    """
    if crawl_input.start_urls:
        logger.info("Using %d custom start URLs", len(crawl_input.start_urls))
        requests: list[CrawlRequest] = []
        for url in crawl_input.start_urls:
            if is_detail_url(url):
                requests.append(JobDetailRequest(url=url))
            else:
                requests.append(SearchHtmlRequest(url=url, page=1))
        return requests

    params = search_params_from_input(crawl_input)
    logger.info("Building search request: %s", params.model_dump())
    return [
        SearchApiRequest(
            url=build_api_request_url(params),
            search_params=params,
            unique_key=api_page_key(1),
        ),
        SearchHtmlRequest(
            url=build_search_url(crawl_input, 1),
            page=1,
            unique_key=html_page_key(1),
        ),
    ]


async def run_crawl(
    settings: Settings,
    fetcher: Fetcher,
    conn: sqlite3.Connection,
) -> RunStatistics:
    """Run one crawl to completion and return its statistics.

    Per-request failures are counted, never raised; whatever was persisted
    before a failure stays persisted.
    """
    crawl_input = settings.input
    stats = RunStatistics()
    quota = JobQuota(crawl_input.max_jobs)
    ctx = CrawlContext(
        quota,
        SqliteJobSink(conn, stats),
        stats,
        scrape_job_details=crawl_input.scrape_job_details,
    )
    router = DiceRouter(ctx)

    async def on_failed(request: CrawlRequest, error: BaseException) -> None:
        stats.errors += 1
        logger.error("Request failed: %s [%s] %s", request.url, request.label, error)

    crawler_cfg = settings.crawler
    rate_limiter = None
    if crawler_cfg.requests_per_second > 0:
        rate_limiter = RateLimiter(
            max_tokens=crawl_input.max_concurrency,
            refill_rate=crawler_cfg.requests_per_second,
        )

    crawler = Crawler(
        fetcher,
        router.handle,
        max_concurrency=crawl_input.max_concurrency,
        max_request_retries=crawler_cfg.max_request_retries,
        retry_backoff_s=crawler_cfg.retry_backoff_s,
        rate_limiter=rate_limiter,
        min_delay_s=crawler_cfg.min_delay_s,
        max_delay_s=crawler_cfg.max_delay_s,
        failed_request_handler=on_failed,
    )

    logger.info(
        "Starting Dice crawl: query='%s' location='%s' max_jobs=%d details=%s",
        crawl_input.search_query, crawl_input.location,
        crawl_input.max_jobs, crawl_input.scrape_job_details,
    )
    start_requests = build_start_requests(crawl_input)
    logger.info("Starting crawler with %d initial requests", len(start_requests))

    await crawler.run(start_requests)

    stats.jobs_scraped = quota.count
    stats.finished_at = utc_now()
    insert_run_statistics(conn, stats)

    logger.info(
        "Scraping completed: %d persisted, %d with details, %d duplicates, %d errors in %.2fs",
        stats.jobs_persisted, stats.jobs_with_details, stats.duplicates_skipped,
        stats.errors, stats.duration_seconds,
    )
    logger.info("Database now holds %d jobs", count_jobs(conn))
    return stats


def export_results_json(conn: sqlite3.Connection) -> str:
    """Export stored job records as a JSON array string."""
    records: list[dict[str, Any]] = fetch_jobs(conn)
    return json.dumps(records, indent=2)
