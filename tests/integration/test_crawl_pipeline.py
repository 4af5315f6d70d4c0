"""Integration test: full crawl with a fake fetcher (no browser)."""

import json
import sqlite3
from pathlib import Path
from typing import Any

import pytest

from src.core.config import CrawlerConfig, CrawlInput, DatabaseConfig, Settings
from src.core.db import count_jobs, fetch_jobs, init_db
from src.core.schemas import CrawlRequest, SearchApiRequest, SearchHtmlRequest
from src.crawler.fetcher import FetchError, FetchResponse
from src.pipeline.orchestrator import build_start_requests, export_results_json, run_crawl

# ---------------------------------------------------------------------------
# Fake site
# ---------------------------------------------------------------------------


def _api_job(job_id: str) -> dict[str, Any]:
    return {
        "id": job_id,
        "title": f"Python Engineer {job_id}",
        "companyName": "Acme",
        "jobLocation": {"displayName": "Remote"},
        "postedDate": "2024-01-05T10:00:00Z",
        "detailsPageUrl": f"/job-detail/{job_id}",
        "easyApply": True,
    }


_CARD = (
    '<div data-cy="card"><a data-cy="card-title-link" href="/job-detail/{id}">Card {id}</a>'
    '<a data-cy="card-company-link">Globex</a><span data-cy="card-location">Austin, TX</span></div>'
)

_DETAIL = """
<html><body>
  <h1 data-cy="jobTitle">Detail {id}</h1>
  <li data-cy="compensationText">$120K - $140K</li>
  <div data-cy="jobDescription"><p>Python and Docker on AWS</p></div>
</body></html>
"""


class FakeDiceFetcher:
    """Serves API pages, one HTML search page, and detail pages from memory."""

    def __init__(
        self,
        api_pages: list[list[str]],
        html_cards: list[str],
        broken_details: set[str] | None = None,
    ) -> None:
        self.api_pages = api_pages
        self.html_cards = html_cards
        self.broken_details = broken_details or set()
        self.calls: list[str] = []

    async def fetch(self, request: CrawlRequest) -> FetchResponse:
        self.calls.append(request.label)
        if isinstance(request, SearchApiRequest):
            page = request.search_params.page
            jobs = [_api_job(i) for i in self.api_pages[page - 1]]
            body = {"data": jobs, "meta": {"totalJobs": 99, "totalPages": len(self.api_pages)}}
            return FetchResponse(request.url, 200, json.dumps(body), content_type="application/json")
        if isinstance(request, SearchHtmlRequest):
            cards = "".join(_CARD.format(id=i) for i in self.html_cards)
            return FetchResponse(request.url, 200, f"<html><body>{cards}</body></html>")
        job_id = request.url.rsplit("/", 1)[-1]
        if job_id in self.broken_details:
            raise FetchError(request.url, 503)
        return FetchResponse(request.url, 200, _DETAIL.format(id=job_id))


def _settings(tmp_path: Path, **input_kwargs: Any) -> Settings:
    input_kwargs.setdefault("search_query", "python")
    return Settings(
        input=CrawlInput(**input_kwargs),
        crawler=CrawlerConfig(max_request_retries=1, retry_backoff_s=0, requests_per_second=0),
        database=DatabaseConfig(path=str(tmp_path / "jobs.db")),
    )


@pytest.fixture
def db(tmp_path: Path) -> sqlite3.Connection:
    return init_db(tmp_path / "jobs.db")


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestCrawlPipeline:
    async def test_full_run_with_details(self, tmp_path: Path, db: sqlite3.Connection) -> None:
        fetcher = FakeDiceFetcher(api_pages=[["aa01", "aa02"], ["aa04"]], html_cards=["aa02", "bb03"])
        settings = _settings(tmp_path, max_jobs=0, max_concurrency=2)

        stats = await run_crawl(settings, fetcher, db)

        records = fetch_jobs(db)
        assert sorted(r["id"] for r in records) == ["aa01", "aa02", "aa04", "bb03"]
        assert all(r["title"].startswith("Detail ") for r in records)
        assert all(r["salaryMin"] == 120000 for r in records)
        assert all(r["skills"] == ["Python", "Docker", "AWS"] for r in records)
        assert all("scrapedAt" in r for r in records)
        assert stats.jobs_found == 5
        assert stats.jobs_scraped == 5
        assert stats.jobs_with_details == 4
        assert stats.jobs_persisted == 4
        assert stats.errors == 0
        assert fetcher.calls.count("SEARCH_API") == 2
        assert fetcher.calls.count("SEARCH") == 1
        assert fetcher.calls.count("JOB_DETAIL") == 4

    async def test_basic_only_dedups_across_pipelines(self, tmp_path: Path, db: sqlite3.Connection) -> None:
        fetcher = FakeDiceFetcher(api_pages=[["aa01", "aa02"]], html_cards=["aa02", "bb03"])
        settings = _settings(tmp_path, max_jobs=0, scrape_job_details=False)

        stats = await run_crawl(settings, fetcher, db)

        assert count_jobs(db) == 3
        assert stats.jobs_persisted == 3
        assert stats.duplicates_skipped == 1
        assert stats.jobs_with_details == 0
        assert "JOB_DETAIL" not in fetcher.calls

    async def test_cap_is_exact(self, tmp_path: Path, db: sqlite3.Connection) -> None:
        fetcher = FakeDiceFetcher(
            api_pages=[["aa01", "aa02", "aa03"], ["aa04", "aa05"]],
            html_cards=["cc05", "cc06", "cc07"],
        )
        settings = _settings(tmp_path, max_jobs=3, max_concurrency=4)

        stats = await run_crawl(settings, fetcher, db)

        assert count_jobs(db) == 3
        assert stats.jobs_scraped == 3
        assert fetcher.calls.count("JOB_DETAIL") == 3
        assert fetcher.calls.count("SEARCH_API") == 1

    async def test_failed_detail_counted_not_raised(self, tmp_path: Path, db: sqlite3.Connection) -> None:
        fetcher = FakeDiceFetcher(api_pages=[["aa01", "aa02"]], html_cards=[], broken_details={"aa02"})
        settings = _settings(tmp_path, max_jobs=0)

        stats = await run_crawl(settings, fetcher, db)

        assert [r["id"] for r in fetch_jobs(db)] == ["aa01"]
        assert stats.errors == 1
        assert fetcher.calls.count("JOB_DETAIL") == 3

    async def test_custom_start_urls(self, tmp_path: Path, db: sqlite3.Connection) -> None:
        fetcher = FakeDiceFetcher(api_pages=[["aa01"]], html_cards=["bb03"])
        settings = _settings(tmp_path, start_urls=["https://www.dice.com/job-detail/dd07"])

        await run_crawl(settings, fetcher, db)

        records = fetch_jobs(db)
        assert [r["id"] for r in records] == ["dd07"]
        assert records[0]["company"] == "Unknown Company"
        assert fetcher.calls == ["JOB_DETAIL"]

    async def test_run_statistics_stored(self, tmp_path: Path, db: sqlite3.Connection) -> None:
        fetcher = FakeDiceFetcher(api_pages=[["aa01"]], html_cards=[])
        await run_crawl(_settings(tmp_path, scrape_job_details=False), fetcher, db)

        row = db.execute("SELECT * FROM run_statistics").fetchone()
        assert row["jobs_persisted"] == 1
        assert row["finished_at"] >= row["started_at"]

    async def test_export_json(self, tmp_path: Path, db: sqlite3.Connection) -> None:
        fetcher = FakeDiceFetcher(api_pages=[["aa01"]], html_cards=[])
        await run_crawl(_settings(tmp_path, scrape_job_details=False), fetcher, db)

        exported = json.loads(export_results_json(db))
        assert len(exported) == 1
        assert exported[0]["id"] == "aa01"
        assert exported[0]["easyApply"] is True


class TestBuildStartRequests:
    def test_default_seeds(self) -> None:
        requests = build_start_requests(CrawlInput(search_query="python"))
        assert [r.label for r in requests] == ["SEARCH_API", "SEARCH"]
        assert requests[0].key == "search-page-1"
        assert requests[1].key == "html-search-page-1"

    def test_custom_urls_routed_by_shape(self) -> None:
        requests = build_start_requests(CrawlInput(start_urls=[
            "https://www.dice.com/job-detail/abc",
            "https://www.dice.com/jobs?q=go",
        ]))
        assert [r.label for r in requests] == ["JOB_DETAIL", "SEARCH"]
