"""Core data models: search parameters, job listings, crawl requests, run stats."""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PAGE_SIZE = 100


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_now() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. ``2024-01-05T10:00:00.000Z``."""
    return utc_now().isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SearchParams(BaseModel):
    """Filters for one search API page.

    Frozen - the next page is a copy with ``page`` incremented.
    """

    model_config = ConfigDict(frozen=True)

    query: str = ""
    location: str = ""
    radius: int = Field(default=30, ge=0, le=500)
    employment_types: tuple[str, ...] = ()
    posted_date: str = "ANY"
    workplace_types: tuple[str, ...] = ()
    easy_apply: bool = False
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=PAGE_SIZE, ge=1)

    def next_page(self) -> "SearchParams":
        return self.model_copy(update={"page": self.page + 1})


class JobListingBasic(BaseModel):
    """A listing as seen on a search page or API result, before detail enrichment.

    Serialized with camelCase keys; absent optional fields are omitted.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str = ""
    company: str = ""
    company_id: str | None = None
    location: str = ""
    salary: str | None = None
    salary_min: float | None = None
    salary_max: float | None = None
    salary_currency: str | None = None
    salary_period: str | None = None
    job_type: str | None = None
    employment_type: str | None = None
    workplace_type: str | None = None
    posted_date: str = "Unknown"
    posted_date_timestamp: int | None = None
    url: str
    easy_apply: bool | None = None
    summary: str | None = None

    def to_record(self, scraped_at: str | None = None, **extra: Any) -> dict[str, Any]:
        """Finalize for persistence: stamp ``scrapedAt`` and dump camelCase."""
        record = self.model_dump(by_alias=True, exclude_none=True)
        record.update(extra)
        record["scrapedAt"] = scraped_at or iso_now()
        return record


class JobListingFull(JobListingBasic):
    """Basic listing merged with detail-page extraction."""

    description: str | None = None
    description_html: str | None = None
    skills: list[str] | None = None
    benefits: list[str] | None = None
    experience_level: str | None = None
    education_level: str | None = None
    company_description: str | None = None
    company_logo: str | None = None
    application_url: str | None = None
    error: str | None = None
    scraped_at: str = Field(default_factory=iso_now)

    def to_record(self, scraped_at: str | None = None, **extra: Any) -> dict[str, Any]:
        record = self.model_dump(by_alias=True, exclude_none=True)
        record.update(extra)
        return record


# --- Crawl requests (tagged by label) ---


class _BaseRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    unique_key: str | None = None

    @property
    def key(self) -> str:
        return self.unique_key or self.url


class SearchApiRequest(_BaseRequest):
    label: Literal["SEARCH_API"] = "SEARCH_API"
    search_params: SearchParams


class SearchHtmlRequest(_BaseRequest):
    label: Literal["SEARCH"] = "SEARCH"
    page: int = 1


class JobDetailRequest(_BaseRequest):
    label: Literal["JOB_DETAIL"] = "JOB_DETAIL"
    job_basic: JobListingBasic | None = None


CrawlRequest = Annotated[
    SearchApiRequest | SearchHtmlRequest | JobDetailRequest,
    Field(discriminator="label"),
]


class RunStatistics(BaseModel):
    """Counters for one crawl run."""

    jobs_found: int = 0
    jobs_scraped: int = 0
    jobs_with_details: int = 0
    jobs_persisted: int = 0
    duplicates_skipped: int = 0
    errors: int = 0
    started_at: datetime = Field(default_factory=utc_now)
    finished_at: datetime | None = None

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at or utc_now()
        return (end - self.started_at).total_seconds()
