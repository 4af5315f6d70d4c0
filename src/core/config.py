"""Configuration models and YAML loader for the Dice jobs crawler."""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from src.core.normalizers import is_valid_url

EmploymentType = Literal["FULLTIME", "PARTTIME", "CONTRACT", "THIRD_PARTY"]
PostedDate = Literal["ONE", "THREE", "SEVEN", "THIRTY", "ANY"]
WorkplaceType = Literal["Remote", "On-Site", "Hybrid"]


class ProxyConfig(BaseModel):
    """Proxy settings handed to the browser as-is."""

    server: str
    username: str | None = None
    password: str | None = None


class CrawlInput(BaseModel):
    """Validated run input: search filters, limits and start URLs."""

    search_query: str = ""
    location: str = ""
    radius: int = Field(default=30, ge=0, le=500)
    employment_types: list[EmploymentType] = Field(default_factory=list)
    posted_date: PostedDate = "ANY"
    workplace_types: list[WorkplaceType] = Field(default_factory=list)
    easy_apply: bool = False
    max_jobs: int = Field(default=100, ge=0, le=10000)
    max_concurrency: int = Field(default=10, ge=1, le=50)
    scrape_job_details: bool = True
    proxy: ProxyConfig | None = None
    start_urls: list[str] = Field(default_factory=list)

    @field_validator("search_query", "location")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("start_urls")
    @classmethod
    def urls_well_formed(cls, v: list[str]) -> list[str]:
        for url in v:
            if not is_valid_url(url):
                msg = f"invalid start URL: {url!r}"
                raise ValueError(msg)
        return v


class BrowserConfig(BaseModel):
    """Browser session configuration."""

    headless: bool = True
    cookies_path: str | None = None
    timeout_ms: int = Field(default=60000, ge=1000)


class CrawlerConfig(BaseModel):
    """Request scheduling: retries, pacing."""

    max_request_retries: int = Field(default=3, ge=0, le=10)
    retry_backoff_s: float = Field(default=1.0, ge=0.0)
    requests_per_second: float = Field(default=2.0, ge=0.0)
    min_delay_s: float = Field(default=0.0, ge=0.0)
    max_delay_s: float = Field(default=0.0, ge=0.0)


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/jobs.db"


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    input: CrawlInput = Field(default_factory=CrawlInput)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    crawler: CrawlerConfig = Field(default_factory=CrawlerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
