"""Dice search URL builders (API and HTML) and pagination helpers.

Pure functions - zero browser dependency.
"""

import logging
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from src.core.config import CrawlInput
from src.core.schemas import PAGE_SIZE, SearchParams

logger = logging.getLogger(__name__)

DICE_BASE_URL = "https://www.dice.com"
DICE_API_URL = "https://job-search-api.svc.dhigroupinc.com/v1/dice/jobs/search"

# Headers the search API expects from its own web client.
DEFAULT_HEADERS: dict[str, str] = {
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Content-Type": "application/json",
    "Origin": "https://www.dice.com",
    "Referer": "https://www.dice.com/",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "x-api-key": "DHIv3.0",
}

# --- Mapping dicts (URL concern) ---

EMPLOYMENT_TYPE_MAP: dict[str, str] = {
    "FULLTIME": "Full-time",
    "PARTTIME": "Part-time",
    "CONTRACT": "Contract",
    "THIRD_PARTY": "Third Party",
}

POSTED_DATE_MAP: dict[str, int] = {
    "ONE": 1,
    "THREE": 3,
    "SEVEN": 7,
    "THIRTY": 30,
    "ANY": 0,
}

WORKPLACE_TYPE_MAP: dict[str, str] = {
    "Remote": "REMOTE",
    "On-Site": "ON_SITE",
    "Hybrid": "HYBRID",
}


def search_params_from_input(crawl_input: CrawlInput, page: int = 1) -> SearchParams:
    """Build first-page API search parameters from the run input."""
    return SearchParams(
        query=crawl_input.search_query,
        location=crawl_input.location,
        radius=crawl_input.radius,
        employment_types=tuple(crawl_input.employment_types),
        posted_date=crawl_input.posted_date,
        workplace_types=tuple(crawl_input.workplace_types),
        easy_apply=crawl_input.easy_apply,
        page=page,
        page_size=PAGE_SIZE,
    )


def build_search_api_url(params: SearchParams) -> str:
    """Build the search API query string for one page.

    Empty or default filters are omitted; page, page size, the remote flag
    and language are always present.
    """
    query: list[tuple[str, str]] = []

    if params.query:
        query.append(("q", params.query))

    if params.location:
        query.extend([
            ("location", params.location),
            ("latitude", ""),
            ("longitude", ""),
            ("countryCode2", "US"),
        ])

    if params.radius > 0:
        query.append(("radius", str(params.radius)))

    if params.employment_types:
        query.append(("employmentType", ",".join(params.employment_types)))

    if params.posted_date and params.posted_date != "ANY":
        days = POSTED_DATE_MAP.get(params.posted_date, 0)
        if days > 0:
            query.append(("postedDate", str(days)))
        else:
            logger.warning("Unknown posted_date value '%s' - skipping", params.posted_date)

    workplace_codes = _map_values(params.workplace_types, WORKPLACE_TYPE_MAP, "workplace_type")
    if workplace_codes:
        query.append(("workplaceTypes", ",".join(workplace_codes)))

    if params.easy_apply:
        query.append(("easyApply", "true"))

    query.extend([
        ("page", str(params.page)),
        ("pageSize", str(params.page_size)),
        ("filters.isRemote", "true"),
        ("language", "en"),
    ])
    return urlencode(query)


def build_api_request_url(params: SearchParams) -> str:
    """Fully qualified search API URL for one page."""
    return f"{DICE_API_URL}?{build_search_api_url(params)}"


def api_page_key(page: int) -> str:
    """De-duplication key for an API search page."""
    return f"search-page-{page}"


def html_page_key(page: int) -> str:
    """De-duplication key for an HTML search page."""
    return f"html-search-page-{page}"


def build_search_url(crawl_input: CrawlInput, page: int = 1) -> str:
    """Build the dice.com HTML search URL.

    Multi-value filters repeat their ``filters.*`` key once per value.
    """
    query: list[tuple[str, str]] = []

    if crawl_input.search_query:
        query.append(("q", crawl_input.search_query))
    if crawl_input.location:
        query.append(("location", crawl_input.location))
    if crawl_input.radius > 0:
        query.append(("radius", str(crawl_input.radius)))

    for employment_type in crawl_input.employment_types:
        query.append(("filters.employmentType", employment_type))

    if crawl_input.posted_date != "ANY":
        query.append(("filters.postedDate", crawl_input.posted_date))

    for workplace_type in crawl_input.workplace_types:
        query.append(("filters.workplaceTypes", workplace_type))

    if crawl_input.easy_apply:
        query.append(("filters.easyApply", "true"))

    query.extend([("page", str(page)), ("pageSize", str(PAGE_SIZE))])
    return f"{DICE_BASE_URL}/jobs?{urlencode(query)}"


def with_page(url: str, page: int) -> str:
    """Return ``url`` with its ``page`` query parameter set to ``page``."""
    parsed = urlparse(url)
    query = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k != "page"]
    query.append(("page", str(page)))
    return urlunparse(parsed._replace(query=urlencode(query)))


def absolute_url(href: str) -> str:
    """Prefix site-relative paths with the dice.com base URL."""
    if href.startswith("http"):
        return href
    if not href.startswith("/"):
        href = f"/{href}"
    return f"{DICE_BASE_URL}{href}"


def is_detail_url(url: str) -> bool:
    return "/job-detail/" in url


def _map_values(
    values: tuple[str, ...] | list[str],
    mapping: dict[str, str],
    field_name: str,
) -> list[str]:
    """Map user-facing filter values to API codes.

    Unknown values are logged and skipped (never crash).
    """
    codes: list[str] = []
    for v in values:
        code = mapping.get(v)
        if code is None:
            logger.warning("Unknown %s value '%s' - skipping", field_name, v)
        else:
            codes.append(code)
    return codes
