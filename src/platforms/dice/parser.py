"""Dice parsers - API results, search-page cards, and job detail pages.

Design rules:
  - Every selector lookup uses a fallback tuple (see selectors.py).
  - A field resolves through an ordered list of strategies; the first
    non-empty value wins (``first_of``).
  - Missing optional fields resolve to None, never to a placeholder. Only
    title, company, location and posted date get literal defaults.
  - No I/O here: documents arrive already fetched and parsed.
"""

import logging
import re
import time
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from bs4 import BeautifulSoup, Tag

from src.core.normalizers import (
    clean_text,
    extract_job_id_from_url,
    extract_skills,
    format_posted_date,
    format_salary,
    generate_id,
    parse_salary_from_text,
    to_epoch_millis,
)
from src.core.schemas import JobListingBasic, JobListingFull
from src.platforms.dice import selectors as sel
from src.platforms.dice.searcher import EMPLOYMENT_TYPE_MAP, absolute_url

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_DESCRIPTION_HTML = 50_000

_EXPERIENCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(\d+\+?\s*(?:years?|yrs?)(?:\s+of)?\s+experience)", re.IGNORECASE),
    re.compile(r"\b(entry[\s-]?level|junior|mid[\s-]?level|senior|lead|principal|staff)\b", re.IGNORECASE),
    re.compile(r"\b(associate|intern|executive|director|manager)\b", re.IGNORECASE),
)

_EDUCATION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(bachelor'?s?|master'?s?|ph\.?d\.?|doctorate|associate'?s?)\s*(degree)?", re.IGNORECASE),
    re.compile(r"\b(high school|ged|diploma)\b", re.IGNORECASE),
    re.compile(r"\b(bs|ba|ms|ma|mba|phd)\s+(?:in|degree)\b", re.IGNORECASE),
)


# ---------------------------------------------------------------------------
# Strategy combinator
# ---------------------------------------------------------------------------


def is_present(value: object) -> bool:
    """None, blank strings and empty collections count as missing."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set, dict)):
        return bool(value)
    return True


def first_of(*strategies: Callable[[], T | None]) -> T | None:
    """Run strategies in order and return the first present value."""
    for strategy in strategies:
        value = strategy()
        if is_present(value):
            return value
    return None


def from_basic(basic: JobListingBasic | None, field: str) -> Callable[[], Any]:
    """Strategy reading ``field`` off the carried basic record."""
    return lambda: getattr(basic, field) if basic is not None else None


def literal(value: T) -> Callable[[], T]:
    return lambda: value


# ---------------------------------------------------------------------------
# Document helpers
# ---------------------------------------------------------------------------


def select_first(root: BeautifulSoup | Tag, selectors: tuple[str, ...]) -> Tag | None:
    """Return the first element matching any selector in order."""
    for selector in selectors:
        el = root.select_one(selector)
        if el is not None:
            return el
    return None


def select_all(root: BeautifulSoup | Tag, selectors: tuple[str, ...]) -> list[Tag]:
    """Return all elements for the first selector that matches anything."""
    for selector in selectors:
        elements = root.select(selector)
        if elements:
            return elements
    return []


def text_of(root: BeautifulSoup | Tag, selectors: tuple[str, ...]) -> Callable[[], str]:
    """Strategy: cleaned text of the first selector with non-empty text."""

    def _strategy() -> str:
        for selector in selectors:
            text = clean_text(" ".join(el.get_text(" ") for el in root.select(selector)))
            if text:
                return text
        return ""

    return _strategy


def attr_of(root: BeautifulSoup | Tag, selectors: tuple[str, ...], name: str) -> Callable[[], str | None]:
    """Strategy: attribute value of the first matching element."""

    def _strategy() -> str | None:
        el = select_first(root, selectors)
        if el is None:
            return None
        value = el.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        return value.strip() if value else None

    return _strategy


def _texts(root: BeautifulSoup | Tag, selectors: tuple[str, ...]) -> list[str]:
    return [t for t in (clean_text(el.get_text(" ")) for el in select_all(root, selectors)) if t]


def _unique(items: Iterable[str]) -> list[str]:
    """Deduplicate case-insensitively, keeping first occurrence order."""
    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        key = item.lower()
        if key not in seen:
            seen.add(key)
            result.append(item)
    return result


# ---------------------------------------------------------------------------
# API results
# ---------------------------------------------------------------------------


def parse_job_from_api(api_job: dict[str, Any]) -> JobListingBasic:
    """Map one search API result to a basic listing."""
    estimate = api_job.get("salaryEstimate") or {}
    location = api_job.get("jobLocation") or {}
    raw_posted = api_job.get("postedDate") or ""
    employment_type = api_job.get("employmentType")

    workplace_type = api_job.get("workFromHomeAvailability")
    if not workplace_type and api_job.get("isRemote"):
        workplace_type = "Remote"

    return JobListingBasic(
        id=str(api_job.get("id") or api_job.get("guid") or ""),
        title=clean_text(api_job.get("title")),
        company=clean_text(api_job.get("companyName")),
        company_id=api_job.get("companyId"),
        location=clean_text(location.get("displayName")),
        salary=clean_text(api_job.get("salary")) or format_salary(estimate),
        salary_min=estimate.get("minValue"),
        salary_max=estimate.get("maxValue"),
        salary_currency=estimate.get("currency"),
        salary_period=estimate.get("unitText"),
        job_type=EMPLOYMENT_TYPE_MAP.get(employment_type) if employment_type else None,
        employment_type=employment_type,
        workplace_type=workplace_type or None,
        posted_date=format_posted_date(raw_posted),
        posted_date_timestamp=to_epoch_millis(raw_posted),
        url=absolute_url(api_job.get("detailsPageUrl") or ""),
        easy_apply=api_job.get("easyApply"),
        summary=clean_text(api_job.get("summary")) or None,
    )


def ensure_id(job: JobListingBasic) -> JobListingBasic:
    """Give a listing without a source ID one derived from its URL, else a synthetic one."""
    if job.id:
        return job
    job_id = extract_job_id_from_url(job.url) or generate_id()
    logger.debug("Job without source ID at %s - using '%s'", job.url, job_id)
    return job.model_copy(update={"id": job_id})


# ---------------------------------------------------------------------------
# HTML search results
# ---------------------------------------------------------------------------


class DiceCardParser:
    """Parses dice.com search-result cards into basic listings."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    def find_cards(self, document: BeautifulSoup) -> list[Tag]:
        """Find job cards using fallback selectors."""
        cards = select_all(document, sel.CARD_SELECTORS)
        if cards:
            logger.debug("Found %d cards", len(cards))
        return cards

    def parse_card(self, card: Tag, index: int) -> JobListingBasic | None:
        """Parse one card. IDs come from the detail URL, else ``job-<millis>-<index>``.

        Returns None for a card without a title link.
        """
        href = attr_of(card, sel.CARD_TITLE_LINK_SELECTORS, "href")()
        if not href:
            logger.debug("Card %d has no title link, skipping", index)
            return None
        url = absolute_url(href)
        job_id = extract_job_id_from_url(url) or f"job-{int(self._clock() * 1000)}-{index}"
        salary = text_of(card, sel.CARD_SALARY_SELECTORS)()

        return JobListingBasic(
            id=job_id,
            title=text_of(card, sel.CARD_TITLE_LINK_SELECTORS)(),
            company=text_of(card, sel.CARD_COMPANY_SELECTORS)(),
            location=text_of(card, sel.CARD_LOCATION_SELECTORS)(),
            salary=salary or None,
            posted_date=text_of(card, sel.CARD_POSTED_DATE_SELECTORS)(),
            url=url,
            easy_apply=card.select_one(sel.EASY_APPLY_BADGE) is not None,
        )

    @staticmethod
    def has_next_page(document: BeautifulSoup) -> bool:
        return document.select_one(sel.PAGINATION_NEXT_ENABLED) is not None

    @staticmethod
    def total_jobs(document: BeautifulSoup) -> int | None:
        """Result count shown above the cards, e.g. "1,234 jobs"."""
        el = document.select_one(sel.TOTAL_JOBS)
        if el is None:
            return None
        digits = re.sub(r"[^\d]", "", el.get_text())
        return int(digits) if digits else None


# ---------------------------------------------------------------------------
# Job detail page
# ---------------------------------------------------------------------------


def extract_experience_level(text: str | None) -> str | None:
    """Infer an experience level from free text (years, seniority, role level)."""
    if not text:
        return None
    for pattern in _EXPERIENCE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def extract_education_level(text: str | None) -> str | None:
    """Infer an education requirement from free text (degree vocabulary)."""
    if not text:
        return None
    for pattern in _EDUCATION_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0).strip()
    return None


def _location_label(document: BeautifulSoup) -> Callable[[], str]:
    """Strategy: an <li> mentioning "Location", with the label removed."""

    def _strategy() -> str:
        for el in document.select(sel.LOCATION_SELECTORS[1]):
            text = clean_text(el.get_text(" ").replace("Location", ""))
            if text:
                return text
        return ""

    return _strategy


def _posted_date(document: BeautifulSoup) -> Callable[[], str]:
    def _strategy() -> str:
        raw = " ".join(el.get_text(" ") for el in select_all(document, sel.POSTED_DATE_SELECTORS))
        return clean_text(raw.replace("Posted", ""))

    return _strategy


def extract_job_details(
    document: BeautifulSoup,
    job_basic: JobListingBasic | None,
    url: str,
) -> JobListingFull:
    """Build a full listing from a detail page, falling back to the basic record.

    Per field: page selector, secondary selector/pattern, basic record,
    then (identity fields only) a literal default.
    """
    basic = job_basic

    title = first_of(
        text_of(document, sel.TITLE_SELECTORS),
        from_basic(basic, "title"),
        literal("Unknown Title"),
    )
    company = first_of(
        text_of(document, sel.COMPANY_SELECTORS),
        from_basic(basic, "company"),
        literal("Unknown Company"),
    )
    location = first_of(
        text_of(document, sel.LOCATION_SELECTORS[:1]),
        _location_label(document),
        from_basic(basic, "location"),
        literal("Unknown Location"),
    )
    posted_date = first_of(
        _posted_date(document),
        from_basic(basic, "posted_date"),
        literal("Unknown"),
    )

    # Parsed bounds come from the page only; without a page salary the
    # basic record's bounds stand.
    page_salary = text_of(document, sel.SALARY_SELECTORS)()
    salary = first_of(literal(page_salary), from_basic(basic, "salary"))
    salary_data = parse_salary_from_text(page_salary) or {}

    description_el = select_first(document, sel.DESCRIPTION_SELECTORS)
    description_html = description_el.decode_contents() if description_el is not None else ""
    description = clean_text(description_el.get_text(" ")) if description_el is not None else ""
    if len(description_html) >= MAX_DESCRIPTION_HTML:
        logger.debug("Dropping description HTML (%d chars) for %s", len(description_html), url)
        description_html = ""

    skills = _unique(_texts(document, sel.SKILL_SELECTORS) + extract_skills(description))
    benefits = _texts(document, sel.BENEFIT_SELECTORS)

    easy_apply = first_of(
        lambda: True if document.select_one(sel.EASY_APPLY_BADGE) is not None else None,
        from_basic(basic, "easy_apply"),
    )

    return JobListingFull(
        id=first_of(
            from_basic(basic, "id"),
            lambda: extract_job_id_from_url(url),
            generate_id,
        ),
        title=title,
        company=company,
        company_id=first_of(from_basic(basic, "company_id")),
        location=location,
        salary=salary,
        salary_min=first_of(lambda: salary_data.get("min"), from_basic(basic, "salary_min")),
        salary_max=first_of(lambda: salary_data.get("max"), from_basic(basic, "salary_max")),
        salary_currency=first_of(
            lambda: salary_data.get("currency"), from_basic(basic, "salary_currency"),
        ),
        salary_period=first_of(lambda: salary_data.get("period"), from_basic(basic, "salary_period")),
        job_type=first_of(text_of(document, sel.JOB_TYPE_SELECTORS), from_basic(basic, "job_type")),
        employment_type=first_of(from_basic(basic, "employment_type")),
        workplace_type=first_of(
            text_of(document, sel.WORKPLACE_TYPE_SELECTORS), from_basic(basic, "workplace_type"),
        ),
        posted_date=posted_date,
        posted_date_timestamp=first_of(from_basic(basic, "posted_date_timestamp")),
        url=first_of(literal(url), from_basic(basic, "url")),
        easy_apply=easy_apply,
        summary=first_of(from_basic(basic, "summary")),
        description=description or None,
        description_html=description_html or None,
        skills=skills or None,
        benefits=benefits or None,
        experience_level=first_of(
            text_of(document, sel.EXPERIENCE_LEVEL_SELECTORS),
            lambda: extract_experience_level(description),
        ),
        education_level=first_of(
            text_of(document, sel.EDUCATION_LEVEL_SELECTORS),
            lambda: extract_education_level(description),
        ),
        company_description=text_of(document, sel.COMPANY_DESCRIPTION_SELECTORS)() or None,
        company_logo=attr_of(document, sel.COMPANY_LOGO_SELECTORS, "src")(),
        application_url=attr_of(document, sel.APPLY_BUTTON_SELECTORS, "href")(),
    )
