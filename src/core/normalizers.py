"""Text and value normalizers shared by the mapper and the extractors.

Pure functions - no I/O, never raise on malformed input.
"""

import random
import re
import string
import time
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

_ENTITIES: tuple[tuple[str, str], ...] = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")

_CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "CAD": "CA$",
    "AUD": "A$",
    "INR": "₹",
    "JPY": "¥",
}

# --- Salary patterns ---

_AMOUNT = r"\$?\s*(\d[\d,]*(?:\.\d{1,2})?)\s*([kK])?"
_SALARY_RANGE_RE = re.compile(_AMOUNT + r"\s*(?:-|–|to)\s*" + _AMOUNT)
_SALARY_SINGLE_RE = re.compile(_AMOUNT)
_SALARY_PERIOD_RE = re.compile(r"/\s*(hour|hr|year|yr|month|mo|week|wk|day)", re.IGNORECASE)

PERIOD_ALIASES: dict[str, str] = {
    "hr": "hour",
    "yr": "year",
    "mo": "month",
    "wk": "week",
}

# --- Skill keyword bank (order matters: first match order is kept) ---

_SKILL_GROUPS: tuple[str, ...] = (
    r"JavaScript|TypeScript|Python|Java|C\+\+|C#|Ruby|Go|Rust|Swift|Kotlin|PHP|Scala|R",
    r"React|Angular|Vue|Node\.js|Express|Django|Flask|Spring|Rails|Laravel",
    r"AWS|Azure|GCP|Docker|Kubernetes|Jenkins|Git|CI/CD|DevOps",
    r"SQL|MySQL|PostgreSQL|MongoDB|Redis|Elasticsearch|GraphQL|REST|API",
    r"Machine Learning|ML|AI|Data Science|Deep Learning|NLP|TensorFlow|PyTorch",
    r"Agile|Scrum|Jira|Confluence|Slack|Teams",
)
SKILL_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(rf"(?<!\w)(?:{group})(?![\w+#])", re.IGNORECASE) for group in _SKILL_GROUPS
)

_JOB_ID_RE = re.compile(r"/job-detail/([a-f0-9-]+)", re.IGNORECASE)


def clean_text(text: str | None) -> str:
    """Decode common entities, strip tags, and collapse whitespace.

    Decoding and stripping repeat until the text stops changing, so
    double-escaped input ("&amp;amp;") comes out fully decoded.
    """
    if not text:
        return ""
    previous = None
    while text != previous:
        previous = text
        for entity, replacement in _ENTITIES:
            text = text.replace(entity, replacement)
        text = _TAG_RE.sub("", text)
    return _WS_RE.sub(" ", text).strip()


def parse_timestamp(raw: Any) -> datetime | None:
    """Parse an ISO-8601 string (or epoch millis) into an aware datetime.

    Naive values are read as UTC. Returns None when unparseable.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        try:
            return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(raw, str):
        return None
    try:
        parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_epoch_millis(raw: Any) -> int | None:
    parsed = parse_timestamp(raw)
    if parsed is None:
        return None
    return int(parsed.timestamp() * 1000)


def format_posted_date(raw: str | None, now: datetime | None = None) -> str:
    """Humanize a posted date: "Today", "3 days ago", "2 weeks ago", "Jan 5, 2024".

    Unparseable input is returned unchanged.
    """
    if not raw:
        return "Unknown"
    posted = parse_timestamp(raw)
    if posted is None:
        return raw
    now = now or datetime.now(timezone.utc)
    diff_days = int((now - posted).total_seconds() // 86400)

    if diff_days <= 0:
        return "Today"
    if diff_days == 1:
        return "Yesterday"
    if diff_days < 7:
        return f"{diff_days} days ago"
    if diff_days < 30:
        weeks = diff_days // 7
        return f"{weeks} week{'s' if weeks > 1 else ''} ago"
    return f"{posted:%b} {posted.day}, {posted.year}"


def format_currency(value: float, currency: str = "USD") -> str:
    """Format an amount with no fractional digits, e.g. ``$80,000``."""
    code = (currency or "USD").upper()
    symbol = _CURRENCY_SYMBOLS.get(code, f"{code} ")
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.0f}"


def format_salary(estimate: dict[str, Any] | None) -> str | None:
    """Format a salary estimate ``{minValue, maxValue, currency, unitText}``.

    Returns None when neither bound is present. A bound of 0 counts as absent.
    """
    if not estimate:
        return None
    min_value = estimate.get("minValue")
    max_value = estimate.get("maxValue")
    if not min_value and not max_value:
        return None

    currency = estimate.get("currency") or "USD"
    unit = estimate.get("unitText")
    period = f"/{unit.lower()}" if unit else ""

    bounds = [format_currency(v, currency) for v in (min_value, max_value) if v]
    return " - ".join(bounds) + period


def _salary_value(amount: str, suffix: str | None, has_period: bool) -> float:
    value = float(amount.replace(",", ""))
    if suffix or (value < 1000 and not has_period):
        value *= 1000
    return value


def parse_salary_from_text(text: str | None) -> dict[str, Any] | None:
    """Parse "$80,000 - $120,000/year", "$50/hour", "$80K - $120K".

    Returns ``{min, max, currency, period}`` or None when no amount is found.
    Without a period marker, sub-1000 amounts are read as thousands per year.
    """
    if not text:
        return None

    period_match = _SALARY_PERIOD_RE.search(text)
    has_period = period_match is not None
    period = "year"
    if period_match:
        raw_period = period_match.group(1).lower()
        period = PERIOD_ALIASES.get(raw_period, raw_period)

    range_match = _SALARY_RANGE_RE.search(text)
    if range_match:
        low_amount, low_k, high_amount, high_k = range_match.groups()
        # "$80 - $120K": the suffix on the upper bound applies to both
        if high_k and not low_k:
            low_k = high_k
        low = _salary_value(low_amount, low_k, has_period)
        high = _salary_value(high_amount, high_k, has_period)
        return {"min": low, "max": high, "currency": "USD", "period": period}

    single_match = _SALARY_SINGLE_RE.search(text)
    if single_match:
        value = _salary_value(single_match.group(1), single_match.group(2), has_period)
        return {"min": value, "max": value, "currency": "USD", "period": period}

    return None


def extract_skills(text: str | None) -> list[str]:
    """Return known technology keywords found in text, deduplicated in match order."""
    if not text:
        return []
    skills: list[str] = []
    seen: set[str] = set()
    for pattern in SKILL_PATTERNS:
        for match in pattern.finditer(text):
            skill = match.group(0)
            key = skill.lower()
            if key not in seen:
                seen.add(key)
                skills.append(skill)
    return skills


def is_valid_url(url: str | None) -> bool:
    """Return True for absolute URLs with a scheme and host."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def extract_job_id_from_url(url: str | None) -> str | None:
    """Extract the job token from a ``/job-detail/<token>`` URL."""
    if not url:
        return None
    match = _JOB_ID_RE.search(url)
    return match.group(1) if match else None


def generate_id(prefix: str = "job") -> str:
    """Synthetic ID for listings without a source ID: ``job-<millis>-<suffix>``."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"
