"""Tests for text/value normalizers."""

from datetime import datetime, timedelta, timezone

import pytest

from src.core.normalizers import (
    clean_text,
    extract_job_id_from_url,
    extract_skills,
    format_currency,
    format_posted_date,
    format_salary,
    generate_id,
    is_valid_url,
    parse_salary_from_text,
    parse_timestamp,
    to_epoch_millis,
)

# ---------------------------------------------------------------------------
# clean_text
# ---------------------------------------------------------------------------


class TestCleanText:
    def test_decodes_entities(self) -> None:
        assert clean_text("Hello&nbsp;World") == "Hello World"
        assert clean_text("Tom &amp; Jerry") == "Tom & Jerry"
        assert clean_text("&quot;quoted&quot; &#39;single&#39;") == "\"quoted\" 'single'"

    def test_strips_tags(self) -> None:
        assert clean_text("<p>Hello</p>") == "Hello"
        assert clean_text("<div><span>Test</span></div>") == "Test"

    def test_collapses_whitespace(self) -> None:
        assert clean_text("  Hello   World  ") == "Hello World"
        assert clean_text("Line1\n\n\nLine2") == "Line1 Line2"
        assert clean_text("a\t\r\nb") == "a b"

    def test_empty_and_blank(self) -> None:
        assert clean_text("") == ""
        assert clean_text("   ") == ""
        assert clean_text(None) == ""

    @pytest.mark.parametrize(
        "text",
        [
            "Tom &amp; Jerry",
            "Tom &amp;amp; Jerry",
            "&amp;nbsp;x",
            "&amp;lt;b&amp;gt;bold",
            "<b>Senior</b>\n  Engineer",
            "  plain  ",
            "<ul><li>a</li><li>b</li></ul>",
        ],
    )
    def test_idempotent(self, text: str) -> None:
        once = clean_text(text)
        assert clean_text(once) == once


# ---------------------------------------------------------------------------
# format_posted_date
# ---------------------------------------------------------------------------


class TestFormatPostedDate:
    NOW = datetime(2024, 3, 20, 12, 0, tzinfo=timezone.utc)

    def _ago(self, **kwargs: float) -> str:
        return (self.NOW - timedelta(**kwargs)).isoformat()

    def test_empty_is_unknown(self) -> None:
        assert format_posted_date("") == "Unknown"
        assert format_posted_date(None) == "Unknown"

    def test_now_is_today(self) -> None:
        assert format_posted_date(datetime.now(timezone.utc).isoformat()) == "Today"

    def test_today_and_yesterday(self) -> None:
        assert format_posted_date(self._ago(hours=3), now=self.NOW) == "Today"
        assert format_posted_date(self._ago(days=1, hours=2), now=self.NOW) == "Yesterday"

    def test_days_ago(self) -> None:
        assert format_posted_date(self._ago(days=2), now=self.NOW) == "2 days ago"
        assert format_posted_date(self._ago(days=6), now=self.NOW) == "6 days ago"

    def test_weeks_ago(self) -> None:
        assert format_posted_date(self._ago(days=7), now=self.NOW) == "1 week ago"
        assert format_posted_date(self._ago(days=10), now=self.NOW) == "1 week ago"
        assert format_posted_date(self._ago(days=15), now=self.NOW) == "2 weeks ago"
        assert format_posted_date(self._ago(days=29), now=self.NOW) == "4 weeks ago"

    def test_older_dates_are_formatted(self) -> None:
        assert format_posted_date("2024-01-05T08:00:00Z", now=self.NOW) == "Jan 5, 2024"

    def test_zulu_suffix_parsed(self) -> None:
        assert format_posted_date("2024-03-20T09:00:00Z", now=self.NOW) == "Today"

    def test_unparseable_returned_unchanged(self) -> None:
        assert format_posted_date("last Tuesday") == "last Tuesday"

    def test_future_date_is_today(self) -> None:
        assert format_posted_date(self._ago(days=-2), now=self.NOW) == "Today"


class TestTimestamps:
    def test_parse_naive_as_utc(self) -> None:
        parsed = parse_timestamp("2024-01-05T10:00:00")
        assert parsed == datetime(2024, 1, 5, 10, 0, tzinfo=timezone.utc)

    def test_parse_epoch_millis(self) -> None:
        parsed = parse_timestamp(1704448800000)
        assert parsed == datetime(2024, 1, 5, 10, 0, tzinfo=timezone.utc)

    def test_parse_invalid(self) -> None:
        assert parse_timestamp("nope") is None
        assert parse_timestamp("") is None
        assert parse_timestamp(None) is None

    def test_to_epoch_millis(self) -> None:
        assert to_epoch_millis("2024-01-05T10:00:00Z") == 1704448800000
        assert to_epoch_millis("garbage") is None


# ---------------------------------------------------------------------------
# Salary
# ---------------------------------------------------------------------------


class TestFormatSalary:
    def test_range_with_unit(self) -> None:
        result = format_salary({
            "minValue": 80000,
            "maxValue": 120000,
            "currency": "USD",
            "unitText": "YEAR",
        })
        assert result == "$80,000 - $120,000/year"

    def test_single_value(self) -> None:
        result = format_salary({"minValue": 50, "currency": "USD", "unitText": "HOUR"})
        assert result == "$50/hour"

    def test_max_only(self) -> None:
        assert format_salary({"maxValue": 90000}) == "$90,000"

    def test_default_currency_usd(self) -> None:
        assert format_salary({"minValue": 1000, "maxValue": 2000}) == "$1,000 - $2,000"

    def test_other_currency(self) -> None:
        assert format_salary({"minValue": 5000, "currency": "EUR"}) == "€5,000"

    def test_absent(self) -> None:
        assert format_salary(None) is None
        assert format_salary({}) is None
        assert format_salary({"currency": "USD", "unitText": "YEAR"}) is None

    def test_zero_bounds_are_absent(self) -> None:
        assert format_salary({"minValue": 0}) is None
        assert format_salary({"minValue": 0, "maxValue": 0, "unitText": "YEAR"}) is None
        assert format_salary({"minValue": 0, "maxValue": 90000}) == "$90,000"

    def test_format_currency_rounds(self) -> None:
        assert format_currency(80000.4) == "$80,000"
        assert format_currency(1234, "XYZ") == "XYZ 1,234"


class TestParseSalaryFromText:
    def test_range_with_period(self) -> None:
        assert parse_salary_from_text("$80,000 - $120,000/year") == {
            "min": 80000,
            "max": 120000,
            "currency": "USD",
            "period": "year",
        }

    def test_hourly_single(self) -> None:
        assert parse_salary_from_text("$50/hour") == {
            "min": 50,
            "max": 50,
            "currency": "USD",
            "period": "hour",
        }

    def test_k_suffix(self) -> None:
        result = parse_salary_from_text("$80K - $120K")
        assert result is not None
        assert result["min"] == 80000
        assert result["max"] == 120000
        assert result["period"] == "year"

    def test_to_separator(self) -> None:
        result = parse_salary_from_text("$90k to $110k")
        assert result is not None
        assert (result["min"], result["max"]) == (90000, 110000)

    def test_period_abbreviation_normalized(self) -> None:
        result = parse_salary_from_text("$60 - $70/hr")
        assert result is not None
        assert result["period"] == "hour"
        assert (result["min"], result["max"]) == (60, 70)

    def test_small_value_without_period_is_thousands(self) -> None:
        result = parse_salary_from_text("$95 - $105")
        assert result is not None
        assert (result["min"], result["max"]) == (95000, 105000)
        assert result["period"] == "year"

    def test_non_numeric(self) -> None:
        assert parse_salary_from_text("Competitive") is None
        assert parse_salary_from_text("DOE") is None

    def test_empty(self) -> None:
        assert parse_salary_from_text("") is None
        assert parse_salary_from_text(None) is None


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------


class TestExtractSkills:
    def test_languages(self) -> None:
        skills = extract_skills("We need Python, JavaScript, and Java developers")
        assert "Python" in skills
        assert "JavaScript" in skills
        assert "Java" in skills

    def test_frameworks_and_cloud(self) -> None:
        skills = extract_skills("Experience with React, Django, AWS and Kubernetes")
        assert skills == ["React", "Django", "AWS", "Kubernetes"]

    def test_symbols(self) -> None:
        skills = extract_skills("Strong C++ and C# background, Node.js a plus")
        assert "C++" in skills
        assert "C#" in skills
        assert "Node.js" in skills

    def test_deduplicated_case_insensitive(self) -> None:
        skills = extract_skills("Python, python and PYTHON")
        assert skills == ["Python"]

    def test_no_partial_words(self) -> None:
        assert "Go" not in extract_skills("Google Cloud")

    def test_empty(self) -> None:
        assert extract_skills("") == []
        assert extract_skills("No relevant keywords here whatsoever") == []


# ---------------------------------------------------------------------------
# URLs and IDs
# ---------------------------------------------------------------------------


class TestUrls:
    def test_valid(self) -> None:
        assert is_valid_url("https://www.dice.com/jobs") is True
        assert is_valid_url("http://example.com") is True

    def test_invalid(self) -> None:
        assert is_valid_url("not a url") is False
        assert is_valid_url("/job-detail/abc") is False
        assert is_valid_url("") is False
        assert is_valid_url(None) is False

    def test_extract_job_id(self) -> None:
        url = "https://www.dice.com/job-detail/abc123-def456-789"
        assert extract_job_id_from_url(url) == "abc123-def456-789"

    def test_extract_job_id_trailing_path(self) -> None:
        url = "https://www.dice.com/job-detail/0f1e2d3c-4b5a/?searchlink=x"
        assert extract_job_id_from_url(url) == "0f1e2d3c-4b5a"

    def test_extract_job_id_absent(self) -> None:
        assert extract_job_id_from_url("https://www.dice.com/jobs") is None
        assert extract_job_id_from_url("") is None

    def test_generate_id_shape(self) -> None:
        job_id = generate_id()
        prefix, millis, suffix = job_id.split("-")
        assert prefix == "job"
        assert millis.isdigit()
        assert len(suffix) == 9
        assert generate_id() != job_id
