"""SQLite database layer: de-duplicating job sink and run statistics."""

import json
import re
import sqlite3
from pathlib import Path
from typing import Any

from src.core.schemas import RunStatistics

_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS jobs (
    dedup_key    TEXT    PRIMARY KEY,
    job_id       TEXT    NOT NULL,
    url          TEXT    NOT NULL,
    title        TEXT    NOT NULL DEFAULT '',
    company      TEXT    NOT NULL DEFAULT '',
    has_details  INTEGER NOT NULL DEFAULT 0,
    payload      TEXT    NOT NULL,
    scraped_at   TEXT    NOT NULL
);
"""

_RUN_STATISTICS_TABLE = """
CREATE TABLE IF NOT EXISTS run_statistics (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    jobs_found         INTEGER NOT NULL,
    jobs_scraped       INTEGER NOT NULL,
    jobs_with_details  INTEGER NOT NULL,
    jobs_persisted     INTEGER NOT NULL,
    duplicates_skipped INTEGER NOT NULL,
    errors             INTEGER NOT NULL,
    started_at         TEXT    NOT NULL,
    finished_at        TEXT    NOT NULL,
    duration_seconds   REAL    NOT NULL
);
"""

# IDs minted locally (job-<millis>...) are not stable across pipelines.
_SYNTHETIC_ID_RE = re.compile(r"^job-\d+")

# Keys that mark a record as detail-enriched.
_DETAIL_KEYS = ("description", "descriptionHtml", "skills", "benefits")


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_JOBS_TABLE)
    conn.execute(_RUN_STATISTICS_TABLE)
    conn.commit()
    return conn


def dedup_key(record: dict[str, Any]) -> str:
    """Key a record by its source ID, or by URL when the ID is synthetic."""
    job_id = record.get("id") or ""
    if job_id and not _SYNTHETIC_ID_RE.match(job_id):
        return f"id:{job_id}"
    return f"url:{record.get('url', '')}"


def has_details(record: dict[str, Any]) -> bool:
    return any(record.get(k) for k in _DETAIL_KEYS)


def insert_job(conn: sqlite3.Connection, record: dict[str, Any]) -> bool:
    """Insert a finalized record, ignoring it if its dedup key already exists.

    Returns True if a new row was inserted, False if it was a duplicate.
    """
    if not record.get("id") or not record.get("url"):
        msg = "record must have non-empty 'id' and 'url'"
        raise ValueError(msg)
    try:
        conn.execute(
            """
            INSERT INTO jobs
                (dedup_key, job_id, url, title, company, has_details, payload, scraped_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                dedup_key(record),
                record["id"],
                record["url"],
                record.get("title", ""),
                record.get("company", ""),
                int(has_details(record)),
                json.dumps(record),
                record["scrapedAt"],
            ),
        )
        conn.commit()
        return True
    except sqlite3.IntegrityError:
        return False


def count_jobs(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT COUNT(*) FROM jobs").fetchone()
    return int(row[0])


def fetch_jobs(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    """Return all stored records in insertion order."""
    rows = conn.execute("SELECT payload FROM jobs ORDER BY rowid").fetchall()
    return [json.loads(row["payload"]) for row in rows]


def insert_run_statistics(conn: sqlite3.Connection, stats: RunStatistics) -> int:
    """Record the statistics of a finished run. Returns the row ID."""
    finished_at = stats.finished_at or stats.started_at
    cursor = conn.execute(
        """
        INSERT INTO run_statistics
            (jobs_found, jobs_scraped, jobs_with_details, jobs_persisted,
             duplicates_skipped, errors, started_at, finished_at, duration_seconds)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            stats.jobs_found,
            stats.jobs_scraped,
            stats.jobs_with_details,
            stats.jobs_persisted,
            stats.duplicates_skipped,
            stats.errors,
            stats.started_at.isoformat(),
            finished_at.isoformat(),
            stats.duration_seconds,
        ),
    )
    conn.commit()
    return cursor.lastrowid or 0
