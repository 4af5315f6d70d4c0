"""Persistence boundary: the single de-duplicating sink for finalized records.

Both seed pipelines (API and HTML) write here; a record whose dedup key is
already stored is dropped.
"""

import logging
import sqlite3
from typing import Any, Protocol

from src.core.db import dedup_key, insert_job
from src.core.schemas import RunStatistics

logger = logging.getLogger(__name__)


class JobSink(Protocol):
    async def persist(self, record: dict[str, Any]) -> bool: ...


class SqliteJobSink:
    """Writes records to the ``jobs`` table and keeps run counters current."""

    def __init__(self, conn: sqlite3.Connection, stats: RunStatistics) -> None:
        self._conn = conn
        self._stats = stats

    async def persist(self, record: dict[str, Any]) -> bool:
        """Store one record. Returns False for duplicates."""
        if insert_job(self._conn, record):
            self._stats.jobs_persisted += 1
            return True
        self._stats.duplicates_skipped += 1
        logger.debug("Duplicate job skipped: %s", dedup_key(record))
        return False
