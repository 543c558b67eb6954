"""
Cross-run ledger of canonical URLs that were already emitted.

The ledger is the only state that outlives a run. Each run prunes entries
older than the retention window, loads the rest into memory, and records
newly emitted canonical URLs as it filters clusters.

Two implementations are provided:
- SqliteSeenLedger: Persistent ledger backed by a local SQLite file
- MemorySeenLedger: Process-local ledger for dry runs and tests
"""

from __future__ import annotations

import logging
import sqlite3
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from pathlib import Path
from typing import Iterable

from .core.types import Record
from .errors import LedgerError

logger = logging.getLogger(__name__)

_CREATE_SEEN_SQL = """
CREATE TABLE IF NOT EXISTS seen_urls (
    canonical_url TEXT PRIMARY KEY,
    first_seen INTEGER NOT NULL
)
"""

_CREATE_ARTICLES_SQL = """
CREATE TABLE IF NOT EXISTS articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL,
    title TEXT NOT NULL,
    domain TEXT NOT NULL,
    language TEXT,
    source_country TEXT,
    seen_at TEXT,
    published_at TEXT,
    canonical_url TEXT NOT NULL,
    source_type TEXT NOT NULL,
    stored_at INTEGER NOT NULL
)
"""


def now_millis() -> int:
    return int(time.time() * 1000)


class SeenLedger(ABC):
    """Storage contract for canonical URLs already emitted.

    Implementations must make upsert insert-if-absent so the first-seen
    timestamp of a URL is recorded exactly once.
    """

    @abstractmethod
    def load_all(self) -> dict[str, int]:
        """Return every entry as canonical_url -> first-seen epoch millis."""
        raise NotImplementedError

    @abstractmethod
    def prune(self, retention: timedelta, now: int | None = None) -> int:
        """Delete entries first seen before now - retention.

        Returns:
            Number of entries removed
        """
        raise NotImplementedError

    @abstractmethod
    def upsert(self, canonical_url: str, epoch_millis: int) -> None:
        """Insert the URL unless it is already present."""
        raise NotImplementedError

    def save_records(self, records: Iterable[Record]) -> int:
        """Archive emitted records. Ledgers without an archive ignore this."""
        return 0

    def close(self) -> None:
        return None

    def __enter__(self) -> "SeenLedger":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class MemorySeenLedger(SeenLedger):
    def __init__(self, entries: dict[str, int] | None = None):
        self.entries: dict[str, int] = dict(entries or {})
        self.archived: list[Record] = []

    def load_all(self) -> dict[str, int]:
        return dict(self.entries)

    def prune(self, retention: timedelta, now: int | None = None) -> int:
        cutoff = (now_millis() if now is None else now) - _millis(retention)
        stale = [url for url, first_seen in self.entries.items() if first_seen < cutoff]
        for url in stale:
            del self.entries[url]
        return len(stale)

    def upsert(self, canonical_url: str, epoch_millis: int) -> None:
        self.entries.setdefault(canonical_url, epoch_millis)

    def save_records(self, records: Iterable[Record]) -> int:
        batch = list(records)
        self.archived.extend(batch)
        return len(batch)


class SqliteSeenLedger(SeenLedger):
    """SQLite-backed ledger with an optional article archive.

    Every sqlite3 failure is re-raised as LedgerError: a run must not
    continue without a reliable view of what was already emitted.
    """

    def __init__(self, path: str | Path, archive: bool = True):
        self.path = Path(path)
        self.archive = archive
        try:
            if str(self.path) != ":memory:":
                self.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.path))
            self._conn.execute("PRAGMA busy_timeout=5000")
            with self._conn:
                self._conn.execute(_CREATE_SEEN_SQL)
                self._conn.execute(_CREATE_ARTICLES_SQL)
        except (sqlite3.Error, OSError) as exc:
            raise LedgerError(f"Failed to open ledger at {self.path}: {exc}") from exc

    def load_all(self) -> dict[str, int]:
        try:
            rows = self._conn.execute("SELECT canonical_url, first_seen FROM seen_urls").fetchall()
        except sqlite3.Error as exc:
            raise LedgerError(f"Failed to load seen URLs: {exc}") from exc
        return {url: int(first_seen) for url, first_seen in rows}

    def prune(self, retention: timedelta, now: int | None = None) -> int:
        cutoff = (now_millis() if now is None else now) - _millis(retention)
        try:
            with self._conn:
                cursor = self._conn.execute("DELETE FROM seen_urls WHERE first_seen < ?", (cutoff,))
        except sqlite3.Error as exc:
            raise LedgerError(f"Failed to prune seen URLs: {exc}") from exc
        logger.debug("Pruned %d ledger entries older than %d", cursor.rowcount, cutoff)
        return cursor.rowcount

    def upsert(self, canonical_url: str, epoch_millis: int) -> None:
        try:
            with self._conn:
                self._conn.execute(
                    "INSERT OR IGNORE INTO seen_urls(canonical_url, first_seen) VALUES (?, ?)",
                    (canonical_url, epoch_millis),
                )
        except sqlite3.Error as exc:
            raise LedgerError(f"Failed to record {canonical_url}: {exc}") from exc

    def save_records(self, records: Iterable[Record]) -> int:
        if not self.archive:
            return 0
        stored_at = now_millis()
        rows = [
            (
                record.url,
                record.title,
                record.domain,
                record.language,
                record.source_country,
                record.seen_at.isoformat() if record.seen_at else None,
                record.published_at.isoformat() if record.published_at else None,
                record.canonical_url,
                record.source_type.name,
                stored_at,
            )
            for record in records
        ]
        if not rows:
            return 0
        try:
            with self._conn:
                self._conn.executemany(
                    """
                    INSERT INTO articles (
                        url, title, domain, language, source_country,
                        seen_at, published_at, canonical_url, source_type, stored_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )
        except sqlite3.Error as exc:
            raise LedgerError(f"Failed to archive records: {exc}") from exc
        return len(rows)

    def count_archived(self) -> int:
        try:
            (count,) = self._conn.execute("SELECT COUNT(*) FROM articles").fetchone()
        except sqlite3.Error as exc:
            raise LedgerError(f"Failed to count archived records: {exc}") from exc
        return int(count)

    def close(self) -> None:
        self._conn.close()


def _millis(duration: timedelta) -> int:
    return int(duration.total_seconds() * 1000)
