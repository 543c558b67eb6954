"""
Backfill a lookback period from the GDELT API in fixed windows.

GDELT caps each response, so a window that comes back full may be missing
articles. Such a window is split in half and each half fetched again, down to
a minimum window length; below that a truncation warning is logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from ..core.types import Record
from .gdelt import GdeltClient

logger = logging.getLogger(__name__)


@dataclass
class BackfillStats:
    records: list[Record] = field(default_factory=list)
    windows: int = 0
    splits: int = 0
    truncated_windows: int = 0

    @property
    def total_fetched(self) -> int:
        return len(self.records)


def backfill(
    client: GdeltClient,
    query: str,
    lookback: timedelta,
    window: timedelta,
    *,
    min_split_window: timedelta,
    max_records: int,
    end: datetime | None = None,
) -> BackfillStats:
    """Fetch [end - lookback, end) window by window.

    Args:
        client: GDELT client
        query: GDELT query string
        lookback: Total period to cover
        window: Length of each initial window
        min_split_window: Saturated windows longer than this are split in half
        max_records: Records requested per call; a response this large is saturated
        end: End of the period (defaults to now, UTC)

    Returns:
        Stats holding all fetched records in window order
    """
    if lookback <= timedelta(0) or window <= timedelta(0):
        raise ValueError("lookback and window must be positive")
    end = end or datetime.now(timezone.utc)
    start = end - lookback
    logger.info("Backfill range %s -> %s (%s windows)", start.isoformat(), end.isoformat(), window)

    stats = BackfillStats()
    cursor = start
    while cursor < end:
        upper = min(cursor + window, end)
        _ingest_window(client, query, cursor, upper, min_split_window, max_records, stats)
        cursor = upper
    return stats


def _ingest_window(
    client: GdeltClient,
    query: str,
    start: datetime,
    end: datetime,
    min_split_window: timedelta,
    max_records: int,
    stats: BackfillStats,
) -> None:
    batch = client.fetch_range(query, start, end, max_records)
    saturated = batch.raw_count >= max_records

    if saturated and end - start > min_split_window:
        midpoint = start + (end - start) / 2
        if midpoint <= start:
            midpoint = start + timedelta(minutes=1)
        logger.info("Window saturated (%d), splitting at %s", batch.raw_count, midpoint.isoformat())
        stats.splits += 1
        _ingest_window(client, query, start, midpoint, min_split_window, max_records, stats)
        _ingest_window(client, query, midpoint, end, min_split_window, max_records, stats)
        return

    stats.windows += 1
    if saturated:
        stats.truncated_windows += 1
        logger.warning(
            "Window %s -> %s hit the API cap and cannot be split further; results may be truncated",
            start.isoformat(),
            end.isoformat(),
        )
    stats.records.extend(batch.records)
