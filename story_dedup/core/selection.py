"""
Canonical representative selection.

The canonical record of a cluster is the most authoritative source that
reported first: WIRE beats PUBLISHER beats AGGREGATOR regardless of time,
and within one source type the earliest effective time wins.
"""

from __future__ import annotations

from typing import Iterable

from ..errors import EmptyClusterError
from .types import Record


def canonical_key(record: Record) -> tuple:
    """Sort key for canonical selection; smaller is better.

    Equal priority and equal time fall back to canonical URL and then raw
    URL, so the choice never depends on the order members are given in.
    """
    return (
        record.source_type.priority,
        record.effective_time,
        record.canonical_url,
        record.url,
    )


def select_canonical(records: Iterable[Record]) -> Record:
    """Pick the representative of a group of records.

    Raises:
        EmptyClusterError: If records is empty
    """
    members = list(records)
    if not members:
        raise EmptyClusterError("Cannot select a canonical record from an empty cluster")
    return min(members, key=canonical_key)
