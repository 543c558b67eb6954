"""
Story deduplication using shingle clustering and a cross-run seen ledger.

This module ties the engine together:
1. Cluster records into stories (time-windowed union-find)
2. Order stories by their canonical record, most recent first
3. Drop stories whose canonical URL was already emitted, recording the new ones
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence

from .clustering import ClusterBuilder
from .types import Cluster, Record

if TYPE_CHECKING:
    from ..ledger import SeenLedger

logger = logging.getLogger(__name__)


@dataclass
class DedupResult:
    """Outcome of one deduplication pass.

    Attributes:
        clusters: Every story built from the batch, most recent first
        new_clusters: Stories whose canonical URL had not been emitted before
        total_records: Number of records in the batch
    """

    clusters: list[Cluster] = field(default_factory=list)
    new_clusters: list[Cluster] = field(default_factory=list)
    total_records: int = 0

    @property
    def total_clusters(self) -> int:
        return len(self.clusters)

    @property
    def average_cluster_size(self) -> float:
        if not self.clusters:
            return 0.0
        return self.total_records / len(self.clusters)

    @property
    def suppressed(self) -> int:
        return len(self.clusters) - len(self.new_clusters)

    @property
    def is_empty(self) -> bool:
        return self.total_records == 0


def order_clusters(clusters: Sequence[Cluster]) -> list[Cluster]:
    """Sort by canonical effective time descending, then canonical URL."""
    by_url = sorted(clusters, key=lambda c: c.canonical.canonical_url)
    return sorted(by_url, key=lambda c: c.canonical.effective_time, reverse=True)


def dedup_records(records: Sequence[Record], builder: ClusterBuilder) -> list[Cluster]:
    """Cluster a batch of records and order the resulting stories.

    Args:
        records: Enriched records from one batch
        builder: Configured cluster builder

    Returns:
        Stories ordered most recent canonical first
    """
    clusters = order_clusters(builder.cluster(records))
    logger.debug("Built %d clusters from %d records", len(clusters), len(records))
    return clusters


def filter_new(
    clusters: Sequence[Cluster],
    seen: dict[str, int],
    ledger: SeenLedger,
    now: int | None = None,
) -> list[Cluster]:
    """Keep clusters whose canonical URL is absent from the seen map.

    Newly kept URLs are added to seen and upserted into the ledger right
    away, so a URL repeated later in the same batch is caught too.

    Args:
        clusters: Ordered stories from dedup_records
        seen: canonical_url -> first-seen millis, loaded from the ledger; updated in place
        ledger: Ledger receiving new entries
        now: Epoch millis to record as first-seen (defaults to the current time)

    Returns:
        The new clusters, in input order
    """
    stamp = int(time.time() * 1000) if now is None else now
    fresh: list[Cluster] = []
    for cluster in clusters:
        key = cluster.canonical.canonical_url
        if key in seen:
            continue
        seen[key] = stamp
        ledger.upsert(key, stamp)
        fresh.append(cluster)
    if len(fresh) != len(clusters):
        logger.debug("Filtered %d previously seen clusters", len(clusters) - len(fresh))
    return fresh


def deduplicate(
    records: Sequence[Record],
    builder: ClusterBuilder,
    seen: dict[str, int],
    ledger: SeenLedger,
    now: int | None = None,
) -> DedupResult:
    clusters = dedup_records(records, builder)
    return DedupResult(
        clusters=clusters,
        new_clusters=filter_new(clusters, seen, ledger, now),
        total_records=len(records),
    )
