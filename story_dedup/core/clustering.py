"""
Time-windowed clustering of near-duplicate records.

Records are ordered newest first and each record is compared only with the
older records that fall inside the time window. Pairs whose shingle sets
reach the similarity threshold are merged in a union-find structure, and
the resulting connected components become clusters.

Components are transitive: two members may only be linked through a chain
of intermediate records. This lets a story whose wording drifts across
many updates stay in one cluster.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Callable, Sequence

from ..errors import ConfigError
from .selection import select_canonical
from .similarity import jaccard
from .types import Cluster, Record
from .union_find import UnionFind

logger = logging.getLogger(__name__)


class ClusterBuilder:
    """Groups records into story clusters.

    Attributes:
        time_window: Maximum effective-time gap between two compared records
        similarity_threshold: Minimum Jaccard score for two records to be joined
        selector: Function choosing the canonical member of each cluster
    """

    def __init__(
        self,
        time_window: timedelta,
        similarity_threshold: float,
        selector: Callable[[Sequence[Record]], Record] = select_canonical,
    ):
        if time_window <= timedelta(0):
            raise ConfigError(f"Time window must be positive, got {time_window}")
        if not 0.0 <= similarity_threshold <= 1.0:
            raise ConfigError(
                f"Similarity threshold must be between 0.0 and 1.0, got {similarity_threshold}"
            )
        self.time_window = time_window
        self.similarity_threshold = similarity_threshold
        self.selector = selector

    def partition(self, records: Sequence[Record]) -> list[list[Record]]:
        """Split records into connected components.

        Each component keeps input order, and components are ordered by
        their first member's input position.
        """
        if not records:
            return []

        order = sorted(range(len(records)), key=lambda i: records[i].effective_time, reverse=True)
        forest = UnionFind(len(records))
        comparisons = 0

        for pos, index_a in enumerate(order):
            record_a = records[index_a]
            if not record_a.shingles:
                continue
            for index_b in order[pos + 1 :]:
                record_b = records[index_b]
                # Times only decrease along the order, so no later record can
                # fall back inside the window.
                if record_a.effective_time - record_b.effective_time > self.time_window:
                    break
                if not record_b.shingles:
                    continue
                comparisons += 1
                if jaccard(record_a.shingles, record_b.shingles) >= self.similarity_threshold:
                    forest.union(index_a, index_b)

        groups = forest.groups()
        logger.debug(
            "Partitioned %d records into %d groups with %d comparisons",
            len(records),
            len(groups),
            comparisons,
        )
        return [[records[i] for i in group] for group in groups]

    def cluster(self, records: Sequence[Record]) -> list[Cluster]:
        """Partition records and attach a canonical member to each group."""
        clusters = []
        for members in self.partition(records):
            clusters.append(Cluster(records=tuple(members), canonical=self.selector(members)))
        return clusters
