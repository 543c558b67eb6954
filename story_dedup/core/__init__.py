"""
Core deduplication engine.

This package contains the pure, single-threaded parts of the pipeline:
normalization, shingling, similarity, URL canonicalization, clustering
and canonical selection. None of it performs I/O.
"""

from .clustering import ClusterBuilder
from .dedup import DedupResult, dedup_records, deduplicate, filter_new, order_clusters
from .records import RecordFactory
from .selection import select_canonical
from .similarity import are_similar, jaccard
from .text import ShingleGenerator, TextNormalizer, normalize_title
from .types import Cluster, Record, SourceTable, SourceType
from .union_find import UnionFind
from .url import UrlCanonicalizer, canonicalize_url, extract_domain

__all__ = [
    "Cluster",
    "ClusterBuilder",
    "DedupResult",
    "Record",
    "RecordFactory",
    "ShingleGenerator",
    "SourceTable",
    "SourceType",
    "TextNormalizer",
    "UnionFind",
    "UrlCanonicalizer",
    "are_similar",
    "canonicalize_url",
    "dedup_records",
    "deduplicate",
    "extract_domain",
    "filter_new",
    "jaccard",
    "normalize_title",
    "order_clusters",
    "select_canonical",
]
