"""
Core data types for the story deduplication engine.

This module defines the value objects that flow through the pipeline:
- SourceType: Classification of a news source with its canonical priority
- Record: One ingested article with its derived comparison fields
- Cluster: A group of near-duplicate records with one canonical member
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..errors import EmptyClusterError


class SourceType(Enum):
    """Kind of news source, ordered by how authoritative it is.

    Lower priority numbers win canonical selection:
    WIRE (1) > PUBLISHER (2) > AGGREGATOR (3).
    """

    WIRE = 1
    PUBLISHER = 2
    AGGREGATOR = 3

    @property
    def priority(self) -> int:
        return self.value


DEFAULT_WIRE_DOMAINS = frozenset({"aa.com.tr", "iha.com.tr", "dha.com.tr", "anka.com.tr"})
DEFAULT_AGGREGATOR_DOMAINS = frozenset(
    {
        "ensonhaber.com",
        "haberler.com",
        "haber7.com",
        "mynet.com",
        "internethaber.com",
        "sondakika.com",
        "gazeteoku.com",
    }
)


@dataclass(frozen=True)
class SourceTable:
    """Static lookup from domain to SourceType.

    Unmatched or empty domains default to PUBLISHER.
    """

    wire: frozenset[str] = DEFAULT_WIRE_DOMAINS
    aggregator: frozenset[str] = DEFAULT_AGGREGATOR_DOMAINS

    def classify(self, domain: str | None) -> SourceType:
        if not domain:
            return SourceType.PUBLISHER
        key = domain.lower()
        if key in self.wire:
            return SourceType.WIRE
        if key in self.aggregator:
            return SourceType.AGGREGATOR
        return SourceType.PUBLISHER


@dataclass(frozen=True)
class Record:
    """An ingested article with derived comparison fields.

    Records are immutable: the derived fields are computed once by
    RecordFactory and never change afterwards.

    Attributes:
        url: The article URL as received
        title: The article headline as received
        canonical_url: Tracking-free URL used as the dedup key (falls back to url)
        normalized_title: Case-folded, punctuation- and stop-word-free title
        shingles: Character n-grams of normalized_title (may be empty)
        source_type: Authority class derived from domain
        effective_time: published_at if present, otherwise seen_at
        domain: Source domain without "www."
        language: Optional source language
        source_country: Optional source country
        seen_at: When the upstream feed first saw the article
        published_at: When the publisher dated the article
    """

    url: str
    title: str
    canonical_url: str
    normalized_title: str
    shingles: frozenset[str]
    source_type: SourceType
    effective_time: datetime
    domain: str = ""
    language: str | None = None
    source_country: str | None = None
    seen_at: datetime | None = None
    published_at: datetime | None = None


@dataclass(frozen=True)
class Cluster:
    """A non-empty group of transitively similar records.

    Members keep the order they had in the input batch. The canonical
    record must be one of the members.
    """

    records: tuple[Record, ...]
    canonical: Record
    size: int = field(init=False)

    def __post_init__(self) -> None:
        if not self.records:
            raise EmptyClusterError("Cluster must contain at least one record")
        if self.canonical not in self.records:
            raise ValueError("Canonical record must be a member of the cluster")
        object.__setattr__(self, "size", len(self.records))
