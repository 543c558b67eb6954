from __future__ import annotations

from datetime import datetime, timezone

from .text import ShingleGenerator, TextNormalizer
from .types import Record, SourceTable
from .url import UrlCanonicalizer, extract_domain


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class RecordFactory:
    """Turns raw article fields into immutable Records.

    All derived fields (canonical URL, normalized title, shingles, source
    type, effective time) are computed here, once, at ingestion.
    """

    def __init__(
        self,
        normalizer: TextNormalizer | None = None,
        shingler: ShingleGenerator | None = None,
        canonicalizer: UrlCanonicalizer | None = None,
        sources: SourceTable | None = None,
    ):
        self.normalizer = normalizer or TextNormalizer()
        self.shingler = shingler or ShingleGenerator()
        self.canonicalizer = canonicalizer or UrlCanonicalizer()
        self.sources = sources or SourceTable()

    def build(
        self,
        url: str,
        title: str,
        *,
        domain: str | None = None,
        language: str | None = None,
        source_country: str | None = None,
        seen_at: datetime | None = None,
        published_at: datetime | None = None,
    ) -> Record:
        """Create a Record from validated raw fields.

        Raises:
            ValueError: If url or title is missing, or neither timestamp is set
        """
        if not url or not title:
            raise ValueError("Record requires both url and title")
        seen_at = _as_utc(seen_at)
        published_at = _as_utc(published_at)
        effective_time = published_at or seen_at
        if effective_time is None:
            raise ValueError(f"Record {url} has neither published_at nor seen_at")

        domain = (domain or "").strip().lower() or extract_domain(url)
        if domain.startswith("www."):
            domain = domain[4:]
        canonical_url = self.canonicalizer.canonicalize(url) or url
        normalized_title = self.normalizer.normalize(title)

        return Record(
            url=url,
            title=title,
            canonical_url=canonical_url,
            normalized_title=normalized_title,
            shingles=self.shingler.generate(normalized_title),
            source_type=self.sources.classify(domain),
            effective_time=effective_time,
            domain=domain,
            language=language,
            source_country=source_country,
            seen_at=seen_at,
            published_at=published_at,
        )
