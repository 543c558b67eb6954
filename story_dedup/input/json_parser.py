"""JSON parser for GDELT DOC API article lists.

This module parses GDELT ``artlist`` payloads into Record objects. The format uses:
- An ``articles`` (or ``artlist``) array of article objects
- Per-article fields url, title, domain, language, sourcecountry, seendate
  and an optional publish date, with a few alternate field names
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

from ..config import InputConfig
from ..core.records import RecordFactory
from ..core.types import Record

logger = logging.getLogger(__name__)

ISTANBUL_TZ = ZoneInfo("Europe/Istanbul")

_URL_FIELDS = ("url", "urlMobile", "link")
_TITLE_FIELDS = ("title", "titleMobile")
_LANGUAGE_FIELDS = ("language", "sourcelang")
_SEEN_FIELDS = ("seendate", "date")
_PUBLISHED_FIELDS = ("publishdate", "published")


def extract_items(data: Any) -> list[dict[str, Any]]:
    """Return the article array of a payload, or an empty list."""
    if not isinstance(data, dict):
        return []
    for key in ("articles", "artlist"):
        items = data.get(key)
        if isinstance(items, list):
            return [item for item in items if isinstance(item, dict)]
    return []


def parse_gdelt_json(
    data: Any,
    factory: RecordFactory,
    input_cfg: InputConfig | None = None,
) -> list[Record]:
    """Parse a GDELT JSON payload into a list of Records.

    The GDELT artlist structure:
        {
            "articles": [
                {
                    "url": "https://www.aa.com.tr/tr/gundem/...",
                    "title": "İstanbul'da fırtına",
                    "seendate": "20240115T103000Z",
                    "domain": "aa.com.tr",
                    "language": "Turkish",
                    "sourcecountry": "Turkey"
                }
            ]
        }

    Args:
        data: The parsed JSON content
        factory: Factory computing canonical URL, shingles and source type
        input_cfg: Length bounds for titles and URLs

    Returns:
        Records in payload order. Items missing url, title or a usable
        timestamp, or exceeding the length bounds, are skipped with a warning.
    """
    input_cfg = input_cfg or InputConfig()
    records: list[Record] = []

    for index, item in enumerate(extract_items(data)):
        url = _first_field(item, _URL_FIELDS)
        title = _first_field(item, _TITLE_FIELDS)

        if not url or not title:
            logger.warning("Skipping item %d: missing required fields (url or title)", index)
            continue
        if len(title) > input_cfg.max_title_length or len(url) > input_cfg.max_url_length:
            logger.warning("Skipping item %d: title or url exceeds length limit", index)
            continue

        seen_at = parse_timestamp(_first_field(item, _SEEN_FIELDS))
        published_at = parse_timestamp(_first_field(item, _PUBLISHED_FIELDS))
        if seen_at is None and published_at is None:
            logger.warning("Skipping %s: no parseable timestamp", url)
            continue

        try:
            record = factory.build(
                url,
                title,
                domain=_first_field(item, ("domain",)),
                language=_first_field(item, _LANGUAGE_FIELDS),
                source_country=_first_field(item, ("sourcecountry",)),
                seen_at=seen_at,
                published_at=published_at,
            )
        except ValueError as exc:
            logger.warning("Skipping %s: %s", url, exc)
            continue
        records.append(record)

    return records


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a GDELT timestamp into an aware UTC datetime.

    Accepted formats:
    - ``20240115T103000Z`` (GDELT compact, UTC)
    - ``2024-01-15 13:30:00`` (local Istanbul time)
    - ISO 8601, naive values taken as UTC

    Returns None for empty or unparseable values.
    """
    if not value:
        return None
    text = value.strip()
    try:
        if len(text) == 16 and text[8] == "T" and text.endswith("Z"):
            parsed = datetime.strptime(text, "%Y%m%dT%H%M%SZ").replace(tzinfo=timezone.utc)
        elif len(text) == 19 and text[10] == " ":
            parsed = datetime.strptime(text, "%Y-%m-%d %H:%M:%S").replace(tzinfo=ISTANBUL_TZ)
        else:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
    except ValueError:
        return None
    return parsed.astimezone(timezone.utc)


def _first_field(item: dict[str, Any], names: tuple[str, ...]) -> str | None:
    for name in names:
        value = item.get(name)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None
