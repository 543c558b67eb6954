"""
Report rendering for Markdown and newline-delimited JSON output.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from ..core.types import Cluster, Record


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def record_to_dict(record: Record) -> dict[str, Any]:
    return {
        "url": record.url,
        "canonical_url": record.canonical_url,
        "title": record.title,
        "domain": record.domain,
        "source_type": record.source_type.name,
        "language": record.language,
        "source_country": record.source_country,
        "seen_at": _iso(record.seen_at),
        "published_at": _iso(record.published_at),
        "effective_time": _iso(record.effective_time),
    }


def cluster_to_dict(cluster: Cluster) -> dict[str, Any]:
    """Serialize a story as its canonical record plus the member records."""
    return {
        "canonical": record_to_dict(cluster.canonical),
        "size": cluster.size,
        "members": [record_to_dict(record) for record in cluster.records],
    }


def prepare_output(output_path: Path) -> Path:
    """Create the parent directory and check the file can be opened for writing.

    Existing content is left untouched. Raises OSError when the path is not
    writable.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("a", encoding="utf-8"):
        pass
    return output_path


def write_ndjson(clusters: Sequence[Cluster], output_path: Path) -> int:
    """Write one JSON object per story. Returns the number of lines written."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as f:
        for cluster in clusters:
            f.write(json.dumps(cluster_to_dict(cluster), ensure_ascii=False))
            f.write("\n")
    return len(clusters)


def render_markdown(clusters: Sequence[Cluster], output_path: Path, title: str) -> None:
    """Render stories as a Markdown report.

    Each story gets a heading with the canonical title, followed by its
    source, time, link and the other outlets that carried it.

    Args:
        clusters: Stories to render, in display order
        output_path: Path where the Markdown file will be written
        title: Report title for the top-level heading
    """
    generated_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    lines = [f"# {title}", "", f"Generated: {generated_at}", "", f"Total: {len(clusters)}", ""]
    for cluster in clusters:
        canonical = cluster.canonical
        lines.append(f"## {canonical.title}")
        lines.append(f"- Source: {canonical.domain} ({canonical.source_type.name})")
        lines.append(f"- Time: {canonical.effective_time:%Y-%m-%d %H:%M} UTC")
        lines.append(f"- Link: {canonical.canonical_url}")
        others = [record for record in cluster.records if record is not canonical]
        if others:
            lines.append(f"- Also reported by ({len(others)}):")
            for record in sorted(others, key=lambda r: r.effective_time):
                lines.append(f"  - [{record.domain}]({record.url}) {record.title}")
        lines.append("")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text("\n".join(lines), encoding="utf-8")
