import io
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

from rich.console import Console

from story_dedup.core.clustering import ClusterBuilder
from story_dedup.core.dedup import DedupResult
from story_dedup.core.records import RecordFactory
from story_dedup.output.console import render_clusters, render_metrics, truncate
from story_dedup.output.renderer import cluster_to_dict, render_markdown, write_ndjson

BASE = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
FACTORY = RecordFactory()


def _clusters():
    records = [
        FACTORY.build("https://mynet.com/firtina", "İstanbul'da fırtına!", seen_at=BASE + timedelta(minutes=20)),
        FACTORY.build("https://aa.com.tr/firtina?utm_source=x", "İstanbul'da fırtına", seen_at=BASE),
        FACTORY.build("https://sozcu.com.tr/kar", "Ankara'da kar yağışı", seen_at=BASE - timedelta(hours=1)),
    ]
    return ClusterBuilder(timedelta(hours=48), 0.8).cluster(records)


def test_render_markdown_lists_canonical_and_other_sources(tmp_path: Path) -> None:
    output_path = tmp_path / "report" / "stories.md"

    render_markdown(_clusters(), output_path, "New stories")

    content = output_path.read_text(encoding="utf-8")
    assert content.startswith("# New stories")
    assert "Total: 2" in content
    assert "## İstanbul'da fırtına" in content
    assert "- Source: aa.com.tr (WIRE)" in content
    assert "- Link: https://aa.com.tr/firtina" in content
    assert "- Also reported by (1):" in content
    assert "  - [mynet.com](https://mynet.com/firtina) İstanbul'da fırtına!" in content


def test_write_ndjson_one_line_per_story(tmp_path: Path) -> None:
    output_path = tmp_path / "new.ndjson"

    assert write_ndjson(_clusters(), output_path) == 2

    first = json.loads(output_path.read_text(encoding="utf-8").splitlines()[0])
    assert first["canonical"]["source_type"] == "WIRE"
    assert first["canonical"]["canonical_url"] == "https://aa.com.tr/firtina"
    assert first["canonical"]["seen_at"] == "2024-01-15T10:30:00+00:00"
    assert [m["domain"] for m in first["members"]] == ["mynet.com", "aa.com.tr"]


def test_cluster_to_dict_without_optional_fields() -> None:
    data = cluster_to_dict(_clusters()[1])

    assert data["size"] == 1
    assert data["canonical"]["published_at"] is None
    assert data["canonical"]["language"] is None


def test_console_marks_canonical_member() -> None:
    console = Console(file=io.StringIO(), width=200)

    render_clusters(_clusters(), console)

    output = console.file.getvalue()
    assert "[1] 2024-01-15 10:30 • CANONICAL (WIRE) aa.com.tr" in output
    assert "Members (2):" in output
    assert "★" in output
    assert "AGGREGATOR" in output
    assert "[2] 2024-01-15 09:30 • CANONICAL (PUBLISHER) sozcu.com.tr" in output


def test_console_prints_urls_with_brackets_verbatim() -> None:
    record = FACTORY.build("https://example.com/haber[1]?sayfa=]", "Köprü [CANLI]", seen_at=BASE)
    cluster = ClusterBuilder(timedelta(hours=48), 0.8).cluster([record])
    console = Console(file=io.StringIO(), width=200)

    render_clusters(cluster, console)

    output = console.file.getvalue()
    assert "     https://example.com/haber[1]?sayfa=]" in output
    assert "Köprü [CANLI]" in output


def test_console_can_hide_members() -> None:
    console = Console(file=io.StringIO(), width=200)

    render_clusters(_clusters(), console, show_members=False)

    assert "Members" not in console.file.getvalue()


def test_render_metrics() -> None:
    clusters = _clusters()
    console = Console(file=io.StringIO(), width=200)

    render_metrics(DedupResult(clusters=clusters, new_clusters=clusters[:1], total_records=3), console)

    output = console.file.getvalue()
    assert "Articles fetched:   3" in output
    assert "Avg items/cluster:  1.50" in output
    assert "Already seen:       1" in output


def test_truncate_long_titles() -> None:
    assert truncate("a" * 90) == "a" * 90
    assert truncate("a" * 120) == "a" * 89 + "…"
