from __future__ import annotations

from typing import Sequence

from rich.console import Console
from rich.markup import escape
from rich.style import Style
from rich.table import Table
from rich.text import Text

from ..core.dedup import DedupResult
from ..core.types import Cluster, Record

MAX_MEMBER_TITLE = 90


def truncate(text: str, max_length: int = MAX_MEMBER_TITLE) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"


def render_clusters(clusters: Sequence[Cluster], console: Console, show_members: bool = True) -> None:
    """Print each story with its canonical record and, optionally, its members.

    Members are listed oldest first; the canonical record is marked with ★.
    """
    for number, cluster in enumerate(clusters, start=1):
        canonical = cluster.canonical
        console.print(
            f"\n[bold][{number}][/bold] {canonical.effective_time:%Y-%m-%d %H:%M} "
            f"• CANONICAL ({canonical.source_type.name}) {escape(canonical.domain)}"
        )
        console.print(f"     {escape(canonical.title)}")
        url = canonical.canonical_url
        console.print(Text.assemble("     ", (url, Style(link=url))))

        if show_members and cluster.size > 1:
            console.print(f"     Members ({cluster.size}):")
            console.print(_members_table(cluster.records, canonical))


def _members_table(records: Sequence[Record], canonical: Record) -> Table:
    table = Table(show_header=False, box=None, padding=(0, 1), pad_edge=False)
    table.add_column(" ", width=6)
    table.add_column("Marker")
    table.add_column("Type", min_width=11)
    table.add_column("Domain", min_width=20)
    table.add_column("Time")
    table.add_column("Title")
    for record in sorted(records, key=lambda r: r.effective_time):
        table.add_row(
            "",
            "★" if record is canonical else "•",
            record.source_type.name,
            escape(record.domain),
            f"{record.effective_time:%m-%d %H:%M}",
            escape(truncate(record.title)),
        )
    return table


def render_metrics(result: DedupResult, console: Console) -> None:
    console.print("\n[bold]=== METRICS ===[/bold]")
    console.print(f"Articles fetched:   {result.total_records}")
    console.print(f"Story clusters:     {result.total_clusters}")
    console.print(f"Avg items/cluster:  {result.average_cluster_size:.2f}")
    console.print(f"New stories:        {len(result.new_clusters)}")
    console.print(f"Already seen:       {result.suppressed}")
