"""
Presentation of deduplication results.

Console rendering uses rich; file outputs are a Markdown report and
newline-delimited JSON of newly emitted stories.
"""

from .console import render_clusters, render_metrics
from .renderer import cluster_to_dict, render_markdown, write_ndjson

__all__ = [
    "cluster_to_dict",
    "render_clusters",
    "render_markdown",
    "render_metrics",
    "write_ndjson",
]
