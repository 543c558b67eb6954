"""
Main pipeline orchestration for story deduplication.

This module coordinates one run:
1. Check the output targets, then open the seen ledger, prune expired
   entries and load the rest
2. Ingest records from an input file or the GDELT API (optionally backfilled)
3. Cluster records into stories and pick a canonical record per story
4. Drop stories already emitted by an earlier run and record the new ones
5. Archive new story members and render the outputs

A dry run uses an in-memory copy of the ledger, so nothing is persisted.
"""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import httpx
from rich.console import Console

from .config import AppConfig, format_duration
from .core.clustering import ClusterBuilder
from .core.dedup import DedupResult, deduplicate
from .core.records import RecordFactory
from .core.text import ShingleGenerator, TextNormalizer
from .core.types import Record, SourceTable
from .core.url import UrlCanonicalizer
from .errors import ConfigError, InputError, OutputError
from .fetch.backfill import backfill
from .fetch.gdelt import GdeltClient
from .input.json_parser import parse_gdelt_json
from .ledger import MemorySeenLedger, SeenLedger, SqliteSeenLedger, now_millis
from .output.console import render_clusters, render_metrics
from .output.renderer import prepare_output, render_markdown, write_ndjson
from .utils.logging import log_event, setup_logging


def build_factory(cfg: AppConfig) -> RecordFactory:
    """Create the record factory from the language, url and source settings."""
    return RecordFactory(
        normalizer=TextNormalizer(
            locale=cfg.language.locale,
            stop_words=cfg.language.stop_words,
            fold_accents=cfg.language.fold_diacritics,
        ),
        shingler=ShingleGenerator(cfg.clustering.shingle_size),
        canonicalizer=UrlCanonicalizer(cfg.urls.tracking_params, cfg.urls.tracking_prefixes),
        sources=SourceTable(
            wire=frozenset(d.lower() for d in cfg.sources.wire_domains),
            aggregator=frozenset(d.lower() for d in cfg.sources.aggregator_domains),
        ),
    )


def build_cluster_builder(cfg: AppConfig) -> ClusterBuilder:
    return ClusterBuilder(cfg.clustering.time_window, cfg.clustering.similarity_threshold)


def open_ledger(cfg: AppConfig, dry_run: bool = False) -> SeenLedger:
    """Open the configured ledger.

    For a dry run the on-disk entries (if any) are copied into a
    MemorySeenLedger and the file is closed again.
    """
    if not dry_run:
        return SqliteSeenLedger(cfg.ledger.path, archive=cfg.ledger.archive_records)
    path = Path(cfg.ledger.path)
    if not path.exists():
        return MemorySeenLedger()
    with SqliteSeenLedger(path, archive=False) as disk:
        return MemorySeenLedger(disk.load_all())


def load_input_records(input_path: Path, factory: RecordFactory, cfg: AppConfig) -> list[Record]:
    """Read a GDELT-shaped JSON file into records."""
    try:
        data = json.loads(input_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise InputError(f"Cannot read input file {input_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise InputError(f"Input file {input_path} is not valid JSON: {exc}") from exc
    return parse_gdelt_json(data, factory, cfg.input)


def fetch_records(
    cfg: AppConfig,
    factory: RecordFactory,
    query: str | None = None,
    lookback: timedelta | None = None,
    window: timedelta | None = None,
    transport: httpx.BaseTransport | None = None,
) -> list[Record]:
    """Fetch records from GDELT, either the latest timespan or a backfilled range."""
    query = query or cfg.gdelt.query
    with GdeltClient(cfg.gdelt, factory, cfg.input, transport=transport) as client:
        if lookback is None:
            return client.fetch(query, cfg.gdelt.timespan, cfg.gdelt.max_records).records
        stats = backfill(
            client,
            query,
            lookback,
            window or lookback,
            min_split_window=cfg.gdelt.min_split_window,
            max_records=cfg.gdelt.max_records,
        )
        return stats.records


def run_pipeline(
    cfg: AppConfig,
    output_dir: Path,
    input_path: Path | None = None,
    query: str | None = None,
    lookback: timedelta | None = None,
    window: timedelta | None = None,
    dry_run: bool = False,
    console: Console | None = None,
    transport: httpx.BaseTransport | None = None,
    now: int | None = None,
) -> DedupResult:
    """Run the complete deduplication pipeline.

    Args:
        cfg: Application configuration
        output_dir: Directory for the Markdown report and log file
        input_path: GDELT-shaped JSON file; when None the GDELT API is queried
        query: GDELT query overriding the configured one
        lookback: Backfill period; when None a single timespan request is made
        window: Backfill window length (defaults to the whole lookback)
        dry_run: Use an in-memory ledger so nothing is persisted
        console: Rich console for output (creates default if None)
        transport: httpx transport for the GDELT client
        now: Epoch millis used for pruning and first-seen stamps

    Returns:
        The DedupResult of the run

    Raises:
        ConfigError: If the configuration or run options are invalid
        InputError: If the input file cannot be read
        FetchError: If GDELT cannot be reached after retries
        LedgerError: If the ledger cannot be read or written
        OutputError: If the report or export file cannot be written
    """
    cfg.validate()
    if window is not None and lookback is None:
        raise ConfigError("--window requires --lookback")
    for label, value in (("lookback", lookback), ("window", window)):
        if value is not None and value <= timedelta(0):
            raise ConfigError(f"{label} must be positive")

    console = console or Console()
    logger = setup_logging(cfg.logging, output_dir)
    factory = build_factory(cfg)
    builder = build_cluster_builder(cfg)
    now = now_millis() if now is None else now

    log_event(
        logger,
        "Pipeline start",
        event="pipeline_start",
        input=str(input_path) if input_path else None,
        query=query or cfg.gdelt.query,
        lookback=format_duration(lookback) if lookback else None,
        window=format_duration(window) if window else None,
        dry_run=dry_run,
    )

    # Output targets are checked before any story is recorded as seen.
    md_path, json_path = _prepare_outputs(cfg, output_dir)

    with open_ledger(cfg, dry_run) as ledger:
        removed = ledger.prune(cfg.ledger.retention, now)
        seen = ledger.load_all()
        log_event(
            logger,
            "Ledger loaded",
            event="ledger_loaded",
            pruned=removed,
            tracked=len(seen),
            retention=format_duration(cfg.ledger.retention),
        )

        if input_path is not None:
            records = load_input_records(input_path, factory, cfg)
        else:
            records = fetch_records(cfg, factory, query, lookback, window, transport)
        log_event(logger, "Records ingested", event="records_ingested", records=len(records))

        result = deduplicate(records, builder, seen, ledger, now)
        log_event(
            logger,
            "Clusters built",
            event="clusters_built",
            clusters=result.total_clusters,
            average_size=round(result.average_cluster_size, 2),
        )
        log_event(
            logger,
            "Clusters filtered",
            event="clusters_filtered",
            new=len(result.new_clusters),
            suppressed=result.suppressed,
        )

        archived = ledger.save_records(
            record for cluster in result.new_clusters for record in cluster.records
        )

    _write_outputs(result, cfg, md_path, json_path, console)
    log_event(
        logger,
        "Pipeline done",
        event="pipeline_done",
        new=len(result.new_clusters),
        archived=archived,
    )
    return result


def prune_ledger(cfg: AppConfig, now: int | None = None) -> int:
    """Delete expired ledger entries. Returns how many were removed."""
    cfg.validate()
    with SqliteSeenLedger(cfg.ledger.path, archive=cfg.ledger.archive_records) as ledger:
        return ledger.prune(cfg.ledger.retention, now)


def _prepare_outputs(cfg: AppConfig, output_dir: Path) -> tuple[Path | None, Path | None]:
    """Resolve and check the Markdown and NDJSON targets.

    Raises:
        OutputError: If a target directory or file cannot be written
    """
    md_path = output_dir / "stories.md" if cfg.output.markdown else None
    json_path = Path(cfg.output.json_output) if cfg.output.json_output else None
    for path in (md_path, json_path):
        if path is None:
            continue
        try:
            prepare_output(path)
        except OSError as exc:
            raise OutputError(f"Cannot write output {path}: {exc}") from exc
    return md_path, json_path


def _write_outputs(
    result: DedupResult,
    cfg: AppConfig,
    md_path: Path | None,
    json_path: Path | None,
    console: Console,
) -> None:
    if result.is_empty:
        console.print("No articles found.")
    elif not result.new_clusters:
        console.print("No new stories (all previously seen).")
    else:
        render_clusters(result.new_clusters, console, show_members=cfg.output.show_members)
    render_metrics(result, console)

    try:
        if md_path is not None:
            render_markdown(result.new_clusters, md_path, "New stories")
            console.print(f"Report generated: {md_path}")
        if json_path is not None:
            count = write_ndjson(result.new_clusters, json_path)
            console.print(f"Wrote {count} stories to {json_path}")
    except OSError as exc:
        raise OutputError(f"Cannot write output: {exc}") from exc
