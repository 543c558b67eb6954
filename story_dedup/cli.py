"""
Command-line interface for story deduplication.

Uses Typer to provide `run` and `prune` commands with overrides for the
most common configuration settings. Loads a .env file so the
STORY_DEDUP_* environment overrides can live next to the config.
"""

from __future__ import annotations

from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console

from .config import AppConfig, apply_env_overrides, format_duration, load_config, parse_duration
from .errors import ConfigError, FetchError, InputError, LedgerError, OutputError
from .runner import prune_ledger, run_pipeline

app = typer.Typer(add_completion=False)
console = Console()


def _load(config: Path | None) -> AppConfig:
    load_dotenv()
    return apply_env_overrides(load_config(str(config) if config else None))


@app.command()
def run(
    input: Path | None = typer.Option(
        None, "--input", "-i", exists=True, readable=True, help="GDELT-shaped JSON file."
    ),
    output: Path = typer.Option(Path("out"), "--output", "-o"),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    query: str | None = typer.Option(None, "--query", "-q", help="GDELT query override."),
    lookback: str | None = typer.Option(
        None, "--lookback", help="Backfill period, e.g. 24h or 7d."
    ),
    window: str | None = typer.Option(
        None, "--window", help="Backfill window length, e.g. 1h."
    ),
    threshold: float | None = typer.Option(
        None, "--threshold", help="Similarity threshold (0-1)."
    ),
    time_window: str | None = typer.Option(
        None, "--time-window", help="Clustering time window, e.g. 48h."
    ),
    db: Path | None = typer.Option(None, "--db", help="Seen ledger SQLite path."),
    json_output: Path | None = typer.Option(
        None, "--json", help="Write new stories as newline-delimited JSON."
    ),
    markdown: bool | None = typer.Option(
        None, "--markdown/--no-markdown", help="Write a Markdown report."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not persist the ledger."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    log_format: str | None = typer.Option(
        None, "--log-format", help="Log file format: jsonl or plain."
    ),
    log_file: bool | None = typer.Option(
        None, "--log-file/--no-log-file", help="Enable or disable file logging."
    ),
):
    """Cluster articles into stories and print the ones not seen before.

    Reads records from --input, or queries GDELT when no input is given.
    With --lookback the period is backfilled window by window.
    """
    try:
        cfg = _load(config)

        # Override with CLI options
        if threshold is not None:
            cfg.clustering.similarity_threshold = threshold
        if time_window:
            cfg.clustering.time_window = parse_duration(time_window)
        if db is not None:
            cfg.ledger.path = str(db)
        if json_output is not None:
            cfg.output.json_output = str(json_output)
        if markdown is not None:
            cfg.output.markdown = markdown
        if log_level:
            cfg.logging.level = log_level
        if log_format:
            cfg.logging.format = log_format
        if log_file is not None:
            cfg.logging.file = log_file

        run_pipeline(
            cfg,
            output,
            input_path=input,
            query=query,
            lookback=parse_duration(lookback) if lookback else None,
            window=parse_duration(window) if window else None,
            dry_run=dry_run,
            console=console,
        )
    except (ConfigError, InputError, FetchError, LedgerError, OutputError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1)


@app.command()
def prune(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    db: Path | None = typer.Option(None, "--db", help="Seen ledger SQLite path."),
    retention: str | None = typer.Option(
        None, "--retention", help="Keep entries newer than this, e.g. 7d."
    ),
):
    """Delete ledger entries older than the retention period."""
    try:
        cfg = _load(config)
        if db is not None:
            cfg.ledger.path = str(db)
        if retention:
            cfg.ledger.retention = parse_duration(retention)
        removed = prune_ledger(cfg)
    except (ConfigError, LedgerError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1)
    console.print(
        f"Pruned {removed} entries older than {format_duration(cfg.ledger.retention)} "
        f"from {cfg.ledger.path}"
    )


if __name__ == "__main__":
    app()
