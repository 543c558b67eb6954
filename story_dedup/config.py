"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- ClusteringConfig: Time window, similarity threshold, shingle size
- LanguageConfig: Normalization locale and stop words
- UrlConfig: Tracking query parameters to strip
- SourcesConfig: Domain tables for WIRE and AGGREGATOR sources
- LedgerConfig: Seen-ledger location and retention
- GdeltConfig: Upstream GDELT DOC API settings
- InputConfig: Field length bounds for ingested records
- LoggingConfig: Logging behavior
- OutputConfig: Report and export settings
- AppConfig: Root configuration container

Every section validates itself; AppConfig.validate() raises ConfigError on
the first invalid value so a run fails before doing any work.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

import yaml

from .core.text import MAX_SHINGLE_SIZE, MIN_SHINGLE_SIZE
from .core.types import DEFAULT_AGGREGATOR_DOMAINS, DEFAULT_WIRE_DOMAINS
from .core.url import DEFAULT_TRACKING_PARAMS, DEFAULT_TRACKING_PREFIXES
from .errors import ConfigError

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"^(\d+)\s*([smhd])$", re.IGNORECASE)
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}

GDELT_MAX_RECORDS = 250


def parse_duration(value: Any) -> timedelta:
    """Parse "30m", "48h", "7d" (or bare seconds) into a timedelta.

    Raises:
        ConfigError: If the value is malformed or not positive
    """
    if isinstance(value, timedelta):
        duration = value
    elif isinstance(value, bool):
        raise ConfigError(f"Invalid duration {value!r}")
    elif isinstance(value, (int, float)):
        duration = timedelta(seconds=value)
    else:
        match = _DURATION_RE.match(str(value).strip())
        if not match:
            raise ConfigError(f"Invalid duration {value!r}. Use formats like 30m, 2h, 7d.")
        duration = timedelta(seconds=int(match.group(1)) * _UNIT_SECONDS[match.group(2).lower()])
    if duration <= timedelta(0):
        raise ConfigError(f"Duration must be positive: {value!r}")
    return duration


def format_duration(duration: timedelta) -> str:
    """Render a timedelta compactly, e.g. "1d 2h 30m"."""
    total_minutes = int(duration.total_seconds() // 60)
    days, rem = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rem, 60)
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes or not parts:
        parts.append(f"{minutes}m")
    return " ".join(parts)


@dataclass
class ClusteringConfig:
    """Configuration for story clustering.

    Attributes:
        time_window: Maximum effective-time gap between two compared records
        similarity_threshold: Jaccard score (0-1) at which titles are duplicates
        shingle_size: Character n-gram length (2-10)
    """

    time_window: timedelta = timedelta(hours=48)
    similarity_threshold: float = 0.80
    shingle_size: int = 4

    def validate(self) -> None:
        if self.time_window <= timedelta(0):
            raise ConfigError("clustering.time_window must be positive")
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ConfigError("clustering.similarity_threshold must be between 0.0 and 1.0")
        if not MIN_SHINGLE_SIZE <= self.shingle_size <= MAX_SHINGLE_SIZE:
            raise ConfigError(
                f"clustering.shingle_size must be between {MIN_SHINGLE_SIZE} and {MAX_SHINGLE_SIZE}"
            )


@dataclass
class LanguageConfig:
    """Configuration for title normalization.

    Attributes:
        locale: Locale whose case rules apply (e.g. "tr_TR")
        stop_words: Words dropped from titles before comparison
        fold_diacritics: Whether to fold accented letters to their ASCII base
    """

    locale: str = "tr_TR"
    stop_words: list[str] = field(
        default_factory=lambda: [
            "son",
            "dakika",
            "video",
            "galeri",
            "izle",
            "foto",
            "yorum",
            "haber",
            "haberi",
            "güncel",
            "flas",
            "flaş",
        ]
    )
    fold_diacritics: bool = True


@dataclass
class UrlConfig:
    tracking_params: list[str] = field(default_factory=lambda: sorted(DEFAULT_TRACKING_PARAMS))
    tracking_prefixes: list[str] = field(default_factory=lambda: list(DEFAULT_TRACKING_PREFIXES))


@dataclass
class SourcesConfig:
    """Domain tables for source classification. Other domains are PUBLISHER."""

    wire_domains: list[str] = field(default_factory=lambda: sorted(DEFAULT_WIRE_DOMAINS))
    aggregator_domains: list[str] = field(
        default_factory=lambda: sorted(DEFAULT_AGGREGATOR_DOMAINS)
    )


@dataclass
class LedgerConfig:
    """Configuration for the seen ledger.

    Attributes:
        path: SQLite file holding seen URLs and archived records
        retention: How long a canonical URL stays suppressed
        archive_records: Whether to store members of emitted clusters
    """

    path: str = "data/seen.sqlite3"
    retention: timedelta = timedelta(days=7)
    archive_records: bool = True

    def validate(self) -> None:
        if self.retention <= timedelta(0):
            raise ConfigError("ledger.retention must be positive")
        if not self.path:
            raise ConfigError("ledger.path must not be empty")


@dataclass
class GdeltConfig:
    """Configuration for the GDELT DOC 2.0 API.

    Attributes:
        endpoint: API URL
        query: Default search query
        timespan: Default lookback for a single-window run (GDELT syntax, e.g. "2h")
        max_records: Records requested per call (API hard limit is 250)
        safe_max_records: Response size above which results may be truncated
        timeout_seconds: HTTP request timeout
        retries: Retry attempts after the first failed request
        backoff_seconds: Base delay between retries (grows linearly)
        min_request_interval_seconds: Minimum spacing between two API calls
        min_split_window: Smallest window a saturated backfill slice is split into
        user_agent: HTTP User-Agent header
    """

    endpoint: str = "https://api.gdeltproject.org/api/v2/doc/doc"
    query: str = "sourcecountry:turkey sourcelang:turkish"
    timespan: str = "2h"
    max_records: int = 200
    safe_max_records: int = 240
    timeout_seconds: float = 30.0
    retries: int = 3
    backoff_seconds: float = 1.0
    min_request_interval_seconds: float = 2.0
    min_split_window: timedelta = timedelta(minutes=30)
    user_agent: str = "story-dedup/0.1"

    def validate(self) -> None:
        if not self.endpoint:
            raise ConfigError("gdelt.endpoint must not be empty")
        if not 1 <= self.max_records <= GDELT_MAX_RECORDS:
            raise ConfigError(f"gdelt.max_records must be between 1 and {GDELT_MAX_RECORDS}")
        if self.retries < 0:
            raise ConfigError("gdelt.retries must not be negative")
        if self.timeout_seconds <= 0:
            raise ConfigError("gdelt.timeout_seconds must be positive")
        if self.min_request_interval_seconds < 0:
            raise ConfigError("gdelt.min_request_interval_seconds must not be negative")


@dataclass
class InputConfig:
    max_title_length: int = 10_000
    max_url_length: int = 2_048


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file inside the output directory
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "run.jsonl"

    def validate(self) -> None:
        if self.format not in ("jsonl", "plain"):
            raise ConfigError("logging.format must be 'jsonl' or 'plain'")


@dataclass
class OutputConfig:
    """Configuration for output generation.

    Attributes:
        markdown: Whether to write a Markdown report of new stories
        json_output: Optional path for newline-delimited JSON of new stories
        show_members: Whether console output lists every cluster member
    """

    markdown: bool = False
    json_output: str | None = None
    show_members: bool = True


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    language: LanguageConfig = field(default_factory=LanguageConfig)
    urls: UrlConfig = field(default_factory=UrlConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    gdelt: GdeltConfig = field(default_factory=GdeltConfig)
    input: InputConfig = field(default_factory=InputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def validate(self) -> "AppConfig":
        self.clustering.validate()
        self.ledger.validate()
        self.gdelt.validate()
        self.logging.validate()
        return self


DEFAULT_CONFIG = AppConfig()


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return _fromdict(_asdict(DEFAULT_CONFIG)).validate()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return _merge_config(DEFAULT_CONFIG, raw).validate()


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = _asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update({k: v for k, v in value.items() if k in data[key]})
        else:
            raise ConfigError(f"Config section '{key}' must be a mapping")
    return _fromdict(data)


def _asdict(cfg: AppConfig) -> dict[str, Any]:
    """Convert AppConfig to nested dictionary."""
    return {
        "clustering": {
            "time_window": cfg.clustering.time_window,
            "similarity_threshold": cfg.clustering.similarity_threshold,
            "shingle_size": cfg.clustering.shingle_size,
        },
        "language": {
            "locale": cfg.language.locale,
            "stop_words": list(cfg.language.stop_words),
            "fold_diacritics": cfg.language.fold_diacritics,
        },
        "urls": {
            "tracking_params": list(cfg.urls.tracking_params),
            "tracking_prefixes": list(cfg.urls.tracking_prefixes),
        },
        "sources": {
            "wire_domains": list(cfg.sources.wire_domains),
            "aggregator_domains": list(cfg.sources.aggregator_domains),
        },
        "ledger": {
            "path": cfg.ledger.path,
            "retention": cfg.ledger.retention,
            "archive_records": cfg.ledger.archive_records,
        },
        "gdelt": {
            "endpoint": cfg.gdelt.endpoint,
            "query": cfg.gdelt.query,
            "timespan": cfg.gdelt.timespan,
            "max_records": cfg.gdelt.max_records,
            "safe_max_records": cfg.gdelt.safe_max_records,
            "timeout_seconds": cfg.gdelt.timeout_seconds,
            "retries": cfg.gdelt.retries,
            "backoff_seconds": cfg.gdelt.backoff_seconds,
            "min_request_interval_seconds": cfg.gdelt.min_request_interval_seconds,
            "min_split_window": cfg.gdelt.min_split_window,
            "user_agent": cfg.gdelt.user_agent,
        },
        "input": {
            "max_title_length": cfg.input.max_title_length,
            "max_url_length": cfg.input.max_url_length,
        },
        "logging": {
            "level": cfg.logging.level,
            "console": cfg.logging.console,
            "file": cfg.logging.file,
            "format": cfg.logging.format,
            "filename": cfg.logging.filename,
        },
        "output": {
            "markdown": cfg.output.markdown,
            "json_output": cfg.output.json_output,
            "show_members": cfg.output.show_members,
        },
    }


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    clustering = dict(data["clustering"])
    clustering["time_window"] = parse_duration(clustering["time_window"])
    clustering["similarity_threshold"] = float(clustering["similarity_threshold"])
    clustering["shingle_size"] = int(clustering["shingle_size"])

    ledger = dict(data["ledger"])
    ledger["retention"] = parse_duration(ledger["retention"])

    gdelt = dict(data["gdelt"])
    gdelt["min_split_window"] = parse_duration(gdelt["min_split_window"])

    return AppConfig(
        clustering=ClusteringConfig(**clustering),
        language=LanguageConfig(**data["language"]),
        urls=UrlConfig(**data["urls"]),
        sources=SourcesConfig(**data["sources"]),
        ledger=LedgerConfig(**ledger),
        gdelt=GdeltConfig(**gdelt),
        input=InputConfig(**data["input"]),
        logging=LoggingConfig(**data["logging"]),
        output=OutputConfig(**data["output"]),
    )


def apply_env_overrides(cfg: AppConfig, environ: dict[str, str] | None = None) -> AppConfig:
    """Apply STORY_DEDUP_* environment variables on top of cfg.

    Invalid numeric values are logged and ignored.
    """
    env = os.environ if environ is None else environ

    db_path = env.get("STORY_DEDUP_DB_PATH", "").strip()
    if db_path:
        cfg.ledger.path = db_path

    query = env.get("STORY_DEDUP_GDELT_QUERY", "").strip()
    if query:
        cfg.gdelt.query = query

    days = _positive_int(env, "STORY_DEDUP_RETENTION_DAYS")
    if days is not None:
        cfg.ledger.retention = timedelta(days=days)

    interval_ms = _positive_int(env, "STORY_DEDUP_MIN_REQUEST_INTERVAL_MS")
    if interval_ms is not None:
        cfg.gdelt.min_request_interval_seconds = interval_ms / 1000

    return cfg


def _positive_int(env, key: str) -> int | None:
    value = env.get(key, "").strip()
    if not value:
        return None
    try:
        parsed = int(value)
    except ValueError:
        logger.warning("Invalid %s value %r; keeping configured value", key, value)
        return None
    if parsed <= 0:
        logger.warning("%s must be positive; keeping configured value", key)
        return None
    return parsed
