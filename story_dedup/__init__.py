"""
Story Dedup.

Groups near-duplicate news articles into stories, picks one canonical
article per story and suppresses stories already emitted by earlier runs.
"""

from .config import AppConfig, load_config
from .core import Cluster, ClusterBuilder, DedupResult, Record, RecordFactory, SourceType
from .errors import (
    ConfigError,
    EmptyClusterError,
    FetchError,
    InputError,
    LedgerError,
    OutputError,
)
from .ledger import MemorySeenLedger, SeenLedger, SqliteSeenLedger

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "Cluster",
    "ClusterBuilder",
    "ConfigError",
    "DedupResult",
    "EmptyClusterError",
    "FetchError",
    "InputError",
    "LedgerError",
    "MemorySeenLedger",
    "OutputError",
    "Record",
    "RecordFactory",
    "SeenLedger",
    "SourceType",
    "SqliteSeenLedger",
    "load_config",
]
