"""Exception kinds raised by the deduplication pipeline."""

from __future__ import annotations


class ConfigError(ValueError):
    """Invalid configuration value. Raised before any work starts."""


class EmptyClusterError(ValueError):
    """A cluster was built, or a canonical selected, with no members."""


class LedgerError(RuntimeError):
    """The seen ledger could not be read or written."""


class FetchError(RuntimeError):
    """The upstream feed could not be fetched or decoded."""


class InputError(ValueError):
    """An input file could not be read or is not valid JSON."""


class OutputError(RuntimeError):
    """A report or export file could not be written."""
