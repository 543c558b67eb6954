"""
Article fetching from the GDELT DOC API.

This package handles rate-limited HTTP requests, retries and
backfill window splitting.
"""

from .backfill import BackfillStats, backfill
from .gdelt import FetchBatch, GdeltClient, RateLimiter

__all__ = ["BackfillStats", "FetchBatch", "GdeltClient", "RateLimiter", "backfill"]
