"""
GDELT DOC 2.0 API client.

Requests use ``mode=artlist&format=json&sort=datedesc`` and either a relative
``timespan`` or an absolute ``STARTDATETIME``/``ENDDATETIME`` range. Every
request passes through a RateLimiter; transport errors, HTTP 429 and 5xx
responses are retried with linearly growing backoff.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

import httpx

from ..config import GdeltConfig, InputConfig
from ..core.records import RecordFactory
from ..core.types import Record
from ..errors import FetchError
from ..input.json_parser import extract_items, parse_gdelt_json

logger = logging.getLogger(__name__)

_API_DATE_FORMAT = "%Y%m%d%H%M%S"


@dataclass
class FetchBatch:
    """Result of one API call.

    Attributes:
        records: Parsed records
        raw_count: Number of items in the response before parsing, used to
            detect saturated windows
    """

    records: list[Record] = field(default_factory=list)
    raw_count: int = 0


class RateLimiter:
    """Enforces a minimum interval between consecutive requests."""

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None

    def wait(self) -> float:
        """Block until the next request may go out. Returns seconds slept."""
        slept = 0.0
        if self._last is not None:
            elapsed = self._clock() - self._last
            if elapsed < self.min_interval:
                slept = self.min_interval - elapsed
                self._sleep(slept)
        self._last = self._clock()
        return slept


class GdeltClient:
    def __init__(
        self,
        cfg: GdeltConfig,
        factory: RecordFactory,
        input_cfg: InputConfig | None = None,
        transport: httpx.BaseTransport | None = None,
        limiter: RateLimiter | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cfg = cfg
        self.factory = factory
        self.input_cfg = input_cfg or InputConfig()
        self.limiter = limiter or RateLimiter(cfg.min_request_interval_seconds, sleep=sleep)
        self._sleep = sleep
        self._client = httpx.Client(
            timeout=cfg.timeout_seconds,
            headers={"User-Agent": cfg.user_agent, "Accept": "application/json"},
            follow_redirects=True,
            transport=transport,
        )

    def fetch(self, query: str, timespan: str, max_records: int | None = None) -> FetchBatch:
        """Fetch the most recent articles within a relative timespan (e.g. "2h")."""
        params = self._base_params(query, max_records)
        params["timespan"] = timespan
        return self._execute(params)

    def fetch_range(
        self,
        query: str,
        start: datetime,
        end: datetime,
        max_records: int | None = None,
    ) -> FetchBatch:
        """Fetch articles seen in [start, end). An empty range returns no records."""
        if start >= end:
            return FetchBatch()
        params = self._base_params(query, max_records)
        params["STARTDATETIME"] = _api_date(start)
        params["ENDDATETIME"] = _api_date(end)
        return self._execute(params)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GdeltClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _base_params(self, query: str, max_records: int | None) -> dict[str, Any]:
        return {
            "query": query,
            "mode": "artlist",
            "format": "json",
            "maxrecords": max_records or self.cfg.max_records,
            "sort": "datedesc",
        }

    def _execute(self, params: dict[str, Any]) -> FetchBatch:
        payload = self._request(params)
        items = extract_items(payload)
        if len(items) >= self.cfg.safe_max_records:
            logger.warning("Hit %d articles (near limit), results may be truncated", len(items))
        records = parse_gdelt_json(payload, self.factory, self.input_cfg)
        logger.debug("Fetched %d items, parsed %d records", len(items), len(records))
        return FetchBatch(records=records, raw_count=len(items))

    def _request(self, params: dict[str, Any]) -> Any:
        last_error = "no attempt made"

        # Linear backoff between retries: base, 2 * base, 3 * base...
        for attempt in range(self.cfg.retries + 1):
            self.limiter.wait()
            try:
                resp = self._client.get(self.cfg.endpoint, params=params)
            except httpx.TransportError as exc:
                last_error = f"{type(exc).__name__}: {exc}"
            else:
                if resp.status_code == 200:
                    return _decode(resp)
                if resp.status_code != 429 and resp.status_code < 500:
                    raise FetchError(f"GDELT API returned status {resp.status_code}")
                last_error = f"GDELT API returned status {resp.status_code}"

            if attempt < self.cfg.retries:
                delay = self.cfg.backoff_seconds * (attempt + 1)
                logger.warning("GDELT request failed (%s); retrying in %.1fs", last_error, delay)
                self._sleep(delay)

        raise FetchError(f"GDELT request failed after {self.cfg.retries + 1} attempts: {last_error}")


def _decode(resp: httpx.Response) -> Any:
    text = resp.text.strip()
    if not text:
        return {}
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise FetchError(f"GDELT API returned invalid JSON: {text[:200]}") from exc


def _api_date(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_API_DATE_FORMAT)
