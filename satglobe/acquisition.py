"""
Element-Set Acquisition

Fetches one two-line element set per catalog entry from the N2YO REST API
and applies the cache-first freshness policy.

Acquisition is sequential: a single request is in flight at a
time and a fixed delay separates consecutive requests to stay under the
upstream rate limit. A failure for one identifier is recorded on that
record only; the batch always completes.
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Sequence
from urllib.parse import quote

import requests
from pydantic import ValidationError

from satglobe.cache_store import CacheStore, is_valid
from satglobe.catalog import catalog_slice
from satglobe.config import ServiceConfig
from satglobe.exceptions import AcquisitionError
from satglobe.logging_config import get_logger
from satglobe.models import CacheSnapshot, CatalogEntry, ElementSetRecord, SatelliteInfo

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ElementSetAcquirer:
    """
    Sequential N2YO element-set fetcher.

    Args:
        api_key: N2YO API key (required to acquire)
        api_base: REST base URL
        request_delay_ms: Minimum delay between consecutive requests
        request_timeout: Per-request timeout in seconds
        session: Optional requests session (created on demand)
        sleep: Delay function, injectable for tests
        clock: Current-time function, injectable for tests
    """

    def __init__(self, api_key: Optional[str],
                 api_base: str = "https://api.n2yo.com/rest/v1",
                 request_delay_ms: int = 200,
                 request_timeout: float = 30.0,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], datetime] = utc_now):
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.request_delay = request_delay_ms / 1000.0
        self.request_timeout = request_timeout
        self.session = session or requests.Session()
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_config(cls, config: ServiceConfig, **kwargs) -> "ElementSetAcquirer":
        return cls(
            api_key=config.api_key,
            api_base=config.api_base,
            request_delay_ms=config.request_delay_ms,
            request_timeout=config.request_timeout,
            **kwargs,
        )

    def element_set_url(self, norad_id: int) -> str:
        # N2YO appends the key with '&' directly after the path
        return f"{self.api_base}/satellite/tle/{norad_id}&apiKey={self.api_key}"

    def acquire(self, entries: Sequence[CatalogEntry]) -> CacheSnapshot:
        """
        Fetch one record per entry, in input order.

        Raises:
            AcquisitionError: if the sequence cannot run at all (no API key)
        """
        if not self.api_key:
            raise AcquisitionError("N2YO_API_KEY is not configured")

        records = []
        for index, entry in enumerate(entries):
            if index > 0 and self.request_delay > 0:
                self._sleep(self.request_delay)
            records.append(self._fetch_one(entry))

        failed = sum(1 for record in records if not record.ok)
        logger.info(f"Acquired {len(records)} element sets ({failed} failed)")

        return CacheSnapshot(fetched_at=self._clock(), records=records)

    def _fetch_one(self, entry: CatalogEntry) -> ElementSetRecord:
        try:
            response = self.session.get(self.element_set_url(entry.id), timeout=self.request_timeout)
        except requests.RequestException as e:
            logger.warning(f"Request for satellite {entry.id} failed: {type(e).__name__}")
            return ElementSetRecord.failure(entry.id, self._redact(str(e)) or type(e).__name__)

        if not response.ok:
            logger.warning(f"Upstream returned {response.status_code} for satellite {entry.id}")
            return ElementSetRecord.failure(entry.id, "Failed")

        try:
            body = response.json()
        except ValueError:
            return ElementSetRecord.failure(entry.id, "Invalid JSON response")

        if not isinstance(body, dict):
            return ElementSetRecord.failure(entry.id, "Unexpected response shape")

        tle = body.get("tle")
        if not isinstance(tle, str) or not tle.strip():
            return ElementSetRecord.failure(entry.id, self._redact(str(body.get("error") or "Missing element set")))

        return ElementSetRecord.success(entry.id, tle, self._info_for(entry, body.get("info")))

    def _redact(self, message: str) -> str:
        # Error text is cached and served to clients; requests errors embed the URL
        if not self.api_key:
            return message
        for secret in {self.api_key, quote(self.api_key, safe="")}:
            message = message.replace(secret, "***")
        return message

    @staticmethod
    def _info_for(entry: CatalogEntry, raw_info: Any) -> SatelliteInfo:
        fallback = SatelliteInfo(satid=entry.id, satname=entry.name)
        if not isinstance(raw_info, dict):
            return fallback
        try:
            info = SatelliteInfo.model_validate(raw_info)
        except ValidationError:
            return fallback
        if info.satname is None or info.satid is None:
            return info.model_copy(update={
                "satid": info.satid if info.satid is not None else entry.id,
                "satname": info.satname or entry.name,
            })
        return info


class ElementSetService:
    """
    Cache-first element-set provider.

    The freshness decision runs once per call: a valid cached snapshot is
    returned without any network traffic, otherwise a full acquisition runs
    synchronously and its complete batch replaces the cache.
    """

    def __init__(self, store: CacheStore, acquirer: ElementSetAcquirer,
                 catalog: Sequence[CatalogEntry], slice_size: int = 100,
                 ttl: timedelta = timedelta(hours=24),
                 clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.acquirer = acquirer
        self.catalog = list(catalog)
        self.slice_size = slice_size
        self.ttl = ttl
        self._clock = clock

    def get_records(self, now: Optional[datetime] = None) -> CacheSnapshot:
        now = now or self._clock()
        snapshot = self.store.read()

        if is_valid(snapshot, now, self.ttl):
            logger.info("Using cached satellite data")
            return snapshot

        entries = catalog_slice(self.catalog, self.slice_size)
        logger.info(f"Fetching fresh satellite data for {len(entries)} catalog entries")

        # Errors propagate before write, leaving the previous snapshot intact
        snapshot = self.acquirer.acquire(entries)
        self.store.write(snapshot)
        return snapshot

    def status(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Freshness summary of the stored snapshot (no network access)."""
        now = now or self._clock()
        snapshot = self.store.read()
        age = (now - snapshot.fetched_at).total_seconds() if snapshot.fetched_at else None
        return {
            "fresh": is_valid(snapshot, now, self.ttl),
            "fetched_at": snapshot.fetched_at.isoformat() if snapshot.fetched_at else None,
            "age_seconds": age,
            "records": len(snapshot.records),
            "failed": sum(1 for record in snapshot.records if not record.ok),
            "ttl_seconds": self.ttl.total_seconds(),
        }
