"""
Element-Set Cache Store

Persists the most recently fetched batch of element-set records together
with its fetch timestamp. The snapshot is always replaced as a whole.

Backends:
- FileCacheStore: single JSON document on disk (default)
- RedisCacheStore: the same JSON document stored under one Redis key

Both backends treat a missing or unreadable snapshot as an empty cache.
Corruption is logged and never raised to the caller.
"""

import json
import os
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, Protocol, Union

import redis

from satglobe.config import ServiceConfig
from satglobe.logging_config import get_logger
from satglobe.models import CacheSnapshot

logger = get_logger(__name__)

DEFAULT_TTL = timedelta(hours=24)


class CacheStore(Protocol):
    """Storage for the single cached snapshot"""

    def read(self) -> CacheSnapshot:
        ...

    def write(self, snapshot: CacheSnapshot) -> None:
        ...


def is_valid(snapshot: CacheSnapshot, now: datetime, ttl: timedelta = DEFAULT_TTL) -> bool:
    """
    Check whether a snapshot may be served without refreshing.

    A snapshot is valid when it holds at least one record and is younger
    than ``ttl``.
    """
    if snapshot.is_empty or snapshot.fetched_at is None:
        return False
    return now - snapshot.fetched_at < ttl


def _decode(payload: Union[str, bytes], source: str) -> CacheSnapshot:
    try:
        return CacheSnapshot.from_document(json.loads(payload))
    except (ValueError, TypeError, OverflowError) as e:
        # JSONDecodeError, UnicodeDecodeError and pydantic ValidationError are ValueErrors
        logger.warning(f"Cache corrupted, starting fresh ({source}): {e}")
        return CacheSnapshot.empty()


class FileCacheStore:
    """
    Snapshot persisted as a JSON document on the local filesystem.

    Writes go to a temporary file in the target directory which is then
    renamed over the cache file, so readers never observe a partial document.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def read(self) -> CacheSnapshot:
        if not self.path.exists():
            return CacheSnapshot.empty()

        try:
            payload = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Cache unreadable, starting fresh ({self.path}): {e}")
            return CacheSnapshot.empty()

        return _decode(payload, str(self.path))

    def write(self, snapshot: CacheSnapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(snapshot.to_document(), handle, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info(f"Cached {len(snapshot.records)} records to {self.path}")


class RedisCacheStore:
    """Snapshot persisted as a JSON string under a single Redis key"""

    def __init__(self, client: "redis.Redis", key: str):
        self.client = client
        self.key = key

    @classmethod
    def from_url(cls, url: str, key: str) -> "RedisCacheStore":
        return cls(redis.from_url(url, decode_responses=True), key)

    def read(self) -> CacheSnapshot:
        try:
            payload: Optional[str] = self.client.get(self.key)
        except (redis.exceptions.RedisError, UnicodeDecodeError) as e:
            logger.warning(f"Redis read failed, treating as cache miss: {e}")
            return CacheSnapshot.empty()

        if payload is None:
            return CacheSnapshot.empty()

        return _decode(payload, f"redis:{self.key}")

    def write(self, snapshot: CacheSnapshot) -> None:
        # A single SET replaces the value atomically for readers
        self.client.set(self.key, json.dumps(snapshot.to_document()))
        logger.info(f"Cached {len(snapshot.records)} records to redis key {self.key}")


def create_cache_store(config: ServiceConfig) -> CacheStore:
    """Build the cache backend selected by ``config.cache_backend``."""
    if config.cache_backend == "file":
        return FileCacheStore(config.cache_path)
    if config.cache_backend == "redis":
        return RedisCacheStore.from_url(config.redis_url, config.cache_key)
    raise ValueError(f"Unknown cache backend: {config.cache_backend!r}")
