"""Expiring key/value cache for computed results.

Entries past ``expires_at`` are treated as missing and evicted on read;
``purge_expired`` sweeps them eagerly. When the cache backend is not
available the cache degrades to a no-op: writes are dropped and every
read misses.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel

from services.errors import BackendUnavailable

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheEntry(BaseModel):
    key: str
    value: Any = None
    expires_at: datetime


class CacheBackend(ABC):
    """Raw entry storage. Expiry is enforced by ``ResultCache``."""

    @abstractmethod
    def read(self, key: str) -> CacheEntry | None: ...

    @abstractmethod
    def write(self, entry: CacheEntry) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> bool: ...

    @abstractmethod
    def keys(self) -> list[str]: ...


class MemoryCacheBackend(CacheBackend):
    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def read(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def write(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def keys(self) -> list[str]:
        return list(self._entries)


class ResultCache:
    def __init__(
        self,
        backend: CacheBackend | None = None,
        clock: Clock = utc_now,
        available: bool = True,
    ) -> None:
        self.backend = backend if backend is not None else MemoryCacheBackend()
        self.clock = clock
        self.available = available
        self._warned = False
        if not available:
            self._warn_unavailable("cache backend disabled")

    def _warn_unavailable(self, reason: str) -> None:
        if not self._warned:
            logger.warning("Result cache unavailable (%s); caching is a no-op", reason)
            self._warned = True

    def put(self, key: str, value: Any, ttl_seconds: float) -> CacheEntry | None:
        """Store ``value`` for ``ttl_seconds``. Returns the stored entry."""
        if not self.available:
            return None
        entry = CacheEntry(
            key=key,
            value=value,
            expires_at=self.clock() + timedelta(seconds=ttl_seconds),
        )
        try:
            self.backend.write(entry)
        except BackendUnavailable as e:
            self._warn_unavailable(str(e))
            return None
        return entry

    def get(self, key: str) -> Any | None:
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def get_entry(self, key: str) -> CacheEntry | None:
        if not self.available:
            return None
        try:
            entry = self.backend.read(key)
            if entry is None:
                return None
            if entry.expires_at <= self.clock():
                self.backend.delete(key)
                logger.debug("Evicted expired cache entry %s", key)
                return None
        except BackendUnavailable as e:
            self._warn_unavailable(str(e))
            return None
        return entry

    def delete(self, key: str) -> bool:
        if not self.available:
            return False
        try:
            return self.backend.delete(key)
        except BackendUnavailable as e:
            self._warn_unavailable(str(e))
            return False

    def purge_expired(self) -> int:
        """Remove every expired entry; returns how many were removed."""
        if not self.available:
            return 0
        now = self.clock()
        removed = 0
        try:
            for key in self.backend.keys():
                entry = self.backend.read(key)
                if entry is not None and entry.expires_at <= now:
                    self.backend.delete(key)
                    removed += 1
        except BackendUnavailable as e:
            self._warn_unavailable(str(e))
        if removed:
            logger.info("Purged %d expired cache entries", removed)
        return removed


def _canonical_filters(filters: BaseModel | Mapping[str, Any] | None) -> str:
    if filters is None:
        return "all"
    data = filters.model_dump() if isinstance(filters, BaseModel) else dict(filters)
    parts = []
    for name in sorted(data):
        value = data[name]
        if value is None:
            continue
        if isinstance(value, bool):
            value = str(value).lower()
        parts.append(f"{name}={value}")
    return "&".join(parts) or "all"


def recommendations_key(
    profile_id: str,
    posting_set_id: str,
    filters: BaseModel | Mapping[str, Any] | None = None,
) -> str:
    """Cache key for a recommendation set.

    Filters are serialized in sorted order with unset values left out, so
    equal filter sets share a key and different ones never collide.
    """
    return f"recommendations:{profile_id}:{posting_set_id}:{_canonical_filters(filters)}"


def insights_key(skills: list[str], location: str | None) -> str:
    normalized = "-".join(sorted({s.strip().lower() for s in skills if s.strip()}))
    place = (location or "").strip().lower() or "global"
    return f"market-insights:{normalized}:{place}"
