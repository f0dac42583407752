"""Bounded, time-expiring in-process store for completed responses."""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from cachetools import FIFOCache

from q_llm.engine.models import ProviderId, QueryRequest

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3_600.0
DEFAULT_MAX_ENTRIES = 1_000


@dataclass(frozen=True, slots=True)
class CacheKey:
    """Request fingerprint; equal fields give equal keys."""

    provider_id: ProviderId
    model: str
    prompt: str

    @classmethod
    def from_request(cls, request: QueryRequest, *, default_model: str) -> CacheKey:
        return cls(
            provider_id=request.provider_id,
            model=(request.model or default_model).strip(),
            prompt=request.prompt.strip(),
        )

    def digest(self) -> str:
        """Stable digest safe to log in place of the prompt."""

        payload = "\n".join((self.provider_id.value, self.model, self.prompt))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@dataclass(slots=True)
class CacheEntry:
    """Stored response with its insertion timestamp."""

    value: str
    inserted_at: float


class _InsertionOrderStore(FIFOCache):
    """FIFO store that logs which fingerprint made room for a new one."""

    def popitem(self) -> tuple[CacheKey, CacheEntry]:
        key, entry = super().popitem()
        logger.debug("Cache evicted oldest entry: %s", key.digest()[:12])
        return key, entry


class ResultCache:
    """Insertion-ordered TTL cache guarded by a single lock.

    Eviction removes the oldest *inserted* entry, not the least recently read one.
    Overwriting a key counts as a fresh insertion.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("Cache TTL must be > 0.")
        if max_entries <= 0:
            raise ValueError("Cache capacity must be > 0.")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: FIFOCache[CacheKey, CacheEntry] = _InsertionOrderStore(maxsize=max_entries)
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_expired(entry, now=self._clock()):
                del self._entries[key]
                logger.debug("Cache entry expired: %s", key.digest()[:12])
                return None
            return entry.value

    def put(self, key: CacheKey, value: str) -> None:
        with self._lock:
            now = self._clock()
            self._entries.pop(key, None)
            self._purge_expired(now=now)
            self._entries[key] = CacheEntry(value=value, inserted_at=now)

    def invalidate(self, key: CacheKey) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries = _InsertionOrderStore(maxsize=self.max_entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_expired(self, entry: CacheEntry, *, now: float) -> bool:
        return now - entry.inserted_at > self.ttl_seconds

    def _purge_expired(self, *, now: float) -> None:
        # Expired entries go before live ones are evicted for capacity.
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now=now)]
        for key in expired:
            del self._entries[key]
