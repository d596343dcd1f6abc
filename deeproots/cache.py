"""Answer cache: a TTL key-value store behind a fail-soft wrapper."""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger("deeproots.cache")

DEFAULT_TTL_SECONDS = 1200


class CacheStore(ABC):
    """Abstract TTL key-value store holding formatted answer strings."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the live value for key, or None when missing or expired."""

    @abstractmethod
    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store value under key for ttl_seconds."""

    @abstractmethod
    def clear(self) -> None:
        """Drop every entry regardless of key."""


class MemoryCacheStore(CacheStore):
    """Process-local cache with per-entry expiry and an injectable clock."""

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock = clock or time.monotonic
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl_seconds)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class ResponseCache:
    """Resolver-facing cache wrapper that never lets a store error escape."""

    def __init__(self, store: CacheStore, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds

    @staticmethod
    def make_key(tag: str, query: str) -> str:
        """Build a resolver-scoped key: "<tag>_" + lowercase query."""
        return f"{tag}_{query.lower()}"

    def get(self, key: str) -> Optional[str]:
        """Purpose: Fetch a cached answer.
        Inputs/Outputs: Input is a cache key; output is the cached string or None.
        Side Effects / State: Expired entries may be evicted by the store.
        Dependencies: Uses the injected CacheStore.
        Failure Modes: Store errors are logged and reported as a miss.
        If Removed: Every query rescans the full tables.
        Testing Notes: Force the store to raise and verify None is returned.
        """
        # Treat any store failure as a cache miss.
        try:
            return self._store.get(key)
        except Exception:
            logger.warning("cache get failed key=%s", key, exc_info=True)
            return None

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        # Returns False when the store refused the write.
        ttl = self._ttl_seconds if ttl_seconds is None else ttl_seconds
        try:
            self._store.put(key, value, ttl)
            return True
        except Exception:
            logger.warning("cache set failed key=%s", key, exc_info=True)
            return False

    def clear_all(self) -> bool:
        """Purpose: Invalidate every cached answer after a committed mutation.
        Inputs/Outputs: No inputs; returns True when the store was cleared.
        Side Effects / State: Empties the underlying store.
        Dependencies: Called only from the inventory commit path and the admin endpoint.
        Failure Modes: Store errors are logged and return False.
        If Removed: Searches serve stale quantities for up to the TTL.
        Testing Notes: Populate, clear, and verify every key misses.
        """
        # Drop all entries; no per-resolver invalidation is attempted.
        try:
            self._store.clear()
        except Exception:
            logger.warning("cache clear failed", exc_info=True)
            return False
        logger.info("cache cleared")
        return True
