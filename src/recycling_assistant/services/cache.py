"""In-memory result cache keyed by image fingerprint."""

import hashlib
import logging
import threading
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

_logger = logging.getLogger(__name__)

FINGERPRINT_PREFIX_CHARS = 1000


class Cache(Protocol):
    """Cache interface for identification results."""

    def get(self, key: str) -> object | None:
        """Return a cached value if present and not expired."""

    def set(self, key: str, value: object) -> None:
        """Store a cached value."""


def fingerprint(image_base64: str, prefix_chars: int = FINGERPRINT_PREFIX_CHARS) -> str:
    """Hash a prefix of the base64 payload into a cache key.

    Only the first ``prefix_chars`` characters are hashed, so two images
    sharing that prefix share a cache entry.
    """
    prefix = image_base64[:prefix_chars]
    return hashlib.md5(prefix.encode("utf-8"), usedforsecurity=False).hexdigest()


@dataclass
class _CacheEntry:
    value: object
    inserted_at: datetime


class InMemoryCache(Cache):
    """LRU cache bounded by both entry count and age."""

    def __init__(
        self,
        max_entries: int = 100,
        ttl_seconds: int = 3600,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.max_entries = max_entries
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._entries: OrderedDict[str, _CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> object | None:
        """Return a cached value if it hasn't expired, marking it recently used."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_expired(entry):
                self._entries.pop(key, None)
                return None
            self._entries.move_to_end(key)
        _logger.info("Cache hit for key: %s", key)
        return entry.value

    def set(self, key: str, value: object) -> None:
        """Store a value, evicting the least recently used entries over capacity."""
        with self._lock:
            self._entries[key] = _CacheEntry(value=value, inserted_at=self._clock())
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        """Drop every cached entry."""
        with self._lock:
            self._entries.clear()
        _logger.info("Cache cleared")

    def purge_expired(self) -> int:
        """Remove expired entries and return how many were dropped."""
        with self._lock:
            expired = [key for key, entry in self._entries.items() if self._is_expired(entry)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def stats(self) -> dict[str, object]:
        """Return cache size information."""
        with self._lock:
            return {"size": len(self._entries), "max_size": self.max_entries}

    def _is_expired(self, entry: _CacheEntry) -> bool:
        return self._clock() >= entry.inserted_at + self.ttl
