"""TTL stores backing the release registry and the artifact cache."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with TTL."""

    value: T
    expires_at: float
    created_at: float = field(default_factory=time.time)

    def is_expired(self) -> bool:
        """Check if this entry has expired."""
        return time.time() > self.expires_at


@dataclass(frozen=True)
class CachedArtifact:
    """A complete response as stored in the artifact cache.

    Entries are immutable; a newer fetch replaces the whole entry.
    """

    status: int
    headers: Dict[str, str]
    body: bytes = b""
    reason: Optional[str] = None

    @property
    def etag(self) -> Optional[str]:
        return self.header("ETag")

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lower = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lower:
                return value
        return None

    def without_body(self) -> "CachedArtifact":
        """Copy for HEAD responses; headers are kept, the body is dropped."""
        return replace(self, body=b"")

    def with_status(
        self, status: int, reason: Optional[str] = None, extra_headers: Optional[Dict[str, str]] = None
    ) -> "CachedArtifact":
        headers = dict(self.headers)
        if extra_headers:
            headers.update(extra_headers)
        return replace(self, status=status, reason=reason, headers=headers)


class KeyValueStore:
    """TTL key/value store for the release registry snapshot.

    Mirrors the contract of an edge key/value namespace: values are strings,
    every write carries an expiration, and reads may find a key absent at
    any time.
    """

    def __init__(self, default_ttl: int = 3600):
        """Initialize the store.

        Args:
            default_ttl: Default time-to-live in seconds.
        """
        self._default_ttl = default_ttl
        self._cache: Dict[str, CacheEntry[str]] = {}
        self._max_entries = 10000
        self._last_cleanup = time.time()
        self._cleanup_interval = 60  # Run cleanup every minute

    async def get(self, key: str, cache_ttl: Optional[int] = None) -> Optional[str]:
        """Get a stored value.

        Args:
            key: Entry key.
            cache_ttl: Hint for how long a reader may keep the value locally.
                Accepted for contract compatibility; the in-process store
                always reads through.

        Returns:
            The stored string or None if absent/expired.
        """
        self._maybe_cleanup()

        entry = self._cache.get(key)
        if entry is None:
            return None

        if entry.is_expired():
            del self._cache[key]
            return None

        return entry.value

    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Store a value.

        Args:
            key: Entry key.
            value: String value.
            ttl: Optional TTL override in seconds.
        """
        self._maybe_cleanup()

        effective_ttl = ttl if ttl is not None else self._default_ttl
        self._cache[key] = CacheEntry(value=value, expires_at=time.time() + effective_ttl)

        if len(self._cache) > self._max_entries:
            self._evict_oldest(self._max_entries // 10)

    def stats(self) -> Dict[str, Any]:
        """Get store statistics."""
        expired_count = sum(1 for e in self._cache.values() if e.is_expired())
        return {
            "total_entries": len(self._cache),
            "expired_entries": expired_count,
            "active_entries": len(self._cache) - expired_count,
            "max_entries": self._max_entries,
            "default_ttl": self._default_ttl,
        }

    def _maybe_cleanup(self) -> None:
        """Run cleanup if enough time has passed."""
        now = time.time()
        if now - self._last_cleanup > self._cleanup_interval:
            self._cleanup()
            self._last_cleanup = now

    def _cleanup(self) -> None:
        """Remove expired entries."""
        keys_to_remove = [k for k, v in self._cache.items() if v.is_expired()]
        for key in keys_to_remove:
            del self._cache[key]

    def _evict_oldest(self, count: int) -> None:
        """Evict the oldest entries."""
        sorted_keys = sorted(self._cache.keys(), key=lambda k: self._cache[k].created_at)
        for key in sorted_keys[:count]:
            del self._cache[key]


class ArtifactCache:
    """TTL cache for served artifacts, keyed by absolute upstream URL.

    Bounded both by entry count and by total body bytes; bodies larger than
    a tenth of the byte limit are never stored.
    """

    def __init__(self, default_ttl: int = 300, max_entries: int = 5000, max_bytes: int = 256 * 1024 * 1024):
        """Initialize the artifact cache.

        Args:
            default_ttl: Default time-to-live in seconds.
            max_entries: Maximum number of cached artifacts.
            max_bytes: Maximum total size of cached bodies.
        """
        self._default_ttl = default_ttl
        self._cache: Dict[str, CacheEntry[CachedArtifact]] = {}
        self._max_entries = max_entries
        self._max_bytes = max_bytes
        self._current_bytes = 0
        self._last_cleanup = time.time()
        self._cleanup_interval = 30

    def max_entry_bytes(self) -> int:
        """Largest body size that will be stored."""
        return self._max_bytes // 10

    async def match(self, key: str) -> Optional[CachedArtifact]:
        """Get a cached artifact.

        Args:
            key: Absolute upstream URL.

        Returns:
            The cached artifact or None if not found/expired.
        """
        self._maybe_cleanup()

        entry = self._cache.get(key)
        if entry is None:
            return None

        if entry.is_expired():
            self._remove_entry(key)
            return None

        return entry.value

    async def put(self, key: str, artifact: CachedArtifact, ttl: Optional[int] = None) -> bool:
        """Cache an artifact.

        Args:
            key: Absolute upstream URL.
            artifact: Artifact to store.
            ttl: Optional TTL override in seconds.

        Returns:
            True if the artifact was stored.
        """
        self._maybe_cleanup()

        body_size = len(artifact.body)
        if body_size > self.max_entry_bytes():
            return False

        while self._current_bytes + body_size > self._max_bytes and self._cache:
            self._evict_oldest(1)

        if key in self._cache:
            self._remove_entry(key)

        effective_ttl = ttl if ttl is not None else self._default_ttl
        self._cache[key] = CacheEntry(value=artifact, expires_at=time.time() + effective_ttl)
        self._current_bytes += body_size

        if len(self._cache) > self._max_entries:
            self._evict_oldest(max(1, self._max_entries // 10))
        return True

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        expired_count = sum(1 for e in self._cache.values() if e.is_expired())
        return {
            "total_entries": len(self._cache),
            "expired_entries": expired_count,
            "active_entries": len(self._cache) - expired_count,
            "current_bytes": self._current_bytes,
            "max_bytes": self._max_bytes,
            "max_entries": self._max_entries,
            "default_ttl": self._default_ttl,
        }

    def _remove_entry(self, key: str) -> None:
        """Remove an entry and update byte count."""
        entry = self._cache.pop(key, None)
        if entry:
            self._current_bytes -= len(entry.value.body)

    def _maybe_cleanup(self) -> None:
        """Run cleanup if enough time has passed."""
        now = time.time()
        if now - self._last_cleanup > self._cleanup_interval:
            self._cleanup()
            self._last_cleanup = now

    def _cleanup(self) -> None:
        """Remove expired entries."""
        keys_to_remove = [key for key, entry in self._cache.items() if entry.is_expired()]
        for key in keys_to_remove:
            self._remove_entry(key)

    def _evict_oldest(self, count: int) -> None:
        """Evict the oldest entries."""
        sorted_keys = sorted(self._cache.keys(), key=lambda k: self._cache[k].created_at)
        for key in sorted_keys[:count]:
            self._remove_entry(key)
