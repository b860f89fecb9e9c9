"""Single-slot cache for decompressed shard buffers.

This module keeps at most one decompressed shard resident. Readers hold
reference-counted leases so swapping the slot never pulls a buffer out
from under an in-flight read; the evicted buffer is dropped when its
last lease is released.
"""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Callable

from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class CacheStats:
    """Counters describing cache behaviour.

    Attributes:
        hits: Acquisitions served from the resident buffer.
        misses: Acquisitions that had to run the loader.
        evictions: Buffers displaced from the slot.
    """

    hits: int
    misses: int
    evictions: int


class _CachedBuffer:
    """Slot entry tracking outstanding leases."""

    def __init__(self, key: str, data: bytes) -> None:
        self.key = key
        self.data: bytes | None = data
        self.refs = 0
        self.evicted = False


class BufferLease:
    """Read-only view of a cached buffer held by one reader."""

    def __init__(self, entry: _CachedBuffer, release: Callable[[_CachedBuffer], None]) -> None:
        self._entry: _CachedBuffer | None = entry
        self._release = release
        self._view = memoryview(entry.data if entry.data is not None else b"")

    @property
    def key(self) -> str:
        """Return the cache key the lease was acquired for."""
        if self._entry is None:
            raise ValueError("Buffer lease already released.")
        return self._entry.key

    @property
    def view(self) -> memoryview:
        """Return the leased buffer as a read-only memoryview.

        Raises:
            ValueError: If the lease was already released.
        """
        if self._entry is None:
            raise ValueError("Buffer lease already released.")
        return self._view

    def release(self) -> None:
        """Drop this lease; repeated calls are no-ops."""
        if self._entry is None:
            return
        entry = self._entry
        self._entry = None
        self._view.release()
        self._release(entry)

    def __enter__(self) -> "BufferLease":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class ShardCache:
    """Thread-safe single-slot buffer cache.

    Only the slot lookup and swap run under the lock. Loading a missing
    buffer happens outside it, so a slow decompression never blocks
    readers of the resident buffer.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._slot: _CachedBuffer | None = None
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def current_key(self) -> str | None:
        """Return the key of the resident buffer, if any."""
        with self._lock:
            return self._slot.key if self._slot is not None else None

    def acquire(self, key: str, loader: Callable[[], bytes]) -> BufferLease:
        """Lease the buffer for ``key``, loading it on a miss.

        Args:
            key: Cache key identifying one version of a shard file.
            loader: Callable producing the buffer; its errors propagate
                and leave the slot unchanged.

        Returns:
            Lease over the buffer; release it when done reading.
        """
        with self._lock:
            if self._slot is not None and self._slot.key == key:
                self._hits += 1
                return self._lease(self._slot)
            self._misses += 1
        data = loader()
        with self._lock:
            if self._slot is not None and self._slot.key == key:
                return self._lease(self._slot)
            entry = _CachedBuffer(key, data)
            evicted = self._swap(entry)
            lease = self._lease(entry)
        if evicted is not None:
            _LOGGER.debug("shard_cache_evicted", evicted_key=evicted, new_key=key)
        return lease

    def clear(self) -> None:
        """Evict the resident buffer, if any."""
        with self._lock:
            evicted = self._swap(None)
        if evicted is not None:
            _LOGGER.debug("shard_cache_evicted", evicted_key=evicted, new_key=None)

    def stats(self) -> CacheStats:
        """Return a snapshot of cache counters."""
        with self._lock:
            return CacheStats(hits=self._hits, misses=self._misses, evictions=self._evictions)

    def _lease(self, entry: _CachedBuffer) -> BufferLease:
        """Create a lease; caller must hold the lock."""
        entry.refs += 1
        return BufferLease(entry, self._release_entry)

    def _swap(self, entry: _CachedBuffer | None) -> str | None:
        """Install ``entry`` in the slot; caller must hold the lock."""
        previous = self._slot
        self._slot = entry
        if previous is None:
            return None
        previous.evicted = True
        self._evictions += 1
        if previous.refs == 0:
            previous.data = None
        return previous.key

    def _release_entry(self, entry: _CachedBuffer) -> None:
        with self._lock:
            entry.refs -= 1
            if entry.evicted and entry.refs == 0:
                entry.data = None
