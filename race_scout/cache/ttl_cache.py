"""
In-memory TTL cache with hit/miss accounting and a periodic sweeper.

Expiry contract: an entry written at ``t`` with ``ttl`` seconds is logically
absent once ``now - t > ttl``.  ``get`` never returns an expired entry; it
evicts it on the spot.  ``sweep`` removes every expired entry in one pass so
that keys which are never read again do not accumulate.

All state sits behind a single ``threading.Lock``.  Keys are independent, so
no operation needs more than one key at a time.

Usage::

    cache = TTLCache()
    cache.set("global_stats:100:50", stats, ttl=600)
    cache.get("global_stats:100:50")           # → stats, or None once expired

    sweeper = CacheSweeper.from_config(cache, CacheConfig())   # sweep_interval_s
    sweeper.start()
    ...
    sweeper.stop()
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from race_scout.config import CacheConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A stored value, its write time (clock seconds) and its TTL (seconds)."""

    value:      Any
    written_at: float
    ttl:        float

    def expired(self, now: float) -> bool:
        return now - self.written_at > self.ttl


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of cache request counters."""

    hits:           int
    misses:         int
    total_requests: int

    @property
    def hit_rate(self) -> float:
        """``hits / total_requests``; 0.0 before any request."""
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests


class CacheCounters:
    """Hit/miss counters safe to update from any thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def record_hit(self) -> None:
        with self._lock:
            self._hits += 1

    def record_miss(self) -> None:
        with self._lock:
            self._misses += 1

    def reset(self) -> None:
        with self._lock:
            self._hits = 0
            self._misses = 0

    def snapshot(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                total_requests=self._hits + self._misses,
            )


class TTLCache:
    """Thread-safe key → value store with per-entry expiry.

    Args:
        clock: Monotonic time source in seconds.  Tests inject a fake clock.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}
        self._counters = CacheCounters()

    def get(self, key: str) -> Optional[Any]:
        """Return the live value for ``key``, or ``None`` if absent or expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.expired(now):
                del self._entries[key]
                entry = None
        if entry is None:
            self._counters.record_miss()
            return None
        self._counters.record_hit()
        return entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds (overwrites).

        Raises:
            ValueError: If ``ttl`` is not positive.
        """
        if not ttl > 0:
            raise ValueError(f"ttl must be > 0 seconds, got {ttl}.")
        entry = CacheEntry(value=value, written_at=self._clock(), ttl=ttl)
        with self._lock:
            self._entries[key] = entry

    def delete(self, key: str) -> bool:
        """Remove ``key``.  Returns ``True`` if it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop every entry and reset the request counters."""
        with self._lock:
            self._entries.clear()
        self._counters.reset()

    def sweep(self) -> int:
        """Remove all expired entries.  Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def size(self) -> int:
        """Number of stored entries, including expired ones not yet evicted."""
        with self._lock:
            return len(self._entries)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def stats(self) -> CacheStats:
        return self._counters.snapshot()


class CacheSweeper:
    """Runs ``cache.sweep()`` every ``interval_s`` seconds in a daemon thread.

    ``stop()`` wakes the thread immediately instead of waiting out the
    current interval.
    """

    def __init__(self, cache: TTLCache, interval_s: float = 300.0) -> None:
        if not interval_s > 0:
            raise ValueError(f"interval_s must be > 0, got {interval_s}.")
        self.cache = cache
        self.interval_s = interval_s
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_config(cls, cache: TTLCache, config: CacheConfig) -> "CacheSweeper":
        """A sweeper for ``cache`` running every ``config.sweep_interval_s`` seconds."""
        return cls(cache, interval_s=config.sweep_interval_s)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="race-scout-cache-sweeper", daemon=True
        )
        self._thread.start()
        logger.debug("Cache sweeper started (interval=%ss)", self.interval_s)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.debug("Cache sweeper stopped")

    def run_once(self) -> int:
        removed = self.cache.sweep()
        if removed > 0:
            logger.info("Cache sweep: removed %d expired entries", removed)
        return removed

    def _run(self) -> None:
        while not self._stop.wait(self.interval_s):
            self.run_once()
