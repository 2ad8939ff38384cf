"""In-memory TTL cache with LRU eviction and metrics."""

import json
import logging
import math
import re
import time
from collections import OrderedDict
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from buildercache.cache.sweeper import ExpirySweeper
from buildercache.errors import CacheConfigError
from buildercache.models.stats import CacheStats, TopKey

logger = logging.getLogger(__name__)

_ENTRY_OVERHEAD_BYTES = 32


@dataclass
class CacheEntry:
    value: Any
    created_at: float
    expires_at: float
    hit_count: int = 0
    last_accessed_at: float = 0.0

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheMetrics:
    """Tracks cache hit/miss/eviction statistics."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.deletes = 0
        self.evictions = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total


class TTLCache:
    """Size-bounded cache with per-entry TTL and LRU eviction.

    Entries expire lazily: an expired entry is dropped the next time it is
    read through ``get`` or ``has``, or by :meth:`cleanup` when a sweeper is
    running. The underlying ``OrderedDict`` is kept in recency order, oldest
    first, so eviction pops from the front.

    Args:
        max_size: Maximum number of entries before eviction.
        default_ttl: TTL in seconds used when ``set`` is called without one.
        name: Label used in stats and log lines.
        clock: Monotonic time source, injectable for tests.

    Raises:
        CacheConfigError: If *max_size* is not positive or *default_ttl* is
            not a positive finite number.
    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: float = 300.0,
        *,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size <= 0:
            raise CacheConfigError(f"max_size must be positive, got {max_size}")
        if not math.isfinite(default_ttl) or default_ttl <= 0:
            raise CacheConfigError(f"default_ttl must be a positive finite number, got {default_ttl}")
        self.name = name
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._sweeper: ExpirySweeper | None = None
        self.metrics = CacheMetrics()

    def get(self, key: str) -> Any | None:
        """Retrieve a value if present and unexpired.

        Args:
            key: Cache key.

        Returns:
            Cached value or None.
        """
        now = self._clock()
        entry = self._live_entry(key, now)
        if entry is None:
            self.metrics.misses += 1
            return None

        entry.hit_count += 1
        entry.last_accessed_at = now
        self._store.move_to_end(key)
        self.metrics.hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value, evicting the least recently used entry if at capacity.

        A non-positive *ttl* stores nothing and drops any existing entry for
        *key*, as if the value had expired immediately.

        Raises:
            CacheConfigError: If *ttl* is NaN or infinite.
        """
        effective_ttl = self.default_ttl if ttl is None else ttl
        if not math.isfinite(effective_ttl):
            raise CacheConfigError(f"ttl must be a finite number of seconds, got {ttl}")
        if effective_ttl <= 0:
            self._store.pop(key, None)
            logger.debug("Cache '%s': ttl %s for %r treated as expired", self.name, ttl, key)
            return

        if key in self._store:
            self._store.move_to_end(key)
        elif len(self._store) >= self.max_size:
            self._evict_lru()

        now = self._clock()
        self._store[key] = CacheEntry(
            value=value,
            created_at=now,
            expires_at=now + effective_ttl,
            last_accessed_at=now,
        )
        self.metrics.sets += 1

    def delete(self, key: str) -> bool:
        """Remove a specific key. Returns True if the key existed."""
        if key in self._store:
            del self._store[key]
            self.metrics.deletes += 1
            return True
        return False

    def has(self, key: str) -> bool:
        """Return True if *key* is stored and unexpired. Does not count as a read."""
        return self._live_entry(key, self._clock()) is not None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __len__(self) -> int:
        return len(self._store)

    def clear(self) -> None:
        """Remove all entries and reset counters."""
        self._store.clear()
        self.metrics.reset()

    @property
    def size(self) -> int:
        """Current number of entries, including expired ones not yet swept."""
        return len(self._store)

    def keys(self) -> list[str]:
        """Snapshot of unexpired keys, least recently used first."""
        now = self._clock()
        return [k for k, e in self._store.items() if not e.is_expired(now)]

    def stats(self) -> CacheStats:
        return CacheStats(
            name=self.name,
            hits=self.metrics.hits,
            misses=self.metrics.misses,
            sets=self.metrics.sets,
            deletes=self.metrics.deletes,
            evictions=self.metrics.evictions,
            size=len(self._store),
            max_size=self.max_size,
            hit_rate=self.metrics.hit_rate,
            memory_usage=self.estimate_memory_usage(),
        )

    def estimate_memory_usage(self) -> int:
        """Rough byte estimate of stored keys and JSON-encoded values.

        Values that cannot be encoded (circular references, arbitrary objects)
        contribute only their key and fixed overhead.
        """
        total = 0
        for key, entry in self._store.items():
            total += len(key) * 2 + _ENTRY_OVERHEAD_BYTES
            try:
                total += len(json.dumps(entry.value)) * 2
            except (TypeError, ValueError, RecursionError):
                logger.debug("Cache '%s': value for %r is not JSON-encodable", self.name, key)
        return total

    def cleanup(self) -> int:
        """Drop every expired entry now. Returns the number removed."""
        now = self._clock()
        expired = [k for k, e in self._store.items() if e.is_expired(now)]
        for key in expired:
            del self._store[key]
        self.metrics.evictions += len(expired)
        if expired:
            logger.debug("Cache '%s': swept %d expired entries", self.name, len(expired))
        return len(expired)

    def warmup(self, entries: Iterable[tuple | Mapping[str, Any]]) -> None:
        """Bulk-load entries given as ``(key, value[, ttl])`` or ``{"key", "value", "ttl"}``."""
        for item in entries:
            if isinstance(item, Mapping):
                self.set(item["key"], item["value"], item.get("ttl"))
            else:
                self.set(*item)

    def top_keys(self, limit: int = 10) -> list[TopKey]:
        """Unexpired entries ordered by hit count, most read first."""
        now = self._clock()
        ranked = sorted(
            ((k, e) for k, e in self._store.items() if not e.is_expired(now)),
            key=lambda item: item[1].hit_count,
            reverse=True,
        )
        return [
            TopKey(key=k, hits=e.hit_count, last_accessed_at=e.last_accessed_at)
            for k, e in ranked[:limit]
        ]

    def invalidate_pattern(self, pattern: str | re.Pattern[str]) -> int:
        """Delete every key matching *pattern* (``re.search``). Returns the count."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        matched = [k for k in list(self._store) if regex.search(k)]
        return sum(1 for k in matched if self.delete(k))

    # ── Background sweep ────────────────────────────────────────────────────

    def start_sweeper(self, interval: float) -> ExpirySweeper:
        """Start periodic :meth:`cleanup` on the running event loop."""
        if self._sweeper is None or self._sweeper.interval != interval:
            if self._sweeper is not None:
                self._sweeper.cancel()
            self._sweeper = ExpirySweeper(self, interval)
        self._sweeper.start()
        return self._sweeper

    async def stop_sweeper(self) -> None:
        if self._sweeper is not None:
            await self._sweeper.stop()
            self._sweeper = None

    @property
    def sweeper(self) -> ExpirySweeper | None:
        return self._sweeper

    def destroy(self) -> None:
        """Cancel any sweeper and drop all entries."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            self._sweeper = None
        self.clear()

    # ── Internals ───────────────────────────────────────────────────────────

    def _live_entry(self, key: str, now: float) -> CacheEntry | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.is_expired(now):
            del self._store[key]
            self.metrics.evictions += 1
            return None
        return entry

    def _evict_lru(self) -> None:
        key, _ = self._store.popitem(last=False)
        self.metrics.evictions += 1
        logger.debug("Cache '%s': evicted least recently used key %r", self.name, key)
