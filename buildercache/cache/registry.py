"""Process-wide registry of independent named caches."""

import asyncio
import logging
import time
from collections.abc import Callable, Mapping

from buildercache.cache.memory import TTLCache
from buildercache.models.stats import CacheProfile, CacheStats

logger = logging.getLogger(__name__)


class CacheRegistry:
    """Lazily creates one :class:`TTLCache` per name.

    Named caches never share entries. Names listed in *profiles* get their
    configured size and TTL; any other name is created with *fallback*.

    Args:
        profiles: Size/TTL per preconfigured cache name.
        fallback: Profile for names not in *profiles*.
        clock: Time source passed to every cache.
    """

    def __init__(
        self,
        profiles: Mapping[str, CacheProfile] | None = None,
        fallback: CacheProfile | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._profiles = dict(profiles or {})
        self._fallback = fallback or CacheProfile()
        self._clock = clock
        self._caches: dict[str, TTLCache] = {}
        self._sweep_interval: float | None = None
        self._sweep_loop: asyncio.AbstractEventLoop | None = None

    def get(self, name: str) -> TTLCache:
        """Return the cache for *name*, creating it on first use."""
        cache = self._caches.get(name)
        if cache is None:
            profile = self._profiles.get(name, self._fallback)
            cache = TTLCache(
                max_size=profile.max_size,
                default_ttl=profile.default_ttl,
                name=name,
                clock=self._clock,
            )
            self._caches[name] = cache
            logger.debug(
                "Created cache '%s' (max_size=%d, ttl=%.0fs)",
                name,
                profile.max_size,
                profile.default_ttl,
            )
            if self._sweep_interval is not None:
                self._attach_sweeper(cache)
        return cache

    def exists(self, name: str) -> bool:
        return name in self._caches

    def names(self) -> list[str]:
        """Names of caches created so far, sorted."""
        return sorted(self._caches)

    def all_stats(self) -> dict[str, CacheStats]:
        return {name: self._caches[name].stats() for name in self.names()}

    def clear_all(self) -> None:
        for cache in self._caches.values():
            cache.clear()

    def start_sweepers(self, interval: float) -> None:
        """Sweep every existing cache, and every cache created later, on *interval*."""
        self._sweep_interval = interval
        self._sweep_loop = asyncio.get_running_loop()
        for cache in self._caches.values():
            cache.start_sweeper(interval)

    async def stop_sweepers(self) -> None:
        self._sweep_interval = None
        self._sweep_loop = None
        for cache in self._caches.values():
            await cache.stop_sweeper()

    def _attach_sweeper(self, cache: TTLCache) -> None:
        """Start a sweeper for a cache created after :meth:`start_sweepers`.

        Callers off the event loop thread (e.g. ``asyncio.to_thread``) hand the
        start over to the loop captured by :meth:`start_sweepers`.
        """
        interval = self._sweep_interval
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            loop = self._sweep_loop
            if loop is None or loop.is_closed() or not loop.is_running():
                logger.debug("No event loop for sweeper of cache '%s'; lazy expiry only", cache.name)
                return
            loop.call_soon_threadsafe(self._start_if_still_sweeping, cache, interval)
            return
        cache.start_sweeper(interval)  # type: ignore[arg-type]

    def _start_if_still_sweeping(self, cache: TTLCache, interval: float) -> None:
        if self._sweep_interval == interval and self._caches.get(cache.name) is cache:
            cache.start_sweeper(interval)

    def destroy_all(self) -> None:
        """Stop sweepers, clear and forget every cache."""
        self._sweep_interval = None
        self._sweep_loop = None
        for cache in self._caches.values():
            cache.destroy()
        self._caches.clear()


_registry: CacheRegistry | None = None


def get_registry() -> CacheRegistry:
    """Return the process-wide registry, built from settings on first call."""
    global _registry  # noqa: PLW0603
    if _registry is None:
        from buildercache.config import get_settings

        settings = get_settings()
        _registry = CacheRegistry(
            settings.cache_profiles(),
            settings.fallback_cache_profile(),
        )
    return _registry


def reset_registry() -> None:
    """Destroy and drop the process-wide registry. Used in tests."""
    global _registry  # noqa: PLW0603
    if _registry is not None:
        _registry.destroy_all()
    _registry = None


def get_cache(name: str = "general") -> TTLCache:
    """Shortcut for ``get_registry().get(name)``."""
    return get_registry().get(name)
