"""MCP tools for inspecting and invalidating the process's caches."""

import logging
import re

from fastmcp import FastMCP

from buildercache.auth import ADMIN_SCOPE, READ_SCOPE, require_scope
from buildercache.cache.memory import TTLCache
from buildercache.cache.registry import get_registry
from buildercache.errors import UnknownProfileError
from buildercache.models.stats import CacheStats
from buildercache.tools.error_messages import safe_tool_wrapper

logger = logging.getLogger(__name__)

_MAX_LISTED_KEYS = 100


def _existing_cache(name: str) -> TTLCache:
    registry = get_registry()
    if not registry.exists(name):
        raise UnknownProfileError("cache", name)
    return registry.get(name)


def format_stats(stats: CacheStats) -> str:
    return (
        f"  {stats.name}: {stats.size}/{stats.max_size} entries, "
        f"{stats.hit_rate * 100:.1f}% hit rate "
        f"({stats.hits} hits, {stats.misses} misses, {stats.sets} sets, "
        f"{stats.deletes} deletes, {stats.evictions} evictions, "
        f"~{stats.memory_usage} bytes)"
    )


def register_cache_tools(mcp: FastMCP) -> None:
    """Register cache inspection and invalidation tools on the MCP server."""

    @mcp.tool
    async def cache_stats(name: str | None = None) -> str:
        """Show hit rate, size and counters for one cache or all caches.

        Args:
            name: Cache name, e.g. "chat" or "ai_builder". Omit for all caches.

        Returns:
            One line of statistics per cache.
        """

        async def _run() -> str:
            require_scope(READ_SCOPE)
            if name is not None:
                return "Cache statistics:\n" + format_stats(_existing_cache(name).stats())
            all_stats = get_registry().all_stats()
            if not all_stats:
                return "No caches have been used yet."
            lines = ["Cache statistics:"]
            lines.extend(format_stats(s) for s in all_stats.values())
            return "\n".join(lines)

        return await safe_tool_wrapper(_run, context={"cache": name})

    @mcp.tool
    async def cache_keys(name: str, pattern: str | None = None) -> str:
        """List the live keys of a cache, least recently used first.

        Args:
            name: Cache name.
            pattern: Optional regular expression to filter keys.

        Returns:
            Newline-separated keys (at most 100).
        """

        async def _run() -> str:
            require_scope(READ_SCOPE)
            keys = _existing_cache(name).keys()
            if pattern:
                regex = re.compile(pattern)
                keys = [k for k in keys if regex.search(k)]
            if not keys:
                return f"No keys in cache '{name}'."
            shown = keys[:_MAX_LISTED_KEYS]
            lines = [f"{len(keys)} key(s) in cache '{name}':"]
            lines.extend(f"  {k}" for k in shown)
            if len(keys) > len(shown):
                lines.append(f"  ... and {len(keys) - len(shown)} more")
            return "\n".join(lines)

        return await safe_tool_wrapper(_run, context={"cache": name})

    @mcp.tool
    async def cache_top_keys(name: str, limit: int = 10) -> str:
        """Show the most frequently read keys of a cache.

        Args:
            name: Cache name.
            limit: Number of keys to show (default 10).

        Returns:
            Keys with their hit counts.
        """

        async def _run() -> str:
            require_scope(READ_SCOPE)
            top = _existing_cache(name).top_keys(limit)
            if not top:
                return f"No keys in cache '{name}'."
            lines = [f"Top keys in cache '{name}':"]
            lines.extend(f"  {t.key}: {t.hits} hit(s)" for t in top)
            return "\n".join(lines)

        return await safe_tool_wrapper(_run, context={"cache": name})

    @mcp.tool
    async def invalidate_cache(name: str, pattern: str) -> str:
        """Delete every key of a cache that matches a regular expression.

        Args:
            name: Cache name.
            pattern: Regular expression, e.g. "^api:/models:".

        Returns:
            How many keys were removed.
        """

        async def _run() -> str:
            require_scope(ADMIN_SCOPE)
            removed = _existing_cache(name).invalidate_pattern(pattern)
            logger.info("Invalidated %d key(s) in cache '%s' matching %r", removed, name, pattern)
            return f"Removed {removed} key(s) from cache '{name}'."

        return await safe_tool_wrapper(_run, context={"cache": name})

    @mcp.tool
    async def clear_cache(name: str | None = None) -> str:
        """Empty one cache, or every cache, and reset its counters.

        Args:
            name: Cache name. Omit to clear all caches.

        Returns:
            Confirmation message.
        """

        async def _run() -> str:
            require_scope(ADMIN_SCOPE)
            if name is None:
                get_registry().clear_all()
                logger.info("Cleared all caches")
                return "Cleared all caches."
            _existing_cache(name).clear()
            logger.info("Cleared cache '%s'", name)
            return f"Cleared cache '{name}'."

        return await safe_tool_wrapper(_run, context={"cache": name})
