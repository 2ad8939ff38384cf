from buildercache.cache.helpers import (
    ApiCache,
    SessionCache,
    completion_key,
    get_or_set,
    invalidate_pattern,
    invalidate_prefix,
    make_key,
)
from buildercache.cache.memory import CacheEntry, CacheMetrics, TTLCache
from buildercache.cache.registry import (
    CacheRegistry,
    get_cache,
    get_registry,
    reset_registry,
)
from buildercache.cache.sweeper import ExpirySweeper

__all__ = [
    "ApiCache",
    "CacheEntry",
    "CacheMetrics",
    "CacheRegistry",
    "ExpirySweeper",
    "SessionCache",
    "TTLCache",
    "completion_key",
    "get_cache",
    "get_or_set",
    "get_registry",
    "invalidate_pattern",
    "invalidate_prefix",
    "make_key",
    "reset_registry",
]
