"""Key generation, memoization and scoped views built on top of TTLCache."""

import base64
import hashlib
import json
import re
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from buildercache.cache.memory import TTLCache


def make_key(prefix: str, params: Mapping[str, Any]) -> str:
    """Build a deterministic key from *prefix* and *params*.

    Parameter order does not matter: ``make_key("p", {"a": 1, "b": 2})`` and
    ``make_key("p", {"b": 2, "a": 1})`` are equal.
    """
    joined = "|".join(f"{name}:{params[name]}" for name in sorted(params))
    encoded = base64.urlsafe_b64encode(joined.encode("utf-8")).decode("ascii")
    return f"{prefix}:{encoded}"


def completion_key(model: str, prompt: str, provider: str | None = None) -> str:
    """Key for a chat completion, e.g. ``chat:openai:gpt-4o:<sha256>``."""
    digest = hashlib.sha256(prompt.encode("utf-8")).hexdigest()
    scope = f"{provider}:{model}" if provider else model
    return f"chat:{scope}:{digest}"


async def get_or_set(
    cache: TTLCache,
    key: str,
    factory: Callable[[], Awaitable[Any]],
    ttl: float | None = None,
) -> Any:
    """Return the cached value for *key*, or await *factory* and cache its result.

    Exceptions raised by *factory* propagate and nothing is stored. A ``None``
    result is returned but not cached, since ``None`` already means "miss".
    """
    cached = cache.get(key)
    if cached is not None:
        return cached

    value = await factory()
    if value is not None:
        cache.set(key, value, ttl)
    return value


def invalidate_pattern(cache: TTLCache, pattern: str | re.Pattern[str]) -> int:
    """Delete every key in *cache* matching the regex *pattern*."""
    return cache.invalidate_pattern(pattern)


def invalidate_prefix(cache: TTLCache, prefix: str) -> int:
    """Delete every key in *cache* starting with *prefix*."""
    return cache.invalidate_pattern(re.compile("^" + re.escape(prefix)))


class ApiCache:
    """Endpoint-scoped view: keys look like ``api:<endpoint>:<params json>``."""

    def __init__(self, cache: TTLCache) -> None:
        self.cache = cache

    @staticmethod
    def key(endpoint: str, params: Mapping[str, Any] | None = None) -> str:
        encoded = json.dumps(dict(params or {}), sort_keys=True, default=str)
        return f"api:{endpoint}:{encoded}"

    def get(self, endpoint: str, params: Mapping[str, Any] | None = None) -> Any | None:
        return self.cache.get(self.key(endpoint, params))

    def set(
        self,
        endpoint: str,
        params: Mapping[str, Any] | None,
        value: Any,
        ttl: float | None = None,
    ) -> None:
        self.cache.set(self.key(endpoint, params), value, ttl)

    def invalidate(self, endpoint: str) -> int:
        """Drop every cached result for *endpoint*, whatever its params."""
        return invalidate_prefix(self.cache, f"api:{endpoint}:")


class SessionCache:
    """Per-session view: keys look like ``session:<session_id>:<key>``."""

    def __init__(self, cache: TTLCache) -> None:
        self.cache = cache

    @staticmethod
    def key(session_id: str, key: str) -> str:
        return f"session:{session_id}:{key}"

    def get(self, session_id: str, key: str) -> Any | None:
        return self.cache.get(self.key(session_id, key))

    def set(self, session_id: str, key: str, value: Any, ttl: float | None = None) -> None:
        self.cache.set(self.key(session_id, key), value, ttl)

    def delete(self, session_id: str, key: str) -> bool:
        return self.cache.delete(self.key(session_id, key))

    def clear(self, session_id: str) -> int:
        return invalidate_prefix(self.cache, f"session:{session_id}:")
