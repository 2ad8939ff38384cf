"""Tests for buildercache.cache.helpers: keys, get_or_set, invalidation, scoped views."""

import re
from unittest.mock import AsyncMock

import pytest

from buildercache.cache.helpers import (
    ApiCache,
    SessionCache,
    completion_key,
    get_or_set,
    invalidate_pattern,
    invalidate_prefix,
    make_key,
)
from buildercache.cache.memory import TTLCache


class TestMakeKey:
    def test_param_order_irrelevant(self):
        assert make_key("chat", {"a": 1, "b": "x"}) == make_key("chat", {"b": "x", "a": 1})

    def test_prefix_kept_readable(self):
        assert make_key("builder", {"p": 1}).startswith("builder:")

    def test_different_params_differ(self):
        assert make_key("chat", {"a": 1}) != make_key("chat", {"a": 2})

    def test_empty_params(self):
        assert make_key("x", {}) == "x:"


class TestCompletionKey:
    def test_includes_model_and_provider(self):
        key = completion_key("gpt-4o", "hello", provider="openai")
        assert key.startswith("chat:openai:gpt-4o:")

    def test_without_provider(self):
        assert completion_key("deepseek-chat", "hi").startswith("chat:deepseek-chat:")

    def test_prompt_hashed(self):
        key = completion_key("m", "a very long prompt " * 100)
        assert len(key.rsplit(":", 1)[1]) == 64
        assert completion_key("m", "a") != completion_key("m", "b")


class TestGetOrSet:
    async def test_calls_factory_on_miss_and_caches(self):
        cache = TTLCache()
        factory = AsyncMock(return_value={"text": "hi"})
        assert await get_or_set(cache, "k", factory) == {"text": "hi"}
        assert await get_or_set(cache, "k", factory) == {"text": "hi"}
        factory.assert_awaited_once()

    async def test_custom_ttl(self, clock):
        cache = TTLCache(clock=clock)
        factory = AsyncMock(return_value="v")
        await get_or_set(cache, "k", factory, ttl=1)
        clock.advance(2)
        await get_or_set(cache, "k", factory, ttl=1)
        assert factory.await_count == 2

    async def test_factory_error_propagates_and_not_cached(self):
        cache = TTLCache()
        factory = AsyncMock(side_effect=RuntimeError("provider quota"))
        with pytest.raises(RuntimeError, match="quota"):
            await get_or_set(cache, "k", factory)
        assert cache.size == 0

    async def test_none_result_not_cached(self):
        cache = TTLCache()
        factory = AsyncMock(return_value=None)
        assert await get_or_set(cache, "k", factory) is None
        assert cache.size == 0


class TestInvalidation:
    def test_invalidate_pattern_accepts_compiled(self):
        cache = TTLCache()
        cache.set("user:1", 1)
        cache.set("user:2", 2)
        cache.set("team:1", 3)
        assert invalidate_pattern(cache, re.compile(r"^user:")) == 2
        assert cache.keys() == ["team:1"]

    def test_invalidate_prefix_escapes_regex(self):
        cache = TTLCache()
        cache.set("a.b:1", 1)
        cache.set("aXb:1", 2)
        assert invalidate_prefix(cache, "a.b:") == 1
        assert cache.keys() == ["aXb:1"]

    def test_no_match_returns_zero(self):
        cache = TTLCache()
        cache.set("a", 1)
        assert invalidate_prefix(cache, "zzz") == 0


class TestApiCache:
    def test_round_trip_independent_of_param_order(self):
        api = ApiCache(TTLCache())
        api.set("/models", {"page": 1, "q": "gpt"}, ["gpt-4o"])
        assert api.get("/models", {"q": "gpt", "page": 1}) == ["gpt-4o"]

    def test_none_params(self):
        api = ApiCache(TTLCache())
        api.set("/health", None, "ok")
        assert api.get("/health") == "ok"

    def test_invalidate_endpoint_only(self):
        api = ApiCache(TTLCache())
        api.set("/models", {"page": 1}, 1)
        api.set("/models", {"page": 2}, 2)
        api.set("/models-extra", None, 3)
        assert api.invalidate("/models") == 2
        assert api.get("/models-extra") == 3


class TestSessionCache:
    def test_set_get_delete(self):
        sessions = SessionCache(TTLCache())
        sessions.set("s1", "history", ["hello"])
        assert sessions.get("s1", "history") == ["hello"]
        assert sessions.get("s2", "history") is None
        assert sessions.delete("s1", "history") is True
        assert sessions.get("s1", "history") is None

    def test_clear_one_session(self):
        sessions = SessionCache(TTLCache())
        sessions.set("s1", "a", 1)
        sessions.set("s1", "b", 2)
        sessions.set("s10", "a", 3)
        assert sessions.clear("s1") == 2
        assert sessions.get("s10", "a") == 3
