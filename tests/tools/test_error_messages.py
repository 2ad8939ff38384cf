"""Tests for buildercache.tools.error_messages: get_user_message + safe_tool_wrapper."""

import re

from buildercache.errors import (
    CacheConfigError,
    PermissionDeniedError,
    RateLimitExceededError,
    UnknownProfileError,
)
from buildercache.tools.error_messages import get_user_message, safe_tool_wrapper


class TestGetUserMessage:
    def test_unknown_cache(self):
        msg = get_user_message(UnknownProfileError("cache", "ghost"))
        assert msg == "No cache named 'ghost' exists in this process."

    def test_rate_limited(self):
        msg = get_user_message(RateLimitExceededError("user:1", 2.2))
        assert "Try again in 3 seconds" in msg

    def test_bad_pattern(self):
        try:
            re.compile("(")
        except re.error as exc:
            msg = get_user_message(exc)
        assert msg.startswith("Invalid key pattern")

    def test_config_error_with_context(self):
        msg = get_user_message(CacheConfigError("max_size must be positive"), {"cache": "chat"})
        assert "chat" in msg
        assert "max_size" in msg

    def test_permission_denied(self):
        msg = get_user_message(PermissionDeniedError("cache:admin"))
        assert msg.startswith("Permission denied")
        assert "'cache:admin'" in msg

    def test_value_error(self):
        assert "Invalid input" in get_user_message(ValueError("bad"))

    def test_unknown_error(self):
        msg = get_user_message(RuntimeError("boom"))
        assert "something went wrong" in msg.lower()


class TestSafeToolWrapper:
    async def test_success_passthrough(self):
        async def ok() -> str:
            return "fine"

        assert await safe_tool_wrapper(ok) == "fine"

    async def test_error_translated(self, caplog):
        async def failing(name: str) -> str:
            raise UnknownProfileError("cache", name)

        result = await safe_tool_wrapper(failing, "ghost")
        assert "ghost" in result
        assert "Tool error in failing" in caplog.text
