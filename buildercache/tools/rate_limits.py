"""MCP tool for checking rate-limit state without consuming a request."""

import logging

from fastmcp import FastMCP

from buildercache.auth import READ_SCOPE, require_scope
from buildercache.ratelimit import get_rate_limiter, get_rule
from buildercache.tools.error_messages import safe_tool_wrapper

logger = logging.getLogger(__name__)


def register_rate_limit_tools(mcp: FastMCP) -> None:
    """Register rate-limit inspection tools on the MCP server."""

    @mcp.tool
    async def rate_limit_status(key: str, profile: str = "general") -> str:
        """Show the remaining request budget for a client key.

        Args:
            key: Rate-limit key, e.g. "user:42" or "ip:203.0.113.9:Mozilla/5.0".
            profile: One of "chat", "ai_builder", "enhancer", "general".

        Returns:
            Remaining requests and seconds until the window resets.
        """

        async def _run() -> str:
            require_scope(READ_SCOPE)
            info = get_rate_limiter().get_info(key, get_rule(profile))
            state = "allowed" if info.allowed else "blocked"
            return (
                f"{key} ({profile}): {state}, {info.remaining}/{info.total} "
                f"request(s) left, window resets in {info.reset_in:.0f}s"
            )

        return await safe_tool_wrapper(_run)
