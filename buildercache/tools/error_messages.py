"""Operator-facing error messages and safe tool wrapper."""

import logging
import re

from buildercache.errors import (
    CacheConfigError,
    PermissionDeniedError,
    RateLimitExceededError,
    UnknownProfileError,
)

logger = logging.getLogger(__name__)


def get_user_message(error: Exception, context: dict | None = None) -> str:
    """Map an exception to a readable message.

    Args:
        error: The exception to translate.
        context: Optional dict with extra info (e.g. {"cache": "chat"}).

    Returns:
        A human-readable error message.
    """
    cache = (context or {}).get("cache", "the cache")

    if isinstance(error, UnknownProfileError):
        return f"No {error.kind} named '{error.name}' exists in this process."
    if isinstance(error, PermissionDeniedError):
        return f"Permission denied: this token does not grant the '{error.scope}' scope."
    if isinstance(error, RateLimitExceededError):
        return str(error)
    if isinstance(error, re.error):
        return f"Invalid key pattern: {error}"
    if isinstance(error, CacheConfigError):
        return f"Invalid configuration for {cache}: {error}"
    if isinstance(error, ValueError):
        return f"Invalid input: {error}"
    return "Something went wrong. Check the server log for details."


async def safe_tool_wrapper(
    func,  # type: ignore[no-untyped-def]
    *args: object,
    context: dict | None = None,
    **kwargs: object,
) -> str:
    """Call an async function, catching errors and returning readable messages.

    Args:
        func: Async callable to invoke.
        *args: Positional arguments for *func*.
        context: Optional context dict for error messages.
        **kwargs: Keyword arguments for *func*.

    Returns:
        The function's return value on success, or an error string.
    """
    try:
        return await func(*args, **kwargs)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Tool error in %s", func.__name__)
        return get_user_message(exc, context)
