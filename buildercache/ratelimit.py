"""Fixed-window, per-key request limiter kept in process memory."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from buildercache.errors import RateLimitExceededError, UnknownProfileError
from buildercache.models.stats import RateLimitInfo, RateLimitRule

logger = logging.getLogger(__name__)

_USER_AGENT_KEY_LENGTH = 50


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """Counts requests per key inside fixed windows.

    The first request for a key (or the first after its window has ended)
    opens a new window of ``rule.window_seconds``. Within a window at most
    ``rule.max_requests`` calls to :meth:`is_allowed` return True.

    Args:
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def is_allowed(self, key: str, rule: RateLimitRule) -> bool:
        """Record a request for *key* and return whether it fits in the budget."""
        now = self._clock()
        window = self._windows.get(key)
        if window is None or now >= window.reset_at:
            self._windows[key] = _Window(count=1, reset_at=now + rule.window_seconds)
            return True

        if window.count >= rule.max_requests:
            return False

        window.count += 1
        return True

    def get_info(self, key: str, rule: RateLimitRule) -> RateLimitInfo:
        """Describe the current window for *key* without recording a request."""
        now = self._clock()
        window = self._windows.get(key)
        if window is None or now >= window.reset_at:
            return RateLimitInfo(
                allowed=True,
                remaining=rule.max_requests,
                reset_in=rule.window_seconds,
                total=rule.max_requests,
            )
        return RateLimitInfo(
            allowed=window.count < rule.max_requests,
            remaining=max(0, rule.max_requests - window.count),
            reset_in=window.reset_at - now,
            total=rule.max_requests,
        )

    def check(self, key: str, rule: RateLimitRule) -> RateLimitInfo:
        """Record a request, raising if it exceeds the budget.

        Raises:
            RateLimitExceededError: With ``retry_after`` set to the seconds
                left in the current window.
        """
        if not self.is_allowed(key, rule):
            retry_after = self._windows[key].reset_at - self._clock()
            logger.info("Rate limit hit for %s (retry in %.1fs)", key, retry_after)
            raise RateLimitExceededError(key, retry_after)
        return self.get_info(key, rule)

    def cleanup(self) -> int:
        """Forget windows that have ended. Returns the number removed."""
        now = self._clock()
        ended = [k for k, w in self._windows.items() if now >= w.reset_at]
        for key in ended:
            del self._windows[key]
        return len(ended)

    def reset(self) -> None:
        self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)


def rate_limit_key(
    ip: str | None = None,
    user_agent: str | None = None,
    user_id: str | None = None,
) -> str:
    """Key requests by user when known, otherwise by client IP and user agent."""
    if user_id:
        return f"user:{user_id}"
    agent = (user_agent or "unknown")[:_USER_AGENT_KEY_LENGTH]
    return f"ip:{ip or 'unknown'}:{agent}"


def get_rule(profile: str) -> RateLimitRule:
    """Look up a named rate-limit profile from settings.

    Raises:
        UnknownProfileError: If *profile* is not configured.
    """
    from buildercache.config import get_settings

    rules = get_settings().rate_limit_rules()
    if profile not in rules:
        raise UnknownProfileError("rate limit", profile)
    return rules[profile]


_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Return the process-wide limiter. Created on first call."""
    global _limiter  # noqa: PLW0603
    if _limiter is None:
        _limiter = RateLimiter()
    return _limiter


def reset_rate_limiter() -> None:
    """Drop the process-wide limiter. Used in tests."""
    global _limiter  # noqa: PLW0603
    _limiter = None
