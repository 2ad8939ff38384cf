"""Exception hierarchy shared by the cache, rate limiter and tool layers."""

import math


class BuilderCacheError(Exception):
    """Base class for all buildercache errors."""


class CacheConfigError(BuilderCacheError, ValueError):
    """A cache, sweeper or rate-limit rule was configured with invalid values."""


class UnknownProfileError(BuilderCacheError, KeyError):
    """A named cache or rate-limit profile does not exist."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"Unknown {kind} profile '{name}'")
        self.kind = kind
        self.name = name

    def __str__(self) -> str:
        return self.args[0]


class RateLimitExceededError(BuilderCacheError):
    """A caller exceeded its request budget for the current window."""

    def __init__(self, key: str, retry_after: float) -> None:
        self.key = key
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded. Try again in {max(1, math.ceil(retry_after))} seconds."
        )


class PermissionDeniedError(BuilderCacheError):
    """The caller's token lacks the scope an operation requires."""

    def __init__(self, scope: str) -> None:
        self.scope = scope
        super().__init__(f"This operation requires the '{scope}' scope")
