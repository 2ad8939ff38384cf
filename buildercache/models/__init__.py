from buildercache.models.stats import (
    CacheProfile,
    CacheStats,
    RateLimitInfo,
    RateLimitRule,
    TopKey,
)

__all__ = [
    "CacheProfile",
    "CacheStats",
    "RateLimitInfo",
    "RateLimitRule",
    "TopKey",
]
