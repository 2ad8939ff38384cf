from pydantic import BaseModel, ConfigDict, Field


class CacheStats(BaseModel):
    """Point-in-time counters for one cache."""

    model_config = ConfigDict(frozen=True)

    name: str = "default"
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0
    hit_rate: float = 0.0
    memory_usage: int = 0


class TopKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    hits: int
    last_accessed_at: float


class CacheProfile(BaseModel):
    """Size and default TTL for a named cache."""

    max_size: int = Field(default=1000, gt=0)
    default_ttl: float = Field(default=300.0, gt=0, allow_inf_nan=False)


class RateLimitRule(BaseModel):
    """Fixed-window request budget."""

    window_seconds: float = Field(gt=0, allow_inf_nan=False)
    max_requests: int = Field(gt=0)


class RateLimitInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    remaining: int
    reset_in: float
    total: int
