from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from buildercache.models.stats import CacheProfile, RateLimitRule


class Settings(BaseSettings):
    """Application configuration loaded from environment variables and .env file.

    Each named cache (``chat``, ``ai_builder``, ``enhancer``, ``general``) has
    its own size and default TTL. Caches requested under any other name use
    ``CACHE_MAX_SIZE`` / ``CACHE_DEFAULT_TTL_SECONDS``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Fallback profile for ad-hoc cache names
    cache_max_size: int = Field(default=1000, gt=0)
    cache_default_ttl_seconds: float = Field(default=300.0, gt=0, allow_inf_nan=False)

    # Background sweep: unset keeps lazy expiry only
    cache_cleanup_interval_seconds: float | None = Field(default=None, gt=0, allow_inf_nan=False)

    chat_cache_max_size: int = Field(default=500, gt=0)
    chat_cache_ttl_seconds: float = Field(default=300.0, gt=0, allow_inf_nan=False)
    ai_builder_cache_max_size: int = Field(default=100, gt=0)
    ai_builder_cache_ttl_seconds: float = Field(default=1800.0, gt=0, allow_inf_nan=False)
    enhancer_cache_max_size: int = Field(default=200, gt=0)
    enhancer_cache_ttl_seconds: float = Field(default=600.0, gt=0, allow_inf_nan=False)

    # Requests per window for each rate-limit profile
    chat_rate_limit: int = Field(default=10, gt=0)
    chat_rate_window_seconds: float = Field(default=60.0, gt=0, allow_inf_nan=False)
    ai_builder_rate_limit: int = Field(default=5, gt=0)
    ai_builder_rate_window_seconds: float = Field(default=300.0, gt=0, allow_inf_nan=False)
    enhancer_rate_limit: int = Field(default=15, gt=0)
    enhancer_rate_window_seconds: float = Field(default=60.0, gt=0, allow_inf_nan=False)
    general_rate_limit: int = Field(default=20, gt=0)
    general_rate_window_seconds: float = Field(default=60.0, gt=0, allow_inf_nan=False)

    # Remote hosting: transport, bind address, and auth
    mcp_transport: str = "stdio"
    mcp_host: str = "0.0.0.0"
    mcp_port: int = 8000
    mcp_auth_token: str | None = None
    # Optional second token limited to stats, keys and top-keys
    mcp_readonly_token: str | None = None

    data_dir: Path = Path(__file__).resolve().parent.parent / "data"
    log_level: str = "INFO"

    @property
    def sweeper_enabled(self) -> bool:
        return self.cache_cleanup_interval_seconds is not None

    def cache_profiles(self) -> dict[str, CacheProfile]:
        """Size/TTL profile for every preconfigured cache name."""
        return {
            "chat": CacheProfile(
                max_size=self.chat_cache_max_size,
                default_ttl=self.chat_cache_ttl_seconds,
            ),
            "ai_builder": CacheProfile(
                max_size=self.ai_builder_cache_max_size,
                default_ttl=self.ai_builder_cache_ttl_seconds,
            ),
            "enhancer": CacheProfile(
                max_size=self.enhancer_cache_max_size,
                default_ttl=self.enhancer_cache_ttl_seconds,
            ),
            "general": self.fallback_cache_profile(),
        }

    def fallback_cache_profile(self) -> CacheProfile:
        return CacheProfile(
            max_size=self.cache_max_size,
            default_ttl=self.cache_default_ttl_seconds,
        )

    def rate_limit_rules(self) -> dict[str, RateLimitRule]:
        return {
            "chat": RateLimitRule(
                window_seconds=self.chat_rate_window_seconds,
                max_requests=self.chat_rate_limit,
            ),
            "ai_builder": RateLimitRule(
                window_seconds=self.ai_builder_rate_window_seconds,
                max_requests=self.ai_builder_rate_limit,
            ),
            "enhancer": RateLimitRule(
                window_seconds=self.enhancer_rate_window_seconds,
                max_requests=self.enhancer_rate_limit,
            ),
            "general": RateLimitRule(
                window_seconds=self.general_rate_window_seconds,
                max_requests=self.general_rate_limit,
            ),
        }


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the cached Settings singleton. Created on first call."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Clear the cached settings. Used in tests."""
    global _settings  # noqa: PLW0603
    _settings = None
