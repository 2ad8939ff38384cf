from pathlib import Path

import pytest
from pydantic import ValidationError

from buildercache.config import Settings, get_settings, reset_settings
from buildercache.models.stats import CacheProfile


class TestSettings:
    """Test Settings class field defaults and computed properties."""

    def test_cache_defaults(self):
        s = Settings(_env_file=None)
        assert s.cache_max_size == 1000
        assert s.cache_default_ttl_seconds == 300
        assert s.cache_cleanup_interval_seconds is None
        assert s.sweeper_enabled is False

    def test_cleanup_interval_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CACHE_CLEANUP_INTERVAL_SECONDS", "60")
        s = Settings(_env_file=None)
        assert s.cache_cleanup_interval_seconds == 60
        assert s.sweeper_enabled is True

    def test_zero_max_size_rejected(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CACHE_MAX_SIZE", "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_negative_cleanup_interval_rejected(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CACHE_CLEANUP_INTERVAL_SECONDS", "-5")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_infinite_ttl_rejected(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CHAT_CACHE_TTL_SECONDS", "inf")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_profile_rejects_non_finite_ttl(self):
        with pytest.raises(ValidationError):
            CacheProfile(default_ttl=float("inf"))
        with pytest.raises(ValidationError):
            CacheProfile(default_ttl=float("nan"))

    def test_cache_profiles(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("AI_BUILDER_CACHE_TTL_SECONDS", "900")
        profiles = Settings(_env_file=None).cache_profiles()
        assert set(profiles) == {"chat", "ai_builder", "enhancer", "general"}
        assert profiles["ai_builder"] == CacheProfile(max_size=100, default_ttl=900)
        assert profiles["chat"] == CacheProfile(max_size=500, default_ttl=300)

    def test_rate_limit_rules_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CHAT_RATE_LIMIT", "3")
        rules = Settings(_env_file=None).rate_limit_rules()
        assert rules["chat"].max_requests == 3
        assert rules["chat"].window_seconds == 60

    def test_readonly_token_defaults_to_none(self):
        assert Settings(_env_file=None).mcp_readonly_token is None

    def test_readonly_token_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MCP_READONLY_TOKEN", "r" * 40)
        assert Settings(_env_file=None).mcp_readonly_token == "r" * 40

    def test_default_transport(self):
        s = Settings(_env_file=None)
        assert s.mcp_transport == "stdio"
        assert s.mcp_port == 8000
        assert s.mcp_auth_token is None

    def test_default_data_dir(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("DATA_DIR", raising=False)
        s = Settings(_env_file=None)
        expected = Path(__file__).resolve().parent.parent / "data"
        assert s.data_dir == expected

    def test_custom_data_dir(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DATA_DIR", "/tmp/custom")
        s = Settings(_env_file=None)
        assert s.data_dir == Path("/tmp/custom")

    def test_custom_log_level(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert Settings(_env_file=None).log_level == "DEBUG"


class TestGetSettings:
    """Test the lazy singleton get_settings / reset_settings."""

    def test_get_settings_is_singleton(self):
        assert get_settings() is get_settings()

    def test_reset_settings_clears_cache(self):
        s1 = get_settings()
        reset_settings()
        s2 = get_settings()
        assert s1 is not s2
