import pytest

from buildercache.cache.registry import reset_registry
from buildercache.config import reset_settings
from buildercache.ratelimit import reset_rate_limiter


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _isolate_singletons(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Give every test fresh settings, caches and rate limiter."""
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("MCP_AUTH_TOKEN", raising=False)
    monkeypatch.delenv("MCP_READONLY_TOKEN", raising=False)
    monkeypatch.delenv("CACHE_CLEANUP_INTERVAL_SECONDS", raising=False)
    reset_settings()
    reset_registry()
    reset_rate_limiter()
    yield
    reset_registry()
    reset_rate_limiter()
    reset_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
