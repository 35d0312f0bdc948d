import pytest

import core.cache as cache_mod
from core.cache import FileCacheService
from core.config import Settings


class FakeClock:
    """Controllable replacement for the cache's millisecond clock."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def settings(tmp_path):
    return Settings(cache_dir=str(tmp_path / "cache"), cleanup_enabled=False)


@pytest.fixture
def cache(settings):
    return FileCacheService(settings)


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr(cache_mod, "_now_ms", fake)
    return fake
