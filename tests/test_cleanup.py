import asyncio

import pytest

from core.cleanup import CleanupService


@pytest.mark.asyncio
async def test_run_once_sweeps_expired_entries(cache, settings, clock):
    await cache.set("fresh", 1, 60_000)
    await cache.set("stale", 2, 10)
    clock.advance(11)

    service = CleanupService(cache=cache, settings=settings)

    assert await service.run_once() == {"expired_cache": 1}
    assert await cache.get("fresh") == 1


@pytest.mark.asyncio
async def test_start_runs_sweep_and_stop_cancels(cache, settings, clock):
    await cache.set("stale", 1, 10)
    clock.advance(11)
    service = CleanupService(cache=cache, settings=settings)

    await service.start()
    await service.start()
    assert service.running is True

    for _ in range(50):
        if not cache._path_for("stale").exists():
            break
        await asyncio.sleep(0.01)
    assert not cache._path_for("stale").exists()

    await service.stop()
    assert service.running is False
    assert service._task is None


@pytest.mark.asyncio
async def test_loop_survives_failing_pass(cache, settings, monkeypatch):
    calls = {"n": 0}

    async def boom():
        calls["n"] += 1
        raise RuntimeError("disk gone")

    monkeypatch.setattr(cache, "clean_expired", boom)
    service = CleanupService(cache=cache, settings=settings)

    await service.start()
    await asyncio.sleep(0.05)
    assert calls["n"] == 1
    assert service.running is True
    await service.stop()
