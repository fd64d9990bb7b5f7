import asyncio
from unittest.mock import patch

from fallback_bot.services.cooldown_cache import CacheEntry
from fallback_bot.services.evictor import CACHE_RETENTION_MS, SWEEP_INTERVAL_SECONDS, CacheEvictor


class TestCacheEvictorRunOnce:
    def test_defaults(self, cache):
        evictor = CacheEvictor(cache)

        assert evictor.interval_seconds == SWEEP_INTERVAL_SECONDS == 300
        assert evictor.max_age_ms == CACHE_RETENTION_MS == 600_000

    def test_removes_entry_idle_for_eleven_minutes(self, cache, clock):
        cache.put("u2", CacheEntry(timestamp=clock.now - 11 * 60 * 1000, last_updated=clock.now - 11 * 60 * 1000))
        cache.put("u1", CacheEntry(timestamp=clock.now, last_updated=clock.now))
        evictor = CacheEvictor(cache, clock=clock)

        removed = evictor.run_once()

        assert removed == 1
        assert cache.get("u2") is None
        assert cache.get("u1") is not None

    def test_second_run_removes_nothing(self, cache, clock):
        cache.put("u2", CacheEntry(timestamp=0, last_updated=clock.now - 11 * 60 * 1000))
        evictor = CacheEvictor(cache, clock=clock)

        assert evictor.run_once() == 1
        assert evictor.run_once() == 0

    def test_interval_has_lower_bound(self, cache):
        assert CacheEvictor(cache, interval_seconds=0).interval_seconds == 0.1


class TestCacheEvictorLoop:
    def test_loop_sweeps_periodically(self, cache, clock):
        cache.put("u2", CacheEntry(timestamp=0, last_updated=clock.now - 11 * 60 * 1000))
        evictor = CacheEvictor(cache, interval_seconds=0.1, clock=clock)

        async def run():
            evictor.start()
            assert evictor.running is True
            await asyncio.sleep(0.35)
            await evictor.stop()

        asyncio.run(run())

        assert cache.get("u2") is None
        assert evictor.running is False

    def test_start_is_idempotent(self, cache):
        evictor = CacheEvictor(cache, interval_seconds=10)

        async def run():
            evictor.start()
            task = evictor._task
            evictor.start()
            same = evictor._task is task
            await evictor.stop()
            return same

        assert asyncio.run(run()) is True

    def test_stop_without_start(self, cache):
        evictor = CacheEvictor(cache)

        asyncio.run(evictor.stop())

        assert evictor.running is False

    def test_loop_survives_sweep_errors(self, cache, clock):
        evictor = CacheEvictor(cache, interval_seconds=0.1, clock=clock)

        async def run():
            with patch.object(cache, "sweep", side_effect=[RuntimeError("boom"), 0, 0, 0, 0, 0]) as mock_sweep:
                evictor.start()
                await asyncio.sleep(0.35)
                still_running = evictor.running
                await evictor.stop()
                return still_running, mock_sweep.call_count

        still_running, calls = asyncio.run(run())

        assert still_running is True
        assert calls >= 2
