import pytest

from fallback_bot.config import Settings
from fallback_bot.services.cooldown_cache import CooldownCache
from fallback_bot.services.cooldown_service import (
    build_cache_evictor,
    build_cooldown_controller,
    build_cooldown_store,
)
from fallback_bot.services.cooldown_store import MemoryCooldownStore, SqlCooldownStore


class TestBuildCooldownStore:
    def test_sql_backend(self, session_factory):
        store = build_cooldown_store("sql", session_factory)
        assert isinstance(store, SqlCooldownStore)
        assert store.session_factory is session_factory

    def test_memory_backend(self, session_factory):
        assert isinstance(build_cooldown_store("memory", session_factory), MemoryCooldownStore)

    def test_unknown_backend_raises(self, session_factory):
        with pytest.raises(ValueError):
            build_cooldown_store("firebase", session_factory)


class TestBuildFromSettings:
    def test_controller_uses_settings(self):
        settings = Settings(cooldown_period_ms=60_000, store_timeout_seconds=1.5, business_timezone="UTC")
        cache = CooldownCache()

        controller = build_cooldown_controller(settings, MemoryCooldownStore(), cache)

        assert controller.cooldown_period_ms == 60_000
        assert controller.store_timeout_seconds == 1.5
        assert controller.cache is cache
        assert str(controller.tz) == "UTC"

    def test_invalid_timezone_fails_fast(self):
        settings = Settings(business_timezone="Nowhere/Special")

        with pytest.raises(ValueError):
            build_cooldown_controller(settings, MemoryCooldownStore(), CooldownCache())

    def test_evictor_shares_the_cache(self):
        settings = Settings(cache_sweep_interval_seconds=30, cache_retention_ms=120_000)
        cache = CooldownCache()

        evictor = build_cache_evictor(settings, cache)

        assert evictor.cache is cache
        assert evictor.interval_seconds == 30
        assert evictor.max_age_ms == 120_000
