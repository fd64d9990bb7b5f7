"""Wiring of the cooldown gate: one cache, one store, one controller per app."""

from typing import Callable

from fastapi import Request
from sqlalchemy.orm import Session

from fallback_bot.config import Settings
from fallback_bot.services.cooldown_cache import CooldownCache
from fallback_bot.services.cooldown_controller import CooldownController
from fallback_bot.services.cooldown_store import CooldownStore, MemoryCooldownStore, SqlCooldownStore
from fallback_bot.services.evictor import CacheEvictor

STORE_BACKENDS = {"sql", "memory"}


def build_cooldown_store(backend: str, session_factory: Callable[[], Session]) -> CooldownStore:
    if backend == "sql":
        return SqlCooldownStore(session_factory)
    if backend == "memory":
        return MemoryCooldownStore()
    raise ValueError(f"Unknown cooldown store backend: {backend} (expected one of {sorted(STORE_BACKENDS)})")


def build_cooldown_controller(settings: Settings, store: CooldownStore, cache: CooldownCache) -> CooldownController:
    return CooldownController(
        store=store,
        cache=cache,
        cooldown_period_ms=settings.cooldown_period_ms,
        store_timeout_seconds=settings.store_timeout_seconds,
        tz=settings.business_timezone,
    )


def build_cache_evictor(settings: Settings, cache: CooldownCache) -> CacheEvictor:
    return CacheEvictor(
        cache=cache,
        interval_seconds=settings.cache_sweep_interval_seconds,
        max_age_ms=settings.cache_retention_ms,
    )


def get_cooldown_controller(request: Request) -> CooldownController:
    return request.app.state.cooldown_controller
