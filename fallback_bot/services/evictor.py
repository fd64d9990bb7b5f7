import asyncio
from typing import Callable, Optional

from fallback_bot.logging_config import get_logger
from fallback_bot.services.clock import now_ms
from fallback_bot.services.cooldown_cache import CooldownCache

logger = get_logger("cache_evictor")

SWEEP_INTERVAL_SECONDS = 5 * 60
CACHE_RETENTION_MS = 10 * 60 * 1000


class CacheEvictor:
    """Background task that drops cache entries nobody has refreshed for a while.

    Only bounds memory. Rate limiting stays correct whatever the sweep timing,
    because an evicted entry just sends the next request to the store.
    """

    def __init__(
        self,
        cache: CooldownCache,
        interval_seconds: float = SWEEP_INTERVAL_SECONDS,
        max_age_ms: int = CACHE_RETENTION_MS,
        clock: Callable[[], int] = now_ms,
    ):
        self.cache = cache
        self.interval_seconds = max(interval_seconds, 0.1)
        self.max_age_ms = max_age_ms
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> int:
        removed = self.cache.sweep(self.clock(), self.max_age_ms)
        if removed > 0:
            logger.debug(f"Cleaned {removed} entries from cooldown cache")
        return removed

    async def _loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.interval_seconds)
                self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as exc:
                logger.error(
                    "Cache evictor sweep failed",
                    extra={"context": {"error": str(exc)}},
                )

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("Cache evictor started")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Cache evictor stopped")
