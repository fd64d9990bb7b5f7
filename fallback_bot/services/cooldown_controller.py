"""Per-user reply cooldown.

A user gets at most one fallback reply per cooldown window. The in-process
cache answers the common "still cooling down" case without touching the
store; everything else goes through the persistent store, which is the
source of truth.

When the store fails (error, timeout, permission problem) the controller
fails open: the caller gets `can_send=True, degraded=True` and the user
still receives a reply.

Two concurrent calls for the same user on a cold cache can both read the
store before either writes, and both be allowed. There is no per-key lock
around read-decide-write.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Optional

from fallback_bot.logging_config import get_logger
from fallback_bot.services.alert_service import alert_warning
from fallback_bot.services.business_hours import (
    DEFAULT_TIMEZONE,
    TimeZoneLike,
    from_epoch_ms,
    resolve_timezone,
    to_local_time,
)
from fallback_bot.services.clock import now_ms
from fallback_bot.services.cooldown_cache import CacheEntry, CooldownCache
from fallback_bot.services.cooldown_store import STORE_TIMEOUT, CooldownRecord, CooldownStore
from fallback_bot.services.result import Result

logger = get_logger("cooldown_controller")

COOLDOWN_PERIOD_MS = 300_000
DEFAULT_STORE_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class Decision:
    can_send: bool
    last_time: int
    time_left: int
    degraded: bool = False


class CooldownController:
    def __init__(
        self,
        store: CooldownStore,
        cache: CooldownCache,
        cooldown_period_ms: int = COOLDOWN_PERIOD_MS,
        store_timeout_seconds: float = DEFAULT_STORE_TIMEOUT_SECONDS,
        clock: Callable[[], int] = now_ms,
        tz: TimeZoneLike = DEFAULT_TIMEZONE,
    ):
        self.store = store
        self.cache = cache
        self.cooldown_period_ms = cooldown_period_ms
        self.store_timeout_seconds = store_timeout_seconds
        self.clock = clock
        self.tz = resolve_timezone(tz)
        self._degraded = False
        self.pending_alert: Optional[asyncio.Future] = None

    @property
    def degraded(self) -> bool:
        """True while the last store interaction failed."""
        return self._degraded

    async def evaluate(self, user_id: str, force_reset: bool = False) -> Decision:
        """Decide whether a fallback reply may be sent to `user_id` now.

        Never raises: store problems and unexpected errors both end in a
        fail-open decision.
        """
        now = self.clock()

        if not force_reset:
            cached = self.cache.get(user_id)
            if cached is not None and now - cached.timestamp < self.cooldown_period_ms:
                return self._blocked(cached.timestamp, now)

        try:
            return await self._evaluate_with_store(user_id, force_reset, now)
        except Exception as e:
            return self._fail_open(user_id, now, Result.from_exception(e, "unexpected"), exc_info=True)

    async def _evaluate_with_store(self, user_id: str, force_reset: bool, now: int) -> Decision:
        read = await self._call_store(self.store.get, user_id)
        if not read.ok:
            return self._fail_open(user_id, now, read)

        record: Optional[CooldownRecord] = read.value
        if record is not None and not force_reset and now - record.last_fallback_time < self.cooldown_period_ms:
            self.cache.put(user_id, CacheEntry(timestamp=record.last_fallback_time, last_updated=now))
            self._mark_healthy()
            return self._blocked(record.last_fallback_time, now)

        previous = record or CooldownRecord(user_id=user_id)
        fields = {
            "last_fallback_time": now,
            "last_updated": to_local_time(from_epoch_ms(now), self.tz).isoformat(),
            "cooldown_reset_count": previous.cooldown_reset_count + (1 if force_reset else 0),
            "total_fallbacks": previous.total_fallbacks + 1,
        }
        written = await self._call_store(self.store.update, user_id, fields)
        if not written.ok:
            return self._fail_open(user_id, now, written)

        self.cache.put(user_id, CacheEntry(timestamp=now, last_updated=now))
        self._mark_healthy()
        return Decision(can_send=True, last_time=now, time_left=0)

    async def _call_store(self, call: Callable[..., Result], *args: Any) -> Result:
        # A call that outlives the timeout keeps running in its thread; a late write still lands.
        try:
            return await asyncio.wait_for(asyncio.to_thread(call, *args), timeout=self.store_timeout_seconds)
        except asyncio.TimeoutError:
            return Result.failure(f"Cooldown store did not answer within {self.store_timeout_seconds}s", STORE_TIMEOUT)

    def _blocked(self, last_time: int, now: int) -> Decision:
        elapsed = now - last_time
        time_left = max(0, min(self.cooldown_period_ms, self.cooldown_period_ms - elapsed))
        return Decision(can_send=False, last_time=last_time, time_left=time_left)

    def _fail_open(self, user_id: str, now: int, failure: Result, exc_info: bool = False) -> Decision:
        logger.error(
            "Error checking cooldown",
            extra={"context": {"user_id": user_id, "error": failure.error, "error_code": failure.error_code}},
            exc_info=exc_info,
        )
        if not self._degraded:
            self._degraded = True
            logger.warning("Cooldown store degraded, replying without rate limit")
            self._notify_degraded(failure)
        return Decision(can_send=True, last_time=now, time_left=0, degraded=True)

    def _mark_healthy(self) -> None:
        if self._degraded:
            self._degraded = False
            logger.info("Cooldown store recovered")

    def _notify_degraded(self, failure: Result) -> None:
        context = {"error": failure.error, "error_code": failure.error_code}
        self.pending_alert = asyncio.get_running_loop().run_in_executor(
            None, alert_warning, "Cooldown store degraded", context
        )
        self.pending_alert.add_done_callback(_log_alert_failure)


def _log_alert_failure(future: asyncio.Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Degradation alert failed", extra={"context": {"error": str(exc)}}, exc_info=exc)
