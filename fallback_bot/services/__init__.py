from fallback_bot.services.cooldown_cache import CacheEntry, CooldownCache
from fallback_bot.services.cooldown_controller import CooldownController, Decision
from fallback_bot.services.cooldown_store import (
    CooldownRecord,
    CooldownStore,
    MemoryCooldownStore,
    SqlCooldownStore,
)
from fallback_bot.services.evictor import CacheEvictor
from fallback_bot.services.result import Result
