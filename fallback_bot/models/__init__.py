from fallback_bot.models.system_status import SystemErrorRecord, SystemStatus
from fallback_bot.models.user_cooldown import UserCooldown

__all__ = [
    "UserCooldown",
    "SystemStatus",
    "SystemErrorRecord",
]
