from sqlalchemy import BigInteger, Column, Integer, Text

from fallback_bot.database import Base


class UserCooldown(Base):
    __tablename__ = "user_cooldowns"

    user_id = Column(Text, primary_key=True)
    last_fallback_time = Column(BigInteger, nullable=False, default=0)
    last_updated = Column(Text)
    cooldown_reset_count = Column(Integer, nullable=False, default=0)
    total_fallbacks = Column(Integer, nullable=False, default=0)
