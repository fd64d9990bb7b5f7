import os

# Must be set before fallback_bot.config is imported by any test module.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("COOLDOWN_STORE_BACKEND", "memory")
os.environ.setdefault("EVICTOR_ENABLED", "false")

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from fallback_bot.database import Base  # noqa: E402
from fallback_bot.services.cooldown_cache import CooldownCache  # noqa: E402
from fallback_bot.services.cooldown_store import MemoryCooldownStore  # noqa: E402

# 2024-01-15 12:00:00 Asia/Bangkok, a Monday
BASE_TIME_MS = 1_705_294_800_000


class FakeClock:
    def __init__(self, start_ms: int = BASE_TIME_MS):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache():
    return CooldownCache()


@pytest.fixture
def memory_store():
    return MemoryCooldownStore()


@pytest.fixture
def session_factory():
    """Session factory over a fresh in-memory sqlite database shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()
