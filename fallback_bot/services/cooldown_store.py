"""Persistent cooldown records, keyed by user identity.

Store calls report failures as a `Result` with one of the STORE_* codes
instead of raising, so the controller can fail open on any of them.
"""

import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional, Protocol

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from fallback_bot.logging_config import get_logger
from fallback_bot.models import UserCooldown
from fallback_bot.services.result import Result

logger = get_logger("cooldown_store")

STORE_UNAVAILABLE = "store_unavailable"
STORE_TIMEOUT = "store_timeout"
STORE_PERMISSION_DENIED = "store_permission_denied"

RECORD_FIELDS = frozenset({"last_fallback_time", "last_updated", "cooldown_reset_count", "total_fallbacks"})

# postgres SQLSTATE codes
PG_QUERY_CANCELED = "57014"
PG_INSUFFICIENT_PRIVILEGE = "42501"


@dataclass(frozen=True)
class CooldownRecord:
    user_id: str
    last_fallback_time: int = 0
    last_updated: Optional[str] = None
    cooldown_reset_count: int = 0
    total_fallbacks: int = 0


class CooldownStore(Protocol):
    def get(self, user_id: str) -> Result[Optional[CooldownRecord]]:
        ...

    def update(self, user_id: str, fields: Dict[str, Any]) -> Result[CooldownRecord]:
        ...


def _check_fields(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - RECORD_FIELDS
    if unknown:
        raise ValueError(f"Unknown cooldown record fields: {sorted(unknown)}")


class MemoryCooldownStore:
    """Process-local store. Loses everything on restart; meant for development and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: Dict[str, CooldownRecord] = {}

    def get(self, user_id: str) -> Result[Optional[CooldownRecord]]:
        with self._lock:
            return Result.success(self._records.get(user_id))

    def update(self, user_id: str, fields: Dict[str, Any]) -> Result[CooldownRecord]:
        _check_fields(fields)
        with self._lock:
            current = self._records.get(user_id) or CooldownRecord(user_id=user_id)
            record = replace(current, **fields)
            self._records[user_id] = record
        return Result.success(record)


def classify_store_error(exc: BaseException) -> str:
    """Map a driver/ORM exception onto one of the STORE_* codes."""
    if isinstance(exc, (TimeoutError, PoolTimeoutError)):
        return STORE_TIMEOUT

    if isinstance(exc, DBAPIError):
        orig = exc.orig
        pgcode = getattr(orig, "pgcode", None)
        text = str(orig).lower()
        if pgcode == PG_QUERY_CANCELED or "timeout" in text or "timed out" in text:
            return STORE_TIMEOUT
        if pgcode == PG_INSUFFICIENT_PRIVILEGE or "permission denied" in text or "access denied" in text:
            return STORE_PERMISSION_DENIED

    return STORE_UNAVAILABLE


def _to_record(row: UserCooldown) -> CooldownRecord:
    return CooldownRecord(
        user_id=row.user_id,
        last_fallback_time=row.last_fallback_time or 0,
        last_updated=row.last_updated,
        cooldown_reset_count=row.cooldown_reset_count or 0,
        total_fallbacks=row.total_fallbacks or 0,
    )


class SqlCooldownStore:
    """Store backed by the `user_cooldowns` table. One short session per call."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get(self, user_id: str) -> Result[Optional[CooldownRecord]]:
        db = self.session_factory()
        try:
            row = db.get(UserCooldown, user_id)
            return Result.success(_to_record(row) if row is not None else None)
        except SQLAlchemyError as e:
            code = classify_store_error(e)
            logger.warning(f"Cooldown read failed for {user_id}: {code}")
            return Result.from_exception(e, code)
        finally:
            db.close()

    @staticmethod
    def _apply(db: Session, user_id: str, fields: Dict[str, Any]) -> CooldownRecord:
        row = db.get(UserCooldown, user_id)
        if row is None:
            row = UserCooldown(
                user_id=user_id,
                last_fallback_time=0,
                cooldown_reset_count=0,
                total_fallbacks=0,
            )
            db.add(row)
        for name, value in fields.items():
            setattr(row, name, value)
        db.flush()
        return _to_record(row)

    def update(self, user_id: str, fields: Dict[str, Any]) -> Result[CooldownRecord]:
        _check_fields(fields)
        db = self.session_factory()
        try:
            try:
                record = self._apply(db, user_id, fields)
            except IntegrityError:
                # Another writer inserted the row after our read; apply the fields to theirs.
                db.rollback()
                logger.debug(f"Cooldown row for {user_id} created concurrently, updating it")
                record = self._apply(db, user_id, fields)
            db.commit()
            return Result.success(record)
        except SQLAlchemyError as e:
            db.rollback()
            code = classify_store_error(e)
            logger.warning(f"Cooldown write failed for {user_id}: {code}")
            return Result.from_exception(e, code)
        finally:
            db.close()
