"""Server status and error records kept in the database for operators.

Every call here is best-effort: a failed write is logged and reported as
False, never raised.
"""

import traceback
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fallback_bot.logging_config import get_logger
from fallback_bot.models import SystemErrorRecord, SystemStatus
from fallback_bot.services.business_hours import TimeZoneLike, format_local_time, to_local_time

logger = get_logger("status_service")

STATUS_ROW_ID = "server"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _save_status(db: Session, **fields) -> SystemStatus:
    row = db.get(SystemStatus, STATUS_ROW_ID)
    if row is None:
        row = SystemStatus(id=STATUS_ROW_ID, status=fields.get("status", "unknown"))
        db.add(row)
    for name, value in fields.items():
        setattr(row, name, value)
    db.commit()
    return row


def record_online(session_factory: Callable[[], Session], tz: TimeZoneLike, now: Optional[datetime] = None) -> bool:
    """Mark the server online. Also serves as the startup write test."""
    now = now or _utc_now()
    db = session_factory()
    try:
        _save_status(
            db,
            status="online",
            last_connection=now.isoformat(),
            server_timezone=str(tz),
            server_timestamp=int(now.timestamp() * 1000),
        )
        logger.info("Status write test successful")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Status write test failed", extra={"context": {"error": str(e)}})
        return False
    finally:
        db.close()


def record_offline(session_factory: Callable[[], Session], reason: str, now: Optional[datetime] = None) -> bool:
    now = now or _utc_now()
    db = session_factory()
    try:
        _save_status(db, status="offline", last_shutdown=now.isoformat(), shutdown_reason=reason)
        logger.info("Updated offline status")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to update offline status", extra={"context": {"error": str(e)}})
        return False
    finally:
        db.close()


def record_error(
    session_factory: Callable[[], Session],
    error: BaseException,
    tz: TimeZoneLike,
    now: Optional[datetime] = None,
) -> bool:
    now = now or _utc_now()
    stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    db = session_factory()
    try:
        db.add(
            SystemErrorRecord(
                timestamp=now.isoformat(),
                local_time=format_local_time(to_local_time(now, tz)),
                error=repr(error),
                stack=stack,
            )
        )
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to record system error", extra={"context": {"error": str(e)}})
        return False
    finally:
        db.close()
