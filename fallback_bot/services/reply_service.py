from datetime import datetime
from typing import Any, Optional

from fallback_bot.services.business_hours import TimeZoneLike, is_within_business_hours
from fallback_bot.services.cooldown_controller import Decision

FALLBACK_IN_HOURS_TEXT = (
    "รบกวนคุณลูกค้ารอเจ้าหน้าที่ฝ่ายบริการตอบกลับอีกครั้งนะคะ คุณลูกค้าสามารถพิมพ์คำถามไว้ได้เลยค่ะ"
)
FALLBACK_AFTER_HOURS_TEXT = (
    "รบกวนคุณลูกค้ารอเจ้าหน้าที่ฝ่ายบริการตอบกลับอีกครั้งนะคะ "
    "ทั้งนี้เจ้าหน้าที่ฝ่ายบริการทำการจันทร์-เสาร์ เวลา 09.00-00.00 น. "
    "และวันอาทิตย์ทำการเวลา 09.00-18.00 น. ค่ะ"
)
FALLBACK_ERROR_TEXT = "ขออภัย เกิดข้อผิดพลาด กรุณาลองใหม่อีกครั้ง"
RESET_OK_TEXT = "รีเซ็ต cooldown สำเร็จ"
RESET_ERROR_TEXT = "ขออภัย ไม่สามารถรีเซ็ต cooldown ได้"
SILENT_TEXT = ""


def resolve_user_id(payload: Optional[dict[str, Any]], now_ms: int) -> str:
    """Pick the sender id from a Dialogflow payload, or mint an anonymous one.

    LINE messages arrive as payload.data.source.userId; other integrations
    put it at payload.userId.
    """
    payload = payload or {}
    data = payload.get("data")
    if isinstance(data, dict):
        source = data.get("source")
        if isinstance(source, dict) and source.get("userId"):
            return str(source["userId"])

    if payload.get("userId"):
        return str(payload["userId"])

    return f"anonymous-{now_ms}"


def select_fallback_reply(decision: Decision, now: datetime, tz: TimeZoneLike) -> str:
    if not decision.can_send:
        return SILENT_TEXT
    if is_within_business_hours(now, tz):
        return FALLBACK_IN_HOURS_TEXT
    return FALLBACK_AFTER_HOURS_TEXT
