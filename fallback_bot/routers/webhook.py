from typing import Awaitable, Callable

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from fallback_bot.logging_config import LoggerAdapter, get_logger
from fallback_bot.schemas.dialogflow import WebhookRequest, WebhookResponse
from fallback_bot.services.business_hours import from_epoch_ms
from fallback_bot.services.cooldown_controller import CooldownController
from fallback_bot.services.cooldown_service import get_cooldown_controller
from fallback_bot.services.reply_service import (
    FALLBACK_ERROR_TEXT,
    RESET_ERROR_TEXT,
    RESET_OK_TEXT,
    resolve_user_id,
    select_fallback_reply,
)

logger = get_logger("webhook")

router = APIRouter()

FALLBACK_INTENT = "Default Fallback Intent"
RESET_COOLDOWN_INTENT = "Reset Cooldown"


async def handle_fallback(user_id: str, controller: CooldownController) -> str:
    """Reply once per cooldown window; stay silent inside it."""
    log = LoggerAdapter(logger, {"user_id": user_id})
    try:
        log.info("Processing fallback for user")
        decision = await controller.evaluate(user_id)
        text = select_fallback_reply(decision, from_epoch_ms(controller.clock()), controller.tz)

        if decision.can_send:
            reset_at = from_epoch_ms(decision.last_time + controller.cooldown_period_ms)
            log.info(
                "Updated fallback time for user",
                context={"cooldown_applied": True, "degraded": decision.degraded, "reset_time": reset_at.isoformat()},
            )
        else:
            log.info(
                "User is in cooldown period",
                context={
                    "time_left": f"{round(decision.time_left / 1000)} seconds",
                    "last_fallback_time": from_epoch_ms(decision.last_time).isoformat(),
                },
            )
        return text
    except Exception as e:
        logger.error("Error in handle_fallback", extra={"context": {"user_id": user_id, "error": str(e)}}, exc_info=True)
        return FALLBACK_ERROR_TEXT


async def handle_reset_cooldown(user_id: str, controller: CooldownController) -> str:
    """Operator/test command: start a fresh window for the user."""
    try:
        logger.info("Resetting cooldown for user", extra={"context": {"user_id": user_id}})
        await controller.evaluate(user_id, force_reset=True)
        return RESET_OK_TEXT
    except Exception as e:
        logger.error(
            "Error in handle_reset_cooldown", extra={"context": {"user_id": user_id, "error": str(e)}}, exc_info=True
        )
        return RESET_ERROR_TEXT


INTENT_HANDLERS: dict[str, Callable[[str, CooldownController], Awaitable[str]]] = {
    FALLBACK_INTENT: handle_fallback,
    RESET_COOLDOWN_INTENT: handle_reset_cooldown,
}


@router.post("/webhook", response_model=WebhookResponse)
async def handle_webhook(request: WebhookRequest, controller: CooldownController = Depends(get_cooldown_controller)):
    """Dialogflow fulfillment: dispatch on the matched intent's display name."""
    intent_name = request.intent_name
    logger.info(
        "Received webhook request",
        extra={"context": {"intent": intent_name, "session": request.session, "query_text": request.queryResult.queryText}},
    )

    handler = INTENT_HANDLERS.get(intent_name)
    if handler is None:
        logger.error(
            "Error handling webhook request",
            extra={"context": {"error": f"No handler for requested intent: {intent_name}"}},
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    user_id = resolve_user_id(request.originalDetectIntentRequest.payload, controller.clock())
    text = await handler(user_id, controller)
    return WebhookResponse.from_text(text)
