import asyncio
import os
import time
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from fallback_bot import __version__
from fallback_bot.config import settings
from fallback_bot.database import Base, SessionLocal, engine
from fallback_bot.logging_config import get_logger, setup_logging
from fallback_bot.routers import webhook
from fallback_bot.schemas.dialogflow import StatusResponse
from fallback_bot.services.alert_service import alert_error
from fallback_bot.services.business_hours import (
    format_local_time,
    from_epoch_ms,
    is_within_business_hours,
    to_local_time,
)
from fallback_bot.services.cooldown_cache import CooldownCache
from fallback_bot.services.cooldown_controller import CooldownController
from fallback_bot.services.cooldown_service import (
    build_cache_evictor,
    build_cooldown_controller,
    build_cooldown_store,
    get_cooldown_controller,
)
from fallback_bot.services.status_service import record_error, record_offline, record_online

setup_logging()

logger = get_logger("main")
request_logger = get_logger("http")

app = FastAPI(
    title="Fallback Bot",
    description="Dialogflow fallback webhook with a per-user reply cooldown",
    version=__version__,
)

cooldown_cache = CooldownCache()
app.state.cooldown_controller = build_cooldown_controller(
    settings,
    build_cooldown_store(settings.cooldown_store_backend, SessionLocal),
    cooldown_cache,
)
app.state.cache_evictor = build_cache_evictor(settings, cooldown_cache)
# replaced with the signal name when a signal stops the server
app.state.shutdown_reason = "shutdown"

app.include_router(webhook.router)


def _uses_database() -> bool:
    return settings.cooldown_store_backend == "sql"


def _is_evictor_enabled() -> bool:
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return False
    return settings.evictor_enabled


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.monotonic()
    response = await call_next(request)
    duration_ms = int((time.monotonic() - start) * 1000)
    request_logger.info(f"{request.method} {request.url.path} {response.status_code} - {duration_ms}ms")
    return response


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception",
        extra={"context": {"path": request.url.path, "error": str(exc)}},
        exc_info=exc,
    )
    if _uses_database():
        await asyncio.to_thread(record_error, SessionLocal, exc, settings.business_timezone)
    await asyncio.to_thread(alert_error, "Unhandled exception", {"path": request.url.path, "error": str(exc)})
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.on_event("startup")
async def on_startup() -> None:
    if _uses_database():
        if settings.create_tables:
            try:
                Base.metadata.create_all(bind=engine)
            except SQLAlchemyError as e:
                logger.error("Database initialization error", extra={"context": {"error": str(e)}})
                raise
        await asyncio.to_thread(record_online, SessionLocal, settings.business_timezone)

    if _is_evictor_enabled():
        app.state.cache_evictor.start()

    local = to_local_time(datetime.now(timezone.utc), settings.business_timezone)
    logger.info(
        "Server started",
        extra={
            "context": {
                "port": settings.port,
                "environment": settings.environment,
                "store_backend": settings.cooldown_store_backend,
                "local_time": format_local_time(local),
            }
        },
    )


@app.on_event("shutdown")
async def on_shutdown() -> None:
    logger.info("Shutting down gracefully")
    await app.state.cache_evictor.stop()
    if _uses_database():
        await asyncio.to_thread(record_offline, SessionLocal, app.state.shutdown_reason)


@app.get("/", response_model=StatusResponse)
async def status(controller: CooldownController = Depends(get_cooldown_controller)):
    now = from_epoch_ms(controller.clock())
    local = to_local_time(now, controller.tz)
    return StatusResponse(
        status="online",
        timestamp=now.isoformat(),
        local_timestamp=local.isoformat(),
        local_time_formatted=format_local_time(local),
        service=settings.service_name,
        environment=settings.environment,
        store_backend=settings.cooldown_store_backend,
        store_status="degraded" if controller.degraded else "ok",
        business_hours="open" if is_within_business_hours(now, controller.tz) else "closed",
        cache_size=controller.cache.size(),
    )


@app.get("/health")
async def health():
    return {"status": "ok"}
