"""
Footbot - Main FastAPI Application
"""
from fastapi import FastAPI

from footbot.core.config import settings
from footbot.core.logging import setup_logging, get_logger
from footbot.core.middleware import setup_middleware, setup_exception_handlers
from footbot.api.routes import router as api_router
from footbot.db.database import engine, Base
from footbot.db import models  # noqa: F401  registers tables on Base.metadata
from footbot.domain.services.live_events_runtime import get_live_events_runtime

# Setup logging before anything else
setup_logging(
    level="DEBUG" if settings.DEBUG else "INFO",
    json_format=not settings.DEBUG,
    app_name=settings.APP_NAME
)

logger = get_logger(__name__)


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description=(
        "Live football events to Telegram, with YouTube and Reddit highlight "
        "search driven from inline buttons."
    ),
)

# Setup middleware (correlation ID, request logging)
setup_middleware(app)
setup_exception_handlers(app)

app.include_router(api_router, prefix="/api")


@app.on_event("startup")
async def startup() -> None:
    """Initialize database tables and start the in-process tracker"""
    logger.info("Starting application", extra_data={"app_name": settings.APP_NAME})
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")

    if settings.TELEGRAM_BOT_TOKEN and not settings.TELEGRAM_WEBHOOK_SECRET_TOKEN:
        logger.warning("TELEGRAM_WEBHOOK_SECRET_TOKEN is empty; webhook requests are not verified")

    runtime = get_live_events_runtime()
    if settings.LIVE_EVENTS_RUNNER == "inprocess" and runtime.enabled:
        await runtime.tracker.start()


@app.on_event("shutdown")
async def shutdown() -> None:
    """Cleanup on shutdown"""
    logger.info("Shutting down application")
    await get_live_events_runtime().tracker.stop()
    from footbot.core.redis_client import close_redis
    await close_redis()
    await engine.dispose()
    logger.info("Database connections disposed")


@app.get(
    "/health",
    summary="Liveness probe",
    tags=["Health"],
)
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}


@app.get(
    "/health/live-events",
    summary="Live events tracker state",
    tags=["Health"],
)
async def live_events_health() -> dict:
    runtime = get_live_events_runtime()
    return {
        "enabled": runtime.enabled,
        "disabled_reason": runtime.disabled_reason,
        "runner": settings.LIVE_EVENTS_RUNNER,
        "store": settings.LIVE_EVENTS_STORE,
        "running": runtime.tracker.is_running,
    }
