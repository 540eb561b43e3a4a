"""
API Routes
"""
from fastapi import APIRouter

from footbot.api.routes.live_events import router as live_events_router
from footbot.api.webhooks.telegram import router as telegram_router

router = APIRouter()

router.include_router(telegram_router, prefix="/telegram", tags=["webhooks"])
router.include_router(live_events_router, prefix="/live-events", tags=["live-events"])
