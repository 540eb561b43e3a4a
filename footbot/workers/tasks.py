"""
Celery tasks of the live events tracker: the scheduled poll cycle and the
daily ledger purge.
"""
import asyncio
from contextlib import contextmanager

from celery import signals

from footbot.workers.celery_app import celery_app
from footbot.db.database import task_session_factory
from footbot.core.config import settings
from footbot.core.logging import get_logger, log_async_operation, set_correlation_id
from footbot.core.redis_client import close_redis, redis_lock
from footbot.domain.services.live_events_runtime import (
    build_live_events_runtime,
    tracker_disabled_reason,
)
from footbot.domain.services.live_poller import PollSummary
from footbot.domain.services.notification_ledger import NotificationLedger

logger = get_logger(__name__)

POLL_LOCK_NAME = "live-events-poll"


@contextmanager
def get_event_loop():
    """
    Context manager for proper event loop handling in Celery tasks.
    Creates a new event loop and ensures proper cleanup to prevent resource leaks.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        yield loop
    finally:
        try:
            # ה-Redis singleton מחובר ל-loop הזה; סוגרים לפני שה-loop נסגר
            loop.run_until_complete(close_redis())
        except Exception as e:
            logger.warning(
                "Failed to close Redis at task end",
                extra_data={"error": str(e)},
            )
        try:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        finally:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()


def run_async(coro):
    """Helper to run async code in sync Celery task with proper cleanup"""
    set_correlation_id()

    with get_event_loop() as loop:
        return loop.run_until_complete(coro)


@signals.worker_ready.connect
def log_tracker_state(sender=None, **kwargs) -> None:
    """Disabled reason is logged once per worker, not on every beat tick"""
    disabled_reason = tracker_disabled_reason(settings)
    if disabled_reason and settings.LIVE_EVENTS_RUNNER == "celery":
        logger.info(
            "Live events tracker disabled",
            extra_data={"reason": disabled_reason},
        )


@log_async_operation("live events poll")
async def _poll_live_events() -> dict:
    # הסיבה נרשמה פעם אחת בעליית ה-worker; כאן רק debug בכל tick
    disabled_reason = tracker_disabled_reason(settings)
    if disabled_reason:
        logger.debug(
            "Live events poll skipped, tracker disabled",
            extra_data={"reason": disabled_reason},
        )
        return PollSummary(enabled=False).to_dict()

    lock_ttl = max(settings.LIVE_EVENTS_INTERVAL_SECONDS * 2, 60)
    async with redis_lock(POLL_LOCK_NAME, lock_ttl) as acquired:
        if not acquired:
            logger.info("Live events poll already running on another worker")
            return {"skipped": True}

        # engine אחד לכל המחזור: ledger, upsert ו-message id חולקים אותו pool
        async with task_session_factory() as session_factory:
            runtime = build_live_events_runtime(settings, session_factory=session_factory)
            summary = await runtime.tracker.poll_once()
        return summary.to_dict()


@celery_app.task(name="footbot.workers.tasks.poll_live_events")
def poll_live_events() -> dict:
    """One poll cycle; two workers never poll at the same time"""
    if settings.LIVE_EVENTS_RUNNER != "celery":
        logger.info(
            "Skipping Celery poll, tracker runs in-process",
            extra_data={"runner": settings.LIVE_EVENTS_RUNNER},
        )
        return {"skipped": True}

    return run_async(_poll_live_events())


@celery_app.task(name="footbot.workers.tasks.purge_live_event_notifications")
def purge_live_event_notifications() -> dict:
    """ניקוי יומי של ledger ההתראות (רשומות מעל 3 ימים)"""

    async def _purge():
        async with task_session_factory() as session_factory:
            removed = await NotificationLedger(session_factory).purge_expired()
        return {"deleted": removed}

    return run_async(_purge())
