"""
Notification Ledger - at-most-once gate for live event notifications.

INSERT first, handle the duplicate afterwards: a successful insert is the
permission to send, a unique-key conflict means the event was already sent.
Entries older than the retention window count as absent.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError

from footbot.core.logging import get_logger
from footbot.db.models.live_event_notification import LiveEventNotification

logger = get_logger(__name__)

RETENTION = timedelta(days=3)


class NotificationLedger:
    def __init__(
        self,
        session_factory: Callable[[], Any],
        retention: timedelta = RETENTION,
    ):
        self._session_factory = session_factory
        self.retention = retention

    async def try_acquire(self, event_key: str, fixture_id: int) -> bool:
        """
        True if the caller may send a notification for ``event_key``.

        A duplicate is the expected outcome of overlapping poll cycles and
        never raises.
        """
        now = datetime.now(timezone.utc)
        async with self._session_factory() as session:
            try:
                async with session.begin_nested():
                    session.add(LiveEventNotification(
                        event_key=event_key,
                        fixture_id=fixture_id,
                        created_at=now,
                    ))
                await session.commit()
                return True
            except IntegrityError:
                pass  # כבר נשלח - בדיקה אם הרשומה פגה

            # רשומה שפג תוקפה נחשבת כלא קיימת; UPDATE אטומי כדי שרק מחזור אחד ירכוש
            result = await session.execute(
                update(LiveEventNotification)
                .where(
                    LiveEventNotification.event_key == event_key,
                    LiveEventNotification.created_at < now - self.retention,
                )
                .values(created_at=now, fixture_id=fixture_id)
            )
            await session.commit()
            if result.rowcount:
                logger.info(
                    "Re-acquired expired notification entry",
                    extra_data={"event_key": event_key, "fixture_id": fixture_id},
                )
                return True

        logger.debug(
            "Live event already notified",
            extra_data={"event_key": event_key, "fixture_id": fixture_id},
        )
        return False

    async def purge_expired(self) -> int:
        """Delete entries past the retention window; returns the number removed"""
        cutoff = datetime.now(timezone.utc) - self.retention
        async with self._session_factory() as session:
            result = await session.execute(
                delete(LiveEventNotification).where(LiveEventNotification.created_at < cutoff)
            )
            await session.commit()

        removed = result.rowcount or 0
        logger.info(
            "Purged expired live event notifications",
            extra_data={"removed": removed, "cutoff": cutoff.isoformat()},
        )
        return removed
