"""
Live Event Notification Model - ledger של אירועים שכבר נשלחו לטלגרם.

המפתח הוא ה-dedupe key המורכב של האירוע. INSERT מוצלח = רשות לשלוח;
IntegrityError = האירוע כבר נשלח (מצב צפוי, לא שגיאה).
רשומות ישנות מ-3 ימים נמחקות ע"י משימת ניקוי יומית.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, Index

from footbot.db.database import Base


class LiveEventNotification(Base):
    """רשומת at-most-once - אירוע חי שכבר נשלחה עליו התראה"""

    __tablename__ = "live_event_notifications"

    event_key = Column(String(512), primary_key=True)
    fixture_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_live_event_notifications_created", "created_at"),
    )
