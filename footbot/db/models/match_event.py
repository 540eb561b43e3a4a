"""
Match Event Model - גיבוי מתמשך למאגר האירועים (LIVE_EVENTS_STORE=database).

הרשומה המלאה נשמרת כ-JSON ב-payload; העמודות הנפרדות משמשות לזהות ולשאילתות.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, JSON

from footbot.db.database import Base


class MatchEventRecord(Base):
    """Persisted MatchEvent, keyed by its content-derived id"""

    __tablename__ = "match_events"

    id = Column(String(12), primary_key=True)
    dedupe_key = Column(String(512), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    payload = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
