"""
Database Models
"""
from footbot.db.models.live_event_notification import LiveEventNotification
from footbot.db.models.match_event import MatchEventRecord

__all__ = [
    "LiveEventNotification",
    "MatchEventRecord",
]
