"""
Event Store - content-addressed records of live match events.

upsert() locates the record by dedupe_key and merges a partial update into it.
Identity fields (id, dedupe_key, created_at) always come from the first write,
so the same feed occurrence never forks into two records.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from footbot.core.exceptions import ValidationException
from footbot.core.logging import get_logger
from footbot.db.models.match_event import MatchEventRecord
from footbot.domain.models import EventStatus, MatchEvent, event_id_for, utcnow

logger = get_logger(__name__)

_IDENTITY_FIELDS = frozenset({"id", "dedupe_key", "created_at", "updated_at"})
_MIN_TICK = timedelta(microseconds=1)


def merge_event(
    existing: Optional[MatchEvent],
    partial: dict[str, Any],
    now: datetime,
) -> MatchEvent:
    """
    Merge a partial update into an existing record (or create a new one).

    Fields missing from ``partial`` keep their stored values. updated_at is
    bumped past the previous value even when the wall clock has not advanced.
    """
    changes = {key: value for key, value in partial.items() if key not in _IDENTITY_FIELDS}

    if existing is None:
        dedupe_key = partial.get("dedupe_key")
        if not dedupe_key:
            raise ValidationException("dedupe_key is required on first insert", field="dedupe_key")
        data: dict[str, Any] = {"status": EventStatus.PENDING, **changes}
        data.update(
            id=event_id_for(dedupe_key),
            dedupe_key=dedupe_key,
            created_at=now,
            updated_at=now,
        )
        return MatchEvent.model_validate(data)

    data = existing.model_dump()
    data.update(changes)
    data["updated_at"] = now if now > existing.updated_at else existing.updated_at + _MIN_TICK
    return MatchEvent.model_validate(data)


class EventStore(ABC):
    """Storage capability shared by the poller and the interaction controller"""

    @abstractmethod
    async def upsert(self, partial: dict[str, Any]) -> MatchEvent:
        """Merge ``partial`` into the record with the same dedupe_key; return the full record"""

    @abstractmethod
    async def get(self, event_id: str) -> Optional[MatchEvent]:
        ...


class InMemoryEventStore(EventStore):
    """Process-local store; contents are lost on restart"""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._events: dict[str, MatchEvent] = {}
        self._ids_by_key: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._events)

    async def upsert(self, partial: dict[str, Any]) -> MatchEvent:
        existing = None
        dedupe_key = partial.get("dedupe_key")
        if dedupe_key and dedupe_key in self._ids_by_key:
            existing = self._events[self._ids_by_key[dedupe_key]]

        merged = merge_event(existing, partial, self._clock())
        self._events[merged.id] = merged
        self._ids_by_key[merged.dedupe_key] = merged.id
        return merged.model_copy(deep=True)

    async def get(self, event_id: str) -> Optional[MatchEvent]:
        event = self._events.get(event_id)
        return event.model_copy(deep=True) if event is not None else None


class SqlEventStore(EventStore):
    """
    Durable store on the match_events table.

    The full record lives in the JSON payload column; id, dedupe_key and status
    are mirrored into their own columns for lookups.
    """

    def __init__(
        self,
        session_factory: Callable[[], Any],
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock

    @staticmethod
    def _to_event(record: MatchEventRecord) -> MatchEvent:
        return MatchEvent.model_validate(record.payload)

    async def _write(self, session: AsyncSession, partial: dict[str, Any]) -> MatchEvent:
        dedupe_key = partial.get("dedupe_key")
        record = None
        if dedupe_key:
            result = await session.execute(
                select(MatchEventRecord).where(MatchEventRecord.dedupe_key == dedupe_key)
            )
            record = result.scalar_one_or_none()

        existing = self._to_event(record) if record is not None else None
        merged = merge_event(existing, partial, self._clock())
        payload = merged.model_dump(mode="json")

        if record is None:
            session.add(MatchEventRecord(
                id=merged.id,
                dedupe_key=merged.dedupe_key,
                status=merged.status.value,
                payload=payload,
                created_at=merged.created_at,
                updated_at=merged.updated_at,
            ))
        else:
            record.payload = payload
            record.status = merged.status.value
            record.updated_at = merged.updated_at
        await session.commit()
        return merged

    async def upsert(self, partial: dict[str, Any]) -> MatchEvent:
        async with self._session_factory() as session:
            try:
                return await self._write(session, partial)
            except IntegrityError:
                # INSERT מקביל של אותו dedupe_key ניצח - ממזגים לתוך הרשומה שלו
                await session.rollback()
                logger.debug(
                    "Concurrent insert of event, retrying as update",
                    extra_data={"dedupe_key": partial.get("dedupe_key")},
                )
                return await self._write(session, partial)

    async def get(self, event_id: str) -> Optional[MatchEvent]:
        async with self._session_factory() as session:
            record = await session.get(MatchEventRecord, event_id)
            return self._to_event(record) if record is not None else None
