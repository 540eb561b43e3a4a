"""
API-Football payload models.

The feed is loose: nested objects can be missing, numbers can be null or
strings. Everything is validated here once, with defaults, so the rest of the
code never touches raw dicts.
"""
import math
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _finite_int_or_none(value: Any) -> Optional[int]:
    """מספר סופי בלבד; מחרוזות, bool, NaN ו-inf הופכים ל-None"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


def _id_or_none(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


FeedId = Annotated[Optional[int], BeforeValidator(_id_or_none)]
FiniteInt = Annotated[Optional[int], BeforeValidator(_finite_int_or_none)]


class _FeedModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class NamedRef(_FeedModel):
    """team / player / assist reference"""

    id: FeedId = None
    name: Optional[str] = None


class FixtureStatus(_FeedModel):
    short: Optional[str] = None
    elapsed: FiniteInt = None


class FixtureInfo(_FeedModel):
    id: FeedId = None
    status: FixtureStatus = Field(default_factory=FixtureStatus)


class League(_FeedModel):
    id: FeedId = None
    name: Optional[str] = None
    country: Optional[str] = None


class Teams(_FeedModel):
    home: NamedRef = Field(default_factory=NamedRef)
    away: NamedRef = Field(default_factory=NamedRef)


class Goals(_FeedModel):
    home: FiniteInt = None
    away: FiniteInt = None


class Fixture(_FeedModel):
    """One entry of ``GET /fixtures?live=all``"""

    fixture: FixtureInfo = Field(default_factory=FixtureInfo)
    league: League = Field(default_factory=League)
    teams: Teams = Field(default_factory=Teams)
    goals: Goals = Field(default_factory=Goals)

    @property
    def fixture_id(self) -> Optional[int]:
        return self.fixture.id

    @property
    def home_name(self) -> str:
        return self.teams.home.name or "Home"

    @property
    def away_name(self) -> str:
        return self.teams.away.name or "Away"

    @property
    def league_name(self) -> str:
        return self.league.name or "Unknown league"

    @property
    def country(self) -> str:
        return self.league.country or "Unknown country"

    @property
    def status_short(self) -> str:
        return self.fixture.status.short or "LIVE"

    @property
    def score(self) -> tuple[int, int]:
        return (self.goals.home or 0, self.goals.away or 0)


class EventTime(_FeedModel):
    elapsed: FiniteInt = None
    extra: FiniteInt = None


class FixtureEvent(_FeedModel):
    """One entry of ``GET /fixtures/events?fixture=<id>``"""

    time: EventTime = Field(default_factory=EventTime)
    team: NamedRef = Field(default_factory=NamedRef)
    player: NamedRef = Field(default_factory=NamedRef)
    assist: NamedRef = Field(default_factory=NamedRef)
    type: Optional[str] = None
    detail: Optional[str] = None
    comments: Optional[str] = None


def build_dedupe_key(fixture_id: int, event: FixtureEvent) -> str:
    """
    Composite key of one raw occurrence in the feed.

    Used both as the ledger key and as the identity of the stored event.
    """
    pieces = [
        fixture_id,
        event.time.elapsed,
        event.time.extra,
        event.type,
        event.detail,
        event.team.id,
        event.player.id,
        event.assist.id,
        event.comments,
    ]
    return "|".join("" if piece is None else str(piece) for piece in pieces)
