"""
Competition scope - which live fixtures the tracker follows, by league id.
"""
from typing import Callable, Iterable, Optional

from footbot.domain.fixtures import Fixture


def _to_league_id(value: object) -> Optional[int]:
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_league_id_allowlist(raw: Optional[str]) -> frozenset[int]:
    """"39, 140,x,2" → {39, 140, 2}; invalid entries are dropped"""
    if not raw:
        return frozenset()
    ids = (_to_league_id(item) for item in raw.split(","))
    return frozenset(league_id for league_id in ids if league_id is not None)


def league_id_matcher(allowlist: Iterable[int]) -> Callable[[Fixture], bool]:
    allowed = frozenset(allowlist)

    def matches(fixture: Fixture) -> bool:
        return fixture.league.id is not None and fixture.league.id in allowed

    return matches
