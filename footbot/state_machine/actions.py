"""
Callback actions of the live event message.

Tokens are ``action:event_id[:arg]`` strings carried in Telegram
callback_data (max 64 bytes). ``arg`` is the result id for picks, the page
index for "more" and ``refresh`` for the retry button.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from footbot.domain.models import SearchProvider

CALLBACK_DATA_MAX_BYTES = 64
REFRESH_ARG = "refresh"


class ActionKind(str, Enum):
    """Closed set of operator actions"""

    SEARCH_VIDEO = "yt"
    MORE_VIDEO = "ytmore"
    PICK_VIDEO = "ytpick"
    SEARCH_POST = "rd"
    MORE_POST = "rdmore"
    PICK_POST = "rdpick"
    BACK = "back"
    SKIP = "skip"

    # never serialized; the result of parsing a token we do not understand
    UNKNOWN = "unknown"

    @property
    def provider(self) -> Optional[SearchProvider]:
        if self in (ActionKind.SEARCH_VIDEO, ActionKind.MORE_VIDEO, ActionKind.PICK_VIDEO):
            return SearchProvider.VIDEO
        if self in (ActionKind.SEARCH_POST, ActionKind.MORE_POST, ActionKind.PICK_POST):
            return SearchProvider.POST
        return None


_SEARCH = {SearchProvider.VIDEO: ActionKind.SEARCH_VIDEO, SearchProvider.POST: ActionKind.SEARCH_POST}
_MORE = {SearchProvider.VIDEO: ActionKind.MORE_VIDEO, SearchProvider.POST: ActionKind.MORE_POST}
_PICK = {SearchProvider.VIDEO: ActionKind.PICK_VIDEO, SearchProvider.POST: ActionKind.PICK_POST}


def search_action(provider: SearchProvider) -> ActionKind:
    return _SEARCH[provider]


def more_action(provider: SearchProvider) -> ActionKind:
    return _MORE[provider]


def pick_action(provider: SearchProvider) -> ActionKind:
    return _PICK[provider]


@dataclass(frozen=True)
class CallbackAction:
    kind: ActionKind
    event_id: str = ""
    arg: Optional[str] = None

    @property
    def page(self) -> int:
        """page index carried by "more"; anything unparsable is page 1"""
        try:
            return max(int(self.arg or ""), 0)
        except ValueError:
            return 1


UNKNOWN_ACTION = CallbackAction(ActionKind.UNKNOWN)


def build_callback_data(kind: ActionKind, event_id: str, arg: Optional[str] = None) -> str:
    if kind is ActionKind.UNKNOWN:
        raise ValueError("UNKNOWN is not a serializable action")
    if not event_id or ":" in event_id or (arg is not None and ":" in arg):
        raise ValueError(f"Invalid callback parts: {event_id!r}, {arg!r}")

    data = f"{kind.value}:{event_id}" if arg is None else f"{kind.value}:{event_id}:{arg}"
    if len(data.encode("utf-8")) > CALLBACK_DATA_MAX_BYTES:
        raise ValueError(f"callback_data exceeds {CALLBACK_DATA_MAX_BYTES} bytes: {data!r}")
    return data


def parse_callback_data(data: Optional[str]) -> CallbackAction:
    """Never raises; anything malformed becomes UNKNOWN_ACTION"""
    if not data:
        return UNKNOWN_ACTION

    parts = data.split(":")
    if len(parts) not in (2, 3) or not parts[1]:
        return UNKNOWN_ACTION
    try:
        kind = ActionKind(parts[0])
    except ValueError:
        return UNKNOWN_ACTION
    if kind is ActionKind.UNKNOWN:
        return UNKNOWN_ACTION

    arg = parts[2] if len(parts) == 3 and parts[2] else None
    # pick בלי מזהה תוצאה אינו פעולה תקינה
    if kind in (ActionKind.PICK_VIDEO, ActionKind.PICK_POST) and arg is None:
        return UNKNOWN_ACTION
    return CallbackAction(kind=kind, event_id=parts[1], arg=arg)
