from __future__ import annotations

from gamevui.domain.common.types import RoomEvent, RoomStatus
from gamevui.errors import InvalidTransition

# (current, event) -> next. A deal in the card game re-announces start_game while PLAYING.
_TRANSITIONS: dict[tuple[RoomStatus, RoomEvent], RoomStatus] = {
    ("LOBBY", "start_game"): "PLAYING",
    ("PLAYING", "start_game"): "PLAYING",
    ("PLAYING", "reset"): "PLAYING",
}


def can_transition(current: RoomStatus, event: RoomEvent) -> bool:
    return (current, event) in _TRANSITIONS


def next_status(current: RoomStatus, event: RoomEvent) -> RoomStatus:
    """
    Room lifecycle shared by both games.
    The host calls this before broadcasting; players call it when the message arrives.
    """
    try:
        return _TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidTransition(current, event) from None
