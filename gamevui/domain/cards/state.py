from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from gamevui.domain.common.chat import ChatLog
from gamevui.domain.common.models import CardPlayer
from gamevui.domain.common.types import RoomStatus

MAX_PLAYERS = 20
HOST_ID = "host"


@dataclass
class CardTableState:
    """
    Seats in join order (host first), keyed by peer identity.
    The host's copy is authoritative.
    """
    status: RoomStatus = "LOBBY"
    players: Dict[str, CardPlayer] = field(default_factory=dict)
    leader_id: Optional[str] = None
    reveal_order: List[str] = field(default_factory=list)
    chat: ChatLog = field(default_factory=ChatLog)

    def seats(self) -> List[CardPlayer]:
        return list(self.players.values())


@dataclass
class CardGuestState(CardTableState):
    """
    A player's copy: replaced wholesale from snapshots, except the face-up /
    face-down state of our own unrevealed cards, which is local only.
    """
    name: str = ""
    my_id: Optional[str] = None

    @property
    def me(self) -> Optional[CardPlayer]:
        return self.players.get(self.my_id) if self.my_id else None
