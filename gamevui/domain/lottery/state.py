from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from gamevui.domain.common.chat import ChatLog
from gamevui.domain.common.models import Board, Claim, PlayerInfo
from gamevui.domain.common.types import RoomStatus

HOST_NAME = "Host (Cái)"


@dataclass
class PendingClaim:
    peer_id: str
    claim: Claim


@dataclass
class LotteryHostState:
    """Authoritative room state. Only the host reconciler mutates it."""
    status: RoomStatus = "LOBBY"
    called: List[int] = field(default_factory=list)  # most recent first
    current: Optional[int] = None
    players: Dict[str, PlayerInfo] = field(default_factory=dict)  # keyed by peer identity
    pending: Optional[PendingClaim] = None
    winner: Optional[str] = None
    chat: ChatLog = field(default_factory=ChatLog)

    # host plays too
    host_playing: bool = False
    host_boards: List[Board] = field(default_factory=list)

    def roster(self) -> List[PlayerInfo]:
        return list(self.players.values())


@dataclass
class LotteryPlayerState:
    """
    A player's derived view. Host-confirmed fields are replayed from messages;
    `boards` (and their marks) are local only.
    """
    name: str
    status: RoomStatus = "LOBBY"
    called: List[int] = field(default_factory=list)
    current: Optional[int] = None
    players: Dict[str, PlayerInfo] = field(default_factory=dict)
    winner: Optional[str] = None
    chat: ChatLog = field(default_factory=ChatLog)

    boards: List[Board] = field(default_factory=list)
    has_claimed: bool = False
    rejections: int = 0
