# gamevui/transport/protocols.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, ValidationError

from gamevui.domain.common.models import Card, CardPlayer, ChatMessage, Claim, PlayerInfo
from gamevui.domain.common.types import RoomStatus


# =========================
# Peer messages (Host <-> Player)
# =========================

class MsgBase(BaseModel):
    type: str


# ---- Common ----

class Join(MsgBase):
    type: Literal["join"] = "join"
    name: str = Field(min_length=1, max_length=40)


class PlayerJoined(MsgBase):
    type: Literal["player_joined"] = "player_joined"
    player: PlayerInfo


class Chat(MsgBase):
    type: Literal["chat"] = "chat"
    message: ChatMessage


class StartGame(MsgBase):
    type: Literal["start_game"] = "start_game"


class Reset(MsgBase):
    type: Literal["reset"] = "reset"


class Ping(MsgBase):
    type: Literal["ping"] = "ping"


# ---- Lottery ----

class Welcome(MsgBase):
    """Snapshot for (late) joiners: status + full call history, most recent first."""
    type: Literal["welcome"] = "welcome"
    game_state: RoomStatus
    called_numbers: List[int] = Field(default_factory=list)


class NumberDrawn(MsgBase):
    type: Literal["number_drawn"] = "number_drawn"
    number: int = Field(ge=1, le=60)


class ClaimWin(MsgBase):
    type: Literal["claim_win"] = "claim_win"
    claim: Claim


class ClaimRejected(MsgBase):
    type: Literal["claim_rejected"] = "claim_rejected"


class Win(MsgBase):
    type: Literal["win"] = "win"
    winner_name: str


# ---- Card table ----

class CardWelcome(MsgBase):
    type: Literal["card_welcome"] = "card_welcome"
    players: List[CardPlayer]
    game_state: RoomStatus


class CardDeal(MsgBase):
    # peer id -> cards; the host sends each player a map holding only their own hand
    type: Literal["card_deal"] = "card_deal"
    hands: Dict[str, List[Card]]


class CardReveal(MsgBase):
    type: Literal["card_reveal"] = "card_reveal"
    peer_id: str
    hand: List[Card]


class CardRevealAll(MsgBase):
    type: Literal["card_reveal_all"] = "card_reveal_all"


class CardResult(MsgBase):
    type: Literal["card_result"] = "card_result"
    winner_id: str


PeerMessage = Union[
    Join,
    PlayerJoined,
    Chat,
    StartGame,
    Reset,
    Ping,
    Welcome,
    NumberDrawn,
    ClaimWin,
    ClaimRejected,
    Win,
    CardWelcome,
    CardDeal,
    CardReveal,
    CardRevealAll,
    CardResult,
]


# Who may send what. Players only ever unicast to the host; the host is the only broadcaster.
PLAYER_TO_HOST = frozenset({"join", "chat", "claim_win", "card_reveal"})
HOST_TO_PLAYER = frozenset({
    "player_joined",
    "welcome",
    "start_game",
    "chat",
    "reset",
    "number_drawn",
    "claim_rejected",
    "win",
    "card_welcome",
    "card_deal",
    "card_reveal",
    "card_reveal_all",
    "card_result",
})

PING_PAYLOAD: Dict[str, Any] = {"type": "ping"}


def is_keepalive(payload: Any) -> bool:
    return isinstance(payload, dict) and payload.get("type") == "ping"


_MESSAGES_BY_TYPE = {
    "join": Join,
    "player_joined": PlayerJoined,
    "chat": Chat,
    "start_game": StartGame,
    "reset": Reset,
    "ping": Ping,
    "welcome": Welcome,
    "number_drawn": NumberDrawn,
    "claim_win": ClaimWin,
    "claim_rejected": ClaimRejected,
    "win": Win,
    "card_welcome": CardWelcome,
    "card_deal": CardDeal,
    "card_reveal": CardReveal,
    "card_reveal_all": CardRevealAll,
    "card_result": CardResult,
}


def _type_error(title: str, msg: str) -> ValidationError:
    return ValidationError.from_exception_data(
        title=title,
        line_errors=[{"loc": ("type",), "input": None, "ctx": {"error": msg}, "type": "value_error"}],
    )


def parse_message(payload: Dict[str, Any]) -> PeerMessage:
    """
    Convert raw dict -> validated message model.
    Raises ValidationError if invalid.
    """
    if not isinstance(payload, dict):
        raise _type_error("PeerMessage", "Payload must be an object")
    t = payload.get("type")
    if not isinstance(t, str):
        raise _type_error("PeerMessage", "Missing/invalid type")

    cls = _MESSAGES_BY_TYPE.get(t)
    if cls is None:
        raise _type_error("PeerMessage", f"Unknown message type: {t}")

    return cls.model_validate(payload)


# =========================
# Relay frames (peer <-> relay broker)
# =========================

class RelayServerEntry(BaseModel):
    urls: str
    username: Optional[str] = None
    credential: Optional[str] = None


class FrameRegister(BaseModel):
    """First frame on a relay socket."""
    type: Literal["register"] = "register"
    ice_servers: List[RelayServerEntry] = Field(default_factory=list)


class FrameRegistered(BaseModel):
    type: Literal["registered"] = "registered"
    identity: str


class FrameConnect(BaseModel):
    type: Literal["connect"] = "connect"
    to: str
    link: str


class FrameIncoming(BaseModel):
    type: Literal["incoming"] = "incoming"
    peer: str
    link: str


class FrameOpened(BaseModel):
    type: Literal["opened"] = "opened"
    link: str


class FrameData(BaseModel):
    type: Literal["frame"] = "frame"
    link: str
    data: Dict[str, Any]


class FrameClose(BaseModel):
    type: Literal["close"] = "close"
    link: str


class FrameClosed(BaseModel):
    type: Literal["closed"] = "closed"
    link: str


class FrameError(BaseModel):
    type: Literal["error"] = "error"
    code: str
    message: str = ""
    link: Optional[str] = None


ClientFrame = Union[FrameConnect, FrameData, FrameClose]

_CLIENT_FRAMES_BY_TYPE = {
    "connect": FrameConnect,
    "frame": FrameData,
    "close": FrameClose,
}


def parse_client_frame(payload: Dict[str, Any]) -> ClientFrame:
    if not isinstance(payload, dict):
        raise _type_error("ClientFrame", "Frame must be an object")
    t = payload.get("type")
    cls = _CLIENT_FRAMES_BY_TYPE.get(t) if isinstance(t, str) else None
    if cls is None:
        raise _type_error("ClientFrame", f"Unknown frame type: {t}")
    return cls.model_validate(payload)
