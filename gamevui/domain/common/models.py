# gamevui/domain/common/models.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from gamevui.domain.common.types import Rank, Suit


class PlayerInfo(BaseModel):
    id: str
    name: str
    is_ready: bool = True


class ChatMessage(BaseModel):
    id: str
    sender: str
    text: str
    is_system: bool = False
    timestamp: int


# ---- Lottery ----

class Cell(BaseModel):
    value: Optional[int] = None  # None = blocked cell
    marked: bool = False


class Board(BaseModel):
    id: str
    rows: List[List[Cell]]


class Claim(BaseModel):
    player_name: str
    board: Board


# ---- Card table ----

class Card(BaseModel):
    suit: Suit
    rank: Rank
    is_hidden: bool = True


class CardPlayer(PlayerInfo):
    """
    One seat at the card table.
    `hand` is empty in broadcast snapshots until the seat is revealed; `card_count`
    tells the others how many face-down cards the seat holds.
    """
    hand: List[Card] = Field(default_factory=list)
    card_count: int = 0
    is_revealed: bool = False
    score: Optional[int] = None  # 0-9, 10 (Ba Tây), 11 (Sáp)
    score_text: Optional[str] = None
