from __future__ import annotations

from typing import Literal

GameKind = Literal["loto", "card"]
Role = Literal["NONE", "HOST", "PLAYER"]
RoomStatus = Literal["LOBBY", "PLAYING"]
RoomEvent = Literal["start_game", "reset"]

Suit = Literal["hearts", "diamonds", "clubs", "spades"]
Rank = Literal["A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K"]
