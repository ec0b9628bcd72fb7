from __future__ import annotations

import logging
import random
from typing import Optional

from gamevui.domain.common.fsm import can_transition, next_status
from gamevui.domain.common.models import Board, Claim
from gamevui.domain.common.types import RoomEvent
from gamevui.domain.lottery.rules import check_board_win, generate_player_boards, toggle_cell
from gamevui.domain.lottery.state import LotteryPlayerState
from gamevui.transport.dispatcher import Result
from gamevui.transport.protocols import (
    Chat,
    ClaimRejected,
    ClaimWin,
    Join,
    NumberDrawn,
    PlayerJoined,
    Reset,
    StartGame,
    Welcome,
    Win,
)

logger = logging.getLogger(__name__)


def _follow(state: LotteryPlayerState, event: RoomEvent) -> bool:
    if not can_transition(state.status, event):
        logger.warning("Host sent %s while we are in %s, ignoring", event, state.status)
        return False
    state.status = next_status(state.status, event)
    return True


# ----------------------------
# Replay of host messages
# ----------------------------

def apply_welcome(*, state: LotteryPlayerState, pid: str, msg: Welcome) -> Result:
    # snapshot replaces whatever we had; a late joiner converges from this alone
    state.status = msg.game_state
    state.called = list(msg.called_numbers)
    state.current = state.called[0] if state.called else None
    return [], []


def apply_player_joined(*, state: LotteryPlayerState, pid: str, msg: PlayerJoined) -> Result:
    if msg.player.id not in state.players:
        state.chat.system(f"{msg.player.name} đã vào phòng!")
    state.players[msg.player.id] = msg.player
    return [], []


def apply_start_game(*, state: LotteryPlayerState, pid: str, msg: StartGame) -> Result:
    if _follow(state, "start_game"):
        state.chat.system("Ván chơi bắt đầu! Chúc may mắn!")
    return [], []


def apply_number_drawn(*, state: LotteryPlayerState, pid: str, msg: NumberDrawn) -> Result:
    if msg.number in state.called:
        return [], []
    state.called.insert(0, msg.number)
    state.current = msg.number
    return [], []


def apply_chat(*, state: LotteryPlayerState, pid: str, msg: Chat) -> Result:
    state.chat.add(msg.message)
    return [], []


def apply_win(*, state: LotteryPlayerState, pid: str, msg: Win) -> Result:
    state.winner = msg.winner_name
    state.chat.system(f"🏆 {msg.winner_name} ĐÃ CHIẾN THẮNG! 🏆")
    return [], []


def apply_claim_rejected(*, state: LotteryPlayerState, pid: str, msg: ClaimRejected) -> Result:
    state.has_claimed = False
    state.rejections += 1
    state.chat.system("⚠️ Host xác nhận vé chưa Kinh. Bạn có thể tiếp tục!")
    return [], []


def apply_reset(*, state: LotteryPlayerState, pid: str, msg: Reset) -> Result:
    if not _follow(state, "reset"):
        return [], []
    state.called = []
    state.current = None
    state.winner = None
    state.has_claimed = False
    state.chat.clear()
    state.boards = [
        Board(id=b.id, rows=[[c.model_copy(update={"marked": False}) for c in row] for row in b.rows])
        for b in state.boards
    ]
    state.chat.system("🔔 Ván chơi mới đã bắt đầu!")
    return [], []


ROUTES = {
    "welcome": apply_welcome,
    "player_joined": apply_player_joined,
    "start_game": apply_start_game,
    "number_drawn": apply_number_drawn,
    "chat": apply_chat,
    "win": apply_win,
    "claim_rejected": apply_claim_rejected,
    "reset": apply_reset,
}


# ----------------------------
# Local actions
# ----------------------------

def join_message(state: LotteryPlayerState) -> Join:
    return Join(name=state.name)


def new_boards(state: LotteryPlayerState, rng: random.Random = random) -> None:
    state.boards = generate_player_boards(rng)


def toggle_mark(state: LotteryPlayerState, board_id: str, row: int, col: int) -> None:
    state.boards = [toggle_cell(b, row, col) if b.id == board_id else b for b in state.boards]


def claim(state: LotteryPlayerState) -> Optional[ClaimWin]:
    """
    Build a claim for the first board with a complete row.
    One outstanding claim per round; None when nothing is claimable.
    """
    if state.has_claimed or state.status != "PLAYING":
        return None
    for board in state.boards:
        if check_board_win(board) != -1:
            state.has_claimed = True
            return ClaimWin(claim=Claim(player_name=state.name, board=board))
    return None


def chat_message(state: LotteryPlayerState, text: str) -> Chat:
    return Chat(message=state.chat.post(state.name, text))
