# gamevui/domain/lottery/handlers.py
from __future__ import annotations

import logging
import random
from typing import List

from gamevui.domain.common.fsm import next_status
from gamevui.domain.common.models import Board, Claim, PlayerInfo
from gamevui.domain.lottery.rules import generate_player_boards, draw_number, toggle_cell, verify_claim
from gamevui.domain.lottery.state import HOST_NAME, LotteryHostState, PendingClaim
from gamevui.transport.dispatcher import Directed, Outgoing, Result
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


# ----------------------------
# Inbound (player -> host)
# ----------------------------

def handle_join(*, state: LotteryHostState, pid: str, msg: Join) -> Result:
    """
    Roster is keyed by peer identity, so a repeated join never duplicates a player.
    The joiner gets the status, the full call history and the current roster.
    """
    to_room: List[Outgoing] = []
    if pid not in state.players:
        player = PlayerInfo(id=pid, name=msg.name)
        state.players[pid] = player
        state.chat.system(f"{msg.name} đã vào phòng!")
        to_room.append(PlayerJoined(player=player))

    to_sender: List[Outgoing] = [Welcome(game_state=state.status, called_numbers=list(state.called))]
    to_sender.extend(PlayerJoined(player=p) for p in state.roster())
    return to_sender, to_room


def handle_chat(*, state: LotteryHostState, pid: str, msg: Chat) -> Result:
    # relay to everyone, the sender included; receivers de-duplicate by id
    if not state.chat.add(msg.message):
        return [], []
    return [], [Chat(message=msg.message)]


def handle_claim_win(*, state: LotteryHostState, pid: str, msg: ClaimWin) -> Result:
    if pid not in state.players:
        logger.warning("Claim from %s who never joined, ignoring", pid)
        return [], []
    if state.status != "PLAYING":
        logger.info("Claim from %s outside a round, rejecting", pid)
        return [ClaimRejected()], []

    to_room: List[Outgoing] = []
    displaced = state.pending
    if displaced is not None and displaced.peer_id != pid:
        # one pending claim; the earlier claimant may claim again
        logger.info("Claim by %s displaced pending claim by %s", pid, displaced.peer_id)
        to_room.append(Directed(peer=displaced.peer_id, event=ClaimRejected()))

    state.pending = PendingClaim(peer_id=pid, claim=msg.claim)
    name = msg.claim.player_name
    state.chat.system(f"🔔 {name} ĐANG KINH! CHỜ KIỂM TRA...")
    notice = state.chat.system(f"🔔 {name} đang Kinh! Host đang kiểm tra vé...")
    to_room.append(Chat(message=notice))
    return [], to_room


ROUTES = {
    "join": handle_join,
    "chat": handle_chat,
    "claim_win": handle_claim_win,
}


# ----------------------------
# Host actions
# ----------------------------

def start_game(state: LotteryHostState) -> Result:
    state.status = next_status(state.status, "start_game")
    state.chat.system("🔔 Host đã bắt đầu ván chơi!")
    return [], [StartGame()]


def draw(state: LotteryHostState, rng: random.Random = random) -> Result:
    if state.status != "PLAYING":
        logger.info("Draw ignored while %s", state.status)
        return [], []
    number = draw_number(state.called, rng)
    if number is None:
        logger.info("All numbers already called")
        return [], []
    state.called.insert(0, number)
    state.current = number
    return [], [NumberDrawn(number=number)]


def declare_win(state: LotteryHostState, name: str) -> Result:
    state.winner = name
    state.chat.system(f"🏆 CHÚC MỪNG {name} ĐÃ CHIẾN THẮNG! 🏆")
    return [], [Win(winner_name=name)]


def send_chat(state: LotteryHostState, text: str) -> Result:
    msg = state.chat.post(HOST_NAME, text)
    return [], [Chat(message=msg)]


def resolve_claim(state: LotteryHostState) -> Result:
    """Verify the pending claim against the host's own call history."""
    pending, state.pending = state.pending, None
    if pending is None:
        return [], []

    name = pending.claim.player_name
    if verify_claim(pending.claim, state.called):
        return declare_win(state, name)

    logger.info("Rejected claim by %s (%s)", name, pending.peer_id)
    _, to_room = send_chat(state, f"Vé của {name} chưa hợp lệ. Tiếp tục chơi nhé!")
    return [], to_room + [Directed(peer=pending.peer_id, event=ClaimRejected())]


def reset(state: LotteryHostState) -> Result:
    state.status = next_status(state.status, "reset")
    state.called.clear()
    state.current = None
    state.pending = None
    state.winner = None
    state.chat.clear()
    state.host_boards = [_unmarked(b) for b in state.host_boards]
    state.chat.system("🔔 Ván chơi mới đã bắt đầu!")
    return [], [Reset()]


# ----------------------------
# Host plays too
# ----------------------------

def toggle_host_play(state: LotteryHostState, rng: random.Random = random) -> bool:
    if not state.host_playing:
        state.host_boards = generate_player_boards(rng)
    state.host_playing = not state.host_playing
    return state.host_playing


def mark_host_cell(state: LotteryHostState, board_id: str, row: int, col: int) -> None:
    state.host_boards = [
        toggle_cell(b, row, col) if b.id == board_id else b
        for b in state.host_boards
    ]


def host_claim(state: LotteryHostState) -> Result:
    """The host's "Kinh" goes through the same verification as anyone else's."""
    if state.status == "PLAYING":
        for board in state.host_boards:
            if verify_claim(Claim(player_name=HOST_NAME, board=board), state.called):
                _, cheer = send_chat(state, "HOST KINH RỒI BÀ CON ƠI!!! 🎉🎉🎉")
                _, win = declare_win(state, HOST_NAME)
                return [], cheer + win
    return send_chat(state, "Host tính kinh mà dò lại bị hụt... 😅")


def _unmarked(board: Board) -> Board:
    rows = [[c.model_copy(update={"marked": False}) for c in row] for row in board.rows]
    return Board(id=board.id, rows=rows)
