from __future__ import annotations

import logging
from typing import Optional

from gamevui.domain.cards.rules import calculate_score
from gamevui.domain.cards.state import CardGuestState
from gamevui.domain.common.fsm import can_transition, next_status
from gamevui.domain.common.models import CardPlayer
from gamevui.domain.common.types import RoomEvent
from gamevui.transport.dispatcher import Result
from gamevui.transport.protocols import (
    CardDeal,
    CardResult,
    CardReveal,
    CardRevealAll,
    CardWelcome,
    Chat,
    Join,
    Reset,
    StartGame,
)

logger = logging.getLogger(__name__)


def _follow(state: CardGuestState, event: RoomEvent) -> bool:
    if not can_transition(state.status, event):
        logger.warning("Host sent %s while we are in %s, ignoring", event, state.status)
        return False
    state.status = next_status(state.status, event)
    return True


def apply_card_welcome(*, state: CardGuestState, pid: str, msg: CardWelcome) -> Result:
    mine = state.me
    players = {}
    for seat in msg.players:
        # the snapshot never carries our face-down cards; keep the local ones
        if seat.id == state.my_id and mine is not None and mine.hand and not seat.is_revealed:
            seat = seat.model_copy(update={"hand": mine.hand})
        players[seat.id] = seat
    state.players = players
    state.status = msg.game_state
    return [], []


def apply_start_game(*, state: CardGuestState, pid: str, msg: StartGame) -> Result:
    if _follow(state, "start_game"):
        state.leader_id = None
    return [], []


def apply_card_deal(*, state: CardGuestState, pid: str, msg: CardDeal) -> Result:
    hand = msg.hands.get(state.my_id or "")
    if hand is None:
        logger.warning("Deal without a hand for %s", state.my_id)
        return [], []
    seat = state.me
    if seat is None:
        seat = CardPlayer(id=state.my_id, name=state.name)
        state.players[state.my_id] = seat
    seat.hand = [c.model_copy(update={"is_hidden": True}) for c in hand]
    seat.card_count = len(hand)
    seat.is_revealed = False
    seat.score = None
    seat.score_text = None
    return [], []


def apply_card_reveal(*, state: CardGuestState, pid: str, msg: CardReveal) -> Result:
    seat = state.players.get(msg.peer_id)
    if seat is None:
        return [], []
    seat.hand = [c.model_copy(update={"is_hidden": False}) for c in msg.hand]
    seat.is_revealed = True
    seat.score, seat.score_text = calculate_score(seat.hand)
    return [], []


def apply_card_reveal_all(*, state: CardGuestState, pid: str, msg: CardRevealAll) -> Result:
    seat = state.me
    if seat is not None and seat.hand:
        seat.hand = [c.model_copy(update={"is_hidden": False}) for c in seat.hand]
    return [], []


def apply_card_result(*, state: CardGuestState, pid: str, msg: CardResult) -> Result:
    state.leader_id = msg.winner_id
    return [], []


def apply_chat(*, state: CardGuestState, pid: str, msg: Chat) -> Result:
    state.chat.add(msg.message)
    return [], []


def apply_reset(*, state: CardGuestState, pid: str, msg: Reset) -> Result:
    if not _follow(state, "reset"):
        return [], []
    state.leader_id = None
    for seat in state.seats():
        seat.hand = []
        seat.card_count = 0
        seat.is_revealed = False
        seat.score = None
        seat.score_text = None
    state.chat.clear()
    state.chat.system("🔔 Ván chơi mới đã bắt đầu!")
    return [], []


ROUTES = {
    "card_welcome": apply_card_welcome,
    "start_game": apply_start_game,
    "card_deal": apply_card_deal,
    "card_reveal": apply_card_reveal,
    "card_reveal_all": apply_card_reveal_all,
    "card_result": apply_card_result,
    "chat": apply_chat,
    "reset": apply_reset,
}


# ----------------------------
# Local actions
# ----------------------------

def join_message(state: CardGuestState) -> Join:
    return Join(name=state.name)


def flip_card(state: CardGuestState, index: int) -> Optional[CardReveal]:
    """
    Turn one of our own cards face up (local only).
    Returns the reveal to send once all three are open.
    """
    seat = state.me
    if seat is None or seat.is_revealed or state.status != "PLAYING":
        return None
    if not 0 <= index < len(seat.hand) or not seat.hand[index].is_hidden:
        return None

    seat.hand[index] = seat.hand[index].model_copy(update={"is_hidden": False})
    if any(c.is_hidden for c in seat.hand):
        return None
    seat.is_revealed = True
    return CardReveal(peer_id=state.my_id, hand=seat.hand)


def chat_message(state: CardGuestState, text: str) -> Chat:
    return Chat(message=state.chat.post(state.name, text))
