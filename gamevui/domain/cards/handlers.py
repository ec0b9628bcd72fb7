# gamevui/domain/cards/handlers.py
from __future__ import annotations

import logging
import random
from collections import Counter
from typing import List, Optional

from gamevui.domain.cards.leaderboard import all_revealed, update_leader
from gamevui.domain.cards.rules import CARDS_PER_HAND, calculate_score, deal_hands
from gamevui.domain.cards.state import HOST_ID, MAX_PLAYERS, CardTableState
from gamevui.domain.common.chat import SYSTEM_SENDER, make_message
from gamevui.domain.common.fsm import next_status
from gamevui.domain.common.models import Card, CardPlayer
from gamevui.transport.dispatcher import Directed, Outgoing, Result
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


def public_snapshot(state: CardTableState) -> CardWelcome:
    """Roster for broadcast: unrevealed hands travel as a card count only."""
    seats: List[CardPlayer] = []
    for p in state.seats():
        if p.is_revealed:
            seats.append(p.model_copy(update={"card_count": len(p.hand)}, deep=True))
        else:
            seats.append(p.model_copy(update={"hand": [], "card_count": len(p.hand)}, deep=True))
    return CardWelcome(players=seats, game_state=state.status)


def _sync(state: CardTableState) -> List[Outgoing]:
    out: List[Outgoing] = [public_snapshot(state)]
    if state.leader_id is not None:
        out.append(CardResult(winner_id=state.leader_id))
    return out


def _score_seat(seat: CardPlayer) -> None:
    seat.hand = [c.model_copy(update={"is_hidden": False}) for c in seat.hand]
    seat.score, seat.score_text = calculate_score(seat.hand)
    seat.is_revealed = True
    seat.card_count = len(seat.hand)


def _announce(state: CardTableState, seat: Optional[CardPlayer], *, final: bool) -> List[Outgoing]:
    if seat is None:
        return []
    if final:
        state.chat.system(f"🏆 {seat.name} thắng với {seat.score_text}!")
    else:
        state.chat.system(f"🔥 {seat.name} vừa lật bài: {seat.score_text}! (Dẫn đầu)")
    return [CardResult(winner_id=seat.id)]


def _after_reveal(state: CardTableState, pid: str) -> List[Outgoing]:
    final = all_revealed(state)
    announced = update_leader(state, pid, finalize=final)
    # only the just-revealed player (or the final result) gets a chat line
    if announced is not None and (final or announced.id == pid):
        return _announce(state, announced, final=final)
    if announced is not None:
        return [CardResult(winner_id=announced.id)]
    return []


# ----------------------------
# Inbound (player -> host)
# ----------------------------

def handle_join(*, state: CardTableState, pid: str, msg: Join) -> Result:
    if pid in state.players:
        return [public_snapshot(state)], []

    if len(state.players) >= MAX_PLAYERS:
        logger.info("Table full, turning away %s (%s)", msg.name, pid)
        notice = make_message(SYSTEM_SENDER, f"Phòng đã đầy ({MAX_PLAYERS}/{MAX_PLAYERS})!", is_system=True)
        return [Chat(message=notice)], []

    state.players[pid] = CardPlayer(id=pid, name=msg.name)
    state.chat.system(f"{msg.name} đã vào bàn!")
    return [], _sync(state)


def handle_chat(*, state: CardTableState, pid: str, msg: Chat) -> Result:
    if not state.chat.add(msg.message):
        return [], []
    return [], [Chat(message=msg.message)]


def handle_card_reveal(*, state: CardTableState, pid: str, msg: CardReveal) -> Result:
    seat = state.players.get(pid)
    if seat is None or state.status != "PLAYING":
        return [], []
    if msg.peer_id != pid:
        logger.warning("%s tried to reveal for %s, ignoring", pid, msg.peer_id)
        return [], []
    if seat.is_revealed or len(seat.hand) != CARDS_PER_HAND:
        return [], []

    # score what we dealt, not what the player says it holds
    dealt = Counter((c.suit, c.rank) for c in seat.hand)
    claimed = Counter((c.suit, c.rank) for c in msg.hand)
    if dealt != claimed:
        logger.warning("Reveal from %s does not match the dealt hand; scoring the dealt hand", pid)

    _score_seat(seat)
    state.reveal_order.append(pid)
    announce = _after_reveal(state, pid)
    return [], [public_snapshot(state)] + announce


ROUTES = {
    "join": handle_join,
    "chat": handle_chat,
    "card_reveal": handle_card_reveal,
}


# ----------------------------
# Host actions
# ----------------------------

def add_host(state: CardTableState, name: str) -> None:
    state.players[HOST_ID] = CardPlayer(id=HOST_ID, name=name)


def deal(state: CardTableState, rng: random.Random = random, *, bot: bool = False) -> Result:
    if not state.players:
        return [], []
    state.status = next_status(state.status, "start_game")
    state.leader_id = None
    state.reveal_order = []

    hands = deal_hands(list(state.players), rng)
    to_room: List[Outgoing] = []
    for pid, hand in hands.items():
        seat = state.players[pid]
        seat.hand = hand
        seat.card_count = len(hand)
        seat.is_revealed = False
        seat.score = None
        seat.score_text = None
        if pid != HOST_ID:
            # each hand only ever goes to its owner
            to_room.append(Directed(peer=pid, event=CardDeal(hands={pid: hand})))

    state.chat.system("Bot đã chia bài! Đang tự động lật..." if bot else "Đã chia bài! Mời nặn bài.")
    to_room.append(StartGame())
    to_room.append(public_snapshot(state))
    return [], to_room


def flip_host_card(state: CardTableState, index: int) -> Result:
    """Host turns one of its own cards; the third one reveals the hand."""
    seat = state.players.get(HOST_ID)
    if seat is None or seat.is_revealed or state.status != "PLAYING":
        return [], []
    if not 0 <= index < len(seat.hand) or not seat.hand[index].is_hidden:
        return [], []

    seat.hand[index] = seat.hand[index].model_copy(update={"is_hidden": False})
    if any(c.is_hidden for c in seat.hand):
        return [], []

    _score_seat(seat)
    state.reveal_order.append(HOST_ID)
    announce = _after_reveal(state, HOST_ID)
    return [], [public_snapshot(state), CardReveal(peer_id=HOST_ID, hand=seat.hand)] + announce


def reveal_all(state: CardTableState) -> Result:
    """Force every dealt hand open, score it and finalize the round."""
    if state.status != "PLAYING":
        return [], []
    for seat in state.seats():
        if seat.hand and not seat.is_revealed:
            _score_seat(seat)
            state.reveal_order.append(seat.id)

    announced = update_leader(state, None, finalize=True)
    announce = _announce(state, announced, final=True)
    to_room: List[Outgoing] = [public_snapshot(state)]
    return [], to_room + announce + [CardRevealAll()]


def reset(state: CardTableState) -> Result:
    state.status = next_status(state.status, "reset")
    state.leader_id = None
    state.reveal_order = []
    for seat in state.seats():
        seat.hand = []
        seat.card_count = 0
        seat.is_revealed = False
        seat.score = None
        seat.score_text = None
    state.chat.clear()
    state.chat.system("🔔 Ván chơi mới đã bắt đầu!")
    return [], [Reset(), public_snapshot(state)]


def send_chat(state: CardTableState, sender: str, text: str) -> Result:
    msg = state.chat.post(sender, text)
    return [], [Chat(message=msg)]


def host_hand(state: CardTableState) -> List[Card]:
    seat = state.players.get(HOST_ID)
    return list(seat.hand) if seat is not None else []
