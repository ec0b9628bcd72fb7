import random

from gamevui.domain.cards import handlers, player
from gamevui.domain.cards.leaderboard import pick_leader
from gamevui.domain.cards.state import HOST_ID, MAX_PLAYERS, CardGuestState, CardTableState
from gamevui.domain.common.models import Card, CardPlayer
from gamevui.transport.dispatcher import Directed
from gamevui.transport.protocols import CardReveal, Join


def _hand(*ranks):
    suits = ("hearts", "clubs", "spades")
    return [Card(suit=s, rank=r) for r, s in zip(ranks, suits)]


def _table(*pids):
    state = CardTableState()
    handlers.add_host(state, "Cái")
    for pid in pids:
        handlers.handle_join(state=state, pid=pid, msg=Join(name=pid.upper()))
    return state


def _reveal(state, pid, ranks):
    state.players[pid].hand = _hand(*ranks)
    msg = CardReveal(peer_id=pid, hand=_hand(*ranks))
    return handlers.handle_card_reveal(state=state, pid=pid, msg=msg)


def _results(events):
    return [e.winner_id for e in events if getattr(e, "type", None) == "card_result"]


def test_deal_sends_each_hand_only_to_its_owner():
    state = _table("p1", "p2")
    _, to_room = handlers.deal(state, random.Random(3))

    directed = [e for e in to_room if isinstance(e, Directed)]
    assert sorted(d.peer for d in directed) == ["p1", "p2"]
    for d in directed:
        assert list(d.event.hands) == [d.peer]
        assert len(d.event.hands[d.peer]) == 3

    snapshot = to_room[-1]
    assert snapshot.type == "card_welcome"
    assert all(seat.hand == [] and seat.card_count == 3 for seat in snapshot.players)
    assert state.status == "PLAYING"


def test_join_twice_sends_snapshot_only_to_sender():
    state = _table("p1")
    to_sender, to_room = handlers.handle_join(state=state, pid="p1", msg=Join(name="P1"))
    assert [e.type for e in to_sender] == ["card_welcome"]
    assert to_room == []
    assert len(state.players) == 2


def test_table_is_capped():
    state = _table(*[f"p{i}" for i in range(MAX_PLAYERS - 1)])
    assert len(state.players) == MAX_PLAYERS

    to_sender, to_room = handlers.handle_join(state=state, pid="extra", msg=Join(name="Extra"))
    assert "extra" not in state.players
    assert to_room == []
    assert to_sender[0].type == "chat"
    assert "20/20" in to_sender[0].message.text


def test_tie_goes_to_player_who_just_revealed():
    state = _table("p1", "p2")
    handlers.deal(state, random.Random(1))

    _, first = _reveal(state, "p1", ("4", "5", "K"))
    assert _results(first) == ["p1"]

    _, second = _reveal(state, "p2", ("3", "6", "10"))
    assert state.leader_id == "p2"
    assert _results(second) == ["p2"]


def test_pick_leader_falls_back_to_reveal_order():
    a = CardPlayer(id="a", name="A", is_revealed=True, score=7)
    b = CardPlayer(id="b", name="B", is_revealed=True, score=7)
    assert pick_leader([a, b], ["b", "a"]) == "b"
    assert pick_leader([a, b], ["b", "a"], just_revealed="a") == "a"
    assert pick_leader([CardPlayer(id="c", name="C")], []) is None


def test_leading_score_never_decreases():
    state = _table("p1", "p2", "p3")
    handlers.deal(state, random.Random(2))

    _reveal(state, "p1", ("J", "Q", "K"))
    assert state.leader_id == "p1"

    _, events = _reveal(state, "p2", ("2", "2", "5"))
    assert state.leader_id == "p1"
    assert _results(events) == []
    assert state.players[state.leader_id].score == 10

    _reveal(state, "p3", ("9", "9", "9"))
    assert state.leader_id == "p3"
    assert state.players["p3"].score == 11


def test_reveal_all_finalizes_and_announces_winner():
    state = _table("p1", "p2")
    handlers.deal(state, random.Random(4))
    state.players[HOST_ID].hand = _hand("2", "3", "4")
    state.players["p1"].hand = _hand("9", "9", "9")
    state.players["p2"].hand = _hand("J", "Q", "K")

    _, to_room = handlers.reveal_all(state)
    assert all(seat.is_revealed for seat in state.seats())
    assert state.leader_id == "p1"
    assert [e.type for e in to_room] == ["card_welcome", "card_result", "card_reveal_all"]
    assert "thắng" in state.chat.messages[-1].text


def test_last_reveal_finalizes_without_reveal_all():
    state = _table("p1")
    handlers.deal(state, random.Random(6))
    state.players[HOST_ID].hand = _hand("2", "3", "K")
    for i in range(3):
        handlers.flip_host_card(state, i)
    assert state.players[HOST_ID].is_revealed

    _, events = _reveal(state, "p1", ("A", "A", "A"))
    assert _results(events) == ["p1"]
    assert "thắng" in state.chat.messages[-1].text


def test_host_scores_the_dealt_hand_not_the_claimed_one():
    state = _table("p1")
    handlers.deal(state, random.Random(8))
    state.players["p1"].hand = _hand("2", "3", "4")

    msg = CardReveal(peer_id="p1", hand=_hand("9", "9", "9"))
    handlers.handle_card_reveal(state=state, pid="p1", msg=msg)
    assert state.players["p1"].score == 9
    assert state.players["p1"].score_text == "9 Nút"


def test_reveal_for_someone_else_is_ignored():
    state = _table("p1", "p2")
    handlers.deal(state, random.Random(8))
    msg = CardReveal(peer_id="p2", hand=state.players["p2"].hand)
    assert handlers.handle_card_reveal(state=state, pid="p1", msg=msg) == ([], [])
    assert not state.players["p2"].is_revealed


def test_reset_clears_hands_and_chat():
    state = _table("p1")
    handlers.deal(state, random.Random(5))
    handlers.reveal_all(state)

    _, to_room = handlers.reset(state)
    assert [e.type for e in to_room] == ["reset", "card_welcome"]
    assert state.leader_id is None
    assert all(not seat.hand and not seat.is_revealed for seat in state.seats())
    assert len(state.chat) == 1


def test_guest_keeps_its_face_down_cards_across_snapshots():
    host = _table("p1")
    guest = CardGuestState(name="P1", my_id="p1")
    _, to_room = handlers.deal(host, random.Random(9))

    for event in to_room:
        payload = event.event if isinstance(event, Directed) else event
        handler = player.ROUTES[payload.type]
        handler(state=guest, pid="host", msg=payload)

    mine = guest.me
    assert len(mine.hand) == 3
    assert all(c.is_hidden for c in mine.hand)
    assert guest.players[HOST_ID].hand == []

    assert player.flip_card(guest, 0) is None
    assert player.flip_card(guest, 1) is None
    reveal = player.flip_card(guest, 2)
    assert reveal is not None and reveal.peer_id == "p1"
    assert player.flip_card(guest, 2) is None
