import random

import pytest

from gamevui.domain.common.models import Board, Cell, Claim
from gamevui.domain.lottery import handlers, player
from gamevui.domain.lottery.state import HOST_NAME, LotteryHostState, LotteryPlayerState
from gamevui.errors import InvalidTransition
from gamevui.transport.dispatcher import Directed, dispatch_message
from gamevui.transport.protocols import HOST_TO_PLAYER, PLAYER_TO_HOST, ClaimWin, Join


def _winning_board(values):
    return Board(id="b", rows=[[Cell(value=v, marked=True) for v in values]])


def _replay(state, events):
    for e in events:
        payload = e.event if isinstance(e, Directed) else e
        if hasattr(payload, "model_dump"):
            payload = payload.model_dump()
        dispatch_message(state=state, pid="host", raw=payload, routes=player.ROUTES, accepted=HOST_TO_PLAYER)


def _host_dispatch(state, pid, raw):
    return dispatch_message(state=state, pid=pid, raw=raw, routes=handlers.ROUTES, accepted=PLAYER_TO_HOST)


def _join(state, *pids):
    for pid in pids:
        handlers.handle_join(state=state, pid=pid, msg=Join(name=pid.upper()))


def test_join_is_deduplicated_by_identity():
    state = LotteryHostState()
    to_sender, to_room = handlers.handle_join(state=state, pid="p1", msg=Join(name="An"))
    assert to_sender[0].type == "welcome"
    assert [e.type for e in to_room] == ["player_joined"]

    to_sender, to_room = handlers.handle_join(state=state, pid="p1", msg=Join(name="An"))
    assert to_room == []
    assert len(state.players) == 1
    assert state.chat.messages[-1].is_system


def test_welcome_carries_history_most_recent_first():
    state = LotteryHostState()
    handlers.start_game(state)
    rng = random.Random(5)
    for _ in range(3):
        handlers.draw(state, rng)

    to_sender, _ = handlers.handle_join(state=state, pid="late", msg=Join(name="Late"))
    welcome = to_sender[0]
    assert welcome.game_state == "PLAYING"
    assert welcome.called_numbers == state.called
    assert welcome.called_numbers[0] == state.current


def test_draw_requires_playing():
    state = LotteryHostState()
    assert handlers.draw(state) == ([], [])
    assert state.called == []


def test_reset_from_lobby_raises():
    with pytest.raises(InvalidTransition):
        handlers.reset(LotteryHostState())


def test_player_replay_matches_host_history():
    host = LotteryHostState()
    guest = LotteryPlayerState(name="An")
    rng = random.Random(11)

    _replay(guest, handlers.start_game(host)[1])
    for _ in range(12):
        _replay(guest, handlers.draw(host, rng)[1])

    assert guest.status == "PLAYING"
    assert guest.called == host.called
    assert guest.current == host.current


def test_duplicate_number_drawn_is_ignored():
    guest = LotteryPlayerState(name="An", status="PLAYING")
    _replay(guest, [{"type": "number_drawn", "number": 7}, {"type": "number_drawn", "number": 7}])
    assert guest.called == [7]


def test_late_joiner_converges_from_welcome_alone():
    host = LotteryHostState()
    handlers.start_game(host)
    rng = random.Random(2)
    for _ in range(9):
        handlers.draw(host, rng)

    late = LotteryPlayerState(name="Late")
    to_sender, _ = handlers.handle_join(state=host, pid="late", msg=Join(name="Late"))
    _replay(late, [e.model_dump() for e in to_sender])

    assert late.status == host.status
    assert late.called == host.called
    assert "late" in late.players


def test_invalid_claim_is_rejected_privately():
    host = LotteryHostState()
    _join(host, "p1")
    handlers.start_game(host)
    host.called = [1, 12]

    claim = ClaimWin(claim=Claim(player_name="An", board=_winning_board([1, 12, 23, 34])))
    _, to_room = _host_dispatch(host, "p1", claim.model_dump())
    assert host.pending is not None
    assert any(e.get("type") == "chat" for e in to_room if isinstance(e, dict))

    _, to_room = handlers.resolve_claim(host)
    assert host.pending is None
    assert host.winner is None
    assert not any(getattr(e, "type", None) == "win" for e in to_room)
    directed = [e for e in to_room if isinstance(e, Directed)]
    assert len(directed) == 1
    assert directed[0].peer == "p1"
    assert directed[0].event.type == "claim_rejected"


def test_valid_claim_broadcasts_win():
    host = LotteryHostState()
    _join(host, "p1")
    handlers.start_game(host)
    host.called = [34, 23, 12, 1]
    _host_dispatch(
        host,
        "p1",
        ClaimWin(claim=Claim(player_name="An", board=_winning_board([1, 12, 23, 34]))).model_dump(),
    )

    _, to_room = handlers.resolve_claim(host)
    assert host.winner == "An"
    assert [e.type for e in to_room] == ["win"]
    assert to_room[0].winner_name == "An"


def test_later_claim_displaces_pending_one():
    host = LotteryHostState()
    _join(host, "p1", "p2")
    handlers.start_game(host)
    board = _winning_board([1, 12, 23, 34])

    _host_dispatch(host, "p1", ClaimWin(claim=Claim(player_name="An", board=board)).model_dump())
    _, to_room = _host_dispatch(host, "p2", ClaimWin(claim=Claim(player_name="Bình", board=board)).model_dump())

    assert host.pending.peer_id == "p2"
    bounced = [e for e in to_room if isinstance(e, Directed)]
    assert [(d.peer, d.event["type"]) for d in bounced] == [("p1", "claim_rejected")]


def test_claim_outside_round_is_rejected_to_sender():
    host = LotteryHostState()
    _join(host, "p1")
    to_sender, to_room = _host_dispatch(
        host, "p1", ClaimWin(claim=Claim(player_name="An", board=_winning_board([1]))).model_dump()
    )
    assert [e["type"] for e in to_sender] == ["claim_rejected"]
    assert host.pending is None


def test_claim_from_peer_that_never_joined_is_ignored():
    host = LotteryHostState()
    handlers.start_game(host)
    claim = ClaimWin(claim=Claim(player_name="Lạ", board=_winning_board([1])))

    assert _host_dispatch(host, "stranger", claim.model_dump()) == ([], [])
    assert host.pending is None


def test_wrong_direction_messages_are_dropped():
    host = LotteryHostState()
    assert _host_dispatch(host, "p1", {"type": "number_drawn", "number": 5}) == ([], [])
    assert _host_dispatch(host, "p1", {"type": "nonsense"}) == ([], [])
    assert host.called == []


def test_chat_relay_deduplicates_by_id():
    host = LotteryHostState()
    guest = LotteryPlayerState(name="An")
    msg = player.chat_message(guest, "xin chào")
    assert len(guest.chat) == 1

    _, to_room = _host_dispatch(host, "p1", msg.model_dump())
    _, again = _host_dispatch(host, "p1", msg.model_dump())
    assert len(to_room) == 1 and again == []

    # the echo from the host does not duplicate the sender's own line
    _replay(guest, to_room)
    assert len(guest.chat) == 1


def test_player_claim_once_until_rejected():
    guest = LotteryPlayerState(name="An", status="PLAYING")
    guest.boards = [_winning_board([1, 12])]

    first = player.claim(guest)
    assert first is not None and first.claim.player_name == "An"
    assert player.claim(guest) is None

    _replay(guest, [{"type": "claim_rejected"}])
    assert guest.rejections == 1
    assert player.claim(guest) is not None


def test_player_claim_needs_complete_row():
    guest = LotteryPlayerState(name="An", status="PLAYING")
    guest.boards = [Board(id="b", rows=[[Cell(value=1, marked=True), Cell(value=2)]])]
    assert player.claim(guest) is None
    assert not guest.has_claimed


def test_reset_clears_round_and_marks():
    host = LotteryHostState()
    guest = LotteryPlayerState(name="An")
    guest.boards = [_winning_board([1, 12])]
    _replay(guest, handlers.start_game(host)[1])
    _replay(guest, handlers.draw(host, random.Random(1))[1])
    guest.has_claimed = True

    _replay(guest, handlers.reset(host)[1])

    assert host.called == [] and guest.called == []
    assert guest.current is None
    assert not guest.has_claimed
    assert not any(c.marked for row in guest.boards[0].rows for c in row)
    assert guest.status == "PLAYING"


def test_host_claim_uses_same_verification():
    host = LotteryHostState()
    handlers.start_game(host)
    host.host_boards = [_winning_board([1, 12])]

    _, to_room = handlers.host_claim(host)
    assert host.winner is None
    assert to_room[-1].type == "chat"

    host.called = [12, 1]
    _, to_room = handlers.host_claim(host)
    assert host.winner == HOST_NAME
    assert to_room[-1].type == "win"


def test_toggle_host_play_generates_boards():
    host = LotteryHostState()
    assert handlers.toggle_host_play(host, random.Random(4)) is True
    assert len(host.host_boards) == 5

    board = host.host_boards[0]
    col = next(i for i, c in enumerate(board.rows[0]) if c.value is not None)
    handlers.mark_host_cell(host, board.id, 0, col)
    assert host.host_boards[0].rows[0][col].marked
