from __future__ import annotations

from typing import Optional, Sequence

from gamevui.domain.cards.state import CardTableState
from gamevui.domain.common.models import CardPlayer


def pick_leader(
    players: Sequence[CardPlayer],
    reveal_order: Sequence[str],
    just_revealed: Optional[str] = None,
) -> Optional[str]:
    """
    Best score among revealed hands.
    Ties go to the player who just revealed, else to whoever revealed first.
    """
    revealed = [p for p in players if p.is_revealed and p.score is not None]
    if not revealed:
        return None

    best = max(p.score for p in revealed)
    tied = [p.id for p in revealed if p.score == best]
    if just_revealed in tied:
        return just_revealed
    for pid in reveal_order:
        if pid in tied:
            return pid
    return tied[0]


def all_revealed(state: CardTableState) -> bool:
    dealt = [p for p in state.seats() if p.hand]
    return bool(dealt) and all(p.is_revealed for p in dealt)


def update_leader(
    state: CardTableState,
    just_revealed: Optional[str] = None,
    *,
    finalize: bool = False,
) -> Optional[CardPlayer]:
    """
    Recompute the leader after a reveal.
    Returns the seat to announce: only when the leader changed, or always when
    the round is being finalized.
    """
    leader = pick_leader(state.seats(), state.reveal_order, just_revealed)
    if leader is None:
        return None
    changed = leader != state.leader_id
    state.leader_id = leader
    if changed or finalize:
        return state.players[leader]
    return None
