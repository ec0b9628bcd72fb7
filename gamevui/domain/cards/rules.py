# gamevui/domain/cards/rules.py
from __future__ import annotations

import random
from typing import Dict, List, Sequence, Tuple

from gamevui.domain.common.models import Card
from gamevui.domain.common.types import Rank, Suit

SUITS: List[Suit] = ["hearts", "diamonds", "clubs", "spades"]
RANKS: List[Rank] = ["A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K"]
FACES = frozenset({"J", "Q", "K"})

CARDS_PER_HAND = 3

# Score categories: 0-9 points, 10 = Ba Tây (three faces), 11 = Sáp (three of a kind)
BA_TAY = 10
SAP = 11


def create_deck() -> List[Card]:
    return [Card(suit=s, rank=r) for s in SUITS for r in RANKS]


def shuffle_deck(deck: Sequence[Card], rng: random.Random = random) -> List[Card]:
    """Fisher-Yates on a copy."""
    out = list(deck)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def rank_value(rank: Rank) -> int:
    if rank == "A":
        return 1
    if rank in FACES or rank == "10":
        return 0
    return int(rank)


def calculate_score(hand: Sequence[Card]) -> Tuple[int, str]:
    """
    (score, label) for a three-card hand. Order of the cards never matters.
    Anything but three cards scores (0, "?").
    """
    if len(hand) != CARDS_PER_HAND:
        return 0, "?"

    ranks = [c.rank for c in hand]
    if ranks[0] == ranks[1] == ranks[2]:
        return SAP, f"Sáp {ranks[0]}"
    if all(r in FACES for r in ranks):
        return BA_TAY, "Ba Tây"

    total = sum(rank_value(r) for r in ranks) % 10
    if total == 0:
        return 0, "Bù"
    return total, f"{total} Nút"


def deal_hands(
    player_ids: Sequence[str],
    rng: random.Random = random,
) -> Dict[str, List[Card]]:
    """
    Three face-down cards per seat from a freshly shuffled deck.
    A new shuffled deck is opened when the current one runs out (more than 17 seats).
    """
    deck = shuffle_deck(create_deck(), rng)
    hands: Dict[str, List[Card]] = {}
    for pid in player_ids:
        cards: List[Card] = []
        for _ in range(CARDS_PER_HAND):
            if not deck:
                deck = shuffle_deck(create_deck(), rng)
            cards.append(deck.pop().model_copy(update={"is_hidden": True}))
        hands[pid] = cards
    return hands
