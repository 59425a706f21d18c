"""
Deck and card operations for the Hold'em engine.
"""

import asyncio
import random
from typing import Callable, Iterable, List, NamedTuple, Optional

from holdem.errors import DeckExhaustedError

RANK_LABELS = {10: 'T', 11: 'J', 12: 'Q', 13: 'K', 14: 'A'}
LABEL_RANKS = {label: rank for rank, label in RANK_LABELS.items()}
SUITS = 'cdhs'  # clubs, diamonds, hearts, spades
SUIT_SYMBOLS = {'c': '♣', 'd': '♦', 'h': '♥', 's': '♠'}


class Card(NamedTuple):
    """Immutable playing card; rank is 2-14 where 14 is the ace."""
    rank: int
    suit: str

    def __str__(self) -> str:
        return card_str(self)


def make_card(rank: int, suit: str) -> Card:
    if not 2 <= rank <= 14:
        raise ValueError(f"Invalid rank: {rank}")
    if suit not in SUITS:
        raise ValueError(f"Invalid suit: {suit}")
    return Card(rank, suit)


def rank_label(rank: int) -> str:
    return RANK_LABELS.get(rank, str(rank))


def card_str(card: Card) -> str:
    """Convert a card to its short label, e.g. 'Ah' or 'Tc'."""
    r, s = card
    return f"{rank_label(r)}{s}"


def card_symbol(card: Card) -> str:
    r, s = card
    return f"{rank_label(r)}{SUIT_SYMBOLS[s]}"


def parse_card(label: str) -> Card:
    """Parse a label like 'Ah', 'Td' or '10s' into a Card."""
    label = label.strip()
    if len(label) not in (2, 3):
        raise ValueError(f"Invalid card label: {label}")
    rank_part, suit = label[:-1], label[-1].lower()
    rank_part = rank_part.upper()
    if rank_part in LABEL_RANKS:
        rank = LABEL_RANKS[rank_part]
    elif rank_part.isdigit():
        rank = int(rank_part)
    else:
        raise ValueError(f"Invalid rank: {rank_part}")
    return make_card(rank, suit)


def parse_cards(labels: Iterable[str]) -> List[Card]:
    return [parse_card(label) for label in labels]


def make_deck() -> List[Card]:
    """Create a standard 52-card deck."""
    ranks = list(range(2, 15))  # 2-14 (where 11=J, 12=Q, 13=K, 14=A)
    return [Card(r, s) for r in ranks for s in SUITS]


def shuffle_deck(deck: List[Card], rng: Optional[random.Random] = None) -> None:
    """Fisher-Yates shuffle in place."""
    rng = rng or random.Random()
    for i in range(len(deck) - 1, 0, -1):
        j = rng.randint(0, i)
        deck[i], deck[j] = deck[j], deck[i]


async def shuffle_deck_async(
    deck: List[Card],
    rng: Optional[random.Random] = None,
    chunk_size: int = 10,
    progress: Optional[Callable[[float], None]] = None,
) -> None:
    """Fisher-Yates shuffle that yields to the event loop every `chunk_size` swaps.

    Produces the same permutation as shuffle_deck for the same rng state.
    """
    rng = rng or random.Random()
    total = len(deck) - 1
    done = 0
    for i in range(len(deck) - 1, 0, -1):
        j = rng.randint(0, i)
        deck[i], deck[j] = deck[j], deck[i]
        done += 1
        if done % chunk_size == 0:
            if progress:
                progress(done / total)
            await asyncio.sleep(0)
    if progress:
        progress(1.0)


def deal_cards(deck: List[Card], num_cards: int) -> List[Card]:
    """Deal a number of cards from the end of the deck."""
    if len(deck) < num_cards:
        raise DeckExhaustedError(f"Cannot deal {num_cards} cards from deck of {len(deck)}")

    dealt = []
    for _ in range(num_cards):
        dealt.append(deck.pop())
    return dealt
