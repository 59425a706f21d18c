"""
Hand evaluation for the Hold'em engine.

evaluate() ranks any 5 to 7 cards from rank and suit histograms, so the best
five-card hand is read off directly instead of trying every combination.
The returned score is a tuple (category, *tiebreakers): any hand of a higher
category sorts above every hand of a lower one, and equal scores split.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from holdem.deck import Card, card_str, card_symbol

# Hand ranking constants
HAND_RANKS = {
    'high_card': 0,
    'pair': 1,
    'two_pair': 2,
    'three_of_a_kind': 3,
    'straight': 4,
    'flush': 5,
    'full_house': 6,
    'four_of_a_kind': 7,
    'straight_flush': 8,
}

# royal_flush is a display name only; it ranks as an ace-high straight flush
RANK_NAMES = list(HAND_RANKS) + ['royal_flush']

WHEEL_HIGH = 5


@dataclass(frozen=True)
class HandEvaluation:
    category: int
    rank_name: str
    score: Tuple[int, ...]
    cards: Tuple[Card, ...] = ()

    @property
    def tiebreakers(self) -> List[int]:
        return list(self.score[1:])

    def __lt__(self, other: "HandEvaluation") -> bool:
        return self.score < other.score

    def __le__(self, other: "HandEvaluation") -> bool:
        return self.score <= other.score

    def __gt__(self, other: "HandEvaluation") -> bool:
        return self.score > other.score

    def __ge__(self, other: "HandEvaluation") -> bool:
        return self.score >= other.score


def _straight_high(ranks: Iterable[int]) -> Optional[int]:
    """Return the high card of the best straight in ranks, or None."""
    rset = set(ranks)
    # account for wheel (A-2-3-4-5)
    if 14 in rset:
        rset.add(1)
    for high in range(14, WHEEL_HIGH - 1, -1):
        if all(high - step in rset for step in range(5)):
            return high
    return None


def _straight_ranks(high: int) -> List[int]:
    return [14 if r == 1 else r for r in range(high, high - 5, -1)]


def _pick(cards: Sequence[Card], ranks: Sequence[int], suit: Optional[str] = None) -> Tuple[Card, ...]:
    """Pull one card per requested rank (repeat a rank to take several)."""
    pool = sorted(cards, key=lambda c: (-c.rank, c.suit))
    picked = []
    for rank in ranks:
        for card in pool:
            if card.rank == rank and (suit is None or card.suit == suit) and card not in picked:
                picked.append(card)
                break
    return tuple(picked)


def _make(category: str, tiebreakers: Sequence[int], best: Tuple[Card, ...], display: Optional[str] = None) -> HandEvaluation:
    value = HAND_RANKS[category]
    return HandEvaluation(value, display or category, (value, *tiebreakers), best)


def evaluate(cards: Iterable[Card]) -> HandEvaluation:
    """Evaluate 5 to 7 cards and return the best five-card hand they contain."""
    cards = list(cards)
    if not 5 <= len(cards) <= 7:
        raise ValueError(f"Hand evaluation needs 5 to 7 cards, got {len(cards)}")
    if len(set(cards)) != len(cards):
        raise ValueError("Duplicate card in hand")

    rank_counts = Counter(c.rank for c in cards)
    by_suit: Dict[str, List[int]] = {}
    for c in cards:
        by_suit.setdefault(c.suit, []).append(c.rank)
    for ranks in by_suit.values():
        ranks.sort(reverse=True)
    distinct = sorted(rank_counts, reverse=True)

    def ranks_with(count: int) -> List[int]:
        return sorted((r for r, n in rank_counts.items() if n >= count), reverse=True)

    # Straight flush: every suit with five or more cards is a candidate
    best_sf: Optional[Tuple[int, str]] = None
    for suit, ranks in by_suit.items():
        if len(ranks) < 5:
            continue
        high = _straight_high(ranks)
        if high is not None and (best_sf is None or high > best_sf[0]):
            best_sf = (high, suit)
    if best_sf:
        high, suit = best_sf
        best = _pick(cards, _straight_ranks(high), suit)
        display = 'royal_flush' if high == 14 else None
        return _make('straight_flush', [high], best, display)

    quads = ranks_with(4)
    if quads:
        quad_rank = quads[0]
        kicker = max(r for r in distinct if r != quad_rank)
        return _make('four_of_a_kind', [quad_rank, kicker], _pick(cards, [quad_rank] * 4 + [kicker]))

    trips = ranks_with(3)
    if trips:
        trips_rank = trips[0]
        pairs = [r for r in ranks_with(2) if r != trips_rank]
        if pairs:
            pair_rank = pairs[0]
            best = _pick(cards, [trips_rank] * 3 + [pair_rank] * 2)
            return _make('full_house', [trips_rank, pair_rank], best)

    flush: Optional[Tuple[List[int], str]] = None
    for suit, ranks in by_suit.items():
        if len(ranks) >= 5 and (flush is None or ranks[:5] > flush[0]):
            flush = (ranks[:5], suit)
    if flush:
        top_five, suit = flush
        return _make('flush', top_five, _pick(cards, top_five, suit))

    high = _straight_high(distinct)
    if high is not None:
        return _make('straight', [high], _pick(cards, _straight_ranks(high)))

    if trips:
        trips_rank = trips[0]
        kickers = [r for r in distinct if r != trips_rank][:2]
        return _make('three_of_a_kind', [trips_rank] + kickers, _pick(cards, [trips_rank] * 3 + kickers))

    pairs = ranks_with(2)
    if len(pairs) >= 2:
        high_pair, low_pair = pairs[0], pairs[1]
        # a third pair can still play as the kicker
        kicker = max(r for r in distinct if r not in (high_pair, low_pair))
        best = _pick(cards, [high_pair] * 2 + [low_pair] * 2 + [kicker])
        return _make('two_pair', [high_pair, low_pair, kicker], best)

    if pairs:
        pair_rank = pairs[0]
        kickers = [r for r in distinct if r != pair_rank][:3]
        return _make('pair', [pair_rank] + kickers, _pick(cards, [pair_rank] * 2 + kickers))

    top_five = distinct[:5]
    return _make('high_card', top_five, _pick(cards, top_five))


def hand_description(evaluation: HandEvaluation) -> str:
    """Convert hand evaluation result to human-readable description."""

    def rank_name(r: int) -> str:
        names = {11: 'Jack', 12: 'Queen', 13: 'King', 14: 'Ace'}
        return names.get(r, str(r))

    def rank_name_plural(r: int) -> str:
        names = {6: 'Sixes', 11: 'Jacks', 12: 'Queens', 13: 'Kings', 14: 'Aces'}
        return names.get(r, f"{r}s")

    hand_rank = evaluation.category
    tiebreakers = evaluation.tiebreakers

    if hand_rank == HAND_RANKS['straight_flush']:
        if tiebreakers[0] == 14:
            return "Royal Flush"
        return f"Straight Flush, {rank_name(tiebreakers[0])} high"

    elif hand_rank == HAND_RANKS['four_of_a_kind']:
        return f"Four of a Kind, {rank_name_plural(tiebreakers[0])}"

    elif hand_rank == HAND_RANKS['full_house']:
        return f"Full House, {rank_name_plural(tiebreakers[0])} over {rank_name_plural(tiebreakers[1])}"

    elif hand_rank == HAND_RANKS['flush']:
        return f"Flush, {rank_name(tiebreakers[0])} high"

    elif hand_rank == HAND_RANKS['straight']:
        if tiebreakers[0] == WHEEL_HIGH:
            return "Straight, 5 high (Wheel)"
        return f"Straight, {rank_name(tiebreakers[0])} high"

    elif hand_rank == HAND_RANKS['three_of_a_kind']:
        return f"Three of a Kind, {rank_name_plural(tiebreakers[0])}"

    elif hand_rank == HAND_RANKS['two_pair']:
        return f"Two Pair, {rank_name_plural(tiebreakers[0])} and {rank_name_plural(tiebreakers[1])}"

    elif hand_rank == HAND_RANKS['pair']:
        return f"Pair of {rank_name_plural(tiebreakers[0])}"

    else:
        return f"High Card, {rank_name(tiebreakers[0])}"


def format_best_five(evaluation: HandEvaluation, symbols: bool = False) -> str:
    render = card_symbol if symbols else card_str
    return " ".join(render(c) for c in evaluation.cards)
