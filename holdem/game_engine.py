"""
Core table state for the Hold'em engine: deck, community cards, the
contribution ledger and the main/side pot structure for one hand.
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from holdem.deck import Card, card_str, deal_cards, make_deck, shuffle_deck, shuffle_deck_async
from holdem.errors import ChipConservationError
from holdem.player import ALL_IN, OUT, Player


class Phase(str, Enum):
    WAITING = 'waiting'
    PREFLOP = 'preflop'
    FLOP = 'flop'
    TURN = 'turn'
    RIVER = 'river'
    SHOWDOWN = 'showdown'
    COMPLETE = 'complete'
    ABORTED = 'aborted'


BETTING_PHASES = (Phase.PREFLOP, Phase.FLOP, Phase.TURN, Phase.RIVER)


@dataclass
class SidePot:
    amount: int
    eligible_players: List[str] = field(default_factory=list)
    threshold: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            'amount': self.amount,
            'eligible_players': list(self.eligible_players),
            'threshold': self.threshold,
        }


class GameEngine:
    """Deck, dealing and chip ledger for a single table."""

    def __init__(self, players: List[Player], rng: Optional[random.Random] = None):
        self.players = players
        self.rng = rng or random.Random()
        self.deck: List[Card] = []
        self.community: List[Card] = []
        self.pot = 0
        self.bets: Dict[str, int] = {}  # Total bets across all rounds
        self.round_bets: Dict[str, int] = {}  # Current betting round only
        self.current_bet = 0
        self.main_pot = SidePot(0)
        self.side_pots: List[SidePot] = []
        self.action_history: List[str] = []
        self.button: Optional[int] = None
        # Unclaimed chips from earlier hands; seeded into the next main pot
        self.carryover = 0
        self.dead_money = 0

    # Hand lifecycle ---------------------------------------------------

    def reset_round(self, shuffle: bool = True):
        """Reset the game state for a new hand."""
        self.deck = make_deck()
        if shuffle:
            shuffle_deck(self.deck, self.rng)
        self.dead_money = self.carryover
        self.carryover = 0
        self.pot = self.dead_money
        self.community = []
        self.bets = {p.name: 0 for p in self.players}
        self.round_bets = {p.name: 0 for p in self.players}
        self.current_bet = 0
        self.action_history = []
        for p in self.players:
            p.reset_for_hand()
        self.update_pot_structures()

    async def shuffle(self, chunk_size: int = 10, progress=None):
        await shuffle_deck_async(self.deck, self.rng, chunk_size, progress)

    def seated(self) -> List[Player]:
        """Players dealt into the current hand, in seat order."""
        return [p for p in self.players if p.state != OUT]

    def contenders(self) -> List[Player]:
        """Players still contesting the pot, in seat order."""
        return [p for p in self.players if p.in_hand]

    def seat_after(self, index: int, predicate=None) -> int:
        """Index of the next seat after `index` whose player satisfies predicate."""
        predicate = predicate or (lambda p: p.state != OUT)
        n = len(self.players)
        for step in range(1, n + 1):
            candidate = (index + step) % n
            if predicate(self.players[candidate]):
                return candidate
        raise RuntimeError("No eligible seat found")

    def rotate_button(self) -> int:
        if self.button is None:
            self.button = self.players.index(self.seated()[0])
        else:
            self.button = self.seat_after(self.button)
        return self.button

    # Dealing ----------------------------------------------------------

    def draw(self, n=1) -> List[Card]:
        """Draw n cards from the deck."""
        return deal_cards(self.deck, n)

    def deal_hole_cards(self):
        """Deal 2 hole cards to each seated player, starting left of the button."""
        start = self.button if self.button is not None else -1
        order = []
        idx = start
        for _ in self.seated():
            idx = self.seat_after(idx)
            order.append(self.players[idx])
        for _ in range(2):
            for p in order:
                p.hand.append(self.draw(1)[0])

    def deal_flop(self):
        """Deal the flop (burn 1, deal 3 community cards)."""
        self.draw(1)
        self.community.extend(self.draw(3))

    def deal_turn(self):
        """Deal the turn (burn 1, deal 1 community card)."""
        self.draw(1)
        self.community.extend(self.draw(1))

    def deal_river(self):
        """Deal the river (burn 1, deal 1 community card)."""
        self.draw(1)
        self.community.extend(self.draw(1))

    # Chip ledger ------------------------------------------------------

    def reset_round_bets(self):
        """Reset betting amounts for the current betting round."""
        self.round_bets = {p.name: 0 for p in self.players}
        self.current_bet = 0

    def contribute(self, player: Player, amount: int) -> int:
        """Move up to `amount` chips from player into the pot; returns chips moved."""
        pay = max(min(amount, player.chips), 0)
        if pay == 0:
            return 0
        player.chips -= pay
        self.bets[player.name] += pay
        self.round_bets[player.name] += pay
        self.pot += pay
        if player.chips == 0:
            player.state = ALL_IN
        return pay

    def to_call(self, player: Player) -> int:
        return max(self.current_bet - self.round_bets.get(player.name, 0), 0)

    def update_pot_structures(self):
        """Rebuild main and side pots from each player's total contribution this hand.

        One pot per distinct contribution level among players still in the
        hand. Each pot takes every player's chips between the previous level
        and its own, folded players included; only players still in the hand
        who reached the level may win it.
        """
        live = self.contenders()
        levels = sorted({self.bets[p.name] for p in live if self.bets.get(p.name, 0) > 0})

        pots: List[SidePot] = []
        prev = 0
        for level in levels:
            amount = sum(min(c, level) - min(c, prev) for c in self.bets.values())
            eligible = [p.name for p in live if self.bets[p.name] >= level]
            pots.append(SidePot(amount, eligible, level))
            prev = level

        if not pots:
            pots.append(SidePot(0, [p.name for p in live], 0))
        # Folded chips above the highest live level still belong in the pot
        pots[-1].amount += sum(max(c - prev, 0) for c in self.bets.values())
        pots[0].amount += self.dead_money

        self.main_pot = pots[0]
        self.side_pots = pots[1:]

        total = sum(p.amount for p in pots)
        if total != self.pot:
            raise ChipConservationError(f"Pot structure holds {total} chips but pot is {self.pot}")

    def refund_all(self):
        """Return every contribution of the current hand to its owner."""
        by_name = {p.name: p for p in self.players}
        for name, amount in self.bets.items():
            if amount:
                by_name[name].chips += amount
                logging.info(f"Refunded ${amount} to {name}")
        self.pot -= sum(self.bets.values())
        self.bets = {name: 0 for name in self.bets}
        self.round_bets = {name: 0 for name in self.round_bets}
        self.current_bet = 0
        # dead money is not owned by anyone this hand; keep it for the next one
        self.carryover += self.pot
        self.dead_money = 0
        self.pot = 0
        self.main_pot = SidePot(0)
        self.side_pots = []

    # Snapshots --------------------------------------------------------

    def get_public_state(self, include_all_hands=False, current_player_name=None) -> Dict[str, Any]:
        """Get the current public game state."""
        state = {
            'community_cards': [card_str(c) for c in self.community],
            'pot': self.pot,
            'main_pot': self.main_pot.amount,
            'side_pots': [pot.as_dict() for pot in self.side_pots],
            'current_bet': self.current_bet,
            'bets': dict(self.bets),
            'round_bets': dict(self.round_bets),
            'players': [
                {
                    'name': p.name,
                    'chips': p.chips,
                    'state': p.state,
                    'is_ai': p.is_ai,
                    'round_bet': self.round_bets.get(p.name, 0),
                }
                for p in self.players
            ],
            'action_history': list(self.action_history),
            'current_bettor': current_player_name,
        }

        if include_all_hands:
            state['all_hands'] = {p.name: [card_str(c) for c in p.hand] for p in self.players}

        return state

    def player_by_name(self, name: str) -> Optional[Player]:
        return next((p for p in self.players if p.name == name), None)
