"""
Showdown and pot settlement for the Hold'em engine.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from holdem.game_engine import GameEngine, SidePot
from holdem.hand_evaluation import HandEvaluation, evaluate
from holdem.player import Player


@dataclass
class Settlement:
    winners: List[str]
    payouts: Dict[str, int]
    pots: List[SidePot]
    unclaimed: int = 0
    evaluations: Dict[str, HandEvaluation] = field(default_factory=dict)


class ShowdownEngine:
    """Handles showdown evaluation and pot distribution.

    Winners are the players tied at the best score. Each pot is split evenly
    among the winners eligible for it; odd chips go one at a time to those
    winners in seat order. A side pot none of the winners can claim is handled
    by `orphan_pot_policy`: 'cascade' gives it to the best hand among its own
    eligible players, 'carry' leaves it undistributed and carries it into the
    next hand's main pot.
    """

    def __init__(self, game_engine: GameEngine, orphan_pot_policy: str = 'cascade'):
        self.game_engine = game_engine
        self.orphan_pot_policy = orphan_pot_policy

    def evaluate_hands(self) -> Dict[str, HandEvaluation]:
        """Evaluate every player still in the hand."""
        engine = self.game_engine
        return {p.name: evaluate(p.hand + engine.community) for p in engine.contenders()}

    def _seat_order(self, names) -> List[str]:
        order = [p.name for p in self.game_engine.players]
        return sorted(names, key=order.index)

    def _best(self, names, evaluations: Dict[str, HandEvaluation]) -> List[str]:
        scored = [n for n in names if n in evaluations]
        if not scored:
            return []
        best_val = max(evaluations[n].score for n in scored)
        return self._seat_order(n for n in scored if evaluations[n].score == best_val)

    def _split(self, pot_amount: int, winners: List[str], payouts: Dict[str, int]):
        share = pot_amount // len(winners)
        rem = pot_amount % len(winners)
        for i, winner_name in enumerate(winners):
            payouts[winner_name] = payouts.get(winner_name, 0) + share + (1 if i < rem else 0)

    def settle(self, evaluations: Dict[str, HandEvaluation]) -> Settlement:
        """Distribute main and side pots and credit the winners' chips."""
        engine = self.game_engine
        winners = self._best(evaluations, evaluations)
        pots = [engine.main_pot] + list(engine.side_pots)
        payouts: Dict[str, int] = {}
        unclaimed = 0

        for index, pot in enumerate(pots):
            if pot.amount <= 0:
                continue
            eligible_winners = [w for w in winners if w in pot.eligible_players]
            if not eligible_winners:
                if self.orphan_pot_policy == 'cascade':
                    eligible_winners = self._best(pot.eligible_players, evaluations)
                if not eligible_winners:
                    logging.info(f"Pot {index} (${pot.amount}) has no eligible winner; carrying it over")
                    unclaimed += pot.amount
                    continue
            self._split(pot.amount, eligible_winners, payouts)

        self._pay(payouts, unclaimed)
        return Settlement(winners, payouts, pots, unclaimed, dict(evaluations))

    def award_uncontested(self, player: Player) -> Settlement:
        """The last player standing takes the whole pot without a showdown."""
        engine = self.game_engine
        pots = [engine.main_pot] + list(engine.side_pots)
        payouts = {player.name: engine.pot} if engine.pot else {}
        self._pay(payouts, 0)
        return Settlement([player.name], payouts, pots)

    def _pay(self, payouts: Dict[str, int], unclaimed: int):
        engine = self.game_engine
        for name, amount in payouts.items():
            winner_player: Optional[Player] = engine.player_by_name(name)
            winner_player.chips += amount
            engine.action_history.append(f"{name} won ${amount}")
            logging.info(f"{name} won ${amount}")
        engine.carryover += unclaimed
        engine.pot = 0
        engine.main_pot = SidePot(0)
        engine.side_pots = []
