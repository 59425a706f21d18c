"""
Texas Hold'em round orchestration.

Game brings together the game engine, betting engine, showdown engine and
decision engine. A hand moves preflop -> flop -> turn -> river -> showdown;
AI turns are played automatically and the hand pauses whenever a human
player has to act via submit_action().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from holdem.ai import DecisionEngine
from holdem.betting_engine import BettingEngine, parse_action
from holdem.context import GameContext
from holdem.deck import card_str
from holdem.errors import ChipConservationError, DeckExhaustedError, InvalidTurn, MalformedAction, PokerError
from holdem.game_engine import BETTING_PHASES, GameEngine, Phase, SidePot
from holdem.hand_evaluation import HandEvaluation, hand_description
from holdem.player import Player
from holdem.showdown_engine import Settlement, ShowdownEngine
from holdem.strategy_provider import StrategyProvider

NEXT_PHASE = {
    Phase.PREFLOP: Phase.FLOP,
    Phase.FLOP: Phase.TURN,
    Phase.TURN: Phase.RIVER,
    Phase.RIVER: Phase.SHOWDOWN,
}


@dataclass
class HandResult:
    hand_number: int
    winners: List[str]
    hand_rank: str
    payouts: Dict[str, int]
    pots: List[SidePot] = field(default_factory=list)
    unclaimed: int = 0
    evaluations: Dict[str, HandEvaluation] = field(default_factory=dict)

    @property
    def descriptions(self) -> Dict[str, str]:
        return {name: hand_description(ev) for name, ev in self.evaluations.items()}


@dataclass
class ActionResult:
    player: str
    action: str
    paid: int
    phase: Phase
    next_bettor: Optional[str]
    hand_complete: bool
    result: Optional[HandResult] = None


class Game:
    """Main game coordinator that orchestrates all game components."""

    def __init__(self, players: List[Player], context: Optional[GameContext] = None,
                 decision_engine: Optional[DecisionEngine] = None,
                 provider: Optional[StrategyProvider] = None):
        self.context = context or GameContext()
        self.config = self.context.config
        self.players = list(players)
        self._check_names(self.players)

        # Initialize game components
        self.engine = GameEngine(self.players, rng=self.context.rng)
        self.betting = BettingEngine(self.engine, history=self.context.history)
        self.showdown = ShowdownEngine(self.engine, self.config.orphan_pot_policy)
        self.decision_engine = decision_engine or DecisionEngine(self.context, provider)

        self.phase = Phase.WAITING
        self.hand_number = 0
        self.last_result: Optional[HandResult] = None
        self._listeners: List[Callable[[HandResult], Any]] = []
        self._chips_at_start = 0

    @property
    def community(self):
        return self.engine.community

    @property
    def pot(self):
        return self.engine.pot

    @property
    def action_history(self):
        return self.engine.action_history

    @property
    def in_progress(self) -> bool:
        return self.phase in BETTING_PHASES

    def add_hand_complete_listener(self, callback: Callable[[HandResult], Any]) -> None:
        self._listeners.append(callback)

    # Public API -------------------------------------------------------

    async def start_hand(self, players: Optional[List[Player]] = None) -> None:
        """Reset per-hand state, shuffle, deal, post blinds and play AI turns."""
        if self.in_progress:
            raise PokerError("A hand is already in progress")
        if players is not None:
            self._check_names(players)
            self.players = list(players)
            self.engine.players = self.players

        if sum(1 for p in self.players if p.chips > 0) < 2:
            raise PokerError("Not enough players with chips to start a hand")

        self.hand_number += 1
        self._chips_at_start = self._table_chips()
        self.last_result = None

        self.engine.reset_round(shuffle=False)
        await self.engine.shuffle(self.config.shuffle_chunk_size)
        button = self.engine.rotate_button()
        logging.info(f"Hand #{self.hand_number} starting, button: {self.players[button].name}")

        self.phase = Phase.PREFLOP
        try:
            self.engine.deal_hole_cards()
        except DeckExhaustedError:
            self._abort()
            raise

        sb_seat, bb_seat, first_seat = self._blind_positions(button)
        self.betting.post_blinds(sb_seat, bb_seat, self.config.small_blind, self.config.big_blind)
        self.betting.start_round(first_seat, keep_round_bets=True)
        await self._advance()

    async def submit_action(self, player_name: str, action: Any, amount: Optional[int] = None) -> ActionResult:
        """Apply an action for the player whose turn it is, then advance the hand."""
        if not self.in_progress:
            raise InvalidTurn("No hand in progress")
        bettor = self.betting.current_bettor()
        if bettor is None or bettor.name != player_name:
            expected = bettor.name if bettor else None
            raise InvalidTurn(f"It is not {player_name}'s turn (current bettor: {expected})")
        parse_action(action)

        outcome = self.betting.apply_action(bettor, action, amount)
        await self._advance()

        next_bettor = self.betting.current_bettor() if self.in_progress else None
        return ActionResult(
            player=player_name,
            action=outcome['action'],
            paid=outcome['paid'],
            phase=self.phase,
            next_bettor=next_bettor.name if next_bettor else None,
            hand_complete=not self.in_progress,
            result=self.last_result if not self.in_progress else None,
        )

    def get_public_state(self) -> Dict[str, Any]:
        """Read-only snapshot for presentation layers."""
        bettor = self.betting.current_bettor() if self.in_progress else None
        state = self.engine.get_public_state(current_player_name=bettor.name if bettor else None)
        state['current_phase'] = self.phase.value
        state['hand_number'] = self.hand_number
        state['button'] = self.players[self.engine.button].name if self.engine.button is not None else None
        return state

    async def play_hand(self) -> Optional[HandResult]:
        """Play a whole hand, asking each human player's actor when it is their turn."""
        await self.start_hand()
        while self.in_progress:
            p = self.betting.current_bettor()
            state = self.get_public_state()
            state['to_call'] = self.engine.to_call(p)
            try:
                act = await p.take_action(state)
                await self.submit_action(p.name, act.get('action'), act.get('amount'))
            except NotImplementedError:
                # default to call/check
                await self.submit_action(p.name, 'call')
            except (AttributeError, ValueError, TypeError, KeyError, MalformedAction) as e:
                # on any actor error, fold the player
                logging.warning(f"{p.name} folded after actor error: {e}")
                self.engine.action_history.append(f"{p.name} folded (actor error)")
                await self.submit_action(p.name, 'fold')
        return self.last_result

    # Orchestration ----------------------------------------------------

    async def _advance(self) -> None:
        while self.in_progress:
            if len(self.engine.contenders()) <= 1:
                self._finish_uncontested()
                return

            if self.betting.is_round_complete():
                self._next_phase()
                continue

            bettor = self.betting.current_bettor()
            if not bettor.is_ai:
                return

            decision = await self.decision_engine.decide(bettor, self._decision_state(bettor))
            try:
                self.betting.apply_action(bettor, decision.action, decision.amount or None)
            except MalformedAction as e:
                logging.error(f"AI {bettor.name} produced {decision}: {e}; folding")
                self.betting.apply_action(bettor, 'fold')

    def _next_phase(self) -> None:
        next_phase = NEXT_PHASE[self.phase]
        if next_phase is Phase.SHOWDOWN:
            self._showdown()
            return

        try:
            if next_phase is Phase.FLOP:
                self.engine.deal_flop()
            elif next_phase is Phase.TURN:
                self.engine.deal_turn()
            else:
                self.engine.deal_river()
        except DeckExhaustedError:
            self._abort()
            raise

        self.phase = next_phase
        board = " ".join(card_str(c) for c in self.engine.community)
        logging.debug(f"Phase {next_phase.value}: {board}")
        self.engine.action_history.append(f"--- {next_phase.value}: {board}")
        first_seat = self.engine.seat_after(self.engine.button, lambda p: p.in_hand)
        self.betting.start_round(first_seat)

    def _blind_positions(self, button: int):
        seated = self.engine.seated()
        if len(seated) == 2:
            # heads up: the button posts the small blind and acts first preflop
            sb_seat = button
            bb_seat = self.engine.seat_after(button)
            return sb_seat, bb_seat, sb_seat
        sb_seat = self.engine.seat_after(button)
        bb_seat = self.engine.seat_after(sb_seat)
        return sb_seat, bb_seat, self.engine.seat_after(bb_seat)

    def _decision_state(self, player: Player) -> Dict[str, Any]:
        state = self.get_public_state()
        state['community'] = list(self.engine.community)
        state['to_call'] = self.engine.to_call(player)
        return state

    # Hand completion --------------------------------------------------

    def _finish_uncontested(self) -> None:
        winner = self.engine.contenders()[0]
        logging.info(f"{winner.name} wins uncontested")
        settlement = self.showdown.award_uncontested(winner)
        self._complete(settlement, 'uncontested')

    def _showdown(self) -> None:
        self.phase = Phase.SHOWDOWN
        evaluations = self.showdown.evaluate_hands()
        settlement = self.showdown.settle(evaluations)
        best = evaluations[settlement.winners[0]]
        self._complete(settlement, best.rank_name)

    def _complete(self, settlement: Settlement, hand_rank: str) -> None:
        for p in self.players:
            if p.name in settlement.winners:
                p.win_streak += 1
            elif p.hand:
                p.win_streak = 0

        result = HandResult(
            hand_number=self.hand_number,
            winners=list(settlement.winners),
            hand_rank=hand_rank,
            payouts=dict(settlement.payouts),
            pots=list(settlement.pots),
            unclaimed=settlement.unclaimed,
            evaluations=settlement.evaluations,
        )
        self.phase = Phase.COMPLETE
        self.last_result = result

        after = self._table_chips()
        if after != self._chips_at_start:
            raise ChipConservationError(
                f"Hand #{self.hand_number} started with {self._chips_at_start} chips and ended with {after}"
            )

        for callback in self._listeners:
            try:
                callback(result)
            except Exception as e:
                logging.error(f"Hand-complete listener {callback!r} failed: {e}")

    def _abort(self) -> None:
        logging.error(f"Hand #{self.hand_number} aborted; refunding contributions")
        self.engine.refund_all()
        self.phase = Phase.ABORTED

    def _table_chips(self) -> int:
        return sum(p.chips for p in self.players) + self.engine.carryover + self.engine.pot

    @staticmethod
    def _check_names(players: List[Player]) -> None:
        names = [p.name for p in players]
        if len(names) != len(set(names)):
            raise ValueError("Player names must be unique")
