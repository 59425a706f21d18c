"""
Betting logic for the Hold'em engine.

BettingEngine applies one action at a time to the GameEngine ledger and keeps
track of whose turn it is and when a betting round is over.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from holdem.context import ActionHistory
from holdem.errors import InvalidTurn, MalformedAction
from holdem.game_engine import GameEngine
from holdem.player import FOLDED, Player


class ActionType(str, Enum):
    FOLD = 'fold'
    CHECK = 'check'
    CALL = 'call'
    RAISE = 'raise'


ACTION_ALIASES = {'bet': ActionType.RAISE}


def parse_action(action: Any) -> ActionType:
    """Turn 'fold'/'check'/'call'/'raise' (or an ActionType) into an ActionType."""
    if isinstance(action, ActionType):
        return action
    if not isinstance(action, str):
        raise MalformedAction(f"Unrecognized action: {action!r}")
    key = action.strip().lower()
    if key in ACTION_ALIASES:
        return ACTION_ALIASES[key]
    try:
        return ActionType(key)
    except ValueError:
        raise MalformedAction(f"Unrecognized action: {action!r}") from None


class BettingEngine:
    """Handles betting rounds and player actions."""

    def __init__(self, game_engine: GameEngine, history: Optional[ActionHistory] = None):
        self.game_engine = game_engine
        self.history = history
        self.players_to_act: Set[str] = set()
        self._cursor = 0

    def post_blinds(self, small_blind_seat: int, big_blind_seat: int, small_blind: int, big_blind: int):
        """Post forced bets; a short stack posts what it has and is all-in."""
        engine = self.game_engine
        for seat, blind, label in ((small_blind_seat, small_blind, 'small'), (big_blind_seat, big_blind, 'big')):
            if blind <= 0:
                continue
            player = engine.players[seat]
            paid = engine.contribute(player, blind)
            engine.action_history.append(f"{player.name} posted {label} blind ${paid}")
        engine.current_bet = max(engine.round_bets.values(), default=0)
        engine.update_pot_structures()

    def start_round(self, first_seat: int, keep_round_bets: bool = False):
        """Open a betting round with `first_seat` acting first.

        keep_round_bets is used preflop so posted blinds count toward calls.
        """
        engine = self.game_engine
        if not keep_round_bets:
            engine.reset_round_bets()
        self._cursor = first_seat
        actionable = [p for p in engine.players if p.can_act]
        self.players_to_act = {p.name for p in actionable}
        # A lone player with chips has nobody to bet against once covered
        if len(actionable) == 1 and engine.to_call(actionable[0]) == 0:
            self.players_to_act.clear()
        logging.debug(f"Betting round opened, to act: {self.pending()}")

    def current_bettor(self) -> Optional[Player]:
        if self.is_round_complete():
            return None
        players = self.game_engine.players
        n = len(players)
        for step in range(n):
            p = players[(self._cursor + step) % n]
            if p.name in self.players_to_act and p.can_act:
                return p
        return None

    def is_round_complete(self) -> bool:
        engine = self.game_engine
        if len(engine.contenders()) <= 1:
            return True
        return not any(p.name in self.players_to_act and p.can_act for p in engine.players)

    def apply_action(self, player: Player, action: Any, amount: Optional[int] = None) -> Dict[str, Any]:
        """Apply fold/check/call/raise for `player` and rebuild the pots.

        Returns a dict describing what actually happened, since checks and
        undersized raises may be converted to calls.
        """
        a = parse_action(action)
        if a is ActionType.RAISE:
            if amount is None:
                raise MalformedAction("Raise requires an amount")
            try:
                amount = int(amount)
            except (TypeError, ValueError):
                raise MalformedAction(f"Invalid raise amount: {amount!r}") from None
            if amount <= 0:
                raise MalformedAction(f"Raise amount must be positive, got {amount}")
        if not player.can_act:
            raise InvalidTurn(f"{player.name} cannot act (state={player.state}, chips={player.chips})")

        engine = self.game_engine
        call_amount = engine.to_call(player)
        paid = 0
        taken = a

        if a is ActionType.FOLD:
            player.state = FOLDED
            engine.action_history.append(f"{player.name} folded")

        elif a in (ActionType.CALL, ActionType.CHECK):
            if call_amount > 0:
                paid = engine.contribute(player, call_amount)
                taken = ActionType.CALL
                if paid < call_amount:
                    engine.action_history.append(f"{player.name} called ${paid} (all-in)")
                elif a is ActionType.CHECK:
                    engine.action_history.append(f"{player.name} called ${paid} (check converted to call)")
                else:
                    engine.action_history.append(f"{player.name} called ${paid}")
            else:
                taken = ActionType.CHECK
                engine.action_history.append(f"{player.name} checked")

        else:
            pay = min(amount, player.chips)
            new_total = engine.round_bets[player.name] + pay
            if new_total <= engine.current_bet and pay < player.chips:
                # Not enough to raise: treat as a call
                paid = engine.contribute(player, call_amount)
                taken = ActionType.CALL if call_amount > 0 else ActionType.CHECK
                engine.action_history.append(
                    f"{player.name} called ${paid} (amount ${amount} insufficient for raise)" if call_amount > 0
                    else f"{player.name} checked (amount ${amount} insufficient for raise)"
                )
            else:
                paid = engine.contribute(player, pay)
                if new_total > engine.current_bet:
                    engine.current_bet = new_total
                    # This is a raise - all other active players need to act again
                    self.players_to_act = {
                        p.name for p in engine.players if p.can_act and p.name != player.name
                    }
                    suffix = " (all-in)" if player.chips == 0 else ""
                    engine.action_history.append(f"{player.name} raised to ${new_total}{suffix}")
                else:
                    taken = ActionType.CALL
                    engine.action_history.append(f"{player.name} called ${paid} (all-in)")

        self.players_to_act.discard(player.name)
        self._cursor = (engine.players.index(player) + 1) % len(engine.players)
        engine.update_pot_structures()

        logging.debug("Player %s action: %s (requested %s), paid: %s", player.name, taken.value, a.value, paid)
        if self.history is not None:
            self.history.record(player.name, player.is_ai, taken.value, paid)

        return {
            'player': player.name,
            'action': taken.value,
            'requested': a.value,
            'paid': paid,
            'all_in': player.chips == 0 and player.state != FOLDED,
        }

    def pending(self) -> List[str]:
        return [p.name for p in self.game_engine.players if p.name in self.players_to_act and p.can_act]
