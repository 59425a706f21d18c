"""
Decision engine for AI players.

RuleBasedStrategy implements four personalities on top of a hand-strength
estimate and pot odds. DecisionEngine wraps it: it applies dynamic
adjustment from recent table history, optionally fuses the answer with a
StrategyProvider under a strict timeout, and never lets an error escape a
decision (the fallback is to fold).
"""

import asyncio
import logging
import math
from typing import Any, Dict, Iterable, Optional, Sequence

from holdem.context import GameContext
from holdem.deck import Card, card_str, parse_cards
from holdem.decision_cache import hand_signature
from holdem.hand_evaluation import HandEvaluation, evaluate
from holdem.player import Player
from holdem.strategy_provider import Decision, StrategyProvider, validate_decision

# Strength band per hand category, low to high kicker
STRENGTH_BANDS = [
    (0.00, 0.15),  # high card
    (0.30, 0.45),  # pair
    (0.50, 0.60),  # two pair
    (0.70, 0.78),  # three of a kind
    (0.80, 0.84),  # straight
    (0.85, 0.89),  # flush
    (0.90, 0.96),  # full house
    (0.97, 0.99),  # four of a kind
    (0.99, 1.00),  # straight flush
]

PERTURBATION = 0.1
EV_MARGIN = 0.15
AGGRESSION = {'fold': 0, 'call': 1, 'raise': 2}
ACTIONS_BY_AGGRESSION = ['fold', 'call', 'raise']


def chen_score(hole: Sequence[Card]) -> float:
    """Chen formula score for two hole cards (roughly -1 to 20)."""
    def base(r: int) -> float:
        if r == 14: return 10
        if r == 13: return 8
        if r == 12: return 7
        if r == 11: return 6
        return r / 2.0
    c1, c2 = hole
    a, b = sorted([c1.rank, c2.rank], reverse=True)
    score = base(a)
    if a == b:
        return max(5, score * 2)  # pair rule
    if c1.suit == c2.suit:
        score += 2
    gap = a - b - 1
    if gap == 1:
        score -= 1
    elif gap == 2:
        score -= 2
    elif gap == 3:
        score -= 4
    elif gap >= 4:
        score -= 5
    # connectors below queen get a bonus
    if gap <= 1 and a < 12:
        score += 1
    return score


def preflop_strength(hole: Sequence[Card]) -> float:
    return min(max(chen_score(hole) / 20.0, 0.0), 1.0)


def postflop_strength(evaluation: HandEvaluation) -> float:
    low, high = STRENGTH_BANDS[evaluation.category]
    fraction = 0.0
    for i, rank in enumerate(evaluation.tiebreakers):
        fraction += (rank - 2) / 13 ** (i + 1)
    return low + (high - low) * min(fraction, 1.0)


def pot_odds(cost_to_call: int, pot: int) -> float:
    """cost / (pot + cost); zero when there is nothing to call."""
    if cost_to_call <= 0:
        return 0.0
    return cost_to_call / (pot + cost_to_call)


def expected_value_action(win_probability: float, odds: float, margin: float = EV_MARGIN) -> str:
    if win_probability > odds + margin:
        return 'raise'
    if win_probability > odds:
        return 'call'
    return 'fold'


class RuleBasedStrategy:
    """Personality-driven betting rules. Always available."""

    def __init__(self, context: GameContext):
        self.context = context
        self.config = context.config
        self.rng = context.rng
        self.cache = context.cache

    def decide(self, player: Player, game_state: Dict[str, Any]) -> Decision:
        personality = player.personality or 'conservative'
        handler = getattr(self, personality, None)
        if handler is None:
            logging.warning(f"Unknown personality {personality!r} for {player.name}, playing conservative")
            handler = self.conservative
        return handler(player, game_state)

    # Personalities ----------------------------------------------------

    def conservative(self, player: Player, game_state: Dict[str, Any]) -> Decision:
        strength = self.calculate_hand_strength(player, game_state)
        if strength < 0.3 and self.rng.random() < 0.4:
            return Decision('fold')
        if strength < 0.6 or game_state.get('current_phase') == 'preflop':
            return Decision('call')
        return self.raise_decision(player, game_state, 0.1)

    def aggressive(self, player: Player, game_state: Dict[str, Any]) -> Decision:
        if self.rng.random() < 0.7:
            factor = 0.3 + self.rng.random() * 0.3
            # confidence grows with the current win streak
            factor *= 1 + 0.1 * min(player.win_streak, 5)
            return self.raise_decision(player, game_state, factor)
        return Decision('call')

    def deceptive(self, player: Player, game_state: Dict[str, Any]) -> Decision:
        strength = self.calculate_hand_strength(player, game_state)
        if strength > 0.7 and self.rng.random() < 0.6:
            return Decision('call')  # slow-play a strong hand
        if strength < 0.4 and self.rng.random() < 0.5:
            return self.raise_decision(player, game_state, 0.4)  # bluff
        return self.conservative(player, game_state)

    def mathematician(self, player: Player, game_state: Dict[str, Any]) -> Decision:
        odds = self.calculate_pot_odds(game_state)
        win_probability = self.calculate_win_probability(player, game_state)
        action = expected_value_action(win_probability, odds)
        if action == 'raise':
            return self.raise_decision(player, game_state, win_probability / 2)
        return Decision(action)

    # Supporting computations -----------------------------------------

    def base_strength(self, hole: Sequence[Card], community: Sequence[Card]) -> float:
        """Deterministic strength in [0, 1], memoised by card signature."""
        signature = hand_signature(list(hole) + list(community))
        cached = self.cache.get(signature)
        if cached is not None:
            return cached
        if len(community) >= 3:
            value = postflop_strength(evaluate(list(hole) + list(community)))
        else:
            value = preflop_strength(hole)
        self.cache.put(signature, value)
        return value

    def calculate_hand_strength(self, player: Player, game_state: Dict[str, Any]) -> float:
        community = game_state.get('community', [])
        base = self.base_strength(player.hand, community)
        return min(base + self.rng.uniform(0, PERTURBATION), 1.0)

    def calculate_win_probability(self, player: Player, game_state: Dict[str, Any]) -> float:
        return self.calculate_hand_strength(player, game_state)

    def calculate_pot_odds(self, game_state: Dict[str, Any]) -> float:
        return pot_odds(game_state.get('to_call', 0), game_state.get('pot', 0))

    def calculate_raise_amount(self, player: Player, pot: int, factor: float) -> int:
        """Raise size on top of any call: a fraction of the pot, capped by stack."""
        stack_cap = math.floor(player.chips * self.config.raise_stack_fraction)
        amount = min(math.ceil(pot * factor), stack_cap)
        amount = max(amount, self.config.min_raise)
        return min(amount, player.chips)

    def raise_decision(self, player: Player, game_state: Dict[str, Any], factor: float) -> Decision:
        to_call = game_state.get('to_call', 0)
        increment = self.calculate_raise_amount(player, game_state.get('pot', 0), factor)
        return Decision('raise', min(to_call + increment, player.chips))


class DecisionEngine:
    """Chooses actions for AI players."""

    def __init__(self, context: GameContext, provider: Optional[StrategyProvider] = None):
        self.context = context
        self.config = context.config
        self.history = context.history
        self.provider = provider
        self.rules = RuleBasedStrategy(context)

    async def decide(self, player: Player, game_state: Dict[str, Any]) -> Decision:
        """Return an action for `player`; never raises for ordinary failures."""
        game_state = self._with_cards(player, game_state)
        try:
            decision = self.rules.decide(player, game_state)
            decision = self.apply_dynamic_adjustment(player, decision)
        except Exception as e:
            logging.error(f"Decision for {player.name} failed ({e!r}); folding")
            return Decision('fold')

        if self.provider is not None:
            suggestion = await self._predict(player, game_state)
            if suggestion is not None:
                decision = self.fuse(decision, suggestion, player)

        return self._sanitize(decision, player, game_state)

    def apply_dynamic_adjustment(self, player: Player, decision: Decision) -> Decision:
        """Answer frequent human raising with bigger raises from aggressive players."""
        if decision.action != 'raise' or player.personality != 'aggressive' or self.history is None:
            return decision
        recent_raises = self.history.count('raise', humans_only=True, exclude=player.name)
        if recent_raises > self.config.human_raise_threshold:
            amount = min(int(decision.amount * 1.2), player.chips)
            logging.debug(f"{player.name} amplifies raise to ${amount} after {recent_raises} human raises")
            return Decision('raise', amount)
        return decision

    def fuse(self, rules: Decision, model: Decision, player: Player) -> Decision:
        """Blend rule and model decisions, weighting the model by config.model_trust."""
        trust = self.config.model_trust
        if model.action not in AGGRESSION:
            return rules
        fused = trust * AGGRESSION[model.action] + (1 - trust) * AGGRESSION[rules.action]
        action = ACTIONS_BY_AGGRESSION[min(int(fused + 0.5), 2)]
        if action != 'raise':
            return Decision(action)
        if rules.action == 'raise' and model.action == 'raise':
            amount = round(trust * model.amount + (1 - trust) * rules.amount)
        else:
            amount = rules.amount if rules.action == 'raise' else model.amount
        return Decision('raise', min(amount, player.chips))

    async def _predict(self, player: Player, game_state: Dict[str, Any]) -> Optional[Decision]:
        try:
            features = self.build_features(player, game_state)
            suggestion = await asyncio.wait_for(self.provider.predict(features), timeout=self.config.decision_timeout)
            return validate_decision(suggestion)
        except asyncio.TimeoutError:
            logging.warning(f"Strategy provider timed out for {player.name}; using rule-based decision")
        except Exception as e:
            logging.warning(f"Strategy provider failed for {player.name} ({e}); using rule-based decision")
        return None

    def build_features(self, player: Player, game_state: Dict[str, Any]) -> Dict[str, Any]:
        community = game_state.get('community', [])
        opponents = sum(
            1 for p in game_state.get('players', [])
            if p['name'] != player.name and p['state'] in ('active', 'all-in')
        )
        return {
            'hole_cards': [card_str(c) for c in player.hand],
            'community_cards': [card_str(c) for c in community],
            'chips': player.chips,
            'pot': game_state.get('pot', 0),
            'current_bet': game_state.get('current_bet', 0),
            'to_call': game_state.get('to_call', 0),
            'phase': game_state.get('current_phase'),
            'personality': player.personality,
            'win_streak': player.win_streak,
            'opponents': opponents,
            'hand_strength': self.rules.base_strength(player.hand, community),
            'pot_odds': self.rules.calculate_pot_odds(game_state),
        }

    def _with_cards(self, player: Player, game_state: Dict[str, Any]) -> Dict[str, Any]:
        state = dict(game_state)
        if 'community' not in state:
            state['community'] = parse_cards(state.get('community_cards', []))
        if 'to_call' not in state:
            round_bet = next((p['round_bet'] for p in state.get('players', []) if p['name'] == player.name), 0)
            state['to_call'] = max(state.get('current_bet', 0) - round_bet, 0)
        return state

    def _sanitize(self, decision: Decision, player: Player, game_state: Dict[str, Any]) -> Decision:
        to_call = game_state.get('to_call', 0)
        if decision.action == 'fold' and to_call == 0:
            # If nobody has bet, check rather than fold
            return Decision('call')
        if decision.action == 'raise':
            amount = min(int(decision.amount), player.chips)
            if amount <= to_call and amount < player.chips:
                return Decision('call')
            return Decision('raise', amount)
        return Decision(decision.action)

    async def warm_up(self, hands: Iterable[Sequence[Card]], batch_size: int = 20) -> int:
        """Pre-compute cached strengths for (hole + community) card lists."""
        computed = 0
        for cards in hands:
            cards = list(cards)
            self.rules.base_strength(cards[:2], cards[2:])
            computed += 1
            if computed % batch_size == 0:
                await asyncio.sleep(0)
        return computed
