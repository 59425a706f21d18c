"""
Player model for the Hold'em engine.

A Player carries chips and win streak across hands; hand cards and state are
reset by the engine at the start of each hand. Human or scripted players set
`actor` to a callable that chooses an action; AI players are driven by
holdem.ai.DecisionEngine and only need a personality.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Callable, List, Optional, Sequence

from holdem.deck import Card

PERSONALITIES = ('conservative', 'aggressive', 'deceptive', 'mathematician')

# Player states during a hand
ACTIVE = 'active'
FOLDED = 'folded'
ALL_IN = 'all-in'
OUT = 'out'  # sitting the hand out with no chips


class Player:
    def __init__(self, name: str, is_ai: bool = False, chips: int = 1000,
                 personality: Optional[str] = None):
        if chips < 0:
            raise ValueError("Chips cannot be negative")
        if is_ai:
            personality = personality or 'conservative'
            if personality not in PERSONALITIES:
                raise ValueError(f"Unknown personality: {personality}")
        self.name = name
        self.is_ai = is_ai
        self.chips = chips
        self.personality = personality
        self.hand: List[Card] = []
        self.state: str = ACTIVE
        self.win_streak: int = 0
        # actor(game_state) -> {'action': str, 'amount': int}
        # actor may be sync or async; typing is broad to accept both.
        self.actor: Optional[Callable[[dict], Any]] = None

    @property
    def is_folded(self) -> bool:
        return self.state == FOLDED

    @property
    def in_hand(self) -> bool:
        """Still contesting the pot (active or all-in)."""
        return self.state in (ACTIVE, ALL_IN)

    @property
    def can_act(self) -> bool:
        return self.state == ACTIVE and self.chips > 0

    def reset_for_hand(self) -> None:
        self.hand = []
        self.state = ACTIVE if self.chips > 0 else OUT

    async def take_action(self, game_state: dict) -> dict:
        if self.actor is None:
            raise NotImplementedError("No action actor set for player")
        # Support both sync and async actor callables
        result = self.actor(game_state)
        if asyncio.iscoroutine(result):
            return await result
        return result

    def __repr__(self) -> str:
        kind = f"AI/{self.personality}" if self.is_ai else "human"
        return f"Player({self.name!r}, {kind}, chips={self.chips}, state={self.state})"


def create_ai_player(name: str, chips: int = 1000, personality: Optional[str] = None,
                     rng: Optional[random.Random] = None) -> Player:
    rng = rng or random.Random()
    return Player(name, is_ai=True, chips=chips, personality=personality or rng.choice(PERSONALITIES))


async def create_ai_players(count: int, chips: int = 1000,
                            personalities: Optional[Sequence[str]] = None,
                            rng: Optional[random.Random] = None,
                            batch_size: int = 2) -> List[Player]:
    """Create AI players in small batches, yielding to the event loop between batches."""
    players: List[Player] = []
    for start in range(0, count, batch_size):
        await asyncio.sleep(0)
        for i in range(start, min(start + batch_size, count)):
            personality = personalities[i % len(personalities)] if personalities else None
            players.append(create_ai_player(f"AI-{i + 1}", chips, personality, rng))
    logging.debug(f"Created {len(players)} AI players")
    return players
