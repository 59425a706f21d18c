import random
from collections import deque
from typing import Callable, Dict, Iterable, Optional

import pytest

from holdem.config import GameConfig
from holdem.context import GameContext
from holdem.deck import parse_cards
from holdem.player import Player


class SequentialActor:
    """Callable helper which returns predetermined poker actions."""

    def __init__(self, actions: Iterable[Dict[str, int]]):
        self._queue = deque(actions)

    def next_action(self, state):
        if not self._queue:
            raise RuntimeError("No more scripted actions available")
        action = self._queue.popleft()
        if callable(action):
            return action(state)
        return action


class StubRandom(random.Random):
    """Random source pinned to one value so personality branches are predictable."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value

    def uniform(self, a, b):
        return a


@pytest.fixture
def make_player() -> Callable[..., Player]:
    """Factory for creating Player objects with deterministic actors."""

    def _factory(name: str, chips: int = 1000, actions: Optional[Iterable[Dict[str, int]]] = None, *,
                 is_ai: bool = False, personality: Optional[str] = None, hand=None) -> Player:
        player = Player(name, is_ai=is_ai, chips=chips, personality=personality)
        if hand is not None:
            player.hand = parse_cards(hand)
        if actions is not None:
            actor = SequentialActor(actions)

            async def _actor_async(state):
                return actor.next_action(state)

            player.actor = _actor_async
        return player

    return _factory


@pytest.fixture
def no_blinds() -> GameConfig:
    return GameConfig(small_blind=0, big_blind=0)


@pytest.fixture
def context(no_blinds) -> GameContext:
    return GameContext.create(no_blinds, seed=1234)


@pytest.fixture
def stub_context(no_blinds) -> Callable[[float], GameContext]:
    def _factory(value: float, **overrides) -> GameContext:
        config = GameConfig(small_blind=0, big_blind=0, **overrides)
        return GameContext(config=config, rng=StubRandom(value))

    return _factory
