"""
Session context shared by the orchestrator and the decision engine.

Everything that outlives a single hand (configuration, random source,
decision cache, recent action history) lives here and is passed in
explicitly instead of being held in module globals.
"""

import random
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Optional

from holdem.config import GameConfig
from holdem.decision_cache import DecisionCache


@dataclass
class ActionRecord:
    player: str
    is_ai: bool
    action: str
    amount: int
    at: float


class ActionHistory:
    """Rolling window of recent table actions, bounded by count and age."""

    def __init__(self, maxlen: int = 20, max_age: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        self.max_age = max_age
        self._clock = clock
        self._records: Deque[ActionRecord] = deque(maxlen=maxlen)

    def record(self, player: str, is_ai: bool, action: str, amount: int = 0) -> None:
        self._records.append(ActionRecord(player, is_ai, action, amount, self._clock()))

    def recent(self) -> List[ActionRecord]:
        cutoff = self._clock() - self.max_age
        while self._records and self._records[0].at < cutoff:
            self._records.popleft()
        return list(self._records)

    def count(self, action: str, humans_only: bool = False, exclude: Optional[str] = None) -> int:
        return sum(
            1 for r in self.recent()
            if r.action == action
            and not (humans_only and r.is_ai)
            and r.player != exclude
        )

    def __len__(self) -> int:
        return len(self.recent())


@dataclass
class GameContext:
    config: GameConfig = field(default_factory=GameConfig)
    rng: random.Random = field(default_factory=random.Random)
    cache: Optional[DecisionCache] = None
    history: Optional[ActionHistory] = None

    def __post_init__(self) -> None:
        if self.cache is None:
            self.cache = DecisionCache(self.config.cache_max_size)
        if self.history is None:
            self.history = ActionHistory(self.config.history_window, self.config.history_max_age)

    @classmethod
    def create(cls, config: Optional[GameConfig] = None, seed: Optional[int] = None) -> "GameContext":
        return cls(config=config or GameConfig(), rng=random.Random(seed))
