"""
Configuration for the Hold'em engine.
Values can be overridden through environment variables or a .env file.
"""

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from dotenv import load_dotenv

ORPHAN_POT_POLICIES = ('cascade', 'carry')

ENV_PREFIX = 'HOLDEM_'


@dataclass
class GameConfig:
    starting_chips: int = 1000
    small_blind: int = 25
    big_blind: int = 50
    decision_timeout_ms: int = 250
    cache_max_size: int = 1000
    history_window: int = 20
    history_max_age: float = 60.0
    human_raise_threshold: int = 2
    model_trust: float = 0.3
    raise_stack_fraction: float = 0.5
    shuffle_chunk_size: int = 10
    orphan_pot_policy: str = 'cascade'

    def __post_init__(self) -> None:
        if self.small_blind < 0 or self.big_blind < 0:
            raise ValueError("Blinds cannot be negative")
        if self.small_blind > self.big_blind:
            raise ValueError("Small blind cannot exceed the big blind")
        if self.orphan_pot_policy not in ORPHAN_POT_POLICIES:
            raise ValueError(f"Unknown orphan pot policy: {self.orphan_pot_policy}")
        if not 0.0 <= self.model_trust <= 1.0:
            raise ValueError("model_trust must be between 0 and 1")
        if self.cache_max_size < 1:
            raise ValueError("cache_max_size must be positive")
        if self.shuffle_chunk_size < 1:
            raise ValueError("shuffle_chunk_size must be positive")

    @property
    def decision_timeout(self) -> float:
        """Decision budget for the predictive strategy, in seconds."""
        return self.decision_timeout_ms / 1000.0

    @property
    def min_raise(self) -> int:
        return max(self.big_blind, 1)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, **overrides: Any) -> "GameConfig":
        """Build a config from HOLDEM_* environment variables.

        Keyword overrides win over the environment.
        """
        load_dotenv(env_file)

        values: Dict[str, Any] = {}
        for f in fields(cls):
            raw = os.getenv(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            try:
                values[f.name] = f.type(raw)
            except ValueError:
                logging.warning(f"Ignoring invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}")
        values.update(overrides)
        return cls(**values)

