"""
Streak, experience and level bookkeeping for one tracked player.

ProgressionTracker is a hand-complete listener; register it with
Game.add_hand_complete_listener. State is kept in memory only.
"""

import logging
from dataclasses import dataclass, field
from typing import List

STREAK_BONUS_EVERY = 3
STREAK_BONUS_COINS = 300


@dataclass
class ProgressionTracker:
    player_name: str
    coins: int = 1000
    level: int = 1
    exp: float = 0
    streak: int = 0
    hands_played: int = 0
    level_ups: List[int] = field(default_factory=list)

    @property
    def required_exp(self) -> float:
        return 100 * 1.5 ** self.level

    def __call__(self, result) -> None:
        self.record(result.winners)

    def record(self, winners: List[str]) -> None:
        won = self.player_name in winners
        self.hands_played += 1

        self.streak = self.streak + 1 if won else 0
        if won and self.streak % STREAK_BONUS_EVERY == 0:
            self.coins += STREAK_BONUS_COINS
            logging.info(f"{self.player_name} reached a {self.streak}-hand streak: +{STREAK_BONUS_COINS} coins")

        self.exp += (100 if won else 50) + len(winners) * 20
        while self.exp >= self.required_exp:
            self.exp -= self.required_exp
            self.level += 1
            self.level_ups.append(self.level)
            logging.info(f"{self.player_name} reached level {self.level}")
