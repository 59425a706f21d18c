"""
Texas Hold'em simulation engine: hand evaluation, betting with side pots,
and AI players with several personalities.
"""

from holdem.config import GameConfig
from holdem.context import GameContext
from holdem.game import Game, HandResult
from holdem.player import Player, create_ai_player
from holdem.progression import ProgressionTracker

__version__ = "0.1.0"

__all__ = [
    'Game',
    'GameConfig',
    'GameContext',
    'HandResult',
    'Player',
    'ProgressionTracker',
    'create_ai_player',
]
