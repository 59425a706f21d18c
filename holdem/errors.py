"""
Exception types raised by the Hold'em engine.
"""


class PokerError(Exception):
    """Base class for all engine errors."""


class InvalidTurn(PokerError):
    """An action was submitted by a player who is not the current bettor."""


class MalformedAction(PokerError):
    """The action type or amount could not be understood."""


class DeckExhaustedError(PokerError):
    """A draw was attempted from an empty deck."""


class StrategyError(PokerError):
    """The optional predictive strategy returned an unusable answer."""


class ChipConservationError(PokerError):
    """Chips were created or destroyed while moving them between players and pots."""
