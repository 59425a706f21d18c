"""
Hand-strength cache used by the decision engine.

Entries are keyed by the sorted labels of the cards a player can see. When
the cache reaches its size bound it is cleared wholesale rather than evicting
individual entries.
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

from holdem.deck import Card, card_str

Signature = Tuple[str, ...]


def hand_signature(cards: Iterable[Card]) -> Signature:
    """Canonical, order-independent key for a set of cards."""
    return tuple(card_str(c) for c in sorted(cards))


class DecisionCache:
    def __init__(self, max_size: int = 1000):
        self.max_size = max_size
        self._entries: Dict[Signature, float] = {}
        self.hits = 0
        self.misses = 0
        self.clears = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, signature: Signature) -> bool:
        return signature in self._entries

    def get(self, signature: Signature) -> Optional[float]:
        value = self._entries.get(signature)
        if value is None:
            self.misses += 1
        else:
            self.hits += 1
        return value

    def put(self, signature: Signature, value: float) -> None:
        if signature not in self._entries and len(self._entries) >= self.max_size:
            logging.debug(f"Decision cache reached {self.max_size} entries, clearing")
            self.clear()
        self._entries[signature] = value

    def clear(self) -> None:
        self._entries.clear()
        self.clears += 1
