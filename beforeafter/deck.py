"""Deck — one shuffled, non-repeating traversal of an item pool.

A deck owns a shuffled copy of the pool and a cursor counting the items
still to draw. Drawing moves the cursor down from the end; the underlying
sequence is never mutated after the shuffle, so the remaining count can be
checked independently of how the items are stored.

Replenishing an exhausted deck is the session's job, not the deck's.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence

from beforeafter.errors import InsufficientItemsError
from beforeafter.models import Item

logger = logging.getLogger(__name__)

MIN_POOL_SIZE = 2  # a reference item and a current item


class Deck:
    def __init__(self, items: Sequence[Item]) -> None:
        self._items: tuple[Item, ...] = tuple(items)
        self._remaining = len(self._items)

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def size(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return self._remaining

    def draw(self) -> Item | None:
        """Return the top item, or None once the deck is exhausted."""
        if self._remaining == 0:
            return None
        self._remaining -= 1
        return self._items[self._remaining]


def shuffle(items: Sequence[Item], rng: random.Random | None = None) -> list[Item]:
    """Fisher–Yates shuffle of a copy of ``items``.

    Walks from the last index down to 1, swapping each position with a
    uniformly chosen index in ``0..i`` inclusive.
    """
    rng = rng or random.Random()
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def new_deck(pool: Sequence[Item], rng: random.Random | None = None) -> Deck:
    """Build a uniformly shuffled deck from ``pool``.

    Raises InsufficientItemsError if the pool cannot supply a pair.
    """
    if len(pool) < MIN_POOL_SIZE:
        raise InsufficientItemsError(
            f"Need at least {MIN_POOL_SIZE} items to play, catalog has {len(pool)}"
        )
    deck = Deck(shuffle(pool, rng))
    logger.debug("new deck size=%d", deck.size)
    return deck


def draw(deck: Deck) -> Item | None:
    return deck.draw()
