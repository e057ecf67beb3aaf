"""Guess evaluation — pure comparison of two dated items."""

from __future__ import annotations

from beforeafter.errors import InvalidGuessError
from beforeafter.models import GUESSES, Item


def is_guess_correct(reference: Item | None, current: Item | None, guess: str) -> bool:
    """Return True if ``current`` really falls ``guess`` ("before"/"after") ``reference``.

    Year decides first, month breaks a year tie. Items released in the same
    year and month have no before/after relation, so every guess on them is
    wrong.

        is_guess_correct(ref(2000, 5), cur(1999, 12), "before")  -> True
        is_guess_correct(ref(2000, 5), cur(2000, 5), "after")    -> False
    """
    if guess not in GUESSES:
        raise InvalidGuessError(f"Guess must be 'before' or 'after', got {guess!r}")
    if reference is None or current is None:
        raise InvalidGuessError("Both a reference and a current item are required")

    if current.year != reference.year:
        actual = "before" if current.year < reference.year else "after"
    elif current.month != reference.month:
        actual = "before" if current.month < reference.month else "after"
    else:
        return False
    return guess == actual
