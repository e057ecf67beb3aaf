"""Error taxonomy shared by the session, ledger and HTTP clients."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from beforeafter.models import ScoreRecord


class GameError(RuntimeError):
    """Base class for every error the engine reports."""


class InsufficientItemsError(GameError):
    """The pool holds fewer than two items, so no pair can be drawn."""


class InvalidGuessError(GameError, ValueError):
    """The guess direction is malformed or an item is missing."""


class SessionStateError(GameError):
    """The operation is not valid in the session's current status."""


class CatalogLoadError(GameError):
    """The item catalog could not be fetched. Recoverable; retry start()."""


class ScorePersistenceError(GameError):
    """A score write or read against a storage surface failed.

    The in-memory record has already advanced; ``record`` holds it.
    """

    def __init__(self, message: str, record: ScoreRecord | None = None) -> None:
        super().__init__(message)
        self.record = record


class IdentityReconciliationError(GameError):
    """Scores could not be fully carried across an identity change.

    Raised when the merged high score cannot be written back at sign-in, or
    local storage cannot be cleared (sign-in) or written (sign-out). The
    merged record in ``record`` is in effect regardless.
    """

    def __init__(self, message: str, record: ScoreRecord | None = None) -> None:
        super().__init__(message)
        self.record = record
