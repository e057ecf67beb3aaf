"""Game session — one play-through of the comparison game.

States:

    idle     no session yet, or reset by an identity change
    playing  a reference item and a current item await a guess
    lost     terminal; score finalized, waiting for start() ("play again")

Flow:
  1. start()        fetch the pool, shuffle a deck, draw reference + current,
                    reset the streak to 0 → playing.
  2. guess(dir)     evaluate locally.
                      correct   → draw the next item (rebuilding the deck from a
                                  fresh catalog fetch once it runs out), shift
                                  current into reference, increment the streak.
                      incorrect → lost, flush the final score.
  3. Telemetry for each guess runs in the background and never gates play.

Guesses and identity transitions are serialized: a guess that arrives while
the previous one is still persisting waits for it, then applies to the
settled pair. Nothing is dropped or counted twice.

Score persistence failures are reported on the returned snapshot and never
undo the in-memory score. A failed catalog fetch leaves the session exactly
as it was; the caller may retry.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field

from beforeafter.clients import Catalog, GuessTelemetry, LossMedia
from beforeafter.deck import Deck, new_deck
from beforeafter.errors import GameError, IdentityReconciliationError, ScorePersistenceError, SessionStateError
from beforeafter.evaluator import is_guess_correct
from beforeafter.ledger import ScoreLedger, identity_after
from beforeafter.models import (
    ANONYMOUS,
    Identity,
    IdentityTransition,
    Item,
    Pair,
    ScoreRecord,
    SessionStatus,
)

logger = logging.getLogger(__name__)


@dataclass
class Snapshot:
    """Session state as seen by the caller after an operation."""

    status: SessionStatus
    pair: Pair | None
    score: ScoreRecord
    identity: Identity = ANONYMOUS
    errors: list[GameError] = field(default_factory=list)


@dataclass
class GuessResult(Snapshot):
    correct: bool = False
    loss_media_url: str | None = None


class GameSession:
    def __init__(
        self,
        catalog: Catalog,
        ledger: ScoreLedger,
        *,
        telemetry: GuessTelemetry | None = None,
        loss_media: LossMedia | None = None,
        rng: random.Random | None = None,
        identity: Identity = ANONYMOUS,
    ) -> None:
        self._catalog = catalog
        self._ledger = ledger
        self._telemetry = telemetry
        self._loss_media = loss_media
        self._rng = rng or random.Random()
        self._identity: Identity = identity

        self._status: SessionStatus = "idle"
        self._deck: Deck | None = None
        self._reference: Item | None = None
        self._current: Item | None = None

        self._lock = asyncio.Lock()
        self._background: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def pair(self) -> Pair | None:
        if self._reference is None or self._current is None:
            return None
        return Pair(reference=self._reference, current=self._current)

    @property
    def score(self) -> ScoreRecord:
        return self._ledger.cached(self._identity)

    @property
    def cards_left(self) -> int:
        return self._deck.remaining if self._deck else 0

    def snapshot(self, errors: list[GameError] | None = None) -> Snapshot:
        return Snapshot(
            status=self._status,
            pair=self.pair,
            score=self.score,
            identity=self._identity,
            errors=errors or [],
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> Snapshot:
        """Begin a new play-through from idle or lost.

        CatalogLoadError and InsufficientItemsError propagate with the session
        unchanged; no partial session is created. A session already playing
        raises SessionStateError.
        """
        async with self._lock:
            if self._status == "playing":
                raise SessionStateError("Cannot start while a session is playing")
            pool = await self._catalog.get_all_items()
            deck = new_deck(pool, self._rng)
            reference = deck.draw()
            current = deck.draw()

            self._deck = deck
            self._reference, self._current = reference, current
            self._status = "playing"

            errors: list[GameError] = []
            try:
                await self._ledger.reset(self._identity)
            except ScorePersistenceError as e:
                errors.append(e)
            logger.info(
                "session started pool=%d reference=%s current=%s",
                len(pool), reference.id, current.id,
            )
            return self.snapshot(errors)

    async def guess(self, direction: str) -> GuessResult:
        """Submit "before" or "after" for the current item.

        InvalidGuessError and SessionStateError leave the session unchanged.
        If the deck has to be rebuilt and the catalog fetch fails, the guess
        is not applied and CatalogLoadError propagates.
        """
        async with self._lock:
            if self._status != "playing":
                raise SessionStateError(f"Cannot guess while the session is {self._status}")
            reference, current = self._reference, self._current
            correct = is_guess_correct(reference, current, direction)

            if correct:
                result = await self._advance()
            else:
                result = await self._lose()
            self._record_guess(reference, current, direction)
            return result

    async def apply_transition(self, transition: IdentityTransition) -> Snapshot:
        """Reconcile scores for a sign-in or sign-out, then return to idle.

        If the merged high score could not be written back the transition
        still completes and the error is reported. Any other failure leaves
        the identity unchanged and propagates.
        """
        async with self._lock:
            previous = self._identity
            errors: list[GameError] = []
            try:
                await self._ledger.apply(transition, previous)
            except IdentityReconciliationError as e:
                errors.append(e)
            self._identity = identity_after(transition)
            self._reset()
            logger.info("identity %s -> %s", previous.kind, self._identity.kind)
            return self.snapshot(errors)

    async def wait_idle(self) -> None:
        """Wait for background telemetry calls to finish."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._status = "idle"
        self._deck = None
        self._reference = self._current = None

    async def _advance(self) -> GuessResult:
        next_item = await self._draw()
        self._reference, self._current = self._current, next_item

        errors: list[GameError] = []
        try:
            await self._ledger.increment(self._identity)
        except ScorePersistenceError as e:
            errors.append(e)
        return self._result(correct=True, errors=errors)

    async def _lose(self) -> GuessResult:
        self._status = "lost"
        errors: list[GameError] = []
        try:
            await self._ledger.finalize(self._identity)
        except ScorePersistenceError as e:
            errors.append(e)
        final = self.score.current_score
        logger.info("session lost score=%d high=%d", final, self.score.high_score)
        return self._result(
            correct=False, errors=errors, loss_media_url=await self._loss_media_for(final)
        )

    async def _draw(self) -> Item:
        item = self._deck.draw() if self._deck else None
        if item is None:
            logger.info("deck exhausted, rebuilding from catalog")
            deck = new_deck(await self._catalog.get_all_items(), self._rng)
            item = deck.draw()
            self._deck = deck
        return item

    def _result(
        self, *, correct: bool, errors: list[GameError], loss_media_url: str | None = None
    ) -> GuessResult:
        return GuessResult(
            status=self._status,
            pair=self.pair,
            score=self.score,
            identity=self._identity,
            errors=errors,
            correct=correct,
            loss_media_url=loss_media_url,
        )

    async def _loss_media_for(self, score: int) -> str | None:
        if self._loss_media is None:
            return None
        try:
            return await self._loss_media.current(score)
        except Exception as e:
            logger.warning("loss media lookup failed score=%d: %s", score, e)
            return None

    def _record_guess(self, reference: Item, current: Item, guess: str) -> None:
        if self._telemetry is None:
            return
        task = asyncio.create_task(self._send_telemetry(reference, current, guess))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _send_telemetry(self, reference: Item, current: Item, guess: str) -> None:
        try:
            await self._telemetry.record(reference, current, guess)
        except Exception as e:
            logger.warning("guess telemetry failed: %s", e)
