"""Score ledger — current and high score per identity.

The ledger is the only reader and writer of score storage. Every operation
takes an explicit Identity and routes to the matching surface:

    Anonymous          → LocalScoreStore (JSON file in the data directory)
    Authenticated(id)  → ScoreRemote     (backend score record for id)

Write paths update the in-memory record first and persist second. A failed
write (remote, or the local file) raises ScorePersistenceError carrying the
advanced record; the in-memory view is never rolled back.

If a signed-in user's remote record cannot be read, writes apply to the
in-memory record and are held back from the remote until a read succeeds;
the two are then merged, keeping this session's streak and the better high
score.

High scores only ever move through max(): no path stores a lower high score
over a higher one.

Identity transitions:

    sign-in   merged = {current: remote.current, high: max(local.high, remote.high)}
              write merged back to remote if local.high was higher
              clear local storage (remote is authoritative from now on)
    sign-out  local = {current: 0, high: authenticated high}
"""

from __future__ import annotations

import asyncio
import logging

from beforeafter.clients import ScoreRemote
from beforeafter.errors import IdentityReconciliationError, ScorePersistenceError
from beforeafter.models import (
    ANONYMOUS,
    Anonymous,
    Authenticated,
    Identity,
    IdentityTransition,
    ScoreRecord,
    SignIn,
    SignOut,
)
from beforeafter.storage import LocalScoreStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pure reconciliation rules
# ---------------------------------------------------------------------------

def reconcile_on_sign_in(local: ScoreRecord, remote: ScoreRecord) -> ScoreRecord:
    """Merge the anonymous record into the signed-in user's record.

    The remote current score wins: a fresh session starts after login, so the
    anonymous streak is discarded. The better of the two high scores is kept.
    """
    return ScoreRecord(
        current_score=remote.current_score,
        high_score=max(local.high_score, remote.high_score),
    )


def reconcile_on_sign_out(current: ScoreRecord, stored_local: ScoreRecord | None = None) -> ScoreRecord:
    """Anonymous record to store after sign-out: streak 0, high score kept."""
    high = current.high_score
    if stored_local is not None:
        high = max(high, stored_local.high_score)
    return ScoreRecord(current_score=0, high_score=high)


def identity_after(transition: IdentityTransition) -> Identity:
    if isinstance(transition, SignIn):
        return Authenticated(user_id=transition.user_id)
    return ANONYMOUS


def _bump(record: ScoreRecord) -> ScoreRecord:
    current = record.current_score + 1
    return ScoreRecord(current_score=current, high_score=max(current, record.high_score))


# ---------------------------------------------------------------------------
# ScoreLedger
# ---------------------------------------------------------------------------

class ScoreLedger:
    """Owns score storage for every identity.

    Operations run one at a time in arrival order, so increments for the same
    identity are never reordered and a transition finishes before the next
    increment against the new identity starts.

    Writes are keyed by identity: a remote write for a user who has since
    signed out completes or fails without touching the anonymous record.
    """

    def __init__(self, local: LocalScoreStore, remote: ScoreRemote) -> None:
        self._local = local
        self._remote = remote
        self._records: dict[Identity, ScoreRecord] = {}
        # Identities whose remote record could not be read; the in-memory
        # record stands in for it until a read succeeds.
        self._unsynced: set[Identity] = set()
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load(self, identity: Identity) -> ScoreRecord:
        """Return the identity's record, reading storage on first access."""
        async with self._lock:
            return await self._load(identity)

    def cached(self, identity: Identity) -> ScoreRecord:
        """In-memory record without touching storage; {0, 0} if never loaded."""
        return self._records.get(identity, ScoreRecord())

    async def _load(self, identity: Identity) -> ScoreRecord:
        record = self._records.get(identity)
        if record is not None and identity not in self._unsynced:
            return record
        if isinstance(identity, Authenticated):
            stored = await self._remote.get_score(identity.user_id)
            if record is not None:
                # keep this session's streak, adopt the better high score
                stored = record.model_copy(
                    update={"high_score": max(record.high_score, stored.high_score)}
                )
                self._unsynced.discard(identity)
                logger.info(
                    "scores synced user=%s current=%d high=%d",
                    identity.user_id, stored.current_score, stored.high_score,
                )
        else:
            stored = self._local.load() or ScoreRecord()
        self._records[identity] = stored
        return stored

    async def _working(self, identity: Identity) -> tuple[ScoreRecord, ScorePersistenceError | None]:
        """Record a write applies to, plus the read error if storage was unreadable.

        On a failed read the in-memory record is used and the identity stays
        unsynced, so the write still lands in memory.
        """
        try:
            return await self._load(identity), None
        except ScorePersistenceError as e:
            logger.warning("score read failed, using in-memory record: %s", e)
            self._unsynced.add(identity)
            return self.cached(identity), e

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def increment(self, identity: Identity) -> ScoreRecord:
        """Add one to the streak, raising the high score alongside it."""
        async with self._lock:
            record, read_error = await self._working(identity)
            record = _bump(record)
            self._records[identity] = record
            await self._store(identity, record, read_error)
            return record

    async def reset(self, identity: Identity) -> ScoreRecord:
        """Start a new streak at 0, keeping the high score."""
        async with self._lock:
            record, read_error = await self._working(identity)
            record = record.model_copy(update={"current_score": 0})
            self._records[identity] = record
            await self._store(identity, record, read_error)
            return record

    async def finalize(self, identity: Identity) -> ScoreRecord:
        """Flush the terminal record at game over."""
        async with self._lock:
            record, read_error = await self._working(identity)
            await self._store(identity, record, read_error)
            return record

    async def _store(
        self, identity: Identity, record: ScoreRecord, read_error: ScorePersistenceError | None
    ) -> None:
        if read_error is not None:
            # the unread remote record may hold a higher high score
            raise ScorePersistenceError(
                f"Scores not saved, stored record unavailable: {read_error}", record
            ) from read_error
        await self._persist(identity, record)

    async def _persist(self, identity: Identity, record: ScoreRecord) -> None:
        if isinstance(identity, Anonymous):
            try:
                self._local.save(record)
            except OSError as e:
                logger.warning("local score write failed: %s", e)
                raise ScorePersistenceError(f"Failed to save local scores: {e}", record) from e
            return
        try:
            await self._remote.put_score(identity.user_id, record)
        except ScorePersistenceError as e:
            logger.warning("score write failed user=%s: %s", identity.user_id, e)
            raise ScorePersistenceError(str(e), record) from e

    # ------------------------------------------------------------------
    # Identity transitions
    # ------------------------------------------------------------------

    async def apply(self, transition: IdentityTransition, previous: Identity) -> ScoreRecord:
        """Reconcile scores for a transition away from ``previous``.

        Returns the record of the identity now in effect.
        """
        if isinstance(transition, SignIn):
            return await self.sign_in(transition.user_id)
        if isinstance(transition, SignOut):
            if isinstance(previous, Authenticated):
                return await self.sign_out(previous.user_id)
            return await self.load(ANONYMOUS)
        raise TypeError(f"Unknown identity transition {transition!r}")

    async def sign_in(self, user_id: str) -> ScoreRecord:
        """Merge the anonymous record into ``user_id``'s remote record.

        A failed remote read changes nothing and raises ScorePersistenceError.
        A failed write-back or local clear still adopts the merge, then raises
        IdentityReconciliationError.
        """
        identity = Authenticated(user_id=user_id)
        async with self._lock:
            local = self._records.get(ANONYMOUS) or self._local.load() or ScoreRecord()
            remote = await self._remote.get_score(user_id)
            merged = reconcile_on_sign_in(local, remote)
            self._records[identity] = merged
            self._unsynced.discard(identity)
            self._records.pop(ANONYMOUS, None)

            problems: list[Exception] = []
            if local.high_score > remote.high_score:
                try:
                    await self._remote.put_score(user_id, merged)
                except ScorePersistenceError as e:
                    problems.append(e)
            try:
                self._local.clear()
            except OSError as e:
                problems.append(e)

            logger.info(
                "sign-in user=%s merged current=%d high=%d",
                user_id, merged.current_score, merged.high_score,
            )
            if problems:
                detail = "; ".join(str(p) for p in problems)
                logger.warning("sign-in reconciliation incomplete user=%s: %s", user_id, detail)
                raise IdentityReconciliationError(
                    f"Could not finish merging scores for {user_id!r}: {detail}", merged
                ) from problems[0]
            return merged

    async def sign_out(self, user_id: str) -> ScoreRecord:
        """Carry the signed-in high score over to local storage.

        A failed local save keeps the record in memory and raises
        IdentityReconciliationError.
        """
        identity = Authenticated(user_id=user_id)
        async with self._lock:
            current = self._records.pop(identity, None)
            if current is None or identity in self._unsynced:
                try:
                    stored = await self._remote.get_score(user_id)
                except ScorePersistenceError as e:
                    logger.warning("sign-out could not read scores user=%s: %s", user_id, e)
                    stored = ScoreRecord()
                if current is not None:
                    stored = current.model_copy(
                        update={"high_score": max(current.high_score, stored.high_score)}
                    )
                current = stored
            self._unsynced.discard(identity)

            record = reconcile_on_sign_out(current, self._local.load())
            self._records[ANONYMOUS] = record
            try:
                self._local.save(record)
            except OSError as e:
                logger.warning("local score write failed at sign-out: %s", e)
                raise IdentityReconciliationError(
                    f"Failed to save local scores after sign-out: {e}", record
                ) from e
            logger.info("sign-out user=%s kept high=%d", user_id, record.high_score)
            return record
