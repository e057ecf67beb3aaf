"""FastAPI endpoints under /api.

Endpoint groups: health, session (state, pair, score, start, guess) and
identity (sign-in, sign-out signals from the auth flow). There is exactly
one game session per process, held on ``app.state.session``.

Score persistence and reconciliation failures do not fail the request: the
operation's effect on the session stands and the messages are returned in
the body's "errors" list.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from beforeafter.errors import (
    CatalogLoadError,
    InsufficientItemsError,
    InvalidGuessError,
    ScorePersistenceError,
    SessionStateError,
)
from beforeafter.models import SignIn, SignOut
from beforeafter.session import GameSession, GuessResult, Snapshot

router = APIRouter()


class GuessBody(BaseModel):
    guess: str


class SignInBody(BaseModel):
    user_id: str = Field(min_length=1)
    token: str = ""


def _session(request: Request) -> GameSession:
    return request.app.state.session


def _view(snapshot: Snapshot) -> dict[str, Any]:
    body: dict[str, Any] = {
        "status": snapshot.status,
        "pair": snapshot.pair.model_dump() if snapshot.pair else None,
        "score": snapshot.score.model_dump(by_alias=True),
        "identity": snapshot.identity.model_dump(),
        "errors": [str(e) for e in snapshot.errors],
    }
    if isinstance(snapshot, GuessResult):
        body["correct"] = snapshot.correct
        body["loss_media_url"] = snapshot.loss_media_url
    return body


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/session")
async def get_session(request: Request):
    """Status, current pair, score and identity."""
    return _view(_session(request).snapshot())


@router.get("/session/pair")
async def get_pair(request: Request):
    pair = _session(request).pair
    if pair is None:
        raise HTTPException(404, "No active pair")
    return pair.model_dump()


@router.get("/session/score")
async def get_score(request: Request):
    return _session(request).score.model_dump(by_alias=True)


@router.post("/session/start")
async def start_session(request: Request):
    """Start (or restart after a loss) a play-through."""
    try:
        snapshot = await _session(request).start()
    except CatalogLoadError as e:
        raise HTTPException(502, str(e))
    except (InsufficientItemsError, SessionStateError) as e:
        raise HTTPException(409, str(e))
    return _view(snapshot)


@router.post("/session/guess")
async def submit_guess(request: Request, body: GuessBody):
    """Guess whether the current item came "before" or "after" the reference."""
    try:
        result = await _session(request).guess(body.guess)
    except InvalidGuessError as e:
        raise HTTPException(422, str(e))
    except SessionStateError as e:
        raise HTTPException(409, str(e))
    except CatalogLoadError as e:
        raise HTTPException(502, str(e))
    except InsufficientItemsError as e:
        raise HTTPException(409, str(e))
    return _view(result)


@router.post("/identity/sign-in")
async def sign_in(request: Request, body: SignInBody):
    """Signal a completed sign-in; merges the anonymous scores into the user's."""
    remote = request.app.state.score_remote
    remote.authorize(body.user_id, body.token)
    try:
        snapshot = await _session(request).apply_transition(SignIn(user_id=body.user_id))
    except ScorePersistenceError as e:
        remote.revoke(body.user_id)
        raise HTTPException(502, str(e))
    return _view(snapshot)


@router.post("/identity/sign-out")
async def sign_out(request: Request):
    """Signal a completed sign-out; keeps the high score locally."""
    session = _session(request)
    previous = session.identity
    snapshot = await session.apply_transition(SignOut())
    if previous.kind == "authenticated":
        request.app.state.score_remote.revoke(previous.user_id)
    return _view(snapshot)
