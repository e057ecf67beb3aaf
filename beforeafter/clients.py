"""HTTP clients for the game's external collaborators.

The session and ledger depend only on the protocols below:

    Catalog          get_all_items() -> list[Item]
    ScoreRemote      get_score(user_id) / put_score(user_id, record)
    GuessTelemetry   record(reference, current, guess)
    LossMedia        current(score) -> url | None

Each has an httpx implementation talking to the game backend. All of them
share ApiClient: send the request, decode JSON, raise HttpError on a
transport failure or a non-2xx status (using the body's "message" when the
backend sends one). The domain-facing clients translate HttpError into the
engine's own errors.

StaticCatalog serves a fixed item list with no network calls; useful for
smoke-testing the session wiring without a running backend.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from beforeafter.errors import CatalogLoadError, ScorePersistenceError
from beforeafter.models import Item, ScoreRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------

class Catalog(Protocol):
    async def get_all_items(self) -> list[Item]: ...


class ScoreRemote(Protocol):
    async def get_score(self, user_id: str) -> ScoreRecord: ...

    async def put_score(self, user_id: str, record: ScoreRecord) -> None: ...


class GuessTelemetry(Protocol):
    async def record(self, reference: Item, current: Item, guess: str) -> None: ...


class LossMedia(Protocol):
    async def current(self, score: int) -> str | None: ...


# ---------------------------------------------------------------------------
# HttpError + shared request wrapper
# ---------------------------------------------------------------------------

class HttpError(RuntimeError):
    """Raised when the backend cannot be reached or answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ApiClient:
    """Async JSON client bound to one backend base URL.

    Args:
        base_url: Backend root, e.g. "http://localhost:3000".
        timeout:  HTTP timeout in seconds. Defaults to 10.
    """

    def __init__(self, base_url: str, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _headers(self, token: str = "") -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _get(
        self, path: str, *, params: dict[str, Any] | None = None, token: str = ""
    ) -> Any:
        return await self._request("GET", path, params=params, token=token)

    async def _post(self, path: str, body: dict[str, Any], *, token: str = "") -> Any:
        return await self._request("POST", path, body=body, token=token)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
        token: str = "",
    ) -> Any:
        url = self._url(path)
        headers = self._headers(token)
        logger.debug("%s %s params=%s", method, url, params)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                if method == "GET":
                    resp = await client.get(url, params=params, headers=headers)
                else:
                    resp = await client.post(url, json=body, headers=headers)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise _status_error(e) from e
        except httpx.TimeoutException as e:
            raise HttpError(f"Request to {url} timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise HttpError(f"Cannot connect to backend at {self._base_url}") from e
        return _decode(resp, url)


def _status_error(e: httpx.HTTPStatusError) -> HttpError:
    status = e.response.status_code
    message = f"Request failed with status {status}"
    try:
        data = e.response.json()
        if isinstance(data, dict) and data.get("message"):
            message = data["message"]
    except ValueError:
        pass  # no JSON body, keep the generic message
    return HttpError(message, status_code=status)


def _decode(resp: httpx.Response, url: str) -> Any:
    try:
        return resp.json()
    except ValueError as e:
        raise HttpError(f"Backend returned invalid JSON from {url}") from e


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class HttpCatalog(ApiClient):
    """GET /api/cards/all — the full item pool.

    The backend answers 404 when it holds no cards; that is an empty pool,
    not a load failure.
    """

    async def get_all_items(self) -> list[Item]:
        try:
            data = await self._get("/api/cards/all")
        except HttpError as e:
            if e.status_code == 404:
                logger.warning("catalog is empty: %s", e)
                return []
            raise CatalogLoadError(f"Failed to load items: {e}") from e
        if not isinstance(data, list):
            raise CatalogLoadError(
                f"Catalog must return a JSON array, got {type(data).__name__}"
            )
        try:
            items = [Item.model_validate(entry) for entry in data]
        except ValidationError as e:
            raise CatalogLoadError(f"Catalog returned malformed items: {e}") from e
        logger.debug("catalog loaded items=%d", len(items))
        return items


class StaticCatalog:
    """Serves a fixed pool. No network calls."""

    def __init__(self, items: Sequence[Item]) -> None:
        self._items = list(items)

    async def get_all_items(self) -> list[Item]:
        return list(self._items)


# ---------------------------------------------------------------------------
# Remote scores
# ---------------------------------------------------------------------------

class HttpScoreRemote(ApiClient):
    """GET /api/scores/get and POST /api/scores/update for signed-in players.

    The backend resolves the user from the bearer token, so a token must be
    registered with authorize() before the user's scores can be read or
    written. Issuing and validating tokens is the auth service's concern.
    """

    def __init__(self, base_url: str, timeout: float = 10.0) -> None:
        super().__init__(base_url, timeout)
        self._tokens: dict[str, str] = {}

    def authorize(self, user_id: str, token: str) -> None:
        self._tokens[user_id] = token

    def revoke(self, user_id: str) -> None:
        self._tokens.pop(user_id, None)

    def _token(self, user_id: str) -> str:
        token = self._tokens.get(user_id)
        if not token:
            raise ScorePersistenceError(f"Authentication required for user {user_id!r}")
        return token

    async def get_score(self, user_id: str) -> ScoreRecord:
        token = self._token(user_id)
        try:
            data = await self._get("/api/scores/get", token=token)
        except HttpError as e:
            raise ScorePersistenceError(f"Failed to read scores: {e}") from e
        if not isinstance(data, dict):
            raise ScorePersistenceError("Score response must be a JSON object")
        # A user record without score fields counts as {0, 0}.
        present = {k: v for k, v in data.items() if k in ("currentScore", "highScore") and v is not None}
        try:
            return ScoreRecord.model_validate(present)
        except ValidationError as e:
            raise ScorePersistenceError(f"Malformed score response: {e}") from e

    async def put_score(self, user_id: str, record: ScoreRecord) -> None:
        token = self._token(user_id)
        try:
            await self._post("/api/scores/update", record.model_dump(by_alias=True), token=token)
        except HttpError as e:
            raise ScorePersistenceError(f"Failed to update scores: {e}", record) from e


# ---------------------------------------------------------------------------
# Guess telemetry
# ---------------------------------------------------------------------------

class HttpGuessTelemetry(ApiClient):
    """POST /api/cards/guess — informational only, never gates gameplay."""

    async def record(self, reference: Item, current: Item, guess: str) -> None:
        await self._post("/api/cards/guess", {
            "previousYear": reference.year,
            "previousMonth": reference.month,
            "currentYear": current.year,
            "currentMonth": current.month,
            "guess": guess,
        })


# ---------------------------------------------------------------------------
# Loss media
# ---------------------------------------------------------------------------

class HttpLossMedia(ApiClient):
    """GET /api/loss-gifs/current — media for the lowest threshold above a score."""

    async def current(self, score: int) -> str | None:
        try:
            data = await self._get("/api/loss-gifs/current", params={"score": score})
        except HttpError as e:
            if e.status_code == 404:
                return None
            raise
        if not isinstance(data, dict):
            return None
        return data.get("imageUrl")
