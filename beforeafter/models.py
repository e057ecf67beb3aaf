"""Core domain models.

The session, ledger and HTTP clients all operate on these types.
Pydantic is used for validation and serialisation at every data boundary;
wire names (``_id``, ``currentScore``, ``imageUrl`` ...) are accepted as
aliases so catalog and score payloads validate directly.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

Guess = Literal["before", "after"]
SessionStatus = Literal["idle", "playing", "lost"]

GUESSES: tuple[str, ...] = ("before", "after")


class Item(BaseModel):
    """A dated cultural artifact shown to the player."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    title: str
    year: int
    month: int = Field(ge=1, le=12)
    image_url: str | None = Field(
        default=None, validation_alias=AliasChoices("image_url", "imageUrl")
    )
    source_url: str | None = Field(
        default=None, validation_alias=AliasChoices("source_url", "sourceUrl")
    )
    category: str | None = None


class Pair(BaseModel):
    """The two items being compared in the active guess."""

    model_config = ConfigDict(frozen=True)

    reference: Item
    current: Item


class ScoreRecord(BaseModel):
    """Current streak and best streak for one identity.

    ``high_score >= current_score`` is not enforced here: a stale record may
    briefly hold a current score above its high score. The ledger raises the
    high score on every write that would leave it behind.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    current_score: int = Field(default=0, ge=0, alias="currentScore")
    high_score: int = Field(default=0, ge=0, alias="highScore")


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

class Anonymous(BaseModel):
    """Local-only player; scores live in the data directory."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["anonymous"] = "anonymous"


class Authenticated(BaseModel):
    """Signed-in player; scores live on the remote score store."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["authenticated"] = "authenticated"
    user_id: str = Field(min_length=1)


Identity = Annotated[Union[Anonymous, Authenticated], Field(discriminator="kind")]

ANONYMOUS = Anonymous()


# ---------------------------------------------------------------------------
# Identity transitions
# ---------------------------------------------------------------------------

class SignIn(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["sign_in"] = "sign_in"
    user_id: str = Field(min_length=1)


class SignOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["sign_out"] = "sign_out"


IdentityTransition = Annotated[Union[SignIn, SignOut], Field(discriminator="kind")]
