"""Tests for beforeafter.models."""

import pytest
from pydantic import TypeAdapter, ValidationError

from beforeafter.models import (
    ANONYMOUS,
    Anonymous,
    Authenticated,
    Identity,
    IdentityTransition,
    Item,
    ScoreRecord,
    SignIn,
    SignOut,
)


class TestItem:
    def test_required_fields(self) -> None:
        item = Item(id="matrix", title="The Matrix", year=1999, month=3)
        assert item.id == "matrix"
        assert item.year == 1999
        assert item.month == 3

    def test_catalog_payload_aliases(self) -> None:
        item = Item.model_validate({
            "_id": "65f0c1",
            "title": "Shrek",
            "year": 2001,
            "month": 5,
            "imageUrl": "https://img.example/shrek.jpg",
            "sourceUrl": "https://wiki.example/shrek",
            "category": "movie",
            "createdAt": "2024-01-01T00:00:00Z",
        })
        assert item.id == "65f0c1"
        assert item.image_url == "https://img.example/shrek.jpg"
        assert item.source_url == "https://wiki.example/shrek"
        assert item.category == "movie"

    def test_month_out_of_range_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Item(id="x", title="X", year=2000, month=13)

    def test_missing_month_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Item.model_validate({"id": "x", "title": "X", "year": 2000})

    def test_frozen(self) -> None:
        item = Item(id="x", title="X", year=2000, month=1)
        with pytest.raises(ValidationError):
            item.year = 2001


class TestScoreRecord:
    def test_defaults_to_zero(self) -> None:
        record = ScoreRecord()
        assert record.current_score == 0
        assert record.high_score == 0

    def test_wire_aliases(self) -> None:
        record = ScoreRecord.model_validate({"currentScore": 3, "highScore": 9})
        assert record == ScoreRecord(current_score=3, high_score=9)
        assert record.model_dump(by_alias=True) == {"currentScore": 3, "highScore": 9}

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ScoreRecord(current_score=-1)

    def test_current_above_high_allowed(self) -> None:
        record = ScoreRecord(current_score=5, high_score=2)
        assert record.current_score > record.high_score


class TestIdentity:
    def test_anonymous_singleton_equality(self) -> None:
        assert Anonymous() == ANONYMOUS
        assert hash(Anonymous()) == hash(ANONYMOUS)

    def test_authenticated_keyed_by_user(self) -> None:
        records = {Authenticated(user_id="ada"): 1}
        assert records[Authenticated(user_id="ada")] == 1
        assert Authenticated(user_id="bob") not in records

    def test_empty_user_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Authenticated(user_id="")

    def test_discriminated_union(self) -> None:
        adapter = TypeAdapter(Identity)
        assert adapter.validate_python({"kind": "anonymous"}) == ANONYMOUS
        assert adapter.validate_python(
            {"kind": "authenticated", "user_id": "ada"}
        ) == Authenticated(user_id="ada")


class TestIdentityTransition:
    def test_tagged_variants(self) -> None:
        adapter = TypeAdapter(IdentityTransition)
        assert adapter.validate_python({"kind": "sign_in", "user_id": "ada"}) == SignIn(user_id="ada")
        assert adapter.validate_python({"kind": "sign_out"}) == SignOut()

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TypeAdapter(IdentityTransition).validate_python({"kind": "switch_user"})
