import random
from pathlib import Path

import pytest

from beforeafter.errors import CatalogLoadError, ScorePersistenceError
from beforeafter.ledger import ScoreLedger
from beforeafter.models import Item, Pair, ScoreRecord
from beforeafter.session import GameSession
from beforeafter.storage import LocalScoreStore

POOL = [
    Item(id="matrix", title="The Matrix", year=1999, month=3),
    Item(id="shrek", title="Shrek", year=2001, month=5),
    Item(id="amelie", title="Amélie", year=2001, month=4),
    Item(id="spirited", title="Spirited Away", year=2001, month=7),
    Item(id="memento", title="Memento", year=2000, month=9),
    Item(id="titanic", title="Titanic", year=1997, month=12),
]


# ---------------------------------------------------------------------------
# Stub collaborators — in-memory, with switches to simulate failures
# ---------------------------------------------------------------------------

class StubCatalog:
    def __init__(self, items: list[Item]) -> None:
        self.items = list(items)
        self.fail = False
        self.calls = 0

    async def get_all_items(self) -> list[Item]:
        self.calls += 1
        if self.fail:
            raise CatalogLoadError("catalog unavailable")
        return list(self.items)


class StubScoreRemote:
    def __init__(self) -> None:
        self.records: dict[str, ScoreRecord] = {}
        self.puts: list[tuple[str, ScoreRecord]] = []
        self.tokens: dict[str, str] = {}
        self.fail_reads = False
        self.fail_writes = False

    def authorize(self, user_id: str, token: str) -> None:
        self.tokens[user_id] = token

    def revoke(self, user_id: str) -> None:
        self.tokens.pop(user_id, None)

    async def get_score(self, user_id: str) -> ScoreRecord:
        if self.fail_reads:
            raise ScorePersistenceError("remote read failed")
        return self.records.get(user_id, ScoreRecord())

    async def put_score(self, user_id: str, record: ScoreRecord) -> None:
        if self.fail_writes:
            raise ScorePersistenceError("remote write failed", record)
        self.puts.append((user_id, record))
        self.records[user_id] = record


class StubTelemetry:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str]] = []
        self.fail = False

    async def record(self, reference: Item, current: Item, guess: str) -> None:
        if self.fail:
            raise RuntimeError("telemetry down")
        self.calls.append((reference.id, current.id, guess))


class StubLossMedia:
    def __init__(self, url: str | None = "https://media.example/sad.gif") -> None:
        self.url = url
        self.scores: list[int] = []

    async def current(self, score: int) -> str | None:
        self.scores.append(score)
        return self.url


def right_guess(pair: Pair) -> str:
    ref, cur = pair.reference, pair.current
    return "before" if (cur.year, cur.month) < (ref.year, ref.month) else "after"


def wrong_guess(pair: Pair) -> str:
    return "after" if right_guess(pair) == "before" else "before"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def pool() -> list[Item]:
    return list(POOL)


@pytest.fixture
def store(tmp_path: Path) -> LocalScoreStore:
    return LocalScoreStore(tmp_path / "data")


@pytest.fixture
def remote() -> StubScoreRemote:
    return StubScoreRemote()


@pytest.fixture
def ledger(store: LocalScoreStore, remote: StubScoreRemote) -> ScoreLedger:
    return ScoreLedger(store, remote)


@pytest.fixture
def catalog(pool: list[Item]) -> StubCatalog:
    return StubCatalog(pool)


@pytest.fixture
def telemetry() -> StubTelemetry:
    return StubTelemetry()


@pytest.fixture
def loss_media() -> StubLossMedia:
    return StubLossMedia()


@pytest.fixture
def session(
    catalog: StubCatalog,
    ledger: ScoreLedger,
    telemetry: StubTelemetry,
    loss_media: StubLossMedia,
) -> GameSession:
    return GameSession(
        catalog, ledger,
        telemetry=telemetry,
        loss_media=loss_media,
        rng=random.Random(7),
    )
