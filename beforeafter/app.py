import logging

from fastapi import FastAPI

from beforeafter.clients import HttpCatalog, HttpGuessTelemetry, HttpLossMedia, HttpScoreRemote
from beforeafter.config import Settings, load_settings
from beforeafter.ledger import ScoreLedger
from beforeafter.routes import router
from beforeafter.session import GameSession
from beforeafter.storage import LocalScoreStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    session: GameSession | None = None,
    score_remote: HttpScoreRemote | None = None,
) -> FastAPI:
    """Wire the session engine to the backend named in settings.

    Tests pass a prebuilt ``session`` together with the ``score_remote`` its
    ledger uses.
    """
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level)

    if session is None:
        base, timeout = settings.api_base_url, settings.http_timeout
        score_remote = score_remote or HttpScoreRemote(base, timeout)
        ledger = ScoreLedger(LocalScoreStore(settings.data_dir), score_remote)
        session = GameSession(
            HttpCatalog(base, timeout),
            ledger,
            telemetry=HttpGuessTelemetry(base, timeout),
            loss_media=HttpLossMedia(base, timeout),
        )
        logger.info("game backend=%s data_dir=%s", base, settings.data_dir)

    app = FastAPI(title="Before/After")
    app.state.session = session
    app.state.score_remote = score_remote
    app.include_router(router, prefix="/api")
    return app
