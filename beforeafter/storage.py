"""JSON file storage for the anonymous player's scores.

The local-only surface is a single flat JSON file under a configurable
base directory, read and written through plain helper methods. Only the
score ledger writes to it.

Directory layout:

    {base}/
      scores.json     ← {"score": <current>, "highScore": <best>}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from beforeafter.models import ScoreRecord

logger = logging.getLogger(__name__)

SCORES_FILE = "scores.json"


class LocalScoreStore:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._base / SCORES_FILE

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_json(self) -> Any:
        return json.loads(self.path.read_text())

    def _write_json(self, data: Any) -> None:
        self.path.write_text(json.dumps(data, indent=2))

    # ------------------------------------------------------------------
    # Scores
    # ------------------------------------------------------------------

    def load(self) -> ScoreRecord | None:
        """Return the stored record, or None if nothing usable is stored."""
        if not self.path.exists():
            return None
        try:
            data = self._read_json()
            return ScoreRecord(
                current_score=int(data.get("score", 0)),
                high_score=int(data.get("highScore", 0)),
            )
        except (OSError, json.JSONDecodeError, AttributeError, TypeError, ValueError):
            logger.warning("Ignoring unreadable local scores at %s", self.path)
            return None

    def save(self, record: ScoreRecord) -> None:
        self._write_json({"score": record.current_score, "highScore": record.high_score})

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
