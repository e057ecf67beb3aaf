"""Runtime settings, read from the environment (and .env at the repo root)."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

ROOT = Path(__file__).parent.parent
DEFAULT_DATA_DIR = ROOT / "data"


class Settings(BaseModel):
    api_base_url: str = "http://localhost:3000"
    data_dir: Path = DEFAULT_DATA_DIR
    http_timeout: float = 10.0
    host: str = "0.0.0.0"
    port: int = 13013
    log_level: str = "INFO"


def load_settings() -> Settings:
    load_dotenv(ROOT / ".env")
    return Settings(
        api_base_url=os.getenv("API_BASE_URL", "http://localhost:3000"),
        data_dir=Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR))),
        http_timeout=float(os.getenv("HTTP_TIMEOUT", "10")),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "13013")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
