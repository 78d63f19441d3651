"""Centralised settings for the osint-graph backend.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from the package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _default_db_path() -> Path:
    return Path(
        os.environ.get(
            "OSINT_GRAPH_DB_PATH",
            Path.home() / ".cache" / "osint-graph.sqlite3",
        )
    ).expanduser()


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------
    db_path: Path = field(default_factory=_default_db_path)

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------
    zstd_level: int = field(
        default_factory=lambda: int(os.environ.get("OSINT_GRAPH_ZSTD_LEVEL", "3"))
    )
    max_upload_bytes: int = field(
        default_factory=lambda: int(
            os.environ.get("OSINT_GRAPH_MAX_UPLOAD_BYTES", str(100 * 1024 * 1024))
        )
    )

    # ------------------------------------------------------------------
    # HTTP server
    # ------------------------------------------------------------------
    host: str = field(
        default_factory=lambda: os.environ.get("OSINT_GRAPH_HOST", "127.0.0.1")
    )
    port: int = field(
        default_factory=lambda: int(os.environ.get("OSINT_GRAPH_PORT", "8189"))
    )
    cors_origins: list[str] = field(
        default_factory=lambda: [
            origin.strip()
            for origin in os.environ.get("OSINT_GRAPH_CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("OSINT_GRAPH_LOG_LEVEL", "INFO").upper()
    )


# Module-level singleton, import this everywhere:
#   from osint_graph.config import settings
settings = Settings()
