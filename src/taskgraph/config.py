# src/taskgraph/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- The plain NEO4J_* names are accepted as fallbacks for the prefixed ones.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKGRAPH"

DEFAULT_NEO4J_URI = "neo4j://localhost:7687"
DEFAULT_NEO4J_USERNAME = "neo4j"
DEFAULT_NEO4J_PASSWORD = "password"

logger = logging.getLogger(__name__)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Neo4j ----
    neo4j_uri: str
    neo4j_username: str
    neo4j_password: str
    neo4j_database: str | None

    # ---- Views ----
    upcoming_days: int

    @property
    def uses_default_credentials(self) -> bool:
        return self.neo4j_password == DEFAULT_NEO4J_PASSWORD

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskgraph") or "taskgraph"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskgraph"))

        neo4j_uri = (
            _first_env(_k("NEO4J_URI"), "NEO4J_URI", default=DEFAULT_NEO4J_URI) or DEFAULT_NEO4J_URI
        ).strip()
        neo4j_username = (
            _first_env(_k("NEO4J_USERNAME"), "NEO4J_USERNAME", default=DEFAULT_NEO4J_USERNAME)
            or DEFAULT_NEO4J_USERNAME
        ).strip()
        neo4j_password = (
            _first_env(_k("NEO4J_PASSWORD"), "NEO4J_PASSWORD", default=DEFAULT_NEO4J_PASSWORD)
            or DEFAULT_NEO4J_PASSWORD
        )
        neo4j_database = (_first_env(_k("NEO4J_DATABASE"), default="") or "").strip() or None

        upcoming_days = max(1, _env_int(_k("UPCOMING_DAYS"), 7))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            neo4j_uri=neo4j_uri,
            neo4j_username=neo4j_username,
            neo4j_password=neo4j_password,
            neo4j_database=neo4j_database,
            upcoming_days=upcoming_days,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Load settings once (reading .env on first use) and return the shared instance."""
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
        logger.debug(
            "Settings loaded: neo4j_uri=%s database=%s data_dir=%s",
            _SETTINGS.neo4j_uri,
            _SETTINGS.neo4j_database or "(default)",
            _SETTINGS.data_dir,
        )
    return _SETTINGS
