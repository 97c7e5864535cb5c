# src/taskgraph/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the Neo4j gateway into the entity store and AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import TaskGateway
from ..core.state import AppState
from ..tasks.entity_store import EntityStore
from ..tasks.gateway import Neo4jGateway

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, gateway: TaskGateway | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Settings and gateway are injectable so tests can run without a database.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if gateway is None:
        gateway = Neo4jGateway(
            settings.neo4j_uri,
            settings.neo4j_username,
            settings.neo4j_password,
            database=settings.neo4j_database,
        )
        logger.debug("Using Neo4j gateway at %s", settings.neo4j_uri)

    return AppState(settings=settings, gateway=gateway, store=EntityStore(gateway))
