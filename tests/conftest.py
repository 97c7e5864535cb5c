# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskgraph.cli.bootstrap import create_initial_state
from taskgraph.core.state import AppState
from taskgraph.tasks.entity_store import EntityStore

from .fakes import InMemoryGateway


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the console commands.

    A SimpleNamespace keeps tests independent of the real environment / .env.
    """
    return SimpleNamespace(
        app_name="taskgraph-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        neo4j_uri="neo4j://test:7687",
        neo4j_username="neo4j",
        neo4j_password="secret",
        neo4j_database=None,
        upcoming_days=7,
    )


@pytest.fixture()
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture()
def store(gateway: InMemoryGateway) -> EntityStore:
    return EntityStore(gateway)


@pytest.fixture()
def state(settings: SimpleNamespace, gateway: InMemoryGateway) -> AppState:
    """AppState wired with the in-memory gateway instead of Neo4j."""
    return create_initial_state(settings=settings, gateway=gateway)
