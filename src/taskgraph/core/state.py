# src/taskgraph/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.entity_store import EntityStore
from ..tasks.views import SortKey
from .ports import TaskGateway


@dataclass
class AppState:
    """
    Everything the console needs, built once in cli.bootstrap and passed explicitly.

    The list-view settings (search / completion filter / sort key) live here,
    not in the store: they only shape what is displayed.
    """

    settings: object
    gateway: TaskGateway
    store: EntityStore

    search: str | None = None
    completed_filter: bool | None = None
    sort_by: SortKey = SortKey.DUE_DATE
