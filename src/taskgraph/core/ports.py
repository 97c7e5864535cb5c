# src/taskgraph/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the entity store and the console.

The store depends on this Protocol instead of the Neo4j gateway directly,
so tests can plug in an in-memory backend.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Protocol

from ..tasks.task_models import Category, Priority, RepeatPattern, Task


class TaskGateway(Protocol):
    async def connect(self) -> None: ...
    async def disconnect(self) -> None: ...

    # Tasks
    async def create_task(
            self,
            *,
            title: str,
            description: str | None = None,
            completed: bool = False,
            due_date: datetime | None = None,
            reminder_time: datetime | None = None,
            category: str | None = None,
            priority: Priority | str | None = None,
            repeat: RepeatPattern | None = None,
            notes: str | None = None,
            symbol: str | None = None,
    ) -> Task: ...

    async def get_task_by_id(self, task_id: str) -> Task | None: ...
    async def get_all_tasks(self) -> list[Task]: ...
    async def update_task(self, task_id: str, changes: Mapping[str, Any]) -> Task | None: ...
    async def delete_task(self, task_id: str) -> bool: ...

    # Categories
    async def create_category(self, *, name: str, color: str, icon: str | None = None) -> Category: ...
    async def get_category_by_id(self, category_id: str) -> Category | None: ...
    async def get_all_categories(self) -> list[Category]: ...
    async def update_category(self, category_id: str, changes: Mapping[str, Any]) -> Category | None: ...
    async def delete_category(self, category_id: str) -> bool: ...

    # Relationship
    async def assign_task_to_category(self, task_id: str, category_id: str) -> Task: ...
    async def get_tasks_by_category(self, category_id: str) -> list[Task]: ...
