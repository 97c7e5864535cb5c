# src/taskgraph/tasks/entity_store.py

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Mapping
from datetime import datetime
from typing import Any

from ..core.ports import TaskGateway
from .task_models import Category, Priority, RepeatPattern, Task

logger = logging.getLogger(__name__)

MSG_CONNECT = "Failed to connect to database. Please try again later."
MSG_FETCH_TASKS = "Failed to fetch tasks. Please try again later."
MSG_FETCH_CATEGORIES = "Failed to fetch categories. Please try again later."
MSG_ADD_TASK = "Failed to add task. Please try again later."
MSG_UPDATE_TASK = "Failed to update task. Please try again later."
MSG_DELETE_TASK = "Failed to delete task. Please try again later."
MSG_ADD_CATEGORY = "Failed to add category. Please try again later."
MSG_UPDATE_CATEGORY = "Failed to update category. Please try again later."
MSG_DELETE_CATEGORY = "Failed to delete category. Please try again later."
MSG_ASSIGN = "Failed to assign task to category. Please try again later."
MSG_TASKS_BY_CATEGORY = "Failed to fetch tasks by category. Please try again later."


class EntityStore:
    """
    In-memory cache of the loaded tasks and categories.

    Every operation:
    - marks itself in flight (loading is derived from the in-flight count),
    - calls the gateway,
    - reconciles only the affected entity (no full refetch),
    - clears `error` on success, or records a static message, logs and re-raises.

    Concurrent operations are not serialized: the last response to arrive wins.
    """

    def __init__(self, gateway: TaskGateway) -> None:
        self._gateway = gateway
        self.tasks: list[Task] = []
        self.categories: list[Category] = []
        self.error: str | None = None
        self._in_flight = 0

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def pending_operations(self) -> int:
        return self._in_flight

    @contextlib.asynccontextmanager
    async def _operation(self, name: str, failure_message: str) -> AsyncIterator[None]:
        self._in_flight += 1
        try:
            yield
        except Exception:
            logger.exception("EntityStore %s failed", name)
            self.error = failure_message
            raise
        else:
            self.error = None
        finally:
            self._in_flight -= 1

    # ---- lifecycle ----

    async def initialize(self) -> bool:
        """
        Connect, then load tasks and categories concurrently.

        Failures leave an error message and are not retried or re-raised.
        """
        try:
            async with self._operation("connect", MSG_CONNECT):
                await self._gateway.connect()
        except Exception:
            return False

        results = await asyncio.gather(
            self.fetch_tasks(),
            self.fetch_categories(),
            return_exceptions=True,
        )
        ok = not any(isinstance(r, BaseException) for r in results)
        logger.info(
            "EntityStore initialized ok=%s tasks=%d categories=%d",
            ok,
            len(self.tasks),
            len(self.categories),
        )
        return ok

    async def close(self) -> None:
        await self._gateway.disconnect()

    async def fetch_tasks(self) -> list[Task]:
        async with self._operation("fetch_tasks", MSG_FETCH_TASKS):
            self.tasks = await self._gateway.get_all_tasks()
        return self.tasks

    async def fetch_categories(self) -> list[Category]:
        async with self._operation("fetch_categories", MSG_FETCH_CATEGORIES):
            self.categories = await self._gateway.get_all_categories()
        return self.categories

    # ---- lookups ----

    def find_task(self, task_id: str) -> Task | None:
        return next((t for t in self.tasks if t.id == task_id), None)

    def find_category(self, category_id: str) -> Category | None:
        return next((c for c in self.categories if c.id == category_id), None)

    def _replace_task(self, task: Task) -> None:
        self.tasks = [task if t.id == task.id else t for t in self.tasks]

    # ---- tasks ----

    async def add_task(
        self,
        *,
        title: str,
        description: str | None = None,
        due_date: datetime | None = None,
        reminder_time: datetime | None = None,
        category: str | None = None,
        priority: Priority | str | None = None,
        repeat: RepeatPattern | None = None,
        notes: str | None = None,
        symbol: str | None = None,
    ) -> Task:
        async with self._operation("add_task", MSG_ADD_TASK):
            task = await self._gateway.create_task(
                title=title,
                description=description,
                completed=False,
                due_date=due_date,
                reminder_time=reminder_time,
                category=category,
                priority=priority,
                repeat=repeat,
                notes=notes,
                symbol=symbol,
            )
            self.tasks = [*self.tasks, task]
        return task

    async def update_task(self, task_id: str, changes: Mapping[str, Any]) -> Task | None:
        async with self._operation("update_task", MSG_UPDATE_TASK):
            task = await self._gateway.update_task(task_id, changes)
            if task is not None:
                self._replace_task(task)
        return task

    async def toggle_task_completion(self, task_id: str, completed: bool) -> Task | None:
        return await self.update_task(task_id, {"completed": completed})

    async def delete_task(self, task_id: str) -> bool:
        async with self._operation("delete_task", MSG_DELETE_TASK):
            deleted = await self._gateway.delete_task(task_id)
            if deleted:
                self.tasks = [t for t in self.tasks if t.id != task_id]
        return deleted

    # ---- categories ----

    async def add_category(self, *, name: str, color: str, icon: str | None = None) -> Category:
        async with self._operation("add_category", MSG_ADD_CATEGORY):
            category = await self._gateway.create_category(name=name, color=color, icon=icon)
            self.categories = [*self.categories, category]
        return category

    async def update_category(self, category_id: str, changes: Mapping[str, Any]) -> Category | None:
        async with self._operation("update_category", MSG_UPDATE_CATEGORY):
            category = await self._gateway.update_category(category_id, changes)
            if category is not None:
                self.categories = [
                    category if c.id == category_id else c for c in self.categories
                ]
        return category

    async def delete_category(self, category_id: str) -> bool:
        """Remove the category. Tasks pointing at it keep their `category` value."""
        async with self._operation("delete_category", MSG_DELETE_CATEGORY):
            deleted = await self._gateway.delete_category(category_id)
            if deleted:
                self.categories = [c for c in self.categories if c.id != category_id]
        return deleted

    # ---- relationship ----

    async def assign_task_to_category(self, task_id: str, category_id: str) -> None:
        """
        Link a task to a category.

        Only a task already in the cache is refreshed; an unloaded task shows
        the new category after the next fetch_tasks().
        """
        async with self._operation("assign_task_to_category", MSG_ASSIGN):
            task = await self._gateway.assign_task_to_category(task_id, category_id)
            if self.find_task(task_id) is not None:
                self._replace_task(task)

    async def get_tasks_by_category(self, category_id: str) -> list[Task]:
        async with self._operation("get_tasks_by_category", MSG_TASKS_BY_CATEGORY):
            return await self._gateway.get_tasks_by_category(category_id)
