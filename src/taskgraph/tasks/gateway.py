# src/taskgraph/tasks/gateway.py

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from neo4j import AsyncDriver, AsyncGraphDatabase, Record
from neo4j.exceptions import AuthError, DriverError, Neo4jError, ServiceUnavailable, SessionExpired

from ..errors import BackendConnectionError, BackendError, NotFoundError
from .recurrence import repeat_from_str, repeat_to_str
from .task_models import (
    CATEGORY_FIELDS,
    DEFAULT_CATEGORY_ICON,
    PROTECTED_FIELDS,
    TASK_FIELDS,
    Category,
    Priority,
    RepeatPattern,
    Task,
    require_text,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)

# python field name -> node property name
_TASK_PROPS = {
    "title": "title",
    "description": "description",
    "completed": "completed",
    "due_date": "dueDate",
    "reminder_time": "reminderTime",
    "category": "category",
    "priority": "priority",
    "repeat": "repeat",
    "notes": "notes",
    "symbol": "symbol",
}

# Keeps the BELONGS_TO edge in step with the scalar `category` property of `t`.
_LINK_CATEGORY = """
OPTIONAL MATCH (c:Category {id: t.category})
FOREACH (ignored IN CASE WHEN c IS NULL THEN [] ELSE [1] END |
    MERGE (t)-[:BELONGS_TO]->(c))
"""

_CREATE_TASK = (
    """
CREATE (t:Task {
    id: randomUUID(),
    title: $title,
    description: $description,
    completed: $completed,
    dueDate: $dueDate,
    reminderTime: $reminderTime,
    category: $category,
    priority: $priority,
    repeat: $repeat,
    notes: $notes,
    symbol: $symbol,
    createdAt: datetime(),
    updatedAt: datetime()
})
WITH t
"""
    + _LINK_CATEGORY
    + "RETURN t"
)

_UPDATE_TASK = """
MATCH (t:Task {id: $id})
SET t += $changes, t.updatedAt = datetime()
RETURN t
"""

_UPDATE_TASK_AND_CATEGORY = (
    """
MATCH (t:Task {id: $id})
SET t += $changes, t.updatedAt = datetime()
WITH t
OPTIONAL MATCH (t)-[old:BELONGS_TO]->(:Category)
DELETE old
WITH DISTINCT t
"""
    + _LINK_CATEGORY
    + "RETURN t"
)

_ASSIGN_TASK = """
MATCH (t:Task {id: $taskId})
MATCH (c:Category {id: $categoryId})
OPTIONAL MATCH (t)-[old:BELONGS_TO]->(:Category)
DELETE old
WITH DISTINCT t, c
MERGE (t)-[:BELONGS_TO]->(c)
SET t.category = c.id, t.updatedAt = datetime()
RETURN t
"""


def _to_datetime(value: Any) -> datetime | None:
    """Accept neo4j temporal values, python datetimes and ISO strings."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    to_native = getattr(value, "to_native", None)
    if to_native is not None:
        return to_native()
    raise BackendError(f"Unsupported temporal value: {value!r}")


def _opt_str(value: Any) -> str | None:
    return None if value is None else str(value)


def node_to_task(node: Any) -> Task:
    p = dict(node)
    return Task(
        id=str(p["id"]),
        title=str(p.get("title") or ""),
        completed=bool(p.get("completed") or False),
        created_at=_to_datetime(p.get("createdAt")) or _EPOCH,
        updated_at=_to_datetime(p.get("updatedAt")) or _EPOCH,
        description=_opt_str(p.get("description")),
        due_date=_to_datetime(p.get("dueDate")),
        reminder_time=_to_datetime(p.get("reminderTime")),
        category=_opt_str(p.get("category")),
        priority=Priority.from_db(p.get("priority")),
        repeat=repeat_from_str(p.get("repeat")),
        notes=_opt_str(p.get("notes")),
        symbol=_opt_str(p.get("symbol")),
    )


def node_to_category(node: Any) -> Category:
    p = dict(node)
    return Category(
        id=str(p["id"]),
        name=str(p.get("name") or ""),
        color=str(p.get("color") or ""),
        icon=str(p.get("icon") or DEFAULT_CATEGORY_ICON),
    )


def _encode_task_value(field_name: str, value: Any) -> Any:
    if value is None:
        return None
    if field_name == "title":
        return require_text(value, "title")
    if field_name == "completed":
        return bool(value)
    if field_name == "priority":
        return Priority(value).value
    if field_name == "repeat":
        if not isinstance(value, RepeatPattern):
            raise ValueError("repeat must be a RepeatPattern")
        return repeat_to_str(value)
    if field_name in ("due_date", "reminder_time") and not isinstance(value, datetime):
        raise ValueError(f"{field_name} must be a datetime")
    return value


def task_changes_to_props(changes: Mapping[str, Any]) -> dict[str, Any]:
    """
    Translate a partial task update into node properties.

    id / created_at / updated_at are dropped, unknown fields are rejected.
    Property names come only from the whitelist; values are always sent as parameters.
    """
    props: dict[str, Any] = {}
    for key, value in changes.items():
        if key in PROTECTED_FIELDS:
            logger.debug("Ignoring backend-owned field in task update: %s", key)
            continue
        if key not in TASK_FIELDS:
            raise ValueError(f"Unknown task field: {key}")
        if key == "title" and value is None:
            raise ValueError("title is required")
        props[_TASK_PROPS[key]] = _encode_task_value(key, value)
    return props


def category_changes_to_props(changes: Mapping[str, Any]) -> dict[str, Any]:
    props: dict[str, Any] = {}
    for key, value in changes.items():
        if key == "id":
            continue
        if key not in CATEGORY_FIELDS:
            raise ValueError(f"Unknown category field: {key}")
        if key == "name":
            value = require_text(value, "name")
        props[key] = value
    return props


DriverFactory = Callable[..., AsyncDriver]


class Neo4jGateway:
    """
    Neo4j-backed persistence for tasks, categories and BELONGS_TO edges.

    Session handling:
    - each operation opens its own session and closes it on every exit path
    - no retries; driver errors are mapped onto taskgraph.errors and re-raised
    """

    def __init__(
        self,
        uri: str,
        username: str,
        password: str,
        *,
        database: str | None = None,
        driver_factory: DriverFactory | None = None,
    ) -> None:
        self._uri = uri
        self._username = username
        self._password = password
        self._database = database
        self._driver_factory = driver_factory or AsyncGraphDatabase.driver
        self._driver: AsyncDriver | None = None

    @property
    def connected(self) -> bool:
        return self._driver is not None

    async def connect(self) -> None:
        if self._driver is not None:
            return
        driver: AsyncDriver | None = None
        try:
            driver = self._driver_factory(self._uri, auth=(self._username, self._password))
            await driver.verify_connectivity()
        except (Neo4jError, DriverError, OSError, ValueError) as exc:
            if driver is not None:
                await driver.close()
            logger.error("Failed to connect to Neo4j at %s: %s", self._uri, exc)
            raise BackendConnectionError(f"Cannot connect to {self._uri}: {exc}") from exc
        self._driver = driver
        logger.info("Connected to Neo4j at %s", self._uri)

    async def disconnect(self) -> None:
        if self._driver is None:
            return
        driver, self._driver = self._driver, None
        await driver.close()
        logger.info("Disconnected from Neo4j")

    # ---- low-level helpers ----

    async def _run(self, query: str, **params: Any) -> list[Record]:
        if self._driver is None:
            raise BackendConnectionError("Neo4j driver is not connected")
        try:
            async with self._driver.session(database=self._database) as session:
                result = await session.run(query, params)
                return [record async for record in result]
        except (ServiceUnavailable, SessionExpired, AuthError) as exc:
            raise BackendConnectionError(str(exc)) from exc
        except (Neo4jError, DriverError) as exc:
            raise BackendError(str(exc)) from exc

    # ---- tasks ----

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
    ) -> Task:
        props = task_changes_to_props(
            {
                "title": title,
                "description": description,
                "completed": completed,
                "due_date": due_date,
                "reminder_time": reminder_time,
                "category": category,
                "priority": priority,
                "repeat": repeat,
                "notes": notes,
                "symbol": symbol,
            }
        )
        records = await self._run(_CREATE_TASK, **props)
        if not records:
            raise BackendError("CREATE returned no task")
        task = node_to_task(records[0]["t"])
        logger.debug("Task created id=%s category=%s", task.id, task.category)
        return task

    async def get_task_by_id(self, task_id: str) -> Task | None:
        records = await self._run("MATCH (t:Task {id: $id}) RETURN t", id=task_id)
        return node_to_task(records[0]["t"]) if records else None

    async def get_all_tasks(self) -> list[Task]:
        records = await self._run("MATCH (t:Task) RETURN t")
        return [node_to_task(r["t"]) for r in records]

    async def update_task(self, task_id: str, changes: Mapping[str, Any]) -> Task | None:
        props = task_changes_to_props(changes)
        query = _UPDATE_TASK_AND_CATEGORY if "category" in props else _UPDATE_TASK
        records = await self._run(query, id=task_id, changes=props)
        if not records:
            return None
        logger.debug("Task updated id=%s fields=%s", task_id, sorted(props))
        return node_to_task(records[0]["t"])

    async def delete_task(self, task_id: str) -> bool:
        records = await self._run(
            "MATCH (t:Task {id: $id}) DETACH DELETE t RETURN count(t) AS deleted",
            id=task_id,
        )
        deleted = int(records[0]["deleted"]) if records else 0
        return deleted > 0

    # ---- categories ----

    async def create_category(self, *, name: str, color: str, icon: str | None = None) -> Category:
        records = await self._run(
            """
            CREATE (c:Category {id: randomUUID(), name: $name, color: $color, icon: $icon})
            RETURN c
            """,
            name=require_text(name, "name"),
            color=color,
            icon=icon or None,
        )
        if not records:
            raise BackendError("CREATE returned no category")
        return node_to_category(records[0]["c"])

    async def get_category_by_id(self, category_id: str) -> Category | None:
        records = await self._run("MATCH (c:Category {id: $id}) RETURN c", id=category_id)
        return node_to_category(records[0]["c"]) if records else None

    async def get_all_categories(self) -> list[Category]:
        records = await self._run("MATCH (c:Category) RETURN c")
        return [node_to_category(r["c"]) for r in records]

    async def update_category(self, category_id: str, changes: Mapping[str, Any]) -> Category | None:
        props = category_changes_to_props(changes)
        records = await self._run(
            "MATCH (c:Category {id: $id}) SET c += $changes RETURN c",
            id=category_id,
            changes=props,
        )
        return node_to_category(records[0]["c"]) if records else None

    async def delete_category(self, category_id: str) -> bool:
        # Referencing tasks keep their scalar `category`; only the edges go away.
        records = await self._run(
            "MATCH (c:Category {id: $id}) DETACH DELETE c RETURN count(c) AS deleted",
            id=category_id,
        )
        deleted = int(records[0]["deleted"]) if records else 0
        return deleted > 0

    # ---- relationship ----

    async def assign_task_to_category(self, task_id: str, category_id: str) -> Task:
        records = await self._run(_ASSIGN_TASK, taskId=task_id, categoryId=category_id)
        if records:
            return node_to_task(records[0]["t"])

        # Nothing matched: report which side is missing.
        if await self.get_task_by_id(task_id) is None:
            raise NotFoundError("Task", task_id)
        raise NotFoundError("Category", category_id)

    async def get_tasks_by_category(self, category_id: str) -> list[Task]:
        records = await self._run(
            "MATCH (t:Task)-[:BELONGS_TO]->(:Category {id: $categoryId}) RETURN t",
            categoryId=category_id,
        )
        return [node_to_task(r["t"]) for r in records]
