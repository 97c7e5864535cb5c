# tests/test_scenarios.py

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from taskgraph.tasks.entity_store import EntityStore
from taskgraph.tasks.task_models import Priority, RepeatPattern, RepeatType
from taskgraph.tasks.views import completion_ratio, today_tasks, upcoming_tasks

from .fakes import InMemoryGateway


def _midnight(offset_days: int = 0) -> datetime:
    now = datetime.now()
    return now.replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=offset_days)


@pytest.mark.asyncio
async def test_today_upcoming_and_progress(gateway: InMemoryGateway) -> None:
    store = EntityStore(gateway)
    assert await store.initialize()

    milk = await store.add_task(title="Buy milk", due_date=_midnight().replace(hour=18))
    rent = await store.add_task(title="Pay rent", due_date=_midnight(7).replace(hour=9))

    assert [t.id for t in today_tasks(store.tasks)] == [milk.id]
    assert [t.id for t in upcoming_tasks(store.tasks)] == [rent.id]
    assert completion_ratio(store.tasks) == 0.0

    await store.toggle_task_completion(milk.id, True)
    assert completion_ratio(store.tasks) == 0.5
    assert store.error is None
    assert not store.loading


@pytest.mark.asyncio
async def test_created_task_reads_back_identically(gateway: InMemoryGateway) -> None:
    store = EntityStore(gateway)
    assert await store.initialize()
    category = await store.add_category(name="Home", color="#4A90E2")

    created = await store.add_task(
        title="Water plants",
        description="balcony",
        due_date=_midnight(2),
        priority=Priority.MEDIUM,
        category=category.id,
        repeat=RepeatPattern(type=RepeatType.WEEKLY, interval=1, days_of_week=(6,)),
        notes="use the blue can",
        symbol="leaf",
    )

    fetched = await gateway.get_task_by_id(created.id)
    assert fetched == created
    assert [t.id for t in await store.get_tasks_by_category(category.id)] == [created.id]


@pytest.mark.asyncio
async def test_fresh_store_after_restart_sees_persisted_rows(gateway: InMemoryGateway) -> None:
    first = EntityStore(gateway)
    assert await first.initialize()
    await first.add_task(title="Persisted")
    await first.close()

    second = EntityStore(gateway)
    assert await second.initialize()
    assert [t.title for t in second.tasks] == ["Persisted"]
