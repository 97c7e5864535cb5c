# tests/test_entity_store.py

from __future__ import annotations

import asyncio

import pytest

from taskgraph.errors import BackendError, NotFoundError
from taskgraph.tasks.entity_store import (
    MSG_ADD_TASK,
    MSG_ASSIGN,
    MSG_CONNECT,
    MSG_FETCH_CATEGORIES,
    MSG_UPDATE_TASK,
    EntityStore,
)

from .fakes import InMemoryGateway


async def _seeded(gateway: InMemoryGateway) -> EntityStore:
    await gateway.connect()
    await gateway.create_task(title="Existing")
    await gateway.create_category(name="Home", color="#f00")
    store = EntityStore(gateway)
    assert await store.initialize()
    return store


@pytest.mark.asyncio
async def test_initialize_connects_then_loads_both_collections(gateway: InMemoryGateway) -> None:
    store = await _seeded(gateway)
    assert [t.title for t in store.tasks] == ["Existing"]
    assert [c.name for c in store.categories] == ["Home"]
    assert store.error is None
    assert not store.loading
    assert gateway.calls.index("connect") < gateway.calls.index("get_all_tasks")


@pytest.mark.asyncio
async def test_initialize_connect_failure_sets_error_without_raising(gateway: InMemoryGateway) -> None:
    gateway.fail.add("connect")
    store = EntityStore(gateway)

    assert await store.initialize() is False
    assert store.error == MSG_CONNECT
    assert not store.loading
    assert "get_all_tasks" not in gateway.calls
    assert gateway.calls.count("connect") == 1


@pytest.mark.asyncio
async def test_initialize_fetch_failure_keeps_other_collection(gateway: InMemoryGateway) -> None:
    await gateway.connect()
    await gateway.create_task(title="Kept")
    gateway.fail.add("get_all_categories")
    store = EntityStore(gateway)

    assert await store.initialize() is False
    assert [t.title for t in store.tasks] == ["Kept"]
    assert store.error == MSG_FETCH_CATEGORIES
    assert not store.loading


@pytest.mark.asyncio
async def test_add_task_appends_without_refetch(gateway: InMemoryGateway) -> None:
    store = await _seeded(gateway)
    fetches = gateway.calls.count("get_all_tasks")

    task = await store.add_task(title="Buy milk", priority="high")

    assert task.completed is False
    assert [t.title for t in store.tasks] == ["Existing", "Buy milk"]
    assert gateway.calls.count("get_all_tasks") == fetches
    assert store.error is None


@pytest.mark.asyncio
async def test_failed_mutation_sets_message_reraises_and_clears_loading(gateway: InMemoryGateway) -> None:
    store = await _seeded(gateway)
    gateway.fail.add("create_task")

    with pytest.raises(BackendError):
        await store.add_task(title="Nope")
    assert store.error == MSG_ADD_TASK
    assert not store.loading
    assert len(store.tasks) == 1

    # next success clears the error
    gateway.fail.clear()
    await store.add_task(title="Yes")
    assert store.error is None


@pytest.mark.asyncio
async def test_blank_title_is_rejected_and_flagged(gateway: InMemoryGateway) -> None:
    store = await _seeded(gateway)
    with pytest.raises(ValueError):
        await store.add_task(title="  ")
    assert store.error == MSG_ADD_TASK

    task_id = store.tasks[0].id
    with pytest.raises(ValueError):
        await store.update_task(task_id, {"title": ""})
    assert store.error == MSG_UPDATE_TASK
    assert store.tasks[0].title == "Existing"


@pytest.mark.asyncio
async def test_update_replaces_only_the_affected_task(gateway: InMemoryGateway) -> None:
    store = await _seeded(gateway)
    other = await store.add_task(title="Other")
    target = store.tasks[0]

    updated = await store.update_task(target.id, {"title": "Renamed", "id": "hijack"})

    assert updated is not None
    assert updated.id == target.id
    assert updated.created_at == target.created_at
    assert updated.updated_at >= target.updated_at
    assert store.find_task(target.id).title == "Renamed"
    assert store.find_task(other.id) is other


@pytest.mark.asyncio
async def test_update_missing_task_returns_none_and_keeps_cache(gateway: InMemoryGateway) -> None:
    store = await _seeded(gateway)
    before = list(store.tasks)
    assert await store.update_task("ghost", {"completed": True}) is None
    assert store.tasks == before
    assert store.error is None


@pytest.mark.asyncio
async def test_toggle_completion_is_an_update(gateway: InMemoryGateway) -> None:
    store = await _seeded(gateway)
    task_id = store.tasks[0].id

    task = await store.toggle_task_completion(task_id, True)
    assert task is not None and task.completed
    assert store.find_task(task_id).completed
    assert "update_task" in gateway.calls


@pytest.mark.asyncio
async def test_delete_task_removes_from_cache(gateway: InMemoryGateway) -> None:
    store = await _seeded(gateway)
    task_id = store.tasks[0].id

    assert await store.delete_task(task_id) is True
    assert store.tasks == []
    assert await store.delete_task(task_id) is False


@pytest.mark.asyncio
async def test_category_add_update_delete(gateway: InMemoryGateway) -> None:
    store = await _seeded(gateway)

    cat = await store.add_category(name="Work", color="#00f")
    assert cat.icon == "tag"
    assert [c.name for c in store.categories] == ["Home", "Work"]

    renamed = await store.update_category(cat.id, {"name": "Office", "icon": "briefcase"})
    assert renamed is not None
    assert store.find_category(cat.id).name == "Office"

    assert await store.delete_category(cat.id) is True
    assert [c.name for c in store.categories] == ["Home"]


@pytest.mark.asyncio
async def test_assign_updates_cached_task_only_when_loaded(gateway: InMemoryGateway) -> None:
    store = await _seeded(gateway)
    cat_id = store.categories[0].id
    cached_id = store.tasks[0].id

    await store.assign_task_to_category(cached_id, cat_id)
    assert store.find_task(cached_id).category == cat_id

    # Created behind the store's back: the cache does not learn about it.
    hidden = await gateway.create_task(title="Hidden")
    await store.assign_task_to_category(hidden.id, cat_id)
    assert store.find_task(hidden.id) is None
    assert gateway.tasks[hidden.id].category == cat_id

    linked = await store.get_tasks_by_category(cat_id)
    assert {t.id for t in linked} == {cached_id, hidden.id}


@pytest.mark.asyncio
async def test_assign_missing_ids_raise_not_found(gateway: InMemoryGateway) -> None:
    store = await _seeded(gateway)
    with pytest.raises(NotFoundError):
        await store.assign_task_to_category(store.tasks[0].id, "ghost")
    assert store.error == MSG_ASSIGN
    assert not store.loading


@pytest.mark.asyncio
async def test_loading_tracks_overlapping_operations(gateway: InMemoryGateway) -> None:
    store = await _seeded(gateway)
    task_id = store.tasks[0].id
    slow_gate = asyncio.Event()
    gateway.gates["create_task"] = slow_gate

    slow = asyncio.create_task(store.add_task(title="Slow"))
    await asyncio.sleep(0)
    assert store.loading
    assert store.pending_operations == 1

    # A second operation finishing first must not clear the flag for the slow one.
    await store.toggle_task_completion(task_id, True)
    assert store.loading
    assert store.pending_operations == 1

    slow_gate.set()
    await slow
    assert not store.loading
    assert store.pending_operations == 0


@pytest.mark.asyncio
async def test_close_disconnects_gateway(gateway: InMemoryGateway) -> None:
    store = await _seeded(gateway)
    await store.close()
    assert gateway.connected is False


@pytest.mark.asyncio
async def test_deleted_category_leaves_task_reference_and_no_members(gateway: InMemoryGateway) -> None:
    store = await _seeded(gateway)
    cat_id = store.categories[0].id
    task_id = store.tasks[0].id
    await store.assign_task_to_category(task_id, cat_id)

    assert await store.delete_category(cat_id) is True
    assert store.find_task(task_id).category == cat_id
    assert await store.get_tasks_by_category(cat_id) == []

    await store.fetch_tasks()
    assert store.find_task(task_id).category == cat_id
