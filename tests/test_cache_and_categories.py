from __future__ import annotations

import pytest

from tasktracker.errors import ConflictError, NotFoundError
from tasktracker.services.cache import TTLCache, cache_key
from tasktracker.services.categories import CategoryService
from tasktracker.tasks.service import TaskService


class Ticker:
    def __init__(self) -> None:
        self.value = 0.0

    def __call__(self) -> float:
        return self.value


def test_cache_key_is_owner_scoped() -> None:
    assert cache_key("u1", "categories") == "user:u1:categories"


@pytest.mark.anyio
async def test_entries_expire_after_ttl():
    ticker = Ticker()
    cache = TTLCache(10, clock=ticker)

    await cache.set("k", [1])
    ticker.value = 9.9
    assert await cache.get("k") == [1]
    ticker.value = 10
    assert await cache.get("k") is None


@pytest.mark.anyio
async def test_invalidate_by_prefix():
    cache = TTLCache(10)
    await cache.set("user:u1:categories", 1)
    await cache.set("user:u1:templates", 2)
    await cache.set("user:u2:categories", 3)

    assert await cache.invalidate("user:u1:") == 2
    assert await cache.get("user:u2:categories") == 3


@pytest.mark.anyio
async def test_disabled_cache_always_loads():
    cache = TTLCache(10, enabled=False)
    calls = 0

    async def loader():
        nonlocal calls
        calls += 1
        return calls

    assert await cache.get_or_load("k", loader) == 1
    assert await cache.get_or_load("k", loader) == 2


@pytest.mark.anyio
async def test_category_crud_with_cache(repository):
    service = CategoryService(repository, TTLCache(60))

    created = await service.create_category("u1", "Work")
    assert created.color == "#6366f1"
    assert [c.name for c in await service.list_categories("u1")] == ["Work"]

    renamed = await service.update_category("u1", created.id, {"name": "Job"})
    assert renamed.name == "Job"
    assert [c.name for c in await service.list_categories("u1")] == ["Job"]

    with pytest.raises(ConflictError):
        await service.create_category("u1", "Job")

    await service.delete_category("u1", created.id)
    assert await service.list_categories("u1") == []
    with pytest.raises(NotFoundError):
        await service.delete_category("u1", created.id)


@pytest.mark.anyio
async def test_category_rename_leaves_tasks_untouched(repository):
    categories = CategoryService(repository)
    tasks = TaskService(repository)
    category = await categories.create_category("u1", "Work")
    task = await tasks.create_task(
        "u1", name="Report", category_id=category.id, date="2030-01-01"
    )

    await categories.update_category("u1", category.id, {"name": "Office"})
    await categories.delete_category("u1", category.id)

    assert (await tasks.get_task("u1", task.id)).category == "Work"
