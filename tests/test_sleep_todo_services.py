from __future__ import annotations

import datetime

import pytest

from tasktracker.errors import NotFoundError, TrackerValidationError
from tasktracker.services.sleep import SleepService
from tasktracker.services.todos import TodoService

ZONE = "Asia/Kolkata"


@pytest.fixture
def sleep_service(repository, clock) -> SleepService:
    return SleepService(repository, clock=clock, default_timezone=ZONE)


@pytest.fixture
def todo_service(repository, clock) -> TodoService:
    return TodoService(repository, clock=clock, default_timezone=ZONE)


@pytest.mark.anyio
async def test_sleep_start_stop_records_duration(sleep_service, clock):
    started = await sleep_service.start("u1")
    assert started.date == datetime.date(2024, 3, 15)
    assert (await sleep_service.active("u1")).id == started.id

    clock.advance(hours=7)
    stopped = await sleep_service.stop("u1")

    assert stopped.duration == 7 * 60 * 60_000
    assert not stopped.is_active
    assert await sleep_service.active("u1") is None


@pytest.mark.anyio
async def test_second_sleep_start_is_rejected(sleep_service):
    await sleep_service.start("u1")

    with pytest.raises(TrackerValidationError, match="already in progress"):
        await sleep_service.start("u1")


@pytest.mark.anyio
async def test_stop_without_active_sleep(sleep_service):
    with pytest.raises(NotFoundError):
        await sleep_service.stop("u1")


@pytest.mark.anyio
async def test_sleep_analytics_and_history(sleep_service, clock):
    for hours in (6, 8):
        await sleep_service.start("u1")
        clock.advance(hours=hours)
        await sleep_service.stop("u1")
        clock.advance(hours=16)
    await sleep_service.start("u1")

    summary = await sleep_service.analytics("u1")
    history = await sleep_service.history("u1", "2024-03-15", "2024-03-15")

    assert summary["total_sessions"] == 2
    assert summary["average_duration"] == 7 * 60 * 60_000
    assert len(history) == 1
    assert len(await sleep_service.history("u1")) == 3


@pytest.mark.anyio
async def test_todos_carry_forward_and_flag_overdue(todo_service, clock):
    stale = await todo_service.create("u1", "Call bank")
    done = await todo_service.create("u1", "Pay rent")
    await todo_service.update("u1", done.id, {"completed": True})

    clock.advance(days=1)
    listed = await todo_service.list_today("u1")

    assert [todo.id for todo in listed] == [stale.id]
    assert listed[0].is_overdue
    assert listed[0].date == datetime.date(2024, 3, 16)


@pytest.mark.anyio
async def test_todo_delete_restore_and_clear(todo_service):
    todo = await todo_service.create("u1", "Water plants", deadline="2024-03-20")
    assert todo.deadline == datetime.date(2024, 3, 20)

    await todo_service.delete("u1", todo.id)
    assert await todo_service.list_today("u1") == []
    restored = await todo_service.restore("u1", todo.id)
    assert not restored.deleted

    await todo_service.update("u1", todo.id, {"completed": True})
    assert await todo_service.clear_completed("u1") == 1
    assert await todo_service.list_today("u1") == []


@pytest.mark.anyio
async def test_todo_validation(todo_service):
    with pytest.raises(TrackerValidationError):
        await todo_service.create("u1", "   ")
    with pytest.raises(TrackerValidationError):
        await todo_service.create("u1", "x", deadline="next week")
    with pytest.raises(NotFoundError):
        await todo_service.update("u1", "missing", {"completed": True})


@pytest.mark.anyio
async def test_todo_removed_before_reload_is_not_found(todo_service, repository, monkeypatch):
    todo = await todo_service.create("u1", "Water plants")

    async def vanished(owner_id, todo_id):
        return None

    monkeypatch.setattr(repository, "get_todo", vanished)

    with pytest.raises(NotFoundError, match="Todo not found"):
        await todo_service.update("u1", todo.id, {"completed": True})
