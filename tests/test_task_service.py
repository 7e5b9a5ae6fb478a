from __future__ import annotations

import datetime

import pytest

from tasktracker.errors import NotFoundError, TrackerValidationError
from tasktracker.services.analytics import AnalyticsService
from tasktracker.tasks.service import TaskService

UTC = datetime.timezone.utc
ZONE = "Asia/Kolkata"


@pytest.fixture
def service(repository, clock) -> TaskService:
    return TaskService(repository, clock=clock, default_timezone=ZONE)


@pytest.mark.anyio
async def test_past_automated_task_completes_on_creation(service):
    # Created on 2024-03-15 for 2024-03-10, no schedule.
    task = await service.create_task(
        "u1",
        name="Meditate",
        category="Health",
        date="2024-03-10",
        planned_time=1_800_000,
        is_automated=True,
    )

    assert len(task.sessions) == 1
    session = task.sessions[0]
    assert session.start_time == datetime.datetime(2024, 3, 9, 19, 30, tzinfo=UTC)
    assert session.duration == 1_800_000
    assert task.total_time == 1_800_000
    assert task.completion_count == 1
    assert task.day == "sunday"


@pytest.mark.anyio
async def test_auto_completion_is_idempotent_across_reads(service):
    await service.create_task(
        "u1",
        name="Meditate",
        category="Health",
        date="2024-03-10",
        planned_time=1_800_000,
        is_automated=True,
    )

    first = await service.list_week("u1", 2024, 2, 2)
    second = await service.list_week("u1", 2024, 2, 2)

    assert len(first) == len(second) == 1
    assert len(second[0].sessions) == 1
    assert second[0].total_time == 1_800_000
    assert second[0].completion_count == 1


@pytest.mark.anyio
async def test_future_automated_task_waits(service, clock):
    task = await service.create_task(
        "u1",
        name="Stretch",
        category="Health",
        date="2024-03-16",
        planned_time=600_000,
        is_automated=True,
    )
    assert task.sessions == []

    clock.advance(days=1)
    listed = await service.list_week("u1", 2024, 2, 3)

    assert listed[0].total_time == 600_000


@pytest.mark.anyio
async def test_create_requires_name_category_and_date(service):
    with pytest.raises(TrackerValidationError):
        await service.create_task("u1", name="", category="Work", date="2024-03-15")
    with pytest.raises(TrackerValidationError):
        await service.create_task("u1", name="x", date="2024-03-15")
    with pytest.raises(TrackerValidationError):
        await service.create_task("u1", name="x", category="Work", date="")
    with pytest.raises(TrackerValidationError):
        await service.create_task(
            "u1",
            name="x",
            category="Work",
            date="2024-03-15",
            scheduled_start_time="25:00",
        )


@pytest.mark.anyio
async def test_create_resolves_category_id(service, repository):
    category = await repository.create_category("u1", "Deep Work", "#000", "*")

    task = await service.create_task(
        "u1", name="Write", category_id=category.id, date="2024-03-15"
    )

    assert task.category == "Deep Work"
    with pytest.raises(NotFoundError):
        await service.create_task("u1", name="Write", category_id="nope", date="2024-03-15")


@pytest.mark.anyio
async def test_stop_start_stop_keeps_two_sessions(service, clock):
    task = await service.create_task("u1", name="Code", category="Work", date="2024-03-15")

    await service.set_active("u1", task.id, True)
    clock.advance(minutes=5)
    await service.set_active("u1", task.id, False)
    clock.advance(minutes=5)
    await service.set_active("u1", task.id, True)
    clock.advance(minutes=20)
    stopped = await service.set_active("u1", task.id, False)

    assert not stopped.is_active
    assert [s.duration for s in stopped.sessions] == [300_000, 1_200_000]
    stored = await service.get_task("u1", task.id)
    assert stored.total_time == 1_500_000
    assert len(stored.sessions) == 2


@pytest.mark.anyio
async def test_repeated_stop_does_not_double_count(service, clock):
    task = await service.create_task("u1", name="Code", category="Work", date="2024-03-15")
    await service.set_active("u1", task.id, True)
    clock.advance(minutes=1)

    await service.set_active("u1", task.id, False)
    again = await service.set_active("u1", task.id, False)

    assert again.total_time == 60_000
    assert len(again.sessions) == 1


@pytest.mark.anyio
async def test_start_and_stop_are_limited_to_today(service):
    task = await service.create_task("u1", name="Plan", category="Work", date="2024-03-14")

    with pytest.raises(TrackerValidationError, match="today's tasks"):
        await service.set_active("u1", task.id, True)
    with pytest.raises(TrackerValidationError, match="today's tasks"):
        await service.set_active("u1", task.id, False)


@pytest.mark.anyio
async def test_today_follows_requested_zone(service, clock):
    # 2024-03-15 20:00 UTC is already 2024-03-16 in Kolkata.
    clock.current = datetime.datetime(2024, 3, 15, 20, 0, tzinfo=UTC)
    task = await service.create_task("u1", name="Late", category="Work", date="2024-03-15")

    with pytest.raises(TrackerValidationError):
        await service.set_active("u1", task.id, True, ZONE)

    started = await service.set_active("u1", task.id, True, "UTC")
    assert started.is_active


@pytest.mark.anyio
async def test_update_routes_is_active_through_start(service, clock):
    task = await service.create_task("u1", name="Code", category="Work", date="2024-03-15")

    updated = await service.update_task(
        "u1", task.id, {"is_active": True, "planned_time": 90_000}
    )

    assert updated.is_active
    assert updated.planned_time == 90_000
    assert updated.start_time == clock.now()


@pytest.mark.anyio
async def test_update_moving_date_recomputes_day(service):
    task = await service.create_task("u1", name="Code", category="Work", date="2024-03-15")

    moved = await service.update_task("u1", task.id, {"date": "2024-03-17"})

    assert moved.date == datetime.date(2024, 3, 17)
    assert moved.day == "sunday"


@pytest.mark.anyio
async def test_soft_delete_and_restore(service):
    task = await service.create_task("u1", name="Code", category="Work", date="2024-03-15")

    await service.delete_task("u1", task.id)

    with pytest.raises(NotFoundError):
        await service.get_task("u1", task.id)
    assert [t.id for t in await service.list_deleted("u1")] == [task.id]
    restored = await service.restore_task("u1", task.id)
    assert not restored.deleted


@pytest.mark.anyio
async def test_delete_week_reports_count(service):
    for day in ("2024-03-15", "2024-03-16", "2024-03-21", "2024-03-22"):
        await service.create_task("u1", name="Code", category="Work", date=day)

    deleted = await service.delete_tasks_for_week("u1", 2024, 2, 3)

    assert deleted == 3
    assert len(await service.list_week("u1", 2024, 2, 4)) == 1


@pytest.mark.anyio
async def test_delete_day_reports_count(service):
    await service.create_task("u1", name="A", category="Work", date="2024-03-15")
    await service.create_task("u1", name="B", category="Work", date="2024-03-15")

    assert await service.delete_tasks_for_day("u1", "2024-03-15") == 2
    assert await service.delete_tasks_for_day("u1", "2024-03-15") == 0


@pytest.mark.anyio
async def test_week_number_is_validated(service):
    with pytest.raises(TrackerValidationError):
        await service.list_week("u1", 2024, 2, 5)


@pytest.mark.anyio
async def test_list_range_paginates(service):
    for index in range(3):
        await service.create_task(
            "u1", name=f"T{index}", category="Work", date=f"2024-03-1{index}"
        )

    result = await service.list_range("u1", "2024-03-10", "2024-03-12", page=2, limit=2)

    assert [task.name for task in result["tasks"]] == ["T2"]
    assert result["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}
    with pytest.raises(TrackerValidationError):
        await service.list_range("u1", "2024-03-12", "2024-03-10")


@pytest.mark.anyio
async def test_reorder_assigns_positions(service):
    first = await service.create_task("u1", name="A", category="Work", date="2024-03-15")
    second = await service.create_task("u1", name="B", category="Work", date="2024-03-15")

    assert await service.reorder("u1", [second.id, first.id]) == 2

    listed = await service.list_week("u1", 2024, 2, 3)
    assert [task.name for task in listed] == ["B", "A"]


@pytest.mark.anyio
async def test_overtime_poll_is_advisory(service, clock):
    task = await service.create_task(
        "u1", name="Code", category="Work", date="2024-03-15", planned_time=60_000
    )
    await service.set_active("u1", task.id, True)
    clock.advance(hours=2)

    reported = await service.poll_overtime("u1")
    assert [t.id for t in reported] == [task.id]
    assert (await service.get_task("u1", task.id)).is_active

    seen: list[str] = []

    async def stop_it(candidate):
        seen.append(candidate.id)
        return True

    await service.poll_overtime("u1", on_overtime=stop_it)

    assert seen == [task.id]
    stopped = await service.get_task("u1", task.id)
    assert not stopped.is_active
    assert stopped.total_time == 2 * 60 * 60_000


@pytest.mark.anyio
async def test_weekly_analytics_includes_running_task(repository, service, clock):
    analytics = AnalyticsService(repository, clock=clock, default_timezone=ZONE)
    task = await service.create_task("u1", name="Write", category="Work", date="2024-03-15")
    await service.set_active("u1", task.id, True)
    clock.advance(minutes=10)

    summary = await analytics.weekly("u1", 2024, 2, 3)

    assert summary["total_time"] == 600_000
    assert summary["active_tasks"] == 1
    assert summary["start_date"] == "2024-03-15"
    assert summary["end_date"] == "2024-03-21"
    assert summary["total_time_formatted"] == "10m"


@pytest.mark.anyio
async def test_rejected_start_leaves_other_fields_unchanged(service):
    task = await service.create_task("u1", name="Plan", category="Work", date="2024-03-20")

    with pytest.raises(TrackerValidationError, match="today's tasks"):
        await service.update_task("u1", task.id, {"name": "Renamed", "is_active": True})

    unchanged = await service.get_task("u1", task.id)
    assert unchanged.name == "Plan"
    assert not unchanged.is_active


@pytest.mark.anyio
async def test_start_allowed_when_update_moves_task_to_today(service, clock):
    task = await service.create_task("u1", name="Plan", category="Work", date="2024-03-20")

    moved = await service.update_task(
        "u1", task.id, {"date": "2024-03-15", "is_active": True}
    )

    assert moved.is_active
    assert moved.start_time == clock.now()


@pytest.mark.anyio
@pytest.mark.parametrize(
    "field",
    ["planned_time", "is_automated", "notifications_enabled", "notification_time", "order"],
)
async def test_null_for_required_field_is_rejected(service, field):
    task = await service.create_task(
        "u1", name="Plan", category="Work", date="2024-03-15", planned_time=60_000
    )

    with pytest.raises(TrackerValidationError, match=f"{field} must not be null"):
        await service.update_task("u1", task.id, {field: None})

    assert (await service.get_task("u1", task.id)).planned_time == 60_000


@pytest.mark.anyio
async def test_schedule_can_be_cleared_with_null(service):
    task = await service.create_task(
        "u1",
        name="Plan",
        category="Work",
        date="2024-03-15",
        scheduled_start_time="09:00",
        scheduled_end_time="10:00",
    )

    cleared = await service.update_task(
        "u1", task.id, {"scheduled_start_time": None, "scheduled_end_time": None}
    )

    assert cleared.scheduled_start_time is None
    assert cleared.scheduled_end_time is None


@pytest.mark.anyio
async def test_delete_week_counts_only_listed_tasks(service):
    await service.create_task("u1", name="Keep", category="Work", date="2024-03-15")
    dropped = await service.create_task("u1", name="Drop", category="Work", date="2024-03-16")
    await service.delete_task("u1", dropped.id)

    listed = await service.list_week("u1", 2024, 2, 3)
    deleted = await service.delete_tasks_for_week("u1", 2024, 2, 3)

    assert len(listed) == 1
    assert deleted == 1
    assert await service.list_deleted("u1") == []
