from __future__ import annotations

import datetime

import anyio
import pytest

from tasktracker.errors import (
    ConflictError,
    NotFoundError,
    TrackerValidationError,
)
from tasktracker.services.cache import TTLCache
from tasktracker.services.calendar import CalendarService
from tasktracker.services.templates import TemplateService
from tasktracker.tasks.models import TemplateTask

ZONE = "Asia/Kolkata"


def _routine() -> list[TemplateTask]:
    return [
        TemplateTask(
            name="Run",
            category="Health",
            day="monday",
            planned_time=1_800_000,
            scheduled_start_time="06:00",
            scheduled_end_time="06:30",
            add_to_calendar=True,
            reminder_minutes=10,
        ),
        TemplateTask(
            name="Journal",
            category="Mind",
            day="wednesday",
            planned_time=600_000,
            is_automated=True,
        ),
    ]


@pytest.fixture
def service(repository, clock, calendar_provider) -> TemplateService:
    return TemplateService(
        repository,
        clock=clock,
        default_timezone=ZONE,
        calendar=CalendarService(repository, calendar_provider),
        cache=TTLCache(60),
    )


@pytest.mark.anyio
async def test_create_validates_tasks(service):
    with pytest.raises(TrackerValidationError):
        await service.create_template("u1", "Empty", [])
    with pytest.raises(TrackerValidationError):
        await service.create_template(
            "u1", "Bad day", [TemplateTask(name="x", category="y", day="funday")]
        )

    template = await service.create_template("u1", "Routine", _routine())

    assert [task.day for task in template.tasks] == ["monday", "wednesday"]
    with pytest.raises(ConflictError):
        await service.create_template("u1", "Routine", _routine())


@pytest.mark.anyio
async def test_list_cache_is_invalidated_on_write(service):
    assert await service.list_templates("u1") == []

    template = await service.create_template("u1", "Routine", _routine())
    assert [t.id for t in await service.list_templates("u1")] == [template.id]

    await service.update_template("u1", template.id, name="Renamed")
    assert (await service.list_templates("u1"))[0].name == "Renamed"

    await service.delete_template("u1", template.id)
    assert await service.list_templates("u1") == []
    with pytest.raises(NotFoundError):
        await service.get_template("u1", template.id)


@pytest.mark.anyio
async def test_apply_creates_tasks_and_events(service, calendar_provider, repository):
    provider = calendar_provider
    template = await service.create_template("u1", "Routine", _routine())

    # March 2024 week 2 is 8..14: Monday 11th, Wednesday 13th.
    result = await service.apply_template("u1", template.id, 2024, 2, 2)

    by_name = {task.name: task for task in result["tasks"]}
    assert by_name["Run"].date == datetime.date(2024, 3, 11)
    assert by_name["Journal"].date == datetime.date(2024, 3, 13)
    assert result["calendar_events_created"] == 1
    assert result["skipped"] == 0
    # Journal is automated and in the past relative to 2024-03-15.
    assert by_name["Journal"].total_time == 600_000
    stored_run = await repository.get_task("u1", by_name["Run"].id)
    assert stored_run.calendar_event_id == "evt-1"
    assert provider.events["evt-1"].reminder_minutes == 10


@pytest.mark.anyio
async def test_apply_twice_is_repeat_safe(service, calendar_provider, repository):
    provider = calendar_provider
    template = await service.create_template("u1", "Routine", _routine())

    await service.apply_template("u1", template.id, 2024, 2, 2)
    second = await service.apply_template("u1", template.id, 2024, 2, 2)

    tasks = await repository.list_tasks_between(
        "u1", datetime.date(2024, 3, 8), datetime.date(2024, 3, 14)
    )
    assert len(tasks) == 2
    assert second["calendar_events_created"] == 0
    assert len(provider.events) == 1
    journal = next(task for task in tasks if task.name == "Journal")
    assert len(journal.sessions) == 1
    assert journal.completion_count == 1


@pytest.mark.anyio
async def test_apply_updates_template_fields_on_existing_task(service, repository):
    template = await service.create_template("u1", "Routine", _routine())
    await service.apply_template("u1", template.id, 2024, 2, 2)

    changed = _routine()
    changed[0].planned_time = 2_400_000
    await service.update_template("u1", template.id, tasks=changed)
    result = await service.apply_template("u1", template.id, 2024, 2, 2)

    run = next(task for task in result["tasks"] if task.name == "Run")
    assert run.planned_time == 2_400_000


@pytest.mark.anyio
async def test_concurrent_apply_creates_each_task_once(service, repository):
    template = await service.create_template("u1", "Routine", _routine())

    async with anyio.create_task_group() as tg:
        for _ in range(3):
            tg.start_soon(service.apply_template, "u1", template.id, 2024, 2, 3)

    tasks = await repository.list_tasks_between(
        "u1", datetime.date(2024, 3, 15), datetime.date(2024, 3, 21)
    )
    assert sorted(task.name for task in tasks) == ["Journal", "Run"]


@pytest.mark.anyio
async def test_calendar_failure_does_not_block_apply(repository, clock, calendar_provider):
    provider = calendar_provider
    provider.fail_for = {"Run"}
    service = TemplateService(
        repository,
        clock=clock,
        default_timezone=ZONE,
        calendar=CalendarService(repository, provider),
    )
    template = await service.create_template("u1", "Routine", _routine())

    result = await service.apply_template("u1", template.id, 2024, 2, 2)

    assert len(result["tasks"]) == 2
    assert result["calendar_events_created"] == 0
    assert provider.events == {}


@pytest.mark.anyio
async def test_apply_rejects_bad_week_and_unknown_template(service):
    template = await service.create_template("u1", "Routine", _routine())

    with pytest.raises(TrackerValidationError):
        await service.apply_template("u1", template.id, 2024, 2, 0)
    with pytest.raises(NotFoundError):
        await service.apply_template("u1", "missing", 2024, 2, 1)
