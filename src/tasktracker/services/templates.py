"""Weekly templates and applying them onto a concrete week."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from ..errors import ConflictError, NotFoundError, TrackerValidationError
from ..repository import TrackerRepository
from ..tasks.models import Task, TaskTemplate, TemplateTask
from ..tasks.service import auto_complete_task, resolve_week, validate_clock
from ..tasks.templates import PlannedTask, plan_template_week
from ..utils.timezone import (
    DEFAULT_TIMEZONE,
    WEEKDAY_NAMES,
    Clock,
    SystemClock,
    ZoneLike,
    day_name,
    resolve_timezone,
)
from .cache import TTLCache, cache_key
from .calendar import CalendarService

logger = logging.getLogger(__name__)


def normalize_template_tasks(
    owner_id: str, tasks: Iterable[TemplateTask]
) -> list[TemplateTask]:
    """Validate template task definitions and normalize their fields."""

    normalized: list[TemplateTask] = []
    for index, task in enumerate(tasks):
        name = (task.name or "").strip()
        category = (task.category or "").strip()
        day = (task.day or "").strip().lower()
        if not name or not category or not day:
            raise TrackerValidationError(
                f"Template task {index + 1} needs a name, category and day",
                owner_id=owner_id,
            )
        if day not in WEEKDAY_NAMES:
            raise TrackerValidationError(
                f"Template task {index + 1} has an unknown day {task.day!r}",
                owner_id=owner_id,
            )
        if task.planned_time < 0:
            raise TrackerValidationError(
                f"Template task {index + 1} has a negative planned time",
                owner_id=owner_id,
            )
        normalized.append(
            TemplateTask(
                name=name,
                category=category,
                day=day,
                planned_time=task.planned_time,
                is_automated=task.is_automated,
                scheduled_start_time=validate_clock(
                    task.scheduled_start_time, owner_id=owner_id
                ),
                scheduled_end_time=validate_clock(
                    task.scheduled_end_time, owner_id=owner_id
                ),
                add_to_calendar=task.add_to_calendar,
                reminder_minutes=task.reminder_minutes,
            )
        )
    if not normalized:
        raise TrackerValidationError(
            "Please provide template name and at least one task", owner_id=owner_id
        )
    return normalized


class TemplateService:
    """Template CRUD plus the apply operation.

    Applying is safe to repeat or run concurrently: tasks are matched on
    ``(owner, name, category, date)`` and a unique-key clash on insert is
    resolved by reading back the row the other writer created.
    """

    def __init__(
        self,
        repository: TrackerRepository,
        *,
        clock: Clock | None = None,
        default_timezone: str = DEFAULT_TIMEZONE,
        calendar: CalendarService | None = None,
        cache: TTLCache | None = None,
    ) -> None:
        self._repository = repository
        self._clock = clock or SystemClock()
        self._default_timezone = default_timezone
        self._calendar = calendar
        self._cache = cache or TTLCache(enabled=False)

    async def list_templates(self, owner_id: str) -> list[TaskTemplate]:
        return await self._cache.get_or_load(
            cache_key(owner_id, "templates"),
            lambda: self._repository.list_templates(owner_id),
        )

    async def get_template(self, owner_id: str, template_id: str) -> TaskTemplate:
        template = await self._repository.get_template(owner_id, template_id)
        if template is None:
            raise NotFoundError(
                "Template not found", owner_id=owner_id, entity_id=template_id
            )
        return template

    async def create_template(
        self, owner_id: str, name: str, tasks: Iterable[TemplateTask]
    ) -> TaskTemplate:
        name = (name or "").strip()
        if not name:
            raise TrackerValidationError(
                "Please provide template name and at least one task", owner_id=owner_id
            )
        template = await self._repository.create_template(
            owner_id, name, normalize_template_tasks(owner_id, tasks)
        )
        await self._invalidate(owner_id)
        return template

    async def update_template(
        self,
        owner_id: str,
        template_id: str,
        *,
        name: Optional[str] = None,
        tasks: Optional[Iterable[TemplateTask]] = None,
    ) -> TaskTemplate:
        if name is not None:
            name = name.strip()
            if not name:
                raise TrackerValidationError(
                    "Template name must not be empty",
                    owner_id=owner_id,
                    entity_id=template_id,
                )
        normalized = normalize_template_tasks(owner_id, tasks) if tasks is not None else None
        if not await self._repository.update_template(
            owner_id, template_id, name=name, tasks=normalized
        ):
            raise NotFoundError(
                "Template not found", owner_id=owner_id, entity_id=template_id
            )
        await self._invalidate(owner_id)
        return await self.get_template(owner_id, template_id)

    async def delete_template(self, owner_id: str, template_id: str) -> None:
        if not await self._repository.delete_template(owner_id, template_id):
            raise NotFoundError(
                "Template not found", owner_id=owner_id, entity_id=template_id
            )
        await self._invalidate(owner_id)

    async def apply_template(
        self,
        owner_id: str,
        template_id: str,
        year: int,
        month: int,
        week_number: int,
        tz: ZoneLike = None,
    ) -> dict[str, Any]:
        """Stamp a template onto a week.

        Returns the created or updated tasks and how many calendar events
        were created. A failing calendar call only affects its own task.
        """

        zone = resolve_timezone(tz, self._default_timezone)
        resolve_week(year, month, week_number, zone, owner_id=owner_id)
        template = await self.get_template(owner_id, template_id)
        if not template.tasks:
            raise TrackerValidationError(
                "Template has no tasks", owner_id=owner_id, entity_id=template_id
            )

        planned = plan_template_week(template, year, month, week_number, zone)
        tasks: list[Task] = []
        events_created = 0
        for item in planned:
            task = await self._upsert_task(owner_id, item, zone)
            tasks.append(task)
            if self._calendar is None or not item.template_task.add_to_calendar:
                continue
            try:
                if await self._calendar.sync_task_event(
                    task, zone, reminder_minutes=item.template_task.reminder_minutes
                ):
                    events_created += 1
            except Exception as exc:
                logger.warning(
                    "Calendar sync failed for task %s while applying template %s: %s",
                    task.id,
                    template_id,
                    exc,
                )

        logger.info(
            "Applied template %s to %04d-%02d week %d: %d task(s), %d calendar event(s)",
            template_id,
            year,
            month + 1,
            week_number,
            len(tasks),
            events_created,
        )
        return {
            "tasks": tasks,
            "calendar_events_created": events_created,
            "skipped": len(template.tasks) - len(planned),
        }

    async def _upsert_task(self, owner_id: str, item: PlannedTask, zone) -> Task:
        source = item.template_task
        now = self._clock.now()
        existing = await self._repository.find_task(
            owner_id, source.name, source.category, item.date
        )
        if existing is not None:
            await self._repository.apply_template_fields(
                existing.id,
                {
                    "planned_time": source.planned_time,
                    "is_automated": source.is_automated,
                    "scheduled_start_time": source.scheduled_start_time,
                    "scheduled_end_time": source.scheduled_end_time,
                },
            )
            task = await self._repository.get_task(owner_id, existing.id) or existing
            logger.debug("Updated task %s from template", task.id)
            return await auto_complete_task(self._repository, task, zone, now=now)

        candidate = Task(
            id="",
            owner_id=owner_id,
            name=source.name,
            category=source.category,
            date=item.date,
            day=day_name(item.date),
            planned_time=source.planned_time,
            is_automated=source.is_automated,
            scheduled_start_time=source.scheduled_start_time,
            scheduled_end_time=source.scheduled_end_time,
        )
        try:
            task = await self._repository.insert_task(candidate)
        except ConflictError:
            logger.debug(
                "Task %r on %s was created concurrently; reusing it",
                source.name,
                item.date.isoformat(),
            )
            found = await self._repository.find_task(
                owner_id, source.name, source.category, item.date
            )
            if found is None:
                raise
            task = found
        return await auto_complete_task(self._repository, task, zone, now=now)

    async def _invalidate(self, owner_id: str) -> None:
        await self._cache.invalidate(cache_key(owner_id, "templates"))


__all__ = ["TemplateService", "normalize_template_tasks"]
