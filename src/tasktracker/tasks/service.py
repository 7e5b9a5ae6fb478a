"""Task operations: week reads with auto-completion, creation, and start/stop."""

from __future__ import annotations

import datetime
import inspect
import logging
import math
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from ..errors import NotFoundError, TrackerValidationError
from ..repository import TrackerRepository
from ..utils.timezone import (
    DEFAULT_TIMEZONE,
    Clock,
    SystemClock,
    ZoneLike,
    day_name,
    is_today,
    parse_clock,
    parse_date,
    resolve_timezone,
    week_range,
)
from .models import Task
from .scheduling import apply_auto_completion, plan_auto_completion
from .sessions import (
    OVERTIME_GRACE_MS,
    is_overtime,
    start_session,
    stop_session,
    task_payload,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500

OvertimeCallback = Callable[[Task], Union[bool, Awaitable[bool]]]

# Fields a caller may change through ``update_task`` besides ``is_active``.
_EDITABLE_FIELDS = (
    "name",
    "category",
    "date",
    "planned_time",
    "is_automated",
    "scheduled_start_time",
    "scheduled_end_time",
    "notifications_enabled",
    "notification_time",
    "order",
)

# Editable fields that may be cleared with an explicit null.
_NULLABLE_FIELDS = frozenset({"scheduled_start_time", "scheduled_end_time"})


async def auto_complete_task(
    repository: TrackerRepository,
    task: Task,
    tz: ZoneLike,
    *,
    now: datetime.datetime,
) -> Task:
    """Credit an eligible automated task with its planned time.

    The write is conditional on the stored task still being untouched, so a
    concurrent reader that got there first turns this into a re-read.
    """

    session = plan_auto_completion(task, tz, now=now)
    if session is None:
        return task
    if await repository.complete_automated_task(task.id, session):
        logger.info(
            "Auto-completed automated task %s (%s) on %s",
            task.id,
            task.name,
            task.date_string,
        )
        return apply_auto_completion(task, session)
    refreshed = await repository.get_task(task.owner_id, task.id)
    return refreshed or task


def validate_clock(value: Optional[str], *, owner_id: str | None = None) -> Optional[str]:
    if value is None or value == "":
        return None
    try:
        hour, minute = parse_clock(value)
    except ValueError as exc:
        raise TrackerValidationError(str(exc), owner_id=owner_id) from exc
    return f"{hour:02d}:{minute:02d}"


def resolve_week(
    year: int,
    month: int,
    week_number: int,
    tz: ZoneLike,
    *,
    owner_id: str | None = None,
):
    try:
        return week_range(year, month, week_number, tz)
    except ValueError as exc:
        raise TrackerValidationError(str(exc), owner_id=owner_id) from exc


def _parse_request_date(value: Any, *, owner_id: str | None = None) -> datetime.date:
    if value is None or value == "":
        raise TrackerValidationError("Please provide a date", owner_id=owner_id)
    try:
        return parse_date(value)
    except ValueError as exc:
        raise TrackerValidationError(
            f"Invalid date {value!r}; expected YYYY-MM-DD", owner_id=owner_id
        ) from exc


class TaskService:
    """Persisted task operations built on the scheduling and session engines."""

    def __init__(
        self,
        repository: TrackerRepository,
        *,
        clock: Clock | None = None,
        default_timezone: str = DEFAULT_TIMEZONE,
        overtime_grace_ms: int = OVERTIME_GRACE_MS,
    ) -> None:
        self._repository = repository
        self._clock = clock or SystemClock()
        self._default_timezone = default_timezone
        self._overtime_grace_ms = overtime_grace_ms

    def now(self) -> datetime.datetime:
        return self._clock.now()

    def zone(self, tz: ZoneLike) -> datetime.tzinfo:
        return resolve_timezone(tz, self._default_timezone)

    def serialize(self, tasks: Iterable[Task]) -> list[dict[str, Any]]:
        now = self.now()
        return [task_payload(task, now) for task in tasks]

    async def get_task(self, owner_id: str, task_id: str) -> Task:
        task = await self._repository.get_task(owner_id, task_id)
        if task is None:
            raise NotFoundError("Task not found", owner_id=owner_id, entity_id=task_id)
        return task

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def list_week(
        self,
        owner_id: str,
        year: int,
        month: int,
        week_number: int,
        tz: ZoneLike = None,
    ) -> list[Task]:
        """Return a week's tasks after auto-completing any that are due."""

        zone = self.zone(tz)
        week = resolve_week(year, month, week_number, zone, owner_id=owner_id)
        tasks = await self._repository.list_tasks_between(
            owner_id, week.start_date, week.end_date
        )
        now = self.now()
        return [
            await auto_complete_task(self._repository, task, zone, now=now)
            for task in tasks
        ]

    async def list_range(
        self,
        owner_id: str,
        start_date: Any,
        end_date: Any,
        *,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> dict[str, Any]:
        start = _parse_request_date(start_date, owner_id=owner_id)
        end = _parse_request_date(end_date, owner_id=owner_id)
        if end < start:
            raise TrackerValidationError(
                "endDate must not be before startDate", owner_id=owner_id
            )
        page = max(1, page)
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        tasks = await self._repository.list_tasks_between(
            owner_id, start, end, limit=limit, offset=(page - 1) * limit
        )
        total = await self._repository.count_tasks_between(owner_id, start, end)
        return {
            "tasks": tasks,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        }

    async def list_deleted(self, owner_id: str) -> list[Task]:
        return await self._repository.list_deleted_tasks(owner_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def create_task(
        self,
        owner_id: str,
        *,
        name: str,
        date: Any,
        category: Optional[str] = None,
        category_id: Optional[str] = None,
        planned_time: int = 0,
        is_automated: bool = False,
        scheduled_start_time: Optional[str] = None,
        scheduled_end_time: Optional[str] = None,
        notifications_enabled: bool = False,
        notification_time: int = 30,
        tz: ZoneLike = None,
    ) -> Task:
        """Create a task; an automated task dated today or earlier completes at once."""

        name = (name or "").strip()
        if not name or not (category or category_id):
            raise TrackerValidationError(
                "Please provide task name, category, and date", owner_id=owner_id
            )
        task_date = _parse_request_date(date, owner_id=owner_id)
        if planned_time < 0:
            raise TrackerValidationError(
                "plannedTime must not be negative", owner_id=owner_id
            )

        if category_id:
            found = await self._repository.get_category(owner_id, category_id)
            if found is None:
                raise NotFoundError(
                    "Category not found", owner_id=owner_id, entity_id=category_id
                )
            category = found.name

        task = Task(
            id="",
            owner_id=owner_id,
            name=name,
            category=str(category),
            date=task_date,
            day=day_name(task_date),
            planned_time=planned_time,
            is_automated=is_automated,
            scheduled_start_time=validate_clock(scheduled_start_time, owner_id=owner_id),
            scheduled_end_time=validate_clock(scheduled_end_time, owner_id=owner_id),
            notifications_enabled=notifications_enabled,
            notification_time=notification_time,
        )
        task = await self._repository.insert_task(task)
        logger.debug("Created task %s for %s on %s", task.id, owner_id, task.date_string)
        return await auto_complete_task(
            self._repository, task, self.zone(tz), now=self.now()
        )

    async def set_active(
        self,
        owner_id: str,
        task_id: str,
        active: bool,
        tz: ZoneLike = None,
    ) -> Task:
        """Start or stop tracking time on a task dated today."""

        task = await self.get_task(owner_id, task_id)
        now = self.now()
        zone = self.zone(tz)
        if not is_today(task.date, zone, now=now):
            raise TrackerValidationError(
                "You can only start/stop today's tasks",
                owner_id=owner_id,
                entity_id=task_id,
            )
        if not active:
            return await self._stop(task, now)

        was_running = task.is_active
        start_session(task, now, zone)
        if was_running:
            return task
        if not await self._repository.mark_task_started(task.id, now):
            return await self.get_task(owner_id, task_id)
        return task

    async def _stop(self, task: Task, now: datetime.datetime) -> Task:
        started = task.start_time
        session = stop_session(task, now)
        if not await self._repository.mark_task_stopped(task.id, started, session):
            # Another request closed the interval first.
            return await self.get_task(task.owner_id, task.id)
        return task

    async def update_task(
        self,
        owner_id: str,
        task_id: str,
        changes: dict[str, Any],
        tz: ZoneLike = None,
    ) -> Task:
        """Apply a partial update; ``is_active`` is routed through start/stop."""

        task = await self.get_task(owner_id, task_id)
        fields = {key: changes[key] for key in _EDITABLE_FIELDS if key in changes}

        for key, value in fields.items():
            if value is None and key not in _NULLABLE_FIELDS:
                raise TrackerValidationError(
                    f"{key} must not be null", owner_id=owner_id, entity_id=task_id
                )
        if "name" in fields:
            fields["name"] = fields["name"].strip()
            if not fields["name"]:
                raise TrackerValidationError(
                    "Task name must not be empty", owner_id=owner_id, entity_id=task_id
                )
        if "category" in fields and not fields["category"]:
            raise TrackerValidationError(
                "Task category must not be empty", owner_id=owner_id, entity_id=task_id
            )
        if "date" in fields:
            new_date = _parse_request_date(fields["date"], owner_id=owner_id)
            fields["date"] = new_date
            fields["day"] = day_name(new_date)
        for key in ("scheduled_start_time", "scheduled_end_time"):
            if key in fields:
                fields[key] = validate_clock(fields[key], owner_id=owner_id)
        if fields.get("planned_time") is not None and fields["planned_time"] < 0:
            raise TrackerValidationError(
                "plannedTime must not be negative", owner_id=owner_id, entity_id=task_id
            )

        toggle = changes.get("is_active")
        if toggle is not None:
            # A rejected start/stop must not leave a partial update behind.
            target_date = fields.get("date", task.date)
            if not is_today(target_date, self.zone(tz), now=self.now()):
                raise TrackerValidationError(
                    "You can only start/stop today's tasks",
                    owner_id=owner_id,
                    entity_id=task_id,
                )

        if fields:
            await self._repository.update_task(owner_id, task.id, fields)
        if toggle is not None:
            return await self.set_active(owner_id, task.id, bool(toggle), tz)
        return await self.get_task(owner_id, task.id)

    async def delete_task(self, owner_id: str, task_id: str) -> None:
        if not await self._repository.soft_delete_task(owner_id, task_id):
            raise NotFoundError("Task not found", owner_id=owner_id, entity_id=task_id)

    async def restore_task(self, owner_id: str, task_id: str) -> Task:
        if not await self._repository.restore_task(owner_id, task_id):
            raise NotFoundError(
                "Deleted task not found", owner_id=owner_id, entity_id=task_id
            )
        return await self.get_task(owner_id, task_id)

    async def delete_tasks_for_day(self, owner_id: str, date: Any) -> int:
        day = _parse_request_date(date, owner_id=owner_id)
        deleted = await self._repository.delete_tasks_between(owner_id, day, day)
        logger.info("Deleted %d task(s) for %s on %s", deleted, owner_id, day.isoformat())
        return deleted

    async def delete_tasks_for_week(
        self,
        owner_id: str,
        year: int,
        month: int,
        week_number: int,
        tz: ZoneLike = None,
    ) -> int:
        week = resolve_week(year, month, week_number, self.zone(tz), owner_id=owner_id)
        deleted = await self._repository.delete_tasks_between(
            owner_id, week.start_date, week.end_date
        )
        logger.info(
            "Deleted %d task(s) for %s between %s and %s",
            deleted,
            owner_id,
            week.start_date.isoformat(),
            week.end_date.isoformat(),
        )
        return deleted

    async def reorder(self, owner_id: str, task_ids: list[str]) -> int:
        """Assign ``order`` from each id's position in ``task_ids``."""

        if not task_ids:
            raise TrackerValidationError("Please provide task ids", owner_id=owner_id)
        return await self._repository.set_task_orders(
            owner_id, [(task_id, position) for position, task_id in enumerate(task_ids)]
        )

    async def poll_overtime(
        self,
        owner_id: str,
        on_overtime: OvertimeCallback | None = None,
    ) -> list[Task]:
        """Report running tasks past their plan plus the grace period.

        Nothing is stopped unless ``on_overtime`` returns True for a task; the
        server never enforces the limit by itself.
        """

        now = self.now()
        overtime: list[Task] = []
        for task in await self._repository.list_active_tasks(owner_id):
            if not is_overtime(task, now, self._overtime_grace_ms):
                continue
            if on_overtime is not None:
                decision = on_overtime(task)
                if inspect.isawaitable(decision):
                    decision = await decision
                if decision:
                    logger.info("Stopping overtime task %s at host request", task.id)
                    task = await self._stop(task, now)
            overtime.append(task)
        return overtime


__all__ = [
    "TaskService",
    "auto_complete_task",
    "validate_clock",
    "resolve_week",
]
