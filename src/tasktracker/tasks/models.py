"""Domain models representing tracked tasks and weekly templates."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, Optional


def _iso(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_instant(value: Any) -> Optional[datetime.datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        parsed = value
    else:
        parsed = datetime.datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


@dataclass(slots=True)
class TaskSession:
    """One completed start/stop interval of a task."""

    start_time: datetime.datetime
    end_time: datetime.datetime
    duration: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaskSession":
        start = _parse_instant(data.get("start_time"))
        end = _parse_instant(data.get("end_time"))
        if start is None or end is None:
            raise ValueError("Session requires start_time and end_time")
        return cls(start_time=start, end_time=end, duration=int(data.get("duration", 0)))


@dataclass(slots=True)
class Task:
    """A task scheduled on one calendar day with accumulated tracked time.

    ``category`` holds the category's display name, not a reference: renaming
    or deleting a category leaves existing tasks untouched.
    """

    id: str
    owner_id: str
    name: str
    category: str
    date: datetime.date
    day: str
    is_active: bool = False
    start_time: Optional[datetime.datetime] = None
    sessions: list[TaskSession] = field(default_factory=list)
    total_time: int = 0
    planned_time: int = 0
    is_automated: bool = False
    completion_count: int = 0
    order: int = 0
    scheduled_start_time: Optional[str] = None
    scheduled_end_time: Optional[str] = None
    notifications_enabled: bool = False
    notification_time: int = 30
    calendar_event_id: Optional[str] = None
    deleted: bool = False
    deleted_at: Optional[datetime.datetime] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    @property
    def date_string(self) -> str:
        return self.date.isoformat()

    @property
    def is_untouched(self) -> bool:
        """True when no time has ever been recorded against the task."""

        return self.total_time == 0 and not self.sessions

    @property
    def has_schedule(self) -> bool:
        return bool(self.scheduled_start_time and self.scheduled_end_time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "category": self.category,
            "date": self.date_string,
            "day": self.day,
            "is_active": self.is_active,
            "start_time": _iso(self.start_time),
            "sessions": [session.to_dict() for session in self.sessions],
            "total_time": self.total_time,
            "planned_time": self.planned_time,
            "is_automated": self.is_automated,
            "completion_count": self.completion_count,
            "order": self.order,
            "scheduled_start_time": self.scheduled_start_time,
            "scheduled_end_time": self.scheduled_end_time,
            "notifications_enabled": self.notifications_enabled,
            "notification_time": self.notification_time,
            "calendar_event_id": self.calendar_event_id,
            "deleted": self.deleted,
            "deleted_at": _iso(self.deleted_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass(slots=True)
class TemplateTask:
    """A day-of-week keyed task definition inside a template."""

    name: str
    category: str
    day: str
    planned_time: int = 0
    is_automated: bool = False
    scheduled_start_time: Optional[str] = None
    scheduled_end_time: Optional[str] = None
    add_to_calendar: bool = False
    reminder_minutes: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "day": self.day,
            "planned_time": self.planned_time,
            "is_automated": self.is_automated,
            "scheduled_start_time": self.scheduled_start_time,
            "scheduled_end_time": self.scheduled_end_time,
            "add_to_calendar": self.add_to_calendar,
            "reminder_minutes": self.reminder_minutes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TemplateTask":
        return cls(
            name=str(data["name"]),
            category=str(data["category"]),
            day=str(data["day"]).lower(),
            planned_time=int(data.get("planned_time") or 0),
            is_automated=bool(data.get("is_automated", False)),
            scheduled_start_time=data.get("scheduled_start_time") or None,
            scheduled_end_time=data.get("scheduled_end_time") or None,
            add_to_calendar=bool(data.get("add_to_calendar", False)),
            reminder_minutes=data.get("reminder_minutes"),
        )


@dataclass(slots=True)
class TaskTemplate:
    """A reusable weekly pattern of tasks. Not itself a task collection."""

    id: str
    owner_id: str
    name: str
    tasks: list[TemplateTask] = field(default_factory=list)
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "tasks": [task.to_dict() for task in self.tasks],
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


__all__ = ["Task", "TaskSession", "TaskTemplate", "TemplateTask"]
