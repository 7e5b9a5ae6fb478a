"""Domain models for categories, sleep sessions and todos."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, Optional

DEFAULT_CATEGORY_COLOR = "#6366f1"
DEFAULT_CATEGORY_ICON = "📋"


def _iso(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(slots=True)
class Category:
    """A user-defined label tasks are grouped under (referenced by name)."""

    id: str
    owner_id: str
    name: str
    color: str = DEFAULT_CATEGORY_COLOR
    icon: str = DEFAULT_CATEGORY_ICON
    created_at: Optional[datetime.datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "color": self.color,
            "icon": self.icon,
            "created_at": _iso(self.created_at),
        }


@dataclass(slots=True)
class SleepSession:
    """A sleep interval; ``date`` is the local day the session started."""

    id: str
    owner_id: str
    start_time: datetime.datetime
    date: datetime.date
    end_time: Optional[datetime.datetime] = None
    duration: int = 0
    is_active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "start_time": self.start_time.isoformat(),
            "end_time": _iso(self.end_time),
            "duration": self.duration,
            "is_active": self.is_active,
            "date": self.date.isoformat(),
        }


@dataclass(slots=True)
class Todo:
    """A quick todo item without time tracking."""

    id: str
    owner_id: str
    text: str
    date: datetime.date
    completed: bool = False
    is_overdue: bool = False
    deadline: Optional[datetime.date] = None
    deleted: bool = False
    deleted_at: Optional[datetime.datetime] = None
    created_at: Optional[datetime.datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "text": self.text,
            "completed": self.completed,
            "date": self.date.isoformat(),
            "is_overdue": self.is_overdue,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "deleted": self.deleted,
            "deleted_at": _iso(self.deleted_at),
            "created_at": _iso(self.created_at),
        }


__all__ = [
    "Category",
    "SleepSession",
    "Todo",
    "DEFAULT_CATEGORY_COLOR",
    "DEFAULT_CATEGORY_ICON",
]
