"""Request bodies for categories, todos and calendar events."""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# =============================================================================
# Categories
# =============================================================================


class CategoryCreate(BaseModel):
    name: str
    color: Optional[str] = Field(default=None, description="Hex color, e.g. #6366f1")
    icon: Optional[str] = None


class CategoryUpdate(BaseModel):
    """Partial update; renaming does not touch existing tasks."""

    name: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None


# =============================================================================
# Todos
# =============================================================================


class TodoCreate(BaseModel):
    text: str
    deadline: Optional[str] = Field(default=None, description="YYYY-MM-DD")


class TodoUpdate(BaseModel):
    text: Optional[str] = None
    completed: Optional[bool] = None
    deadline: Optional[str] = None


# =============================================================================
# Calendar
# =============================================================================


class CalendarEventCreate(BaseModel):
    """Create a reminder event, optionally linked to a task."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    date: str = Field(..., description="YYYY-MM-DD")
    description: Optional[str] = None
    start_time: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("start_time", "startTime")
    )
    end_time: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("end_time", "endTime")
    )
    duration_minutes: int = Field(
        default=30,
        ge=1,
        le=24 * 60,
        validation_alias=AliasChoices("duration_minutes", "durationMinutes"),
    )
    reminder_minutes: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("reminder_minutes", "reminderMinutes"),
    )
    task_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("task_id", "taskId")
    )


__all__ = [
    "CategoryCreate",
    "CategoryUpdate",
    "TodoCreate",
    "TodoUpdate",
    "CalendarEventCreate",
]
