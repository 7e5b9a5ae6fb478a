"""Request bodies for task endpoints.

Fields accept both ``snake_case`` and the ``camelCase`` names older clients
send (``plannedTime``, ``isAutomated`` ...).
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class TaskCreate(BaseModel):
    """Create a task on one calendar day."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Task name")
    date: str = Field(..., description="Calendar date (YYYY-MM-DD)")
    category: Optional[str] = Field(
        default=None, description="Category display name"
    )
    category_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("category_id", "categoryId"),
        description="Category id; its name is stored on the task",
    )
    planned_time: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("planned_time", "plannedTime"),
        description="Target duration in milliseconds",
    )
    is_automated: bool = Field(
        default=False, validation_alias=AliasChoices("is_automated", "isAutomated")
    )
    scheduled_start_time: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("scheduled_start_time", "scheduledStartTime"),
        description="HH:MM wall-clock start",
    )
    scheduled_end_time: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("scheduled_end_time", "scheduledEndTime"),
        description="HH:MM wall-clock end",
    )
    notifications_enabled: bool = Field(
        default=False,
        validation_alias=AliasChoices("notifications_enabled", "notificationsEnabled"),
    )
    notification_time: int = Field(
        default=30,
        ge=0,
        validation_alias=AliasChoices("notification_time", "notificationTime"),
        description="Minutes before the scheduled start",
    )


class TaskUpdate(BaseModel):
    """Partial task update; ``is_active`` starts or stops tracking."""

    model_config = ConfigDict(populate_by_name=True)

    is_active: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("is_active", "isActive")
    )
    name: Optional[str] = None
    category: Optional[str] = None
    date: Optional[str] = None
    planned_time: Optional[int] = Field(
        default=None, ge=0, validation_alias=AliasChoices("planned_time", "plannedTime")
    )
    is_automated: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("is_automated", "isAutomated")
    )
    scheduled_start_time: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("scheduled_start_time", "scheduledStartTime"),
    )
    scheduled_end_time: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("scheduled_end_time", "scheduledEndTime"),
    )
    notifications_enabled: Optional[bool] = Field(
        default=None,
        validation_alias=AliasChoices("notifications_enabled", "notificationsEnabled"),
    )
    notification_time: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("notification_time", "notificationTime"),
    )
    order: Optional[int] = None


class TaskReorder(BaseModel):
    """Task ids in their new display order."""

    model_config = ConfigDict(populate_by_name=True)

    task_ids: list[str] = Field(
        ..., min_length=1, validation_alias=AliasChoices("task_ids", "taskIds")
    )


__all__ = ["TaskCreate", "TaskUpdate", "TaskReorder"]
