"""Request bodies for template endpoints."""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ..tasks.models import TemplateTask


class TemplateTaskPayload(BaseModel):
    """One day-of-week task definition inside a template."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    category: str
    day: str = Field(..., description="Lowercase weekday name")
    planned_time: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("planned_time", "plannedTime")
    )
    is_automated: bool = Field(
        default=False, validation_alias=AliasChoices("is_automated", "isAutomated")
    )
    scheduled_start_time: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("scheduled_start_time", "scheduledStartTime"),
    )
    scheduled_end_time: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("scheduled_end_time", "scheduledEndTime"),
    )
    add_to_calendar: bool = Field(
        default=False,
        validation_alias=AliasChoices("add_to_calendar", "addToCalendar"),
    )
    reminder_minutes: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("reminder_minutes", "reminderMinutes"),
    )

    def to_template_task(self) -> TemplateTask:
        return TemplateTask(
            name=self.name,
            category=self.category,
            day=self.day,
            planned_time=self.planned_time,
            is_automated=self.is_automated,
            scheduled_start_time=self.scheduled_start_time,
            scheduled_end_time=self.scheduled_end_time,
            add_to_calendar=self.add_to_calendar,
            reminder_minutes=self.reminder_minutes,
        )


class TemplateCreate(BaseModel):
    name: str
    tasks: list[TemplateTaskPayload] = Field(default_factory=list)


class TemplateUpdate(BaseModel):
    name: Optional[str] = None
    tasks: Optional[list[TemplateTaskPayload]] = None


__all__ = ["TemplateTaskPayload", "TemplateCreate", "TemplateUpdate"]
