"""Map a weekly template's day-of-week tasks onto concrete dates."""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass

from ..utils.timezone import WEEKDAY_NAMES, ZoneLike, week_range
from .models import TaskTemplate, TemplateTask

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PlannedTask:
    """A template task paired with the calendar date it lands on."""

    template_task: TemplateTask
    date: datetime.date


def landing_date(
    template_task: TemplateTask,
    week_start: datetime.date,
) -> datetime.date:
    """Return the first date on or after ``week_start`` matching the task's day."""

    target = WEEKDAY_NAMES.index(template_task.day)
    offset = (target - week_start.weekday() + 7) % 7
    return week_start + datetime.timedelta(days=offset)


def plan_template_week(
    template: TaskTemplate,
    year: int,
    month: int,
    week_number: int,
    tz: ZoneLike = None,
) -> list[PlannedTask]:
    """Resolve every template task to a date within the target week.

    Tasks whose landing date falls outside the target month are skipped for
    this cycle.
    """

    week = week_range(year, month, week_number, tz)
    planned: list[PlannedTask] = []
    for template_task in template.tasks:
        concrete = landing_date(template_task, week.start_date)
        if concrete.month != week.start_date.month:
            logger.debug(
                "Skipping template task %r: %s falls outside month %s",
                template_task.name,
                concrete.isoformat(),
                month + 1,
            )
            continue
        planned.append(PlannedTask(template_task=template_task, date=concrete))
    return planned


__all__ = ["PlannedTask", "landing_date", "plan_template_week"]
