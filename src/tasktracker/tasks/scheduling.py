"""Scheduling rules: week boundaries and automated task completion."""

from __future__ import annotations

import datetime
from typing import Optional

from ..utils.timezone import (
    ZoneLike,
    combine_date_and_clock,
    parse_clock,
    today,
    week_range,
)
from .models import Task, TaskSession

# Local hour used for synthesized sessions when a task has no schedule.
AUTO_COMPLETE_DEFAULT_HOUR = 1


def is_auto_complete_eligible(task: Task, today_string: str) -> bool:
    """Return True when an automated task should complete itself now.

    The task must be automated, stopped, planned, never touched, and due
    today or earlier.
    """

    return (
        task.is_automated
        and not task.is_active
        and task.planned_time > 0
        and task.total_time == 0
        and len(task.sessions) == 0
        and task.date_string <= today_string
    )


def synthesize_session(task: Task, tz: ZoneLike) -> TaskSession:
    """Build the session an automated task is credited with.

    The interval starts at the scheduled start when both schedule fields are
    set, otherwise at 01:00 local time on the task date. Its duration is
    always the planned time.
    """

    start: Optional[datetime.datetime] = None
    end: Optional[datetime.datetime] = None
    if task.has_schedule:
        try:
            start_hour, start_minute = parse_clock(task.scheduled_start_time or "")
            end_hour, end_minute = parse_clock(task.scheduled_end_time or "")
        except ValueError:
            start = None
        else:
            start = combine_date_and_clock(task.date, start_hour, start_minute, tz)
            end = combine_date_and_clock(task.date, end_hour, end_minute, tz)
    if start is None:
        start = combine_date_and_clock(task.date, AUTO_COMPLETE_DEFAULT_HOUR, 0, tz)
        end = None
    if end is None:
        end = start + datetime.timedelta(milliseconds=task.planned_time)
    return TaskSession(
        start_time=start.astimezone(datetime.timezone.utc),
        end_time=end.astimezone(datetime.timezone.utc),
        duration=task.planned_time,
    )


def plan_auto_completion(
    task: Task,
    tz: ZoneLike,
    *,
    now: datetime.datetime,
) -> Optional[TaskSession]:
    """Return the session to record for ``task``, or None if not eligible."""

    if not is_auto_complete_eligible(task, today(tz, now=now)):
        return None
    return synthesize_session(task, tz)


def apply_auto_completion(task: Task, session: TaskSession) -> Task:
    """Reflect a persisted auto-completion on the in-memory task."""

    task.sessions.append(session)
    task.total_time = task.planned_time
    task.completion_count += 1
    return task


__all__ = [
    "AUTO_COMPLETE_DEFAULT_HOUR",
    "is_auto_complete_eligible",
    "synthesize_session",
    "plan_auto_completion",
    "apply_auto_completion",
    "week_range",
]
