"""Start/stop session lifecycle and live elapsed time for a single task."""

from __future__ import annotations

import datetime
from typing import Any, Optional

from ..errors import TrackerValidationError
from ..utils.timezone import ZoneLike, is_today, milliseconds_between
from .models import Task, TaskSession

OVERTIME_GRACE_MS = 60 * 60 * 1000


def live_elapsed(task: Task, now: datetime.datetime) -> int:
    """Return completed session time plus the running interval, if any.

    Stored ``total_time`` excludes the interval currently being tracked, so
    anything that displays or aggregates time must go through this function.
    """

    if task.is_active and task.start_time is not None:
        return task.total_time + max(0, milliseconds_between(task.start_time, now))
    return task.total_time


def session_count(task: Task) -> int:
    """Completed sessions, counting a running interval as one more."""

    return len(task.sessions) + (1 if task.is_active else 0)


def start_session(task: Task, now: datetime.datetime, tz: ZoneLike) -> Task:
    """Move ``task`` from stopped to running.

    Only tasks dated today (in the caller's zone) may be started. Starting an
    already running task leaves its start time untouched.
    """

    if not is_today(task.date, tz, now=now):
        raise TrackerValidationError(
            "You can only start/stop today's tasks",
            owner_id=task.owner_id,
            entity_id=task.id,
        )
    if task.is_active and task.start_time is not None:
        return task
    task.is_active = True
    task.start_time = now
    return task


def stop_session(task: Task, now: datetime.datetime) -> Optional[TaskSession]:
    """Move ``task`` from running to stopped and return the closed session.

    Returns ``None`` (and records nothing) when the task has no running
    interval, so repeated stops never append twice. The today-only rule for
    user requests lives in the task service; overtime stops bypass it.
    """

    started = task.start_time
    task.is_active = False
    task.start_time = None
    if started is None:
        return None
    session = TaskSession(
        start_time=started,
        end_time=now,
        duration=max(0, milliseconds_between(started, now)),
    )
    task.sessions.append(session)
    task.total_time += session.duration
    return session


def is_overtime(
    task: Task,
    now: datetime.datetime,
    grace_ms: int = OVERTIME_GRACE_MS,
) -> bool:
    """True when a running task has exceeded its plan plus the grace period.

    This is advisory; hosts poll for it and decide whether to stop the task.
    """

    if not task.is_active or task.planned_time <= 0:
        return False
    return live_elapsed(task, now) >= task.planned_time + grace_ms


def task_payload(task: Task, now: datetime.datetime) -> dict[str, Any]:
    """Serialize ``task`` with its live elapsed time as of ``now``."""

    payload = task.to_dict()
    payload["live_elapsed"] = live_elapsed(task, now)
    payload["session_count"] = session_count(task)
    return payload


__all__ = [
    "OVERTIME_GRACE_MS",
    "live_elapsed",
    "session_count",
    "start_session",
    "stop_session",
    "is_overtime",
    "task_payload",
]
