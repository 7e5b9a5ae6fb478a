"""Aggregate tracked time into day, category, date and week buckets.

All task time goes through :func:`live_elapsed`, so a running task
contributes its in-progress interval as of ``now``. Two calls made while a
task is running will therefore differ.
"""

from __future__ import annotations

import datetime
from typing import Any, Iterable, Optional

from ..models import SleepSession
from ..utils.timezone import WEEKDAY_NAMES, week_of_month
from .models import Task
from .sessions import live_elapsed, session_count

SLEEP_CATEGORY = "Sleep"
UNCATEGORIZED = "Uncategorized"

# Weekly averages always divide by seven, even when week 4 is longer or a
# range is clipped by the month boundary.
DAYS_PER_WEEK = 7


def _bucket(**extra: Any) -> dict[str, Any]:
    bucket: dict[str, Any] = {"task_count": 0, "total_time": 0, "sessions": 0}
    bucket.update(extra)
    return bucket


def _completed(task: Task, elapsed: int) -> bool:
    return not task.is_active and elapsed > 0


def _sleep_total(sleep_sessions: Iterable[SleepSession]) -> tuple[int, int]:
    completed = [session for session in sleep_sessions if not session.is_active]
    return len(completed), sum(session.duration for session in completed)


def weekly_summary(
    tasks: Iterable[Task],
    sleep_sessions: Iterable[SleepSession],
    now: datetime.datetime,
) -> dict[str, Any]:
    """Summarize a week of tasks by weekday and by category."""

    task_list = list(tasks)
    summary: dict[str, Any] = {
        "total_tasks": len(task_list),
        "completed_tasks": 0,
        "active_tasks": 0,
        "total_time": 0,
        "total_planned_time": 0,
        "by_day": {day: _bucket(planned_time=0) for day in WEEKDAY_NAMES},
        "by_category": {},
        "average_per_day": 0.0,
        "session_count": 0,
    }

    for task in task_list:
        elapsed = live_elapsed(task, now)
        sessions = session_count(task)
        if task.is_active:
            summary["active_tasks"] += 1
        elif _completed(task, elapsed):
            summary["completed_tasks"] += 1

        summary["total_time"] += elapsed
        summary["total_planned_time"] += task.planned_time
        summary["session_count"] += sessions

        day_bucket = summary["by_day"].get(task.day)
        if day_bucket is not None:
            day_bucket["task_count"] += 1
            day_bucket["total_time"] += elapsed
            day_bucket["planned_time"] += task.planned_time
            day_bucket["sessions"] += sessions

        category = task.category or UNCATEGORIZED
        category_bucket = summary["by_category"].setdefault(
            category, _bucket(planned_time=0)
        )
        category_bucket["task_count"] += 1
        category_bucket["total_time"] += elapsed
        category_bucket["planned_time"] += task.planned_time
        category_bucket["sessions"] += sessions

    sleep_count, sleep_time = _sleep_total(sleep_sessions)
    if sleep_count:
        summary["by_category"][SLEEP_CATEGORY] = {
            "task_count": sleep_count,
            "total_time": sleep_time,
            "planned_time": 0,
            "sessions": sleep_count,
        }
        summary["total_time"] += sleep_time
        summary["session_count"] += sleep_count

    summary["average_per_day"] = summary["total_time"] / DAYS_PER_WEEK
    return summary


def monthly_summary(
    tasks: Iterable[Task],
    sleep_sessions: Iterable[SleepSession],
    now: datetime.datetime,
) -> dict[str, Any]:
    """Summarize a month of tasks by week-of-month and by category.

    Weeks here are ``ceil(day / 7)`` buckets (``week1`` .. ``week5``), not
    the four scheduling weeks used to list and apply tasks.
    """

    task_list = list(tasks)
    summary: dict[str, Any] = {
        "total_tasks": len(task_list),
        "completed_tasks": 0,
        "active_tasks": 0,
        "total_time": 0,
        "by_category": {},
        "by_week": {},
        "session_count": 0,
    }

    for task in task_list:
        elapsed = live_elapsed(task, now)
        sessions = session_count(task)
        if task.is_active:
            summary["active_tasks"] += 1
        elif _completed(task, elapsed):
            summary["completed_tasks"] += 1

        summary["total_time"] += elapsed
        summary["session_count"] += sessions

        category_bucket = summary["by_category"].setdefault(
            task.category or UNCATEGORIZED, _bucket()
        )
        category_bucket["task_count"] += 1
        category_bucket["total_time"] += elapsed
        category_bucket["sessions"] += sessions

        week_bucket = summary["by_week"].setdefault(
            f"week{week_of_month(task.date)}", _bucket()
        )
        week_bucket["task_count"] += 1
        week_bucket["total_time"] += elapsed
        week_bucket["sessions"] += sessions

    sleep_count, sleep_time = _sleep_total(sleep_sessions)
    if sleep_count:
        summary["by_category"][SLEEP_CATEGORY] = {
            "task_count": sleep_count,
            "total_time": sleep_time,
            "sessions": sleep_count,
        }
        summary["total_time"] += sleep_time
        summary["session_count"] += sleep_count

    return summary


def category_summary(
    category: str,
    tasks: Iterable[Task],
    now: datetime.datetime,
    *,
    start_date: Optional[datetime.date] = None,
    end_date: Optional[datetime.date] = None,
) -> dict[str, Any]:
    """Summarize one category's tasks bucketed by date string."""

    task_list = sorted(tasks, key=lambda task: task.date)
    summary: dict[str, Any] = {
        "category": category or "Unknown",
        "start_date": start_date.isoformat() if start_date else None,
        "end_date": end_date.isoformat() if end_date else None,
        "total_tasks": len(task_list),
        "total_time": 0,
        "total_planned_time": 0,
        "total_sessions": 0,
        "by_date": {},
    }

    for task in task_list:
        elapsed = live_elapsed(task, now)
        sessions = session_count(task)
        summary["total_time"] += elapsed
        summary["total_planned_time"] += task.planned_time
        summary["total_sessions"] += sessions

        date_bucket = summary["by_date"].setdefault(task.date_string, _bucket())
        date_bucket["task_count"] += 1
        date_bucket["total_time"] += elapsed
        date_bucket["sessions"] += sessions

    return summary


def sleep_summary(sleep_sessions: Iterable[SleepSession]) -> dict[str, Any]:
    """Count, total and average duration of completed sleep sessions."""

    completed = [session for session in sleep_sessions if not session.is_active]
    total = sum(session.duration for session in completed)
    return {
        "total_sessions": len(completed),
        "total_duration": total,
        "average_duration": total / len(completed) if completed else 0,
        "sessions": [session.to_dict() for session in completed],
    }


__all__ = [
    "SLEEP_CATEGORY",
    "weekly_summary",
    "monthly_summary",
    "category_summary",
    "sleep_summary",
]
