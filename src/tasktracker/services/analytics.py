"""Load tasks and sleep for a period and hand them to the aggregator."""

from __future__ import annotations

from typing import Any, Optional

from ..errors import TrackerValidationError
from ..repository import TrackerRepository
from ..tasks.analytics import category_summary, monthly_summary, weekly_summary
from ..tasks.service import resolve_week
from ..utils.timezone import (
    DEFAULT_TIMEZONE,
    Clock,
    SystemClock,
    ZoneLike,
    format_duration,
    month_range,
    parse_date,
    resolve_timezone,
)


class AnalyticsService:
    """Weekly, monthly and per-category summaries as of the clock's ``now``."""

    def __init__(
        self,
        repository: TrackerRepository,
        *,
        clock: Clock | None = None,
        default_timezone: str = DEFAULT_TIMEZONE,
    ) -> None:
        self._repository = repository
        self._clock = clock or SystemClock()
        self._default_timezone = default_timezone

    async def weekly(
        self,
        owner_id: str,
        year: int,
        month: int,
        week_number: int,
        tz: ZoneLike = None,
    ) -> dict[str, Any]:
        zone = resolve_timezone(tz, self._default_timezone)
        week = resolve_week(year, month, week_number, zone, owner_id=owner_id)
        tasks = await self._repository.list_tasks_between(
            owner_id, week.start_date, week.end_date
        )
        sleeps = await self._repository.list_sleep(
            owner_id, week.start_date, week.end_date, completed_only=True
        )
        summary = weekly_summary(tasks, sleeps, self._clock.now())
        summary["start_date"] = week.start_date.isoformat()
        summary["end_date"] = week.end_date.isoformat()
        summary["total_time_formatted"] = format_duration(summary["total_time"])
        return summary

    async def monthly(
        self,
        owner_id: str,
        year: int,
        month: int,
        tz: ZoneLike = None,
    ) -> dict[str, Any]:
        zone = resolve_timezone(tz, self._default_timezone)
        try:
            period = month_range(year, month, zone)
        except ValueError as exc:
            raise TrackerValidationError(str(exc), owner_id=owner_id) from exc
        tasks = await self._repository.list_tasks_between(
            owner_id, period.start_date, period.end_date
        )
        sleeps = await self._repository.list_sleep(
            owner_id, period.start_date, period.end_date, completed_only=True
        )
        summary = monthly_summary(tasks, sleeps, self._clock.now())
        summary["start_date"] = period.start_date.isoformat()
        summary["end_date"] = period.end_date.isoformat()
        summary["total_time_formatted"] = format_duration(summary["total_time"])
        return summary

    async def category(
        self,
        owner_id: str,
        category: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> dict[str, Any]:
        try:
            start = parse_date(start_date) if start_date else None
            end = parse_date(end_date) if end_date else None
        except ValueError as exc:
            raise TrackerValidationError(str(exc), owner_id=owner_id) from exc
        tasks = await self._repository.list_tasks_for_category(
            owner_id, category, start, end
        )
        return category_summary(
            category, tasks, self._clock.now(), start_date=start, end_date=end
        )


__all__ = ["AnalyticsService"]
