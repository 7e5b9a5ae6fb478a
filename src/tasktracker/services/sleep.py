"""Sleep session tracking."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..errors import ConflictError, NotFoundError, TrackerValidationError
from ..models import SleepSession
from ..repository import TrackerRepository
from ..tasks.analytics import sleep_summary
from ..utils.timezone import (
    DEFAULT_TIMEZONE,
    Clock,
    SystemClock,
    ZoneLike,
    date_to_string,
    milliseconds_between,
    parse_date,
    resolve_timezone,
)

logger = logging.getLogger(__name__)


class SleepService:
    """Start and stop sleep sessions; at most one runs per owner."""

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

    async def start(self, owner_id: str, tz: ZoneLike = None) -> SleepSession:
        now = self._clock.now()
        local_day = parse_date(
            date_to_string(now, resolve_timezone(tz, self._default_timezone))
        )
        try:
            return await self._repository.start_sleep(owner_id, now, local_day)
        except ConflictError as exc:
            raise TrackerValidationError(
                "Sleep session already in progress", owner_id=owner_id
            ) from exc

    async def stop(self, owner_id: str) -> SleepSession:
        active = await self._repository.get_active_sleep(owner_id)
        if active is None:
            raise NotFoundError("No active sleep session found", owner_id=owner_id)
        now = self._clock.now()
        duration = max(0, milliseconds_between(active.start_time, now))
        if not await self._repository.stop_sleep(active.id, now, duration):
            raise NotFoundError(
                "No active sleep session found", owner_id=owner_id, entity_id=active.id
            )
        active.end_time = now
        active.duration = duration
        active.is_active = False
        logger.debug("Stopped sleep session %s after %d ms", active.id, duration)
        return active

    async def active(self, owner_id: str) -> Optional[SleepSession]:
        return await self._repository.get_active_sleep(owner_id)

    async def history(
        self,
        owner_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> list[SleepSession]:
        start, end = _date_filter(owner_id, start_date, end_date)
        return await self._repository.list_sleep(owner_id, start, end)

    async def analytics(
        self,
        owner_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> dict[str, Any]:
        start, end = _date_filter(owner_id, start_date, end_date)
        sessions = await self._repository.list_sleep(
            owner_id, start, end, completed_only=True
        )
        return sleep_summary(sessions)


def _date_filter(owner_id: str, start_date: Optional[str], end_date: Optional[str]):
    # Both bounds or neither.
    if not (start_date and end_date):
        return None, None
    try:
        return parse_date(start_date), parse_date(end_date)
    except ValueError as exc:
        raise TrackerValidationError(str(exc), owner_id=owner_id) from exc


__all__ = ["SleepService"]
