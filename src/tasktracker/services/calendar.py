"""Reminder events in an external calendar, created on behalf of tasks."""

from __future__ import annotations

import asyncio
import datetime
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol

from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

from ..errors import (
    CalendarNotConnectedError,
    CollaboratorUnavailableError,
    NotFoundError,
    TrackerValidationError,
)
from ..repository import TrackerRepository
from ..tasks.models import Task
from ..utils.timezone import (
    ZoneLike,
    combine_date_and_clock,
    parse_clock,
    parse_date,
    resolve_timezone,
    timezone_key,
)
from .google_auth import auth as google_auth

logger = logging.getLogger(__name__)

DEFAULT_EVENT_DESCRIPTION = "Task from Task Tracker"
DEFAULT_EVENT_HOUR = 9
DEFAULT_EVENT_MINUTES = 30


@dataclass(slots=True)
class CalendarEvent:
    """Event details passed to a calendar provider."""

    title: str
    start: datetime.datetime
    end: datetime.datetime
    description: str = DEFAULT_EVENT_DESCRIPTION
    reminder_minutes: Optional[int] = None


class CalendarProvider(Protocol):
    """External calendar the tracker writes reminder events into."""

    def is_connected(self, owner_id: str) -> bool: ...

    def disconnect(self, owner_id: str) -> bool: ...

    async def create_event(self, owner_id: str, event: CalendarEvent) -> dict[str, Any]: ...

    async def event_exists(self, owner_id: str, event_id: str) -> bool: ...

    async def delete_event(self, owner_id: str, event_id: str) -> None: ...


class GoogleCalendarProvider:
    """Google Calendar v3 client built from per-owner stored tokens."""

    def __init__(self, token_dir: Path, *, calendar_id: str = "primary") -> None:
        self._token_dir = token_dir
        self._calendar_id = calendar_id

    def _service(self, owner_id: str) -> Any:
        try:
            return google_auth.get_calendar_service(owner_id, self._token_dir)
        except GoogleAuthError as exc:
            raise CalendarNotConnectedError(str(exc), owner_id=owner_id) from exc

    def is_connected(self, owner_id: str) -> bool:
        return google_auth.get_credentials(owner_id, self._token_dir) is not None

    def disconnect(self, owner_id: str) -> bool:
        return google_auth.delete_credentials(owner_id, self._token_dir)

    async def create_event(self, owner_id: str, event: CalendarEvent) -> dict[str, Any]:
        svc = self._service(owner_id)
        zone = timezone_key(event.start.tzinfo)
        body: dict[str, Any] = {
            "summary": event.title,
            "description": event.description,
            "start": {"dateTime": event.start.isoformat(), "timeZone": zone},
            "end": {"dateTime": event.end.isoformat(), "timeZone": zone},
        }
        if event.reminder_minutes and event.reminder_minutes > 0:
            body["reminders"] = {
                "useDefault": False,
                "overrides": [{"method": "popup", "minutes": event.reminder_minutes}],
            }
        else:
            body["reminders"] = {"useDefault": True}

        try:
            created = await asyncio.to_thread(
                svc.events().insert(calendarId=self._calendar_id, body=body).execute
            )
        except (HttpError, GoogleAuthError, OSError) as exc:
            raise CollaboratorUnavailableError(
                f"Failed to create calendar event: {exc}", owner_id=owner_id
            ) from exc
        return {"id": created.get("id"), "html_link": created.get("htmlLink")}

    async def event_exists(self, owner_id: str, event_id: str) -> bool:
        svc = self._service(owner_id)
        try:
            existing = await asyncio.to_thread(
                svc.events().get(calendarId=self._calendar_id, eventId=event_id).execute
            )
        except HttpError as exc:
            if exc.resp is not None and exc.resp.status in (404, 410):
                return False
            raise CollaboratorUnavailableError(
                f"Failed to look up calendar event: {exc}",
                owner_id=owner_id,
                entity_id=event_id,
            ) from exc
        return existing.get("status") != "cancelled"

    async def delete_event(self, owner_id: str, event_id: str) -> None:
        svc = self._service(owner_id)
        try:
            await asyncio.to_thread(
                svc.events().delete(calendarId=self._calendar_id, eventId=event_id).execute
            )
        except (HttpError, GoogleAuthError, OSError) as exc:
            raise CollaboratorUnavailableError(
                f"Failed to delete calendar event: {exc}",
                owner_id=owner_id,
                entity_id=event_id,
            ) from exc


def resolve_event_window(
    date: datetime.date | str,
    start_time: Optional[str],
    end_time: Optional[str],
    tz: ZoneLike,
    *,
    duration_minutes: int = DEFAULT_EVENT_MINUTES,
) -> tuple[datetime.datetime, datetime.datetime]:
    """Return the local start/end instants for an event on ``date``.

    With both clock times the event spans them; with only a start it lasts
    ``duration_minutes``; with neither it starts at 09:00.
    """

    zone = resolve_timezone(tz)
    if start_time:
        hour, minute = parse_clock(start_time)
    else:
        hour, minute = DEFAULT_EVENT_HOUR, 0
    start = combine_date_and_clock(date, hour, minute, zone)
    if start_time and end_time:
        end_hour, end_minute = parse_clock(end_time)
        end = combine_date_and_clock(date, end_hour, end_minute, zone)
    else:
        end = start + datetime.timedelta(minutes=duration_minutes)
    return start, end


class CalendarService:
    """Create and remove reminder events, linking them to tasks idempotently."""

    def __init__(self, repository: TrackerRepository, provider: CalendarProvider) -> None:
        self._repository = repository
        self._provider = provider

    def status(self, owner_id: str) -> dict[str, Any]:
        return {"connected": self._provider.is_connected(owner_id)}

    def disconnect(self, owner_id: str) -> dict[str, Any]:
        removed = self._provider.disconnect(owner_id)
        logger.info("Calendar disconnected for %s (token removed=%s)", owner_id, removed)
        return {"connected": False, "removed": removed}

    async def create_event(
        self,
        owner_id: str,
        *,
        title: str,
        date: str,
        tz: ZoneLike,
        description: Optional[str] = None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        duration_minutes: int = DEFAULT_EVENT_MINUTES,
        reminder_minutes: Optional[int] = None,
        task_id: Optional[str] = None,
    ) -> dict[str, Any]:
        """Create an event, reusing the one already linked to ``task_id``."""

        if not title or not title.strip():
            raise TrackerValidationError("Title and date are required", owner_id=owner_id)
        try:
            event_date = parse_date(date)
            start, end = resolve_event_window(
                event_date,
                start_time,
                end_time,
                tz,
                duration_minutes=duration_minutes,
            )
        except ValueError as exc:
            raise TrackerValidationError(str(exc), owner_id=owner_id) from exc

        task: Task | None = None
        if task_id:
            task = await self._repository.get_task(owner_id, task_id)
            if task is None:
                raise NotFoundError("Task not found", owner_id=owner_id, entity_id=task_id)
            if task.calendar_event_id:
                if await self._provider.event_exists(owner_id, task.calendar_event_id):
                    return {
                        "success": True,
                        "event_id": task.calendar_event_id,
                        "duplicate": True,
                    }
                logger.info(
                    "Calendar event %s for task %s no longer exists; recreating",
                    task.calendar_event_id,
                    task.id,
                )
                await self._repository.clear_calendar_event(task.id)

        created = await self._provider.create_event(
            owner_id,
            CalendarEvent(
                title=title.strip(),
                start=start,
                end=end,
                description=description or DEFAULT_EVENT_DESCRIPTION,
                reminder_minutes=reminder_minutes,
            ),
        )
        event_id = created.get("id")
        if task is not None and event_id:
            await self._repository.link_calendar_event(task.id, event_id)
        return {
            "success": True,
            "event_id": event_id,
            "event_link": created.get("html_link"),
            "duplicate": False,
        }

    async def delete_event(self, owner_id: str, event_id: str) -> dict[str, Any]:
        await self._provider.delete_event(owner_id, event_id)
        return {"success": True, "event_id": event_id}

    async def sync_task_event(
        self,
        task: Task,
        tz: ZoneLike,
        *,
        reminder_minutes: Optional[int] = None,
    ) -> bool:
        """Create an event for a scheduled task that has none yet.

        Returns True when a new event was created and linked. Failures are
        logged and reported as False so callers can carry on.
        """

        if task.calendar_event_id or not task.has_schedule:
            return False
        try:
            start, end = resolve_event_window(
                task.date,
                task.scheduled_start_time,
                task.scheduled_end_time,
                tz,
            )
        except ValueError:
            logger.debug("Task %s has an unparseable schedule; no event created", task.id)
            return False

        try:
            created = await self._provider.create_event(
                task.owner_id,
                CalendarEvent(
                    title=task.name,
                    start=start,
                    end=end,
                    description=f"{task.category} - {DEFAULT_EVENT_DESCRIPTION}",
                    reminder_minutes=reminder_minutes,
                ),
            )
        except CollaboratorUnavailableError as exc:
            logger.warning("Calendar event for task %s skipped: %s", task.id, exc)
            return False

        event_id = created.get("id")
        if not event_id:
            return False
        if not await self._repository.link_calendar_event(task.id, event_id):
            # A concurrent apply linked its own event first; drop ours.
            try:
                await self._provider.delete_event(task.owner_id, event_id)
            except CollaboratorUnavailableError as exc:
                logger.warning("Could not remove duplicate event %s: %s", event_id, exc)
            return False
        task.calendar_event_id = event_id
        return True


__all__ = [
    "CalendarEvent",
    "CalendarProvider",
    "GoogleCalendarProvider",
    "CalendarService",
    "resolve_event_window",
]
