"""Calendar integration endpoints (status, disconnect, events)."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends

from ..errors import TrackerError
from ..schemas.misc import CalendarEventCreate
from ..services.calendar import CalendarService
from .dependencies import get_calendar_service, get_owner_id, get_timezone, http_error

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/calendar", tags=["Calendar"])


@router.get("/status")
async def calendar_status(
    owner_id: str = Depends(get_owner_id),
    service: CalendarService = Depends(get_calendar_service),
) -> dict[str, Any]:
    return service.status(owner_id)


@router.post("/disconnect")
async def disconnect_calendar(
    owner_id: str = Depends(get_owner_id),
    service: CalendarService = Depends(get_calendar_service),
) -> dict[str, Any]:
    return service.disconnect(owner_id)


@router.post("/events")
async def create_event(
    body: CalendarEventCreate,
    owner_id: str = Depends(get_owner_id),
    tz: Optional[str] = Depends(get_timezone),
    service: CalendarService = Depends(get_calendar_service),
) -> dict[str, Any]:
    """Create a reminder event; a task's existing event is reused."""
    try:
        return await service.create_event(
            owner_id,
            title=body.title,
            date=body.date,
            tz=tz,
            description=body.description,
            start_time=body.start_time,
            end_time=body.end_time,
            duration_minutes=body.duration_minutes,
            reminder_minutes=body.reminder_minutes,
            task_id=body.task_id,
        )
    except TrackerError as exc:
        logger.warning("Calendar event creation failed for %s: %s", owner_id, exc)
        raise http_error(exc) from exc


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: str,
    owner_id: str = Depends(get_owner_id),
    service: CalendarService = Depends(get_calendar_service),
) -> dict[str, Any]:
    try:
        return await service.delete_event(owner_id, event_id)
    except TrackerError as exc:
        logger.warning("Calendar event deletion failed for %s: %s", owner_id, exc)
        raise http_error(exc) from exc


__all__ = ["router"]
