"""REST API endpoints for sleep tracking."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from ..errors import TrackerError
from ..services.sleep import SleepService
from .dependencies import get_owner_id, get_sleep_service, get_timezone, http_error

router = APIRouter(prefix="/api/sleep", tags=["sleep"])


@router.post("/start", status_code=201)
async def start_sleep(
    owner_id: str = Depends(get_owner_id),
    tz: Optional[str] = Depends(get_timezone),
    service: SleepService = Depends(get_sleep_service),
) -> dict[str, Any]:
    try:
        session = await service.start(owner_id, tz)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return session.to_dict()


@router.post("/stop")
async def stop_sleep(
    owner_id: str = Depends(get_owner_id),
    service: SleepService = Depends(get_sleep_service),
) -> dict[str, Any]:
    try:
        session = await service.stop(owner_id)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return session.to_dict()


@router.get("/active")
async def get_active_sleep(
    owner_id: str = Depends(get_owner_id),
    service: SleepService = Depends(get_sleep_service),
) -> dict[str, Any] | None:
    session = await service.active(owner_id)
    return session.to_dict() if session is not None else None


@router.get("/history")
async def sleep_history(
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    owner_id: str = Depends(get_owner_id),
    service: SleepService = Depends(get_sleep_service),
) -> list[dict[str, Any]]:
    try:
        sessions = await service.history(owner_id, start_date, end_date)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return [session.to_dict() for session in sessions]


@router.get("/analytics")
async def sleep_analytics(
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    owner_id: str = Depends(get_owner_id),
    service: SleepService = Depends(get_sleep_service),
) -> dict[str, Any]:
    try:
        return await service.analytics(owner_id, start_date, end_date)
    except TrackerError as exc:
        raise http_error(exc) from exc


__all__ = ["router"]
