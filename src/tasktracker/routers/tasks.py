"""REST API endpoints for tasks and task analytics."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from ..errors import TrackerError
from ..schemas.tasks import TaskCreate, TaskReorder, TaskUpdate
from ..services.analytics import AnalyticsService
from ..tasks.service import TaskService
from .dependencies import (
    get_analytics_service,
    get_owner_id,
    get_task_service,
    get_timezone,
    http_error,
)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.post("", status_code=201)
async def create_task(
    body: TaskCreate,
    owner_id: str = Depends(get_owner_id),
    tz: Optional[str] = Depends(get_timezone),
    service: TaskService = Depends(get_task_service),
) -> dict[str, Any]:
    """Create a task; automated tasks dated today or earlier complete at once."""
    try:
        task = await service.create_task(owner_id, tz=tz, **body.model_dump())
    except TrackerError as exc:
        raise http_error(exc) from exc
    return service.serialize([task])[0]


@router.get("/range")
async def list_tasks_by_range(
    start_date: str = Query(..., description="YYYY-MM-DD"),
    end_date: str = Query(..., description="YYYY-MM-DD"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    owner_id: str = Depends(get_owner_id),
    service: TaskService = Depends(get_task_service),
) -> dict[str, Any]:
    try:
        result = await service.list_range(
            owner_id, start_date, end_date, page=page, limit=limit
        )
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {
        "tasks": service.serialize(result["tasks"]),
        "pagination": result["pagination"],
    }


@router.get("/week/{year}/{month}/{week_number}")
async def list_tasks_by_week(
    year: int,
    month: int,
    week_number: int,
    owner_id: str = Depends(get_owner_id),
    tz: Optional[str] = Depends(get_timezone),
    service: TaskService = Depends(get_task_service),
) -> list[dict[str, Any]]:
    """List a week's tasks (``month`` is 0-indexed), auto-completing due ones."""
    try:
        tasks = await service.list_week(owner_id, year, month, week_number, tz)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return service.serialize(tasks)


@router.delete("/day/{date}")
async def delete_tasks_by_day(
    date: str,
    owner_id: str = Depends(get_owner_id),
    service: TaskService = Depends(get_task_service),
) -> dict[str, Any]:
    try:
        deleted = await service.delete_tasks_for_day(owner_id, date)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {"message": f"Deleted {deleted} task(s)", "deleted_count": deleted}


@router.delete("/week/{year}/{month}/{week_number}")
async def delete_tasks_by_week(
    year: int,
    month: int,
    week_number: int,
    owner_id: str = Depends(get_owner_id),
    tz: Optional[str] = Depends(get_timezone),
    service: TaskService = Depends(get_task_service),
) -> dict[str, Any]:
    try:
        deleted = await service.delete_tasks_for_week(
            owner_id, year, month, week_number, tz
        )
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {
        "message": f"Deleted {deleted} task(s) from week {week_number}",
        "deleted_count": deleted,
    }


@router.get("/deleted")
async def list_deleted_tasks(
    owner_id: str = Depends(get_owner_id),
    service: TaskService = Depends(get_task_service),
) -> list[dict[str, Any]]:
    return service.serialize(await service.list_deleted(owner_id))


@router.put("/reorder")
async def reorder_tasks(
    body: TaskReorder,
    owner_id: str = Depends(get_owner_id),
    service: TaskService = Depends(get_task_service),
) -> dict[str, Any]:
    try:
        updated = await service.reorder(owner_id, body.task_ids)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {"updated": updated}


@router.get("/overtime")
async def poll_overtime(
    stop: bool = Query(False, description="Stop every overtime task that is found"),
    owner_id: str = Depends(get_owner_id),
    service: TaskService = Depends(get_task_service),
) -> dict[str, Any]:
    """Report running tasks past their planned time plus the grace period."""
    tasks = await service.poll_overtime(
        owner_id, on_overtime=(lambda task: True) if stop else None
    )
    return {"tasks": service.serialize(tasks), "stopped": stop and bool(tasks)}


@router.get("/analytics/week/{year}/{month}/{week_number}")
async def weekly_analytics(
    year: int,
    month: int,
    week_number: int,
    owner_id: str = Depends(get_owner_id),
    tz: Optional[str] = Depends(get_timezone),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, Any]:
    try:
        return await analytics.weekly(owner_id, year, month, week_number, tz)
    except TrackerError as exc:
        raise http_error(exc) from exc


@router.get("/analytics/month/{year}/{month}")
async def monthly_analytics(
    year: int,
    month: int,
    owner_id: str = Depends(get_owner_id),
    tz: Optional[str] = Depends(get_timezone),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, Any]:
    try:
        return await analytics.monthly(owner_id, year, month, tz)
    except TrackerError as exc:
        raise http_error(exc) from exc


@router.get("/analytics/category/{category}")
async def category_analytics(
    category: str,
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    owner_id: str = Depends(get_owner_id),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, Any]:
    try:
        return await analytics.category(owner_id, category, start_date, end_date)
    except TrackerError as exc:
        raise http_error(exc) from exc


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    owner_id: str = Depends(get_owner_id),
    service: TaskService = Depends(get_task_service),
) -> dict[str, Any]:
    try:
        task = await service.get_task(owner_id, task_id)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return service.serialize([task])[0]


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    body: TaskUpdate,
    owner_id: str = Depends(get_owner_id),
    tz: Optional[str] = Depends(get_timezone),
    service: TaskService = Depends(get_task_service),
) -> dict[str, Any]:
    """Update fields or start/stop tracking (``is_active``)."""
    try:
        task = await service.update_task(
            owner_id, task_id, body.model_dump(exclude_unset=True), tz
        )
    except TrackerError as exc:
        raise http_error(exc) from exc
    return service.serialize([task])[0]


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    owner_id: str = Depends(get_owner_id),
    service: TaskService = Depends(get_task_service),
) -> dict[str, Any]:
    try:
        await service.delete_task(owner_id, task_id)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {"message": "Task removed", "task_id": task_id}


@router.put("/{task_id}/restore")
async def restore_task(
    task_id: str,
    owner_id: str = Depends(get_owner_id),
    service: TaskService = Depends(get_task_service),
) -> dict[str, Any]:
    try:
        task = await service.restore_task(owner_id, task_id)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return service.serialize([task])[0]


__all__ = ["router"]
