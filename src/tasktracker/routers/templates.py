"""REST API endpoints for weekly templates."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends

from ..errors import TrackerError
from ..schemas.templates import TemplateCreate, TemplateUpdate
from ..services.templates import TemplateService
from ..tasks.service import TaskService
from .dependencies import (
    get_owner_id,
    get_task_service,
    get_template_service,
    get_timezone,
    http_error,
)

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.get("")
async def list_templates(
    owner_id: str = Depends(get_owner_id),
    service: TemplateService = Depends(get_template_service),
) -> list[dict[str, Any]]:
    return [template.to_dict() for template in await service.list_templates(owner_id)]


@router.get("/{template_id}")
async def get_template(
    template_id: str,
    owner_id: str = Depends(get_owner_id),
    service: TemplateService = Depends(get_template_service),
) -> dict[str, Any]:
    try:
        template = await service.get_template(owner_id, template_id)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return template.to_dict()


@router.post("", status_code=201)
async def create_template(
    body: TemplateCreate,
    owner_id: str = Depends(get_owner_id),
    service: TemplateService = Depends(get_template_service),
) -> dict[str, Any]:
    try:
        template = await service.create_template(
            owner_id, body.name, [task.to_template_task() for task in body.tasks]
        )
    except TrackerError as exc:
        raise http_error(exc) from exc
    return template.to_dict()


@router.put("/{template_id}")
async def update_template(
    template_id: str,
    body: TemplateUpdate,
    owner_id: str = Depends(get_owner_id),
    service: TemplateService = Depends(get_template_service),
) -> dict[str, Any]:
    tasks = (
        [task.to_template_task() for task in body.tasks]
        if body.tasks is not None
        else None
    )
    try:
        template = await service.update_template(
            owner_id, template_id, name=body.name, tasks=tasks
        )
    except TrackerError as exc:
        raise http_error(exc) from exc
    return template.to_dict()


@router.delete("/{template_id}")
async def delete_template(
    template_id: str,
    owner_id: str = Depends(get_owner_id),
    service: TemplateService = Depends(get_template_service),
) -> dict[str, Any]:
    try:
        await service.delete_template(owner_id, template_id)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {"message": "Template deleted successfully", "template_id": template_id}


@router.post("/{template_id}/apply/{year}/{month}/{week_number}")
async def apply_template(
    template_id: str,
    year: int,
    month: int,
    week_number: int,
    owner_id: str = Depends(get_owner_id),
    tz: Optional[str] = Depends(get_timezone),
    service: TemplateService = Depends(get_template_service),
    task_service: TaskService = Depends(get_task_service),
) -> dict[str, Any]:
    """Create or update the template's tasks for one week (``month`` is 0-indexed)."""
    try:
        result = await service.apply_template(
            owner_id, template_id, year, month, week_number, tz
        )
    except TrackerError as exc:
        raise http_error(exc) from exc
    tasks = task_service.serialize(result["tasks"])
    return {
        "message": f"Applied template with {len(tasks)} tasks",
        "tasks": tasks,
        "calendar_events_created": result["calendar_events_created"],
        "skipped": result["skipped"],
    }


__all__ = ["router"]
