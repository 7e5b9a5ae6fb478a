"""REST API endpoints for quick todos."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends

from ..errors import TrackerError
from ..schemas.misc import TodoCreate, TodoUpdate
from ..services.todos import TodoService
from .dependencies import get_owner_id, get_timezone, get_todo_service, http_error

router = APIRouter(prefix="/api/todos", tags=["todos"])


@router.get("")
async def list_todos(
    owner_id: str = Depends(get_owner_id),
    tz: Optional[str] = Depends(get_timezone),
    service: TodoService = Depends(get_todo_service),
) -> list[dict[str, Any]]:
    """Today's todos, with unfinished ones from earlier days carried forward."""
    return [todo.to_dict() for todo in await service.list_today(owner_id, tz)]


@router.post("", status_code=201)
async def create_todo(
    body: TodoCreate,
    owner_id: str = Depends(get_owner_id),
    tz: Optional[str] = Depends(get_timezone),
    service: TodoService = Depends(get_todo_service),
) -> dict[str, Any]:
    try:
        todo = await service.create(owner_id, body.text, tz, deadline=body.deadline)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return todo.to_dict()


@router.delete("/clear-completed")
async def clear_completed(
    owner_id: str = Depends(get_owner_id),
    service: TodoService = Depends(get_todo_service),
) -> dict[str, Any]:
    cleared = await service.clear_completed(owner_id)
    return {
        "message": f"Cleared {cleared} completed todo(s)",
        "deleted_count": cleared,
    }


@router.put("/{todo_id}")
async def update_todo(
    todo_id: str,
    body: TodoUpdate,
    owner_id: str = Depends(get_owner_id),
    service: TodoService = Depends(get_todo_service),
) -> dict[str, Any]:
    try:
        todo = await service.update(owner_id, todo_id, body.model_dump(exclude_unset=True))
    except TrackerError as exc:
        raise http_error(exc) from exc
    return todo.to_dict()


@router.delete("/{todo_id}")
async def delete_todo(
    todo_id: str,
    owner_id: str = Depends(get_owner_id),
    service: TodoService = Depends(get_todo_service),
) -> dict[str, Any]:
    try:
        await service.delete(owner_id, todo_id)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {"message": "Todo removed", "todo_id": todo_id}


@router.put("/{todo_id}/restore")
async def restore_todo(
    todo_id: str,
    owner_id: str = Depends(get_owner_id),
    service: TodoService = Depends(get_todo_service),
) -> dict[str, Any]:
    try:
        todo = await service.restore(owner_id, todo_id)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return todo.to_dict()


__all__ = ["router"]
