"""REST API endpoints for categories."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from ..errors import TrackerError
from ..schemas.misc import CategoryCreate, CategoryUpdate
from ..services.categories import CategoryService
from .dependencies import get_category_service, get_owner_id, http_error

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("")
async def list_categories(
    owner_id: str = Depends(get_owner_id),
    service: CategoryService = Depends(get_category_service),
) -> list[dict[str, Any]]:
    return [category.to_dict() for category in await service.list_categories(owner_id)]


@router.post("", status_code=201)
async def create_category(
    body: CategoryCreate,
    owner_id: str = Depends(get_owner_id),
    service: CategoryService = Depends(get_category_service),
) -> dict[str, Any]:
    try:
        category = await service.create_category(
            owner_id, body.name, color=body.color, icon=body.icon
        )
    except TrackerError as exc:
        raise http_error(exc) from exc
    return category.to_dict()


@router.put("/{category_id}")
async def update_category(
    category_id: str,
    body: CategoryUpdate,
    owner_id: str = Depends(get_owner_id),
    service: CategoryService = Depends(get_category_service),
) -> dict[str, Any]:
    try:
        category = await service.update_category(
            owner_id, category_id, body.model_dump(exclude_unset=True)
        )
    except TrackerError as exc:
        raise http_error(exc) from exc
    return category.to_dict()


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    owner_id: str = Depends(get_owner_id),
    service: CategoryService = Depends(get_category_service),
) -> dict[str, Any]:
    """Delete a category; tasks keep the category name they were created with."""
    try:
        await service.delete_category(owner_id, category_id)
    except TrackerError as exc:
        raise http_error(exc) from exc
    return {"message": "Category removed", "category_id": category_id}


__all__ = ["router"]
