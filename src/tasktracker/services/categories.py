"""Category management with a read-through list cache."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..errors import NotFoundError, TrackerValidationError
from ..models import DEFAULT_CATEGORY_COLOR, DEFAULT_CATEGORY_ICON, Category
from ..repository import TrackerRepository
from .cache import TTLCache, cache_key

logger = logging.getLogger(__name__)


class CategoryService:
    """CRUD over categories.

    Tasks store the category name, so renames and deletes here never rewrite
    or remove existing tasks.
    """

    def __init__(self, repository: TrackerRepository, cache: TTLCache | None = None) -> None:
        self._repository = repository
        self._cache = cache or TTLCache(enabled=False)

    async def list_categories(self, owner_id: str) -> list[Category]:
        return await self._cache.get_or_load(
            cache_key(owner_id, "categories"),
            lambda: self._repository.list_categories(owner_id),
        )

    async def create_category(
        self,
        owner_id: str,
        name: str,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Category:
        name = (name or "").strip()
        if not name:
            raise TrackerValidationError("Please provide category name", owner_id=owner_id)
        category = await self._repository.create_category(
            owner_id,
            name,
            color or DEFAULT_CATEGORY_COLOR,
            icon or DEFAULT_CATEGORY_ICON,
        )
        await self._invalidate(owner_id)
        return category

    async def update_category(
        self, owner_id: str, category_id: str, changes: dict[str, Any]
    ) -> Category:
        fields = {key: value for key, value in changes.items() if value is not None}
        if "name" in fields:
            fields["name"] = str(fields["name"]).strip()
            if not fields["name"]:
                raise TrackerValidationError(
                    "Category name must not be empty",
                    owner_id=owner_id,
                    entity_id=category_id,
                )
        if not await self._repository.update_category(owner_id, category_id, fields):
            raise NotFoundError(
                "Category not found", owner_id=owner_id, entity_id=category_id
            )
        await self._invalidate(owner_id)
        category = await self._repository.get_category(owner_id, category_id)
        if category is None:
            raise NotFoundError(
                "Category not found", owner_id=owner_id, entity_id=category_id
            )
        return category

    async def delete_category(self, owner_id: str, category_id: str) -> None:
        if not await self._repository.delete_category(owner_id, category_id):
            raise NotFoundError(
                "Category not found", owner_id=owner_id, entity_id=category_id
            )
        logger.debug("Deleted category %s for %s", category_id, owner_id)
        await self._invalidate(owner_id)

    async def _invalidate(self, owner_id: str) -> None:
        await self._cache.invalidate(cache_key(owner_id, "categories"))


__all__ = ["CategoryService"]
