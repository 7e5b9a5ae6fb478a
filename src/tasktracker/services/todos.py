"""Quick todos with carry-forward of unfinished items."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..errors import NotFoundError, TrackerValidationError
from ..models import Todo
from ..repository import TrackerRepository
from ..utils.timezone import (
    DEFAULT_TIMEZONE,
    Clock,
    SystemClock,
    ZoneLike,
    parse_date,
    resolve_timezone,
    today,
)

logger = logging.getLogger(__name__)


class TodoService:
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

    def _today(self, tz: ZoneLike):
        zone = resolve_timezone(tz, self._default_timezone)
        return parse_date(today(zone, now=self._clock.now()))

    async def list_today(self, owner_id: str, tz: ZoneLike = None) -> list[Todo]:
        """Return today's todos after moving unfinished past ones onto today.

        Carried items keep their identity; only ``date`` and ``is_overdue``
        change.
        """

        current = self._today(tz)
        moved = await self._repository.carry_forward_todos(owner_id, current)
        if moved:
            logger.debug("Carried %d overdue todo(s) forward for %s", moved, owner_id)
        return await self._repository.list_todos_for_day(owner_id, current)

    async def create(
        self,
        owner_id: str,
        text: str,
        tz: ZoneLike = None,
        deadline: Optional[str] = None,
    ) -> Todo:
        text = (text or "").strip()
        if not text:
            raise TrackerValidationError("Please provide todo text", owner_id=owner_id)
        return await self._repository.create_todo(
            owner_id, text, self._today(tz), _parse_deadline(owner_id, deadline)
        )

    async def update(self, owner_id: str, todo_id: str, changes: dict[str, Any]) -> Todo:
        fields: dict[str, Any] = {}
        if changes.get("completed") is not None:
            fields["completed"] = bool(changes["completed"])
        if changes.get("text"):
            fields["text"] = str(changes["text"]).strip()
        if "deadline" in changes:
            fields["deadline"] = _parse_deadline(owner_id, changes["deadline"])
        if not await self._repository.update_todo(owner_id, todo_id, fields):
            raise NotFoundError("Todo not found", owner_id=owner_id, entity_id=todo_id)
        return await self._fetch(owner_id, todo_id)

    async def delete(self, owner_id: str, todo_id: str) -> None:
        if not await self._repository.soft_delete_todo(owner_id, todo_id):
            raise NotFoundError("Todo not found", owner_id=owner_id, entity_id=todo_id)

    async def restore(self, owner_id: str, todo_id: str) -> Todo:
        if not await self._repository.restore_todo(owner_id, todo_id):
            raise NotFoundError(
                "Deleted todo not found", owner_id=owner_id, entity_id=todo_id
            )
        return await self._fetch(owner_id, todo_id)

    async def clear_completed(self, owner_id: str) -> int:
        return await self._repository.clear_completed_todos(owner_id)

    async def _fetch(self, owner_id: str, todo_id: str) -> Todo:
        todo = await self._repository.get_todo(owner_id, todo_id)
        if todo is None:
            raise NotFoundError("Todo not found", owner_id=owner_id, entity_id=todo_id)
        return todo


def _parse_deadline(owner_id: str, value: Optional[str]):
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError as exc:
        raise TrackerValidationError(
            f"Invalid deadline {value!r}; expected YYYY-MM-DD", owner_id=owner_id
        ) from exc


__all__ = ["TodoService"]
