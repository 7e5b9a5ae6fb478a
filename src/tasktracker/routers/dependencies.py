"""Request-scoped dependencies shared by the API routers."""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, Query, Request

from ..errors import (
    CollaboratorUnavailableError,
    ConflictError,
    NotFoundError,
    TrackerError,
    TrackerValidationError,
)
from ..services.analytics import AnalyticsService
from ..services.calendar import CalendarService
from ..services.categories import CategoryService
from ..services.sleep import SleepService
from ..services.templates import TemplateService
from ..services.todos import TodoService
from ..tasks.service import TaskService

_STATUS_BY_ERROR: tuple[tuple[type[TrackerError], int], ...] = (
    (TrackerValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (CollaboratorUnavailableError, 503),
)


def http_error(exc: TrackerError) -> HTTPException:
    """Translate a tracker error into the matching HTTP status."""

    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def get_owner_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Not authorized, missing user")
    return x_user_id.strip()


def get_timezone(
    x_timezone: Optional[str] = Header(default=None),
    timezone: Optional[str] = Query(default=None),
) -> Optional[str]:
    """Caller's IANA zone; services fall back to the configured default."""

    return x_timezone or timezone or None


def _state_service(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:  # pragma: no cover - defensive
        raise RuntimeError(f"{name} is not configured")
    return service


def get_task_service(request: Request) -> TaskService:
    return _state_service(request, "task_service")


def get_analytics_service(request: Request) -> AnalyticsService:
    return _state_service(request, "analytics_service")


def get_template_service(request: Request) -> TemplateService:
    return _state_service(request, "template_service")


def get_category_service(request: Request) -> CategoryService:
    return _state_service(request, "category_service")


def get_sleep_service(request: Request) -> SleepService:
    return _state_service(request, "sleep_service")


def get_todo_service(request: Request) -> TodoService:
    return _state_service(request, "todo_service")


def get_calendar_service(request: Request) -> CalendarService:
    service = getattr(request.app.state, "calendar_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Calendar service not available")
    return service


__all__ = [
    "http_error",
    "get_owner_id",
    "get_timezone",
    "get_task_service",
    "get_analytics_service",
    "get_template_service",
    "get_category_service",
    "get_sleep_service",
    "get_todo_service",
    "get_calendar_service",
]
