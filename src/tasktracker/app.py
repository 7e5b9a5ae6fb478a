"""Application factory for the FastAPI service."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import PROJECT_ROOT, Settings, get_settings
from .logging_handlers import DateStampedFileHandler, cleanup_old_logs
from .logging_settings import parse_logging_settings
from .repository import TrackerRepository
from .routers.calendar import router as calendar_router
from .routers.categories import router as categories_router
from .routers.sleep import router as sleep_router
from .routers.tasks import router as tasks_router
from .routers.templates import router as templates_router
from .routers.todos import router as todos_router
from .services.analytics import AnalyticsService
from .services.cache import TTLCache
from .services.calendar import CalendarProvider, CalendarService, GoogleCalendarProvider
from .services.categories import CategoryService
from .services.sleep import SleepService
from .services.templates import TemplateService
from .services.todos import TodoService
from .tasks.service import TaskService
from .utils.timezone import Clock, SystemClock

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_under(base: Path, p: Path) -> Path:
    # Allow absolute paths as-is (useful for tests and external mounts).
    if p.is_absolute():
        return p.resolve()
    resolved = (base / p).resolve()
    if not resolved.is_relative_to(base):
        raise ValueError(f"Configured path {resolved} escapes project root {base}")
    return resolved


def _configure_logging(settings: Settings) -> None:
    """Configure console and date-stamped file logging.

    ``LOG_LEVEL`` overrides the terminal level from the logging settings file.
    """
    load_dotenv()

    log_settings = parse_logging_settings(
        _resolve_under(PROJECT_ROOT, settings.log_settings_path)
    )
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)
    handlers: list[logging.Handler] = []

    env_level = os.getenv("LOG_LEVEL")
    terminal_level = (
        getattr(logging, env_level.upper(), logging.INFO)
        if env_level
        else log_settings.terminal_level
    )
    if terminal_level is not None:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(terminal_level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    log_dir = _resolve_under(PROJECT_ROOT, settings.log_dir)
    if log_settings.file_level is not None:
        file_handler = DateStampedFileHandler(
            log_dir, prefix="tracker", tz=settings.default_timezone
        )
        file_handler.setLevel(log_settings.file_level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    levels = [handler.level for handler in handlers]
    root_level = min(levels) if levels else logging.WARNING
    logging.basicConfig(level=root_level, handlers=handlers or None, force=True)

    logging.getLogger("tasktracker").setLevel(root_level)
    logging.getLogger("uvicorn").setLevel(root_level)
    logging.getLogger("uvicorn.access").setLevel(root_level)
    # googleapiclient logs every discovery request at INFO
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)

    cleanup_old_logs(
        [log_dir], log_settings.retention_hours, logging.getLogger(__name__)
    )


def create_app(
    settings: Settings | None = None,
    *,
    clock: Clock | None = None,
    calendar_provider: CalendarProvider | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    # Configure logging first thing
    _configure_logging(settings)

    clock = clock or SystemClock()
    repository = TrackerRepository(
        _resolve_under(PROJECT_ROOT, settings.database_path), clock=clock
    )
    cache = TTLCache(settings.cache_ttl_seconds, enabled=settings.cache_enabled)

    if calendar_provider is None:
        calendar_provider = GoogleCalendarProvider(
            _resolve_under(PROJECT_ROOT, settings.google_token_dir),
            calendar_id=settings.calendar_id,
        )
    calendar_service = CalendarService(repository, calendar_provider)

    shared = {"clock": clock, "default_timezone": settings.default_timezone}
    task_service = TaskService(
        repository, overtime_grace_ms=settings.overtime_grace_ms, **shared
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await repository.initialize()
        logging.getLogger(__name__).info(
            "Task tracker ready (database=%s, timezone=%s)",
            settings.database_path,
            settings.default_timezone,
        )
        try:
            yield
        finally:
            await repository.close()
            await cache.clear()

    app = FastAPI(
        title="Task Tracker Backend",
        version="0.1.0",
        description="Task scheduling, time tracking and analytics.",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.repository = repository
    app.state.task_service = task_service
    app.state.analytics_service = AnalyticsService(repository, **shared)
    app.state.template_service = TemplateService(
        repository, calendar=calendar_service, cache=cache, **shared
    )
    app.state.category_service = CategoryService(repository, cache)
    app.state.sleep_service = SleepService(repository, **shared)
    app.state.todo_service = TodoService(repository, **shared)
    app.state.calendar_service = calendar_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(tasks_router)
    app.include_router(templates_router)
    app.include_router(categories_router)
    app.include_router(sleep_router)
    app.include_router(todos_router)
    app.include_router(calendar_router)

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, str]:
        return {
            "status": "ok",
            "timezone": settings.default_timezone,
            "time": clock.now().isoformat(),
        }

    return app


__all__ = ["create_app"]
