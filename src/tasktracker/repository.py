"""SQLite-backed document store for tasks, templates, categories, sleep and todos."""

from __future__ import annotations

import asyncio
import datetime
import json
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Iterable, Optional

import aiosqlite

from .errors import ConflictError
from .models import Category, SleepSession, Todo
from .tasks.models import Task, TaskSession, TaskTemplate, TemplateTask
from .utils.timezone import Clock, SystemClock

# Columns a caller may overwrite through ``update_task``.
_TASK_COLUMNS = {
    "name": "name",
    "category": "category",
    "date": "date",
    "day": "day",
    "planned_time": "planned_time",
    "is_automated": "is_automated",
    "completion_count": "completion_count",
    "order": "sort_order",
    "scheduled_start_time": "scheduled_start_time",
    "scheduled_end_time": "scheduled_end_time",
    "notifications_enabled": "notifications_enabled",
    "notification_time": "notification_time",
    "calendar_event_id": "calendar_event_id",
}

_CATEGORY_COLUMNS = {"name", "color", "icon"}
_TODO_COLUMNS = {"text", "completed", "deadline", "is_overdue"}


def _iso(value: Optional[datetime.datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc).isoformat()


def _parse_db_timestamp(value: Optional[str]) -> Optional[datetime.datetime]:
    """Parse a stored timestamp and normalize to UTC."""

    if value is None:
        return None
    try:
        parsed = datetime.datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


def _parse_db_date(value: Optional[str]) -> Optional[datetime.date]:
    if not value:
        return None
    return datetime.date.fromisoformat(value[:10])


def _encode_sessions(sessions: Iterable[TaskSession]) -> str:
    return json.dumps([session.to_dict() for session in sessions])


def _decode_sessions(value: Optional[str]) -> list[TaskSession]:
    if not value:
        return []
    try:
        raw = json.loads(value)
    except json.JSONDecodeError:
        return []
    return [TaskSession.from_dict(item) for item in raw if isinstance(item, dict)]


def _is_unique_violation(exc: sqlite3.IntegrityError) -> bool:
    return "UNIQUE constraint failed" in str(exc)


def _db_value(column: str, value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime.datetime):
        return _iso(value)
    if isinstance(value, datetime.date):
        return value.isoformat()
    return value


class TrackerRepository:
    """Persist tracker documents in SQLite.

    Every write that must not race (auto-completion, start/stop, calendar
    event linking) is a single conditional ``UPDATE`` keyed by id, so
    concurrent requests cannot double-apply it.
    """

    def __init__(self, database_path: Path, *, clock: Clock | None = None):
        self._path = database_path
        self._clock = clock or SystemClock()
        self._connection: aiosqlite.Connection | None = None
        # One shared connection: a rollback must never undo another writer.
        self._write_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Open the SQLite connection and ensure tables exist."""

        if self._connection is not None:
            return

        if str(self._path) != ":memory:":
            self._path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._path)
        self._connection.row_factory = aiosqlite.Row
        await self._connection.execute("PRAGMA journal_mode=WAL;")
        await self._create_schema()

    async def _create_schema(self) -> None:
        assert self._connection is not None
        await self._connection.executescript(
            """
            CREATE TABLE IF NOT EXISTS categories (
                category_id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                name TEXT NOT NULL,
                color TEXT NOT NULL,
                icon TEXT NOT NULL,
                created_at TEXT NOT NULL,
                UNIQUE (owner_id, name)
            );

            CREATE TABLE IF NOT EXISTS tasks (
                task_id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                name TEXT NOT NULL,
                category TEXT NOT NULL,
                date TEXT NOT NULL,
                day TEXT NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 0,
                start_time TEXT,
                sessions TEXT NOT NULL DEFAULT '[]',
                total_time INTEGER NOT NULL DEFAULT 0,
                planned_time INTEGER NOT NULL DEFAULT 0,
                is_automated INTEGER NOT NULL DEFAULT 0,
                completion_count INTEGER NOT NULL DEFAULT 0,
                sort_order INTEGER NOT NULL DEFAULT 0,
                scheduled_start_time TEXT,
                scheduled_end_time TEXT,
                notifications_enabled INTEGER NOT NULL DEFAULT 0,
                notification_time INTEGER NOT NULL DEFAULT 30,
                calendar_event_id TEXT,
                deleted INTEGER NOT NULL DEFAULT 0,
                deleted_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS templates (
                template_id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                name TEXT NOT NULL,
                tasks TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE (owner_id, name)
            );

            CREATE TABLE IF NOT EXISTS sleep_sessions (
                sleep_id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                start_time TEXT NOT NULL,
                end_time TEXT,
                duration INTEGER NOT NULL DEFAULT 0,
                is_active INTEGER NOT NULL DEFAULT 1,
                date TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS todos (
                todo_id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                text TEXT NOT NULL,
                completed INTEGER NOT NULL DEFAULT 0,
                date TEXT NOT NULL,
                is_overdue INTEGER NOT NULL DEFAULT 0,
                deadline TEXT,
                deleted INTEGER NOT NULL DEFAULT 0,
                deleted_at TEXT,
                created_at TEXT NOT NULL
            );

            -- One live task per (owner, name, category, date); soft-deleted
            -- rows do not hold the key.
            CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_identity
                ON tasks(owner_id, name, category, date) WHERE deleted = 0;
            CREATE INDEX IF NOT EXISTS idx_tasks_owner_date ON tasks(owner_id, date);
            CREATE INDEX IF NOT EXISTS idx_tasks_owner_category ON tasks(owner_id, category);
            CREATE INDEX IF NOT EXISTS idx_tasks_owner_active ON tasks(owner_id, is_active);
            CREATE UNIQUE INDEX IF NOT EXISTS idx_sleep_one_active
                ON sleep_sessions(owner_id) WHERE is_active = 1;
            CREATE INDEX IF NOT EXISTS idx_sleep_owner_date ON sleep_sessions(owner_id, date);
            CREATE INDEX IF NOT EXISTS idx_todos_owner_date ON todos(owner_id, date);
            """
        )
        await self._connection.commit()

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

    def _now(self) -> str:
        return _iso(self._clock.now()) or ""

    async def _fetchall(self, sql: str, params: Iterable[Any] = ()) -> list[aiosqlite.Row]:
        assert self._connection is not None
        cursor = await self._connection.execute(sql, tuple(params))
        rows = await cursor.fetchall()
        await cursor.close()
        return list(rows)

    async def _fetchone(self, sql: str, params: Iterable[Any] = ()) -> aiosqlite.Row | None:
        assert self._connection is not None
        cursor = await self._connection.execute(sql, tuple(params))
        row = await cursor.fetchone()
        await cursor.close()
        return row

    async def _write(self, sql: str, params: Iterable[Any] = ()) -> int:
        """Execute and commit a write, returning the number of affected rows.

        A failing statement is rolled back before the error propagates.
        """

        assert self._connection is not None
        async with self._write_lock:
            try:
                cursor = await self._connection.execute(sql, tuple(params))
            except sqlite3.Error:
                await self._connection.rollback()
                raise
            affected = cursor.rowcount
            await cursor.close()
            await self._connection.commit()
        return affected

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def _row_to_category(self, row: aiosqlite.Row) -> Category:
        return Category(
            id=row["category_id"],
            owner_id=row["owner_id"],
            name=row["name"],
            color=row["color"],
            icon=row["icon"],
            created_at=_parse_db_timestamp(row["created_at"]),
        )

    async def create_category(
        self, owner_id: str, name: str, color: str, icon: str
    ) -> Category:
        category_id = str(uuid.uuid4())
        now = self._now()
        try:
            await self._write(
                """
                INSERT INTO categories (category_id, owner_id, name, color, icon, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (category_id, owner_id, name, color, icon, now),
            )
        except sqlite3.IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise
            raise ConflictError(
                f"Category '{name}' already exists", owner_id=owner_id
            ) from exc
        return Category(
            id=category_id,
            owner_id=owner_id,
            name=name,
            color=color,
            icon=icon,
            created_at=_parse_db_timestamp(now),
        )

    async def list_categories(self, owner_id: str) -> list[Category]:
        rows = await self._fetchall(
            "SELECT * FROM categories WHERE owner_id = ? ORDER BY created_at ASC",
            (owner_id,),
        )
        return [self._row_to_category(row) for row in rows]

    async def get_category(self, owner_id: str, category_id: str) -> Category | None:
        row = await self._fetchone(
            "SELECT * FROM categories WHERE owner_id = ? AND category_id = ?",
            (owner_id, category_id),
        )
        return self._row_to_category(row) if row is not None else None

    async def update_category(
        self, owner_id: str, category_id: str, changes: dict[str, Any]
    ) -> bool:
        fields = {key: value for key, value in changes.items() if key in _CATEGORY_COLUMNS}
        if not fields:
            return await self.get_category(owner_id, category_id) is not None
        assignments = ", ".join(f"{column} = ?" for column in fields)
        try:
            updated = await self._write(
                f"UPDATE categories SET {assignments} WHERE owner_id = ? AND category_id = ?",
                (*fields.values(), owner_id, category_id),
            )
        except sqlite3.IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise
            raise ConflictError(
                f"Category '{fields.get('name')}' already exists",
                owner_id=owner_id,
                entity_id=category_id,
            ) from exc
        return bool(updated)

    async def delete_category(self, owner_id: str, category_id: str) -> bool:
        deleted = await self._write(
            "DELETE FROM categories WHERE owner_id = ? AND category_id = ?",
            (owner_id, category_id),
        )
        return bool(deleted)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------
    def _row_to_task(self, row: aiosqlite.Row) -> Task:
        return Task(
            id=row["task_id"],
            owner_id=row["owner_id"],
            name=row["name"],
            category=row["category"],
            date=_parse_db_date(row["date"]) or datetime.date.min,
            day=row["day"],
            is_active=bool(row["is_active"]),
            start_time=_parse_db_timestamp(row["start_time"]),
            sessions=_decode_sessions(row["sessions"]),
            total_time=int(row["total_time"]),
            planned_time=int(row["planned_time"]),
            is_automated=bool(row["is_automated"]),
            completion_count=int(row["completion_count"]),
            order=int(row["sort_order"]),
            scheduled_start_time=row["scheduled_start_time"],
            scheduled_end_time=row["scheduled_end_time"],
            notifications_enabled=bool(row["notifications_enabled"]),
            notification_time=int(row["notification_time"]),
            calendar_event_id=row["calendar_event_id"],
            deleted=bool(row["deleted"]),
            deleted_at=_parse_db_timestamp(row["deleted_at"]),
            created_at=_parse_db_timestamp(row["created_at"]),
            updated_at=_parse_db_timestamp(row["updated_at"]),
        )

    async def insert_task(self, task: Task) -> Task:
        """Insert ``task``; raise :class:`ConflictError` on a duplicate key."""

        now = self._now()
        task.id = task.id or str(uuid.uuid4())
        try:
            await self._write(
                """
                INSERT INTO tasks (
                    task_id, owner_id, name, category, date, day, is_active,
                    start_time, sessions, total_time, planned_time, is_automated,
                    completion_count, sort_order, scheduled_start_time,
                    scheduled_end_time, notifications_enabled, notification_time,
                    calendar_event_id, deleted, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
                """,
                (
                    task.id,
                    task.owner_id,
                    task.name,
                    task.category,
                    task.date_string,
                    task.day,
                    int(task.is_active),
                    _iso(task.start_time),
                    _encode_sessions(task.sessions),
                    task.total_time,
                    task.planned_time,
                    int(task.is_automated),
                    task.completion_count,
                    task.order,
                    task.scheduled_start_time,
                    task.scheduled_end_time,
                    int(task.notifications_enabled),
                    task.notification_time,
                    task.calendar_event_id,
                    now,
                    now,
                ),
            )
        except sqlite3.IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise
            raise ConflictError(
                f"Task '{task.name}' ({task.category}) already exists on {task.date_string}",
                owner_id=task.owner_id,
            ) from exc
        task.created_at = task.updated_at = _parse_db_timestamp(now)
        return task

    async def get_task(
        self, owner_id: str, task_id: str, *, include_deleted: bool = False
    ) -> Task | None:
        sql = "SELECT * FROM tasks WHERE owner_id = ? AND task_id = ?"
        if not include_deleted:
            sql += " AND deleted = 0"
        row = await self._fetchone(sql, (owner_id, task_id))
        return self._row_to_task(row) if row is not None else None

    async def find_task(
        self, owner_id: str, name: str, category: str, date: datetime.date
    ) -> Task | None:
        """Look a live task up by its natural key."""

        row = await self._fetchone(
            """
            SELECT * FROM tasks
            WHERE owner_id = ? AND name = ? AND category = ? AND date = ? AND deleted = 0
            """,
            (owner_id, name, category, date.isoformat()),
        )
        return self._row_to_task(row) if row is not None else None

    async def list_tasks_between(
        self,
        owner_id: str,
        start_date: datetime.date,
        end_date: datetime.date,
        *,
        category: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Task]:
        sql = "SELECT * FROM tasks WHERE owner_id = ? AND deleted = 0 AND date >= ? AND date <= ?"
        params: list[Any] = [owner_id, start_date.isoformat(), end_date.isoformat()]
        if category is not None:
            sql += " AND category = ?"
            params.append(category)
        sql += " ORDER BY date ASC, sort_order ASC, created_at ASC"
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        rows = await self._fetchall(sql, params)
        return [self._row_to_task(row) for row in rows]

    async def count_tasks_between(
        self, owner_id: str, start_date: datetime.date, end_date: datetime.date
    ) -> int:
        row = await self._fetchone(
            """
            SELECT COUNT(*) AS total FROM tasks
            WHERE owner_id = ? AND deleted = 0 AND date >= ? AND date <= ?
            """,
            (owner_id, start_date.isoformat(), end_date.isoformat()),
        )
        return int(row["total"]) if row is not None else 0

    async def list_tasks_for_category(
        self,
        owner_id: str,
        category: str,
        start_date: datetime.date | None = None,
        end_date: datetime.date | None = None,
    ) -> list[Task]:
        sql = "SELECT * FROM tasks WHERE owner_id = ? AND category = ? AND deleted = 0"
        params: list[Any] = [owner_id, category]
        if start_date is not None:
            sql += " AND date >= ?"
            params.append(start_date.isoformat())
        if end_date is not None:
            sql += " AND date <= ?"
            params.append(end_date.isoformat())
        sql += " ORDER BY date ASC"
        rows = await self._fetchall(sql, params)
        return [self._row_to_task(row) for row in rows]

    async def list_active_tasks(self, owner_id: str) -> list[Task]:
        rows = await self._fetchall(
            "SELECT * FROM tasks WHERE owner_id = ? AND is_active = 1 AND deleted = 0",
            (owner_id,),
        )
        return [self._row_to_task(row) for row in rows]

    async def list_deleted_tasks(self, owner_id: str) -> list[Task]:
        rows = await self._fetchall(
            "SELECT * FROM tasks WHERE owner_id = ? AND deleted = 1 ORDER BY deleted_at DESC",
            (owner_id,),
        )
        return [self._row_to_task(row) for row in rows]

    async def update_task(
        self, owner_id: str, task_id: str, changes: dict[str, Any]
    ) -> bool:
        """Overwrite plain fields of a live task."""

        fields = {
            _TASK_COLUMNS[key]: _db_value(key, value)
            for key, value in changes.items()
            if key in _TASK_COLUMNS
        }
        if not fields:
            return await self.get_task(owner_id, task_id) is not None
        assignments = ", ".join(f"{column} = ?" for column in fields)
        try:
            updated = await self._write(
                f"""
                UPDATE tasks SET {assignments}, updated_at = ?
                WHERE owner_id = ? AND task_id = ? AND deleted = 0
                """,
                (*fields.values(), self._now(), owner_id, task_id),
            )
        except sqlite3.IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise
            raise ConflictError(
                "Another task with the same name and category exists on that date",
                owner_id=owner_id,
                entity_id=task_id,
            ) from exc
        return bool(updated)

    async def apply_template_fields(
        self, task_id: str, changes: dict[str, Any]
    ) -> None:
        """Overwrite template-owned fields, resetting completions on untouched tasks."""

        fields = {
            _TASK_COLUMNS[key]: _db_value(key, value)
            for key, value in changes.items()
            if key in _TASK_COLUMNS
        }
        assignments = "".join(f"{column} = ?, " for column in fields)
        await self._write(
            f"""
            UPDATE tasks SET {assignments}
                completion_count = CASE
                    WHEN total_time = 0 AND json_array_length(sessions) = 0 THEN 0
                    ELSE completion_count
                END,
                updated_at = ?
            WHERE task_id = ?
            """,
            (*fields.values(), self._now(), task_id),
        )

    async def complete_automated_task(self, task_id: str, session: TaskSession) -> bool:
        """Record an auto-completion unless the task has already been touched."""

        updated = await self._write(
            """
            UPDATE tasks
            SET sessions = json_array(json(?)),
                total_time = ?,
                completion_count = completion_count + 1,
                updated_at = ?
            WHERE task_id = ?
              AND is_active = 0
              AND total_time = 0
              AND json_array_length(sessions) = 0
            """,
            (json.dumps(session.to_dict()), session.duration, self._now(), task_id),
        )
        return bool(updated)

    async def mark_task_started(self, task_id: str, start_time: datetime.datetime) -> bool:
        updated = await self._write(
            """
            UPDATE tasks SET is_active = 1, start_time = ?, updated_at = ?
            WHERE task_id = ? AND is_active = 0
            """,
            (_iso(start_time), self._now(), task_id),
        )
        return bool(updated)

    async def mark_task_stopped(
        self,
        task_id: str,
        expected_start: datetime.datetime | None,
        session: TaskSession | None,
    ) -> bool:
        """Close the running interval that began at ``expected_start``.

        The update only applies while the stored start time still matches, so
        two concurrent stops append the session once.
        """

        if session is None or expected_start is None:
            updated = await self._write(
                """
                UPDATE tasks SET is_active = 0, start_time = NULL, updated_at = ?
                WHERE task_id = ? AND start_time IS NULL
                """,
                (self._now(), task_id),
            )
            return bool(updated)
        updated = await self._write(
            """
            UPDATE tasks
            SET sessions = json_insert(sessions, '$[#]', json(?)),
                total_time = total_time + ?,
                is_active = 0,
                start_time = NULL,
                updated_at = ?
            WHERE task_id = ? AND start_time = ?
            """,
            (
                json.dumps(session.to_dict()),
                session.duration,
                self._now(),
                task_id,
                _iso(expected_start),
            ),
        )
        return bool(updated)

    async def link_calendar_event(self, task_id: str, event_id: str) -> bool:
        """Store ``event_id`` unless another request already linked one."""

        updated = await self._write(
            """
            UPDATE tasks SET calendar_event_id = ?, updated_at = ?
            WHERE task_id = ? AND calendar_event_id IS NULL
            """,
            (event_id, self._now(), task_id),
        )
        return bool(updated)

    async def clear_calendar_event(self, task_id: str) -> None:
        await self._write(
            "UPDATE tasks SET calendar_event_id = NULL, updated_at = ? WHERE task_id = ?",
            (self._now(), task_id),
        )

    async def soft_delete_task(self, owner_id: str, task_id: str) -> bool:
        now = self._now()
        updated = await self._write(
            """
            UPDATE tasks SET deleted = 1, deleted_at = ?, is_active = 0,
                start_time = NULL, updated_at = ?
            WHERE owner_id = ? AND task_id = ? AND deleted = 0
            """,
            (now, now, owner_id, task_id),
        )
        return bool(updated)

    async def restore_task(self, owner_id: str, task_id: str) -> bool:
        try:
            updated = await self._write(
                """
                UPDATE tasks SET deleted = 0, deleted_at = NULL, updated_at = ?
                WHERE owner_id = ? AND task_id = ? AND deleted = 1
                """,
                (self._now(), owner_id, task_id),
            )
        except sqlite3.IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise
            raise ConflictError(
                "A task with the same name and category already exists on that date",
                owner_id=owner_id,
                entity_id=task_id,
            ) from exc
        return bool(updated)

    async def delete_tasks_between(
        self, owner_id: str, start_date: datetime.date, end_date: datetime.date
    ) -> int:
        """Permanently delete every task dated within the inclusive range.

        Returns the number of live tasks removed; soft-deleted rows in the
        range are purged too but not counted.
        """

        assert self._connection is not None
        params = (owner_id, start_date.isoformat(), end_date.isoformat())
        async with self._write_lock:
            try:
                cursor = await self._connection.execute(
                    """
                    DELETE FROM tasks
                    WHERE owner_id = ? AND date >= ? AND date <= ? AND deleted = 0
                    """,
                    params,
                )
                removed = cursor.rowcount
                await cursor.close()
                cursor = await self._connection.execute(
                    """
                    DELETE FROM tasks
                    WHERE owner_id = ? AND date >= ? AND date <= ? AND deleted = 1
                    """,
                    params,
                )
                await cursor.close()
                await self._connection.commit()
            except sqlite3.Error:
                await self._connection.rollback()
                raise
        return removed

    async def set_task_orders(self, owner_id: str, orders: list[tuple[str, int]]) -> int:
        assert self._connection is not None
        now = self._now()
        updated = 0
        async with self._write_lock:
            for task_id, position in orders:
                cursor = await self._connection.execute(
                    """
                    UPDATE tasks SET sort_order = ?, updated_at = ?
                    WHERE owner_id = ? AND task_id = ? AND deleted = 0
                    """,
                    (position, now, owner_id, task_id),
                )
                updated += cursor.rowcount
                await cursor.close()
            await self._connection.commit()
        return updated

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------
    def _row_to_template(self, row: aiosqlite.Row) -> TaskTemplate:
        try:
            raw_tasks = json.loads(row["tasks"] or "[]")
        except json.JSONDecodeError:
            raw_tasks = []
        return TaskTemplate(
            id=row["template_id"],
            owner_id=row["owner_id"],
            name=row["name"],
            tasks=[TemplateTask.from_dict(item) for item in raw_tasks],
            created_at=_parse_db_timestamp(row["created_at"]),
            updated_at=_parse_db_timestamp(row["updated_at"]),
        )

    async def create_template(
        self, owner_id: str, name: str, tasks: list[TemplateTask]
    ) -> TaskTemplate:
        template_id = str(uuid.uuid4())
        now = self._now()
        try:
            await self._write(
                """
                INSERT INTO templates (template_id, owner_id, name, tasks, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    template_id,
                    owner_id,
                    name,
                    json.dumps([task.to_dict() for task in tasks]),
                    now,
                    now,
                ),
            )
        except sqlite3.IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise
            raise ConflictError(
                "Template with this name already exists", owner_id=owner_id
            ) from exc
        created = _parse_db_timestamp(now)
        return TaskTemplate(
            id=template_id,
            owner_id=owner_id,
            name=name,
            tasks=list(tasks),
            created_at=created,
            updated_at=created,
        )

    async def list_templates(self, owner_id: str) -> list[TaskTemplate]:
        rows = await self._fetchall(
            "SELECT * FROM templates WHERE owner_id = ? ORDER BY created_at DESC",
            (owner_id,),
        )
        return [self._row_to_template(row) for row in rows]

    async def get_template(self, owner_id: str, template_id: str) -> TaskTemplate | None:
        row = await self._fetchone(
            "SELECT * FROM templates WHERE owner_id = ? AND template_id = ?",
            (owner_id, template_id),
        )
        return self._row_to_template(row) if row is not None else None

    async def update_template(
        self,
        owner_id: str,
        template_id: str,
        *,
        name: str | None = None,
        tasks: list[TemplateTask] | None = None,
    ) -> bool:
        fields: dict[str, Any] = {}
        if name is not None:
            fields["name"] = name
        if tasks is not None:
            fields["tasks"] = json.dumps([task.to_dict() for task in tasks])
        assignments = "".join(f"{column} = ?, " for column in fields)
        try:
            updated = await self._write(
                f"""
                UPDATE templates SET {assignments}updated_at = ?
                WHERE owner_id = ? AND template_id = ?
                """,
                (*fields.values(), self._now(), owner_id, template_id),
            )
        except sqlite3.IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise
            raise ConflictError(
                "Template with this name already exists",
                owner_id=owner_id,
                entity_id=template_id,
            ) from exc
        return bool(updated)

    async def delete_template(self, owner_id: str, template_id: str) -> bool:
        deleted = await self._write(
            "DELETE FROM templates WHERE owner_id = ? AND template_id = ?",
            (owner_id, template_id),
        )
        return bool(deleted)

    # ------------------------------------------------------------------
    # Sleep sessions
    # ------------------------------------------------------------------
    def _row_to_sleep(self, row: aiosqlite.Row) -> SleepSession:
        return SleepSession(
            id=row["sleep_id"],
            owner_id=row["owner_id"],
            start_time=_parse_db_timestamp(row["start_time"])
            or datetime.datetime.min.replace(tzinfo=datetime.timezone.utc),
            end_time=_parse_db_timestamp(row["end_time"]),
            duration=int(row["duration"]),
            is_active=bool(row["is_active"]),
            date=_parse_db_date(row["date"]) or datetime.date.min,
        )

    async def start_sleep(
        self, owner_id: str, start_time: datetime.datetime, date: datetime.date
    ) -> SleepSession:
        """Open a sleep session; raise :class:`ConflictError` if one is active."""

        sleep_id = str(uuid.uuid4())
        try:
            await self._write(
                """
                INSERT INTO sleep_sessions (sleep_id, owner_id, start_time, date, is_active)
                VALUES (?, ?, ?, ?, 1)
                """,
                (sleep_id, owner_id, _iso(start_time), date.isoformat()),
            )
        except sqlite3.IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise
            raise ConflictError(
                "Sleep session already in progress", owner_id=owner_id
            ) from exc
        return SleepSession(
            id=sleep_id,
            owner_id=owner_id,
            start_time=start_time,
            date=date,
        )

    async def get_active_sleep(self, owner_id: str) -> SleepSession | None:
        row = await self._fetchone(
            "SELECT * FROM sleep_sessions WHERE owner_id = ? AND is_active = 1",
            (owner_id,),
        )
        return self._row_to_sleep(row) if row is not None else None

    async def stop_sleep(
        self, sleep_id: str, end_time: datetime.datetime, duration: int
    ) -> bool:
        updated = await self._write(
            """
            UPDATE sleep_sessions SET end_time = ?, duration = ?, is_active = 0
            WHERE sleep_id = ? AND is_active = 1
            """,
            (_iso(end_time), duration, sleep_id),
        )
        return bool(updated)

    async def list_sleep(
        self,
        owner_id: str,
        start_date: datetime.date | None = None,
        end_date: datetime.date | None = None,
        *,
        completed_only: bool = False,
    ) -> list[SleepSession]:
        sql = "SELECT * FROM sleep_sessions WHERE owner_id = ?"
        params: list[Any] = [owner_id]
        if start_date is not None:
            sql += " AND date >= ?"
            params.append(start_date.isoformat())
        if end_date is not None:
            sql += " AND date <= ?"
            params.append(end_date.isoformat())
        if completed_only:
            sql += " AND is_active = 0"
        sql += " ORDER BY start_time DESC"
        rows = await self._fetchall(sql, params)
        return [self._row_to_sleep(row) for row in rows]

    # ------------------------------------------------------------------
    # Todos
    # ------------------------------------------------------------------
    def _row_to_todo(self, row: aiosqlite.Row) -> Todo:
        return Todo(
            id=row["todo_id"],
            owner_id=row["owner_id"],
            text=row["text"],
            completed=bool(row["completed"]),
            date=_parse_db_date(row["date"]) or datetime.date.min,
            is_overdue=bool(row["is_overdue"]),
            deadline=_parse_db_date(row["deadline"]),
            deleted=bool(row["deleted"]),
            deleted_at=_parse_db_timestamp(row["deleted_at"]),
            created_at=_parse_db_timestamp(row["created_at"]),
        )

    async def create_todo(
        self,
        owner_id: str,
        text: str,
        date: datetime.date,
        deadline: datetime.date | None = None,
    ) -> Todo:
        todo_id = str(uuid.uuid4())
        now = self._now()
        await self._write(
            """
            INSERT INTO todos (todo_id, owner_id, text, date, deadline, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                todo_id,
                owner_id,
                text,
                date.isoformat(),
                deadline.isoformat() if deadline else None,
                now,
            ),
        )
        return Todo(
            id=todo_id,
            owner_id=owner_id,
            text=text,
            date=date,
            deadline=deadline,
            created_at=_parse_db_timestamp(now),
        )

    async def carry_forward_todos(self, owner_id: str, today: datetime.date) -> int:
        """Move incomplete todos from earlier days onto ``today``."""

        return await self._write(
            """
            UPDATE todos SET date = ?, is_overdue = 1
            WHERE owner_id = ? AND date < ? AND completed = 0 AND deleted = 0
            """,
            (today.isoformat(), owner_id, today.isoformat()),
        )

    async def list_todos_for_day(self, owner_id: str, day: datetime.date) -> list[Todo]:
        rows = await self._fetchall(
            """
            SELECT * FROM todos
            WHERE owner_id = ? AND date = ? AND deleted = 0
            ORDER BY created_at DESC
            """,
            (owner_id, day.isoformat()),
        )
        return [self._row_to_todo(row) for row in rows]

    async def get_todo(
        self, owner_id: str, todo_id: str, *, include_deleted: bool = False
    ) -> Todo | None:
        sql = "SELECT * FROM todos WHERE owner_id = ? AND todo_id = ?"
        if not include_deleted:
            sql += " AND deleted = 0"
        row = await self._fetchone(sql, (owner_id, todo_id))
        return self._row_to_todo(row) if row is not None else None

    async def update_todo(
        self, owner_id: str, todo_id: str, changes: dict[str, Any]
    ) -> bool:
        fields = {
            key: _db_value(key, value)
            for key, value in changes.items()
            if key in _TODO_COLUMNS
        }
        if not fields:
            return await self.get_todo(owner_id, todo_id) is not None
        assignments = ", ".join(f"{column} = ?" for column in fields)
        updated = await self._write(
            f"UPDATE todos SET {assignments} WHERE owner_id = ? AND todo_id = ? AND deleted = 0",
            (*fields.values(), owner_id, todo_id),
        )
        return bool(updated)

    async def soft_delete_todo(self, owner_id: str, todo_id: str) -> bool:
        updated = await self._write(
            """
            UPDATE todos SET deleted = 1, deleted_at = ?
            WHERE owner_id = ? AND todo_id = ? AND deleted = 0
            """,
            (self._now(), owner_id, todo_id),
        )
        return bool(updated)

    async def restore_todo(self, owner_id: str, todo_id: str) -> bool:
        updated = await self._write(
            """
            UPDATE todos SET deleted = 0, deleted_at = NULL
            WHERE owner_id = ? AND todo_id = ? AND deleted = 1
            """,
            (owner_id, todo_id),
        )
        return bool(updated)

    async def clear_completed_todos(self, owner_id: str) -> int:
        return await self._write(
            """
            UPDATE todos SET deleted = 1, deleted_at = ?
            WHERE owner_id = ? AND completed = 1 AND deleted = 0
            """,
            (self._now(), owner_id),
        )


__all__ = ["TrackerRepository"]
