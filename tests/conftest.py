import datetime
import pathlib
import sys
from typing import Any

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from tasktracker.errors import CollaboratorUnavailableError  # noqa: E402
from tasktracker.repository import TrackerRepository  # noqa: E402
from tasktracker.services.calendar import CalendarEvent  # noqa: E402


class FakeCalendarProvider:
    """In-memory calendar; titles listed in ``fail_for`` raise on create."""

    def __init__(self) -> None:
        self.fail_for: set[str] = set()
        self.events: dict[str, CalendarEvent] = {}
        self.deleted: list[str] = []

    def is_connected(self, owner_id: str) -> bool:
        return True

    def disconnect(self, owner_id: str) -> bool:
        return True

    async def create_event(self, owner_id: str, event: CalendarEvent) -> dict[str, Any]:
        if event.title in self.fail_for:
            raise CollaboratorUnavailableError("calendar down", owner_id=owner_id)
        event_id = f"evt-{len(self.events) + 1}"
        self.events[event_id] = event
        return {"id": event_id, "html_link": f"https://calendar.test/{event_id}"}

    async def event_exists(self, owner_id: str, event_id: str) -> bool:
        return event_id in self.events

    async def delete_event(self, owner_id: str, event_id: str) -> None:
        self.deleted.append(event_id)
        self.events.pop(event_id, None)


class FrozenClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, current: datetime.datetime) -> None:
        self.current = current

    def now(self) -> datetime.datetime:
        return self.current

    def advance(self, **delta: float) -> datetime.datetime:
        self.current = self.current + datetime.timedelta(**delta)
        return self.current


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def clock() -> FrozenClock:
    # 2024-03-15 10:00 in Asia/Kolkata
    return FrozenClock(datetime.datetime(2024, 3, 15, 4, 30, tzinfo=datetime.timezone.utc))


@pytest.fixture
async def repository(tmp_path, clock):
    repo = TrackerRepository(tmp_path / "tracker.db", clock=clock)
    await repo.initialize()
    try:
        yield repo
    finally:
        await repo.close()


@pytest.fixture
def calendar_provider() -> FakeCalendarProvider:
    return FakeCalendarProvider()
