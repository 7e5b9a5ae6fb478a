import datetime

from tasktracker.models import SleepSession
from tasktracker.tasks.analytics import (
    SLEEP_CATEGORY,
    category_summary,
    monthly_summary,
    sleep_summary,
    weekly_summary,
)
from tasktracker.tasks.models import Task, TaskSession

UTC = datetime.timezone.utc
NOW = datetime.datetime(2024, 3, 15, 4, 30, tzinfo=UTC)


def _task(name: str, date: datetime.date, day: str, **overrides) -> Task:
    fields = dict(
        id=name,
        owner_id="u1",
        name=name,
        category="Work",
        date=date,
        day=day,
    )
    fields.update(overrides)
    return Task(**fields)


def _session(ms: int) -> TaskSession:
    return TaskSession(
        start_time=NOW, end_time=NOW + datetime.timedelta(milliseconds=ms), duration=ms
    )


def _sleep(ms: int, *, active: bool = False) -> SleepSession:
    return SleepSession(
        id=f"s{ms}",
        owner_id="u1",
        start_time=NOW,
        date=datetime.date(2024, 3, 14),
        duration=ms,
        is_active=active,
    )


def test_weekly_summary_counts_running_task_live() -> None:
    running = _task(
        "write",
        datetime.date(2024, 3, 15),
        "friday",
        is_active=True,
        start_time=NOW - datetime.timedelta(minutes=10),
    )

    summary = weekly_summary([running], [], NOW)

    assert summary["total_time"] == 600_000
    assert summary["active_tasks"] == 1
    assert summary["completed_tasks"] == 0
    assert summary["by_day"]["friday"]["total_time"] == 600_000
    assert summary["session_count"] == 1


def test_weekly_summary_buckets_and_fixed_divisor() -> None:
    done = _task(
        "gym",
        datetime.date(2024, 3, 11),
        "monday",
        category="Health",
        total_time=700_000,
        sessions=[_session(700_000)],
        planned_time=600_000,
    )
    idle = _task("read", datetime.date(2024, 3, 12), "tuesday", planned_time=100)

    summary = weekly_summary([done, idle], [], NOW)

    assert summary["total_tasks"] == 2
    assert summary["completed_tasks"] == 1
    assert summary["total_planned_time"] == 600_100
    assert summary["by_category"]["Health"]["total_time"] == 700_000
    assert summary["by_category"]["Work"]["task_count"] == 1
    assert summary["average_per_day"] == 100_000
    assert set(summary["by_day"]) >= {"monday", "sunday"}


def test_weekly_summary_adds_completed_sleep_as_category() -> None:
    summary = weekly_summary([], [_sleep(3_600_000), _sleep(10, active=True)], NOW)

    assert summary["by_category"][SLEEP_CATEGORY]["total_time"] == 3_600_000
    assert summary["by_category"][SLEEP_CATEGORY]["task_count"] == 1
    assert summary["total_time"] == 3_600_000


def test_monthly_summary_uses_ceiling_weeks() -> None:
    tasks = [
        _task("a", datetime.date(2024, 3, 7), "thursday", total_time=1, sessions=[_session(1)]),
        _task("b", datetime.date(2024, 3, 8), "friday", total_time=2, sessions=[_session(2)]),
        _task("c", datetime.date(2024, 3, 30), "saturday", total_time=4, sessions=[_session(4)]),
    ]

    summary = monthly_summary(tasks, [], NOW)

    assert summary["by_week"]["week1"]["total_time"] == 1
    assert summary["by_week"]["week2"]["total_time"] == 2
    assert summary["by_week"]["week5"]["total_time"] == 4
    assert summary["completed_tasks"] == 3


def test_category_summary_groups_by_date() -> None:
    tasks = [
        _task("b", datetime.date(2024, 3, 2), "saturday", total_time=5, sessions=[_session(5)]),
        _task("a", datetime.date(2024, 3, 1), "friday", total_time=3, sessions=[_session(3)]),
        _task("c", datetime.date(2024, 3, 1), "friday", planned_time=9),
    ]

    summary = category_summary(
        "Work", tasks, NOW, start_date=datetime.date(2024, 3, 1)
    )

    assert list(summary["by_date"]) == ["2024-03-01", "2024-03-02"]
    assert summary["by_date"]["2024-03-01"]["task_count"] == 2
    assert summary["total_time"] == 8
    assert summary["total_sessions"] == 2
    assert summary["start_date"] == "2024-03-01"
    assert summary["end_date"] is None


def test_sleep_summary_ignores_active_session() -> None:
    summary = sleep_summary([_sleep(100), _sleep(300), _sleep(50, active=True)])

    assert summary["total_sessions"] == 2
    assert summary["total_duration"] == 400
    assert summary["average_duration"] == 200


def test_sleep_summary_empty() -> None:
    assert sleep_summary([])["average_duration"] == 0
