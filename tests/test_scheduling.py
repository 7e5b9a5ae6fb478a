import datetime

from tasktracker.tasks.models import Task, TaskSession
from tasktracker.tasks.scheduling import (
    apply_auto_completion,
    is_auto_complete_eligible,
    plan_auto_completion,
)

UTC = datetime.timezone.utc
ZONE = "Asia/Kolkata"
# 2024-03-15 10:00 local
NOW = datetime.datetime(2024, 3, 15, 4, 30, tzinfo=UTC)


def _automated(**overrides) -> Task:
    fields = dict(
        id="t1",
        owner_id="u1",
        name="Meditate",
        category="Health",
        date=datetime.date(2024, 3, 10),
        day="sunday",
        is_automated=True,
        planned_time=1_800_000,
    )
    fields.update(overrides)
    return Task(**fields)


def test_unscheduled_task_completes_at_one_am_local() -> None:
    task = _automated()

    session = plan_auto_completion(task, ZONE, now=NOW)

    assert session is not None
    assert session.start_time == datetime.datetime(2024, 3, 9, 19, 30, tzinfo=UTC)
    assert session.duration == 1_800_000
    assert session.end_time - session.start_time == datetime.timedelta(minutes=30)


def test_scheduled_task_uses_schedule_window() -> None:
    task = _automated(scheduled_start_time="07:00", scheduled_end_time="07:45")

    session = plan_auto_completion(task, ZONE, now=NOW)

    assert session is not None
    assert session.start_time == datetime.datetime(2024, 3, 10, 1, 30, tzinfo=UTC)
    assert session.end_time == datetime.datetime(2024, 3, 10, 2, 15, tzinfo=UTC)
    # Duration is always the planned time.
    assert session.duration == 1_800_000


def test_half_schedule_falls_back_to_default_hour() -> None:
    task = _automated(scheduled_start_time="07:00")

    session = plan_auto_completion(task, ZONE, now=NOW)

    assert session is not None
    assert session.start_time == datetime.datetime(2024, 3, 9, 19, 30, tzinfo=UTC)


def test_future_task_is_not_eligible() -> None:
    task = _automated(date=datetime.date(2024, 3, 16), day="saturday")

    assert plan_auto_completion(task, ZONE, now=NOW) is None


def test_touched_or_manual_tasks_are_not_eligible() -> None:
    session = TaskSession(start_time=NOW, end_time=NOW, duration=10)

    assert not is_auto_complete_eligible(_automated(is_automated=False), "2024-03-15")
    assert not is_auto_complete_eligible(_automated(planned_time=0), "2024-03-15")
    assert not is_auto_complete_eligible(_automated(total_time=5), "2024-03-15")
    assert not is_auto_complete_eligible(_automated(sessions=[session]), "2024-03-15")
    assert not is_auto_complete_eligible(
        _automated(is_active=True, start_time=NOW), "2024-03-15"
    )


def test_applied_completion_makes_task_ineligible() -> None:
    task = _automated()
    session = plan_auto_completion(task, ZONE, now=NOW)
    assert session is not None

    apply_auto_completion(task, session)

    assert task.total_time == task.planned_time
    assert task.completion_count == 1
    assert plan_auto_completion(task, ZONE, now=NOW) is None
