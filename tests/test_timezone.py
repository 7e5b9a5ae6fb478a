import datetime

import pytest

from tasktracker.utils.timezone import (
    combine_date_and_clock,
    date_to_string,
    day_name,
    format_duration,
    is_today,
    is_today_or_past,
    month_range,
    parse_clock,
    parse_date_in_zone,
    resolve_timezone,
    today,
    week_of_month,
    week_range,
)

UTC = datetime.timezone.utc


def test_today_uses_requested_zone() -> None:
    # 20:00 UTC on the 14th is already the 15th in Kolkata.
    now = datetime.datetime(2024, 3, 14, 20, 0, tzinfo=UTC)

    assert today("Asia/Kolkata", now=now) == "2024-03-15"
    assert today("America/New_York", now=now) == "2024-03-14"


def test_unknown_zone_falls_back_to_default() -> None:
    assert resolve_timezone("Not/AZone").key == "Asia/Kolkata"
    assert resolve_timezone(None, "UTC").key == "UTC"


def test_date_to_string_renders_instant_in_zone() -> None:
    instant = datetime.datetime(2024, 3, 14, 23, 30, tzinfo=UTC)

    assert date_to_string(instant, "Asia/Kolkata") == "2024-03-15"
    assert date_to_string("2024-03-14T23:30:00Z", "Asia/Kolkata") == "2024-03-14"


def test_parse_date_in_zone_returns_local_midnight() -> None:
    midnight = parse_date_in_zone("2024-03-10", "Asia/Kolkata")

    assert midnight.hour == 0 and midnight.minute == 0
    assert midnight.astimezone(UTC) == datetime.datetime(2024, 3, 9, 18, 30, tzinfo=UTC)


@pytest.mark.parametrize(
    ("week", "start", "end"),
    [
        (1, "2024-02-01", "2024-02-07"),
        (2, "2024-02-08", "2024-02-14"),
        (3, "2024-02-15", "2024-02-21"),
        (4, "2024-02-22", "2024-02-29"),
    ],
)
def test_week_range_fixed_four_weeks(week: int, start: str, end: str) -> None:
    # month is 0-indexed: 1 == February
    bounds = week_range(2024, 1, week, "UTC")

    assert bounds.start_date.isoformat() == start
    assert bounds.end_date.isoformat() == end


def test_week_four_absorbs_month_tail() -> None:
    bounds = week_range(2024, 0, 4, "Asia/Kolkata")

    assert bounds.start_date == datetime.date(2024, 1, 22)
    assert bounds.end_date == datetime.date(2024, 1, 31)
    assert bounds.day_count == 10
    assert bounds.end.hour == 23 and bounds.end.minute == 59


@pytest.mark.parametrize("week", [0, 5, -1])
def test_week_range_rejects_out_of_range_weeks(week: int) -> None:
    with pytest.raises(ValueError):
        week_range(2024, 2, week)


def test_week_range_rejects_bad_month() -> None:
    with pytest.raises(ValueError):
        week_range(2024, 12, 1)


def test_month_range_covers_whole_month() -> None:
    bounds = month_range(2023, 1)

    assert bounds.start_date == datetime.date(2023, 2, 1)
    assert bounds.end_date == datetime.date(2023, 2, 28)


def test_week_of_month_is_ceiling_of_day_over_seven() -> None:
    assert week_of_month("2024-03-01") == 1
    assert week_of_month("2024-03-07") == 1
    assert week_of_month("2024-03-08") == 2
    assert week_of_month("2024-03-29") == 5


def test_day_name_is_lowercase_weekday() -> None:
    assert day_name("2024-03-10") == "sunday"
    assert day_name("2024-03-11") == "monday"


def test_is_today_and_past() -> None:
    now = datetime.datetime(2024, 3, 15, 4, 30, tzinfo=UTC)

    assert is_today("2024-03-15", "Asia/Kolkata", now=now)
    assert not is_today("2024-03-14", "Asia/Kolkata", now=now)
    assert is_today_or_past("2024-03-14", "Asia/Kolkata", now=now)
    assert not is_today_or_past("2024-03-16", "Asia/Kolkata", now=now)


def test_combine_date_and_clock_is_local() -> None:
    instant = combine_date_and_clock("2024-03-10", 1, 0, "Asia/Kolkata")

    assert instant.astimezone(UTC) == datetime.datetime(2024, 3, 9, 19, 30, tzinfo=UTC)


def test_parse_clock_validates_range() -> None:
    assert parse_clock("07:05") == (7, 5)
    with pytest.raises(ValueError):
        parse_clock("24:00")
    with pytest.raises(ValueError):
        parse_clock("seven")


def test_format_duration() -> None:
    assert format_duration(9_000_000) == "2h 30m"
    assert format_duration(45 * 60_000) == "45m"
    assert format_duration(0) == "0m"
