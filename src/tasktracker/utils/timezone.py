"""Timezone-aware date arithmetic shared by scheduling and analytics.

Every helper that produces or interprets a calendar date takes an explicit
IANA zone. When a request does not carry one, the configured default zone is
used rather than the host's local time, so results do not depend on where
the server happens to run.
"""

from __future__ import annotations

import calendar
import datetime as _dt
import math
from dataclasses import dataclass
from typing import Optional, Protocol, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "Asia/Kolkata"

# Indexed by ``date.weekday()`` (Monday == 0).
WEEKDAY_NAMES: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

WEEKS_PER_MONTH = 4

DateLike = Union[str, _dt.date, _dt.datetime]
ZoneLike = Union[str, _dt.tzinfo, None]


class Clock(Protocol):
    """Source of the current instant."""

    def now(self) -> _dt.datetime: ...


class SystemClock:
    """Clock backed by the system time, always returning aware UTC values."""

    def now(self) -> _dt.datetime:
        return _dt.datetime.now(_dt.timezone.utc)


def resolve_timezone(
    timezone_name: ZoneLike,
    fallback: str = DEFAULT_TIMEZONE,
) -> _dt.tzinfo:
    """Resolve ``timezone_name`` to a tzinfo, falling back to ``fallback``."""

    if isinstance(timezone_name, _dt.tzinfo):
        return timezone_name
    if timezone_name:
        try:
            return ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            pass
    return ZoneInfo(fallback)


def timezone_key(tz: ZoneLike) -> str:
    """Return the IANA name for ``tz`` (used when talking to external APIs)."""

    zone = resolve_timezone(tz)
    return getattr(zone, "key", None) or str(zone)


def _current(now: Optional[_dt.datetime]) -> _dt.datetime:
    if now is None:
        return _dt.datetime.now(_dt.timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=_dt.timezone.utc)
    return now


def parse_date(value: DateLike) -> _dt.date:
    """Return a ``date`` for a ``YYYY-MM-DD`` string or date-ish value."""

    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    text = str(value).strip()
    # Accept full ISO timestamps but only keep the calendar part.
    if len(text) > 10 and text[10] in ("T", " "):
        text = text[:10]
    return _dt.date.fromisoformat(text)


def today(tz: ZoneLike = None, *, now: Optional[_dt.datetime] = None) -> str:
    """Return today's date in ``tz`` as ``YYYY-MM-DD``."""

    return _current(now).astimezone(resolve_timezone(tz)).date().isoformat()


def date_to_string(instant: DateLike, tz: ZoneLike = None) -> str:
    """Render ``instant`` as the ``YYYY-MM-DD`` it falls on in ``tz``."""

    if isinstance(instant, _dt.datetime):
        return _current(instant).astimezone(resolve_timezone(tz)).date().isoformat()
    return parse_date(instant).isoformat()


def parse_date_in_zone(date_string: DateLike, tz: ZoneLike = None) -> _dt.datetime:
    """Return local midnight of ``date_string`` in ``tz`` as an aware datetime."""

    day = parse_date(date_string)
    return _dt.datetime.combine(day, _dt.time.min, tzinfo=resolve_timezone(tz))


def combine_date_and_clock(
    date_string: DateLike,
    hour: int,
    minute: int,
    tz: ZoneLike = None,
) -> _dt.datetime:
    """Return the instant for ``hour:minute`` local time on ``date_string``."""

    day = parse_date(date_string)
    return _dt.datetime.combine(
        day, _dt.time(hour, minute), tzinfo=resolve_timezone(tz)
    )


def parse_clock(value: str) -> tuple[int, int]:
    """Parse an ``HH:MM`` wall-clock string into ``(hour, minute)``."""

    try:
        hour_text, minute_text = value.strip().split(":", 1)
        hour, minute = int(hour_text), int(minute_text)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid clock time {value!r}; expected HH:MM") from exc
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid clock time {value!r}; expected HH:MM")
    return hour, minute


def day_name(value: DateLike, tz: ZoneLike = None) -> str:
    """Return the lowercase weekday name of ``value`` in ``tz``."""

    if isinstance(value, _dt.datetime):
        local = _current(value).astimezone(resolve_timezone(tz)).date()
    else:
        local = parse_date(value)
    return WEEKDAY_NAMES[local.weekday()]


def is_today(
    value: DateLike,
    tz: ZoneLike = None,
    *,
    now: Optional[_dt.datetime] = None,
) -> bool:
    return date_to_string(value, tz) == today(tz, now=now)


def is_today_or_past(
    value: DateLike,
    tz: ZoneLike = None,
    *,
    now: Optional[_dt.datetime] = None,
) -> bool:
    # ISO date strings compare lexically in calendar order.
    return date_to_string(value, tz) <= today(tz, now=now)


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive calendar range plus the instants bounding it in a zone."""

    start_date: _dt.date
    end_date: _dt.date
    tzinfo: _dt.tzinfo

    @property
    def start(self) -> _dt.datetime:
        return _dt.datetime.combine(self.start_date, _dt.time.min, tzinfo=self.tzinfo)

    @property
    def end(self) -> _dt.datetime:
        return _dt.datetime.combine(self.end_date, _dt.time.max, tzinfo=self.tzinfo)

    @property
    def day_count(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def dates(self) -> list[_dt.date]:
        return [
            self.start_date + _dt.timedelta(days=offset)
            for offset in range(self.day_count)
        ]

    def contains(self, value: DateLike) -> bool:
        return self.start_date <= parse_date(value) <= self.end_date


def _validate_month(year: int, month: int) -> None:
    if not 0 <= month <= 11:
        raise ValueError(f"Month must be between 0 and 11, got {month}")
    if year < 1:
        raise ValueError(f"Invalid year {year}")


def week_range(
    year: int,
    month: int,
    week_number: int,
    tz: ZoneLike = None,
) -> DateRange:
    """Return the bounds of ``week_number`` of a month (``month`` is 0-indexed).

    Weeks are calendar based rather than ISO weeks: week 1 is days 1–7,
    week 2 days 8–14, week 3 days 15–21 and week 4 runs from day 22 to the
    last day of the month. Every month therefore has exactly four weeks and
    week 4 may be up to ten days long.
    """

    _validate_month(year, month)
    if not 1 <= week_number <= WEEKS_PER_MONTH:
        raise ValueError(
            f"Week number must be between 1 and {WEEKS_PER_MONTH}, got {week_number}"
        )
    last_day = calendar.monthrange(year, month + 1)[1]
    start_day = 1 + (week_number - 1) * 7
    end_day = last_day if week_number == WEEKS_PER_MONTH else start_day + 6
    return DateRange(
        start_date=_dt.date(year, month + 1, start_day),
        end_date=_dt.date(year, month + 1, end_day),
        tzinfo=resolve_timezone(tz),
    )


def month_range(year: int, month: int, tz: ZoneLike = None) -> DateRange:
    """Return the first..last day range of a month (``month`` is 0-indexed)."""

    _validate_month(year, month)
    last_day = calendar.monthrange(year, month + 1)[1]
    return DateRange(
        start_date=_dt.date(year, month + 1, 1),
        end_date=_dt.date(year, month + 1, last_day),
        tzinfo=resolve_timezone(tz),
    )


def week_of_month(value: DateLike) -> int:
    """Analytics bucket for a date: ``ceil(day_of_month / 7)`` (1..5).

    This intentionally differs from :func:`week_range`, which folds days
    29–31 into week 4.
    """

    return math.ceil(parse_date(value).day / 7)


def day_bounds(date_string: DateLike, tz: ZoneLike = None) -> tuple[_dt.datetime, _dt.datetime]:
    """Return the first and last instant of a local day."""

    day = parse_date(date_string)
    zone = resolve_timezone(tz)
    return (
        _dt.datetime.combine(day, _dt.time.min, tzinfo=zone),
        _dt.datetime.combine(day, _dt.time.max, tzinfo=zone),
    )


def milliseconds_between(start: _dt.datetime, end: _dt.datetime) -> int:
    """Whole milliseconds from ``start`` to ``end``."""

    return (_current(end) - _current(start)) // _dt.timedelta(milliseconds=1)


def format_duration(ms: int) -> str:
    """Format a duration in milliseconds as ``"2h 30m"`` or ``"45m"``."""

    hours, remainder = divmod(max(0, int(ms)), 3_600_000)
    minutes = remainder // 60_000
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


__all__ = [
    "DEFAULT_TIMEZONE",
    "WEEKDAY_NAMES",
    "WEEKS_PER_MONTH",
    "Clock",
    "SystemClock",
    "DateRange",
    "resolve_timezone",
    "timezone_key",
    "parse_date",
    "today",
    "date_to_string",
    "parse_date_in_zone",
    "combine_date_and_clock",
    "parse_clock",
    "day_name",
    "is_today",
    "is_today_or_past",
    "week_range",
    "month_range",
    "week_of_month",
    "day_bounds",
    "milliseconds_between",
    "format_duration",
]
