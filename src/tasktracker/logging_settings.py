"""Read the tracker's ``logging.conf``.

The file holds ``key = value`` lines::

    terminal = info          # console handler level, or ``off``
    file = warning           # date-stamped file handler level, or ``off``
    retention_hours = 48     # prune log files older than this (0 keeps all)

Blank lines, ``#`` comments and unknown keys are ignored. A value that cannot
be understood keeps that key's default.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable

_OFF = object()

_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}
_OFF_WORDS = frozenset({"off", "none", "false"})


@dataclass(frozen=True)
class LoggingSettings:
    terminal_level: int | None = logging.INFO
    file_level: int | None = logging.INFO
    retention_hours: int = 48


def _level(value: str) -> Any:
    word = value.lower()
    if word in _OFF_WORDS:
        return _OFF
    return _LEVELS.get(word)


def _hours(value: str) -> Any:
    try:
        return max(0, int(value))
    except ValueError:
        return None


# key -> (dataclass field, converter); converters return None when unreadable.
_KEYS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "terminal": ("terminal_level", _level),
    "file": ("file_level", _level),
    "retention_hours": ("retention_hours", _hours),
}


def parse_logging_settings(path: Path) -> LoggingSettings:
    """Return the settings in ``path``, or the defaults when it is missing."""

    settings = LoggingSettings()
    if not path.exists():
        return settings

    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.split("#", 1)[0].strip()
        key, sep, value = line.partition("=")
        if not sep:
            continue
        entry = _KEYS.get(key.strip().lower())
        if entry is None:
            continue
        field_name, convert = entry
        converted = convert(value.strip())
        if converted is None:
            continue
        settings = replace(
            settings, **{field_name: None if converted is _OFF else converted}
        )
    return settings


__all__ = ["LoggingSettings", "parse_logging_settings"]
