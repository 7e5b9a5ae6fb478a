"""Utility helpers for tracker services."""

from .timezone import Clock, SystemClock, resolve_timezone, today, week_range

__all__ = ["Clock", "SystemClock", "resolve_timezone", "today", "week_range"]
