"""Helpers for dealing with timezone-aware datetimes."""
from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo


def get_timezone(tz_name: str) -> ZoneInfo:
    """Return ZoneInfo instance with graceful fallback to UTC."""

    try:
        return ZoneInfo(tz_name)
    except Exception:
        return ZoneInfo("UTC")


def as_local(value: datetime, tz: ZoneInfo) -> datetime:
    """Attach ``tz`` to naive datetimes, convert aware ones into it."""

    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def days_between(first: datetime, second: datetime) -> float:
    """Absolute distance between two moments in days."""

    return abs((first - second).total_seconds()) / 86400


__all__ = ["get_timezone", "as_local", "days_between"]
