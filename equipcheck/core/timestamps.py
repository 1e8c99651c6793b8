"""Instant handling: one internal type, converted only at the storage edge.

Inside the service every instant is a timezone-aware ``datetime`` in UTC.
Stored rows keep ISO-8601 text with a ``Z`` suffix; older exports and
clients send epoch milliseconds. ``to_instant`` accepts all of those so the
conversion happens exactly once, when a value crosses into the service.
"""

from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from typing import Any
from zoneinfo import ZoneInfo

from .config import settings

__all__ = ["utcnow", "to_instant", "to_storage_text", "local_tz", "local_date", "same_local_day"]


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def to_instant(value: Any) -> datetime | None:
    """Normalise datetimes, ISO strings and epoch milliseconds to aware UTC."""

    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise TypeError("booleans are not instants")
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return to_instant(int(text))
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise TypeError(f"Cannot interpret {type(value).__name__} as an instant")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_storage_text(value: Any) -> str | None:
    instant = to_instant(value)
    if instant is None:
        return None
    return instant.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


def local_tz() -> tzinfo:
    return ZoneInfo(settings.TIMEZONE) if settings.TIMEZONE else timezone.utc


def local_date(value: Any, tz: tzinfo | None = None) -> date | None:
    instant = to_instant(value)
    if instant is None:
        return None
    return instant.astimezone(tz or local_tz()).date()


def same_local_day(first: Any, second: Any, tz: tzinfo | None = None) -> bool:
    zone = tz or local_tz()
    a = local_date(first, zone)
    b = local_date(second, zone)
    return a is not None and a == b
