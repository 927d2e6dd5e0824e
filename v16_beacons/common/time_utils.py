"""Clock helpers for log records and response stamps."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def utc_timestamp_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds")


def local_timestamp_iso(tz_name: str, now: float | None = None) -> str:
    """ISO-8601 stamp with UTC offset, seconds precision, in ``tz_name``."""
    tz = timezone.utc if tz_name.upper() == "UTC" else ZoneInfo(tz_name)
    if now is None:
        return datetime.now(tz=tz).isoformat(timespec="seconds")
    return datetime.fromtimestamp(now, tz=tz).isoformat(timespec="seconds")
