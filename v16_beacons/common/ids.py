"""Run identifier helpers."""

from __future__ import annotations

from datetime import datetime, timezone


def generate_run_id(prefix: str = "run") -> str:
    now = datetime.now(tz=timezone.utc)
    return f"{prefix}-{now.strftime('%Y%m%dT%H%M%S%fZ')}"
