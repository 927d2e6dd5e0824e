"""Response payload shaping for the map frontend."""

from __future__ import annotations

from typing import Any

from v16_beacons.pipeline.run import PipelineResult

DEBUG_KEY = "__debug"


def build_items(result: PipelineResult, *, want_stats: bool) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = [record.to_dict() for record in result.records]
    if want_stats:
        items.insert(0, {DEBUG_KEY: result.stats.to_dict()})
    return items


def count_items(items: list[dict[str, Any]]) -> int:
    return sum(1 for item in items if DEBUG_KEY not in item)


def build_success_payload(
    result: PipelineResult,
    *,
    source_label: str,
    want_stats: bool,
    generated_at: str,
    cache_age_seconds: int | None,
) -> dict[str, Any]:
    items = build_items(result, want_stats=want_stats)
    return {
        "ok": True,
        "fuente": source_label,
        "cuenta": count_items(items),
        "items": items,
        "generado_en": generated_at,
        "antiguedad_cache_seg": cache_age_seconds,
    }


def build_error_payload(message: str) -> dict[str, Any]:
    return {"ok": False, "error": message}
