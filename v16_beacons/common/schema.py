"""Minimal strict schema for YAML config validation."""

from __future__ import annotations

from v16_beacons.common.errors import ConfigError

SECTION_KEYS = {
    "feed": {"url", "source_label", "timeout_seconds", "user_agent"},
    "cache": {"path", "ttl_seconds"},
    "region": {"bbox_wgs84"},
    "classifier": {"keywords"},
    "extraction": {"reject_unparsable_coordinates"},
    "output": {"max_records", "timezone", "filename"},
    "poll": {"interval_seconds"},
}


def _assert_mapping(obj: object, ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive number")


def validate_feed_config(cfg: object, *, allow_unknown: bool = False) -> dict:
    _assert_mapping(cfg, "feed config")
    _assert_required_keys(cfg, set(SECTION_KEYS), "feed config")
    _assert_no_unknown_keys(cfg, set(SECTION_KEYS), "feed config", allow_unknown)

    for section, keys in SECTION_KEYS.items():
        _assert_mapping(cfg[section], section)
        _assert_required_keys(cfg[section], keys, section)
        _assert_no_unknown_keys(cfg[section], keys, section, allow_unknown)

    bbox = cfg["region"]["bbox_wgs84"]
    _assert_mapping(bbox, "region.bbox_wgs84")
    _assert_required_keys(bbox, {"min_lat", "max_lat", "min_lon", "max_lon"}, "region.bbox_wgs84")
    if bbox["min_lat"] > bbox["max_lat"] or bbox["min_lon"] > bbox["max_lon"]:
        raise ConfigError("region.bbox_wgs84 minimums must not exceed maximums")

    keywords = cfg["classifier"]["keywords"]
    if not isinstance(keywords, list) or not keywords:
        raise ConfigError("classifier.keywords must be a non-empty list")

    _assert_positive(cfg["feed"]["timeout_seconds"], "feed.timeout_seconds")
    _assert_positive(cfg["cache"]["ttl_seconds"], "cache.ttl_seconds")
    _assert_positive(cfg["output"]["max_records"], "output.max_records")
    _assert_positive(cfg["poll"]["interval_seconds"], "poll.interval_seconds")

    if not isinstance(cfg["extraction"]["reject_unparsable_coordinates"], bool):
        raise ConfigError("extraction.reject_unparsable_coordinates must be a boolean")

    return cfg
