from pathlib import Path

import pytest

from v16_beacons.common.config_loader import load_config, resolve_cache_path
from v16_beacons.common.errors import ConfigError


def _copy_base(tmp_path: Path) -> Path:
    base = tmp_path / "base"
    base.mkdir()
    (base / "feed.yml").write_text(Path("config/feed.yml").read_text(encoding="utf-8"), encoding="utf-8")
    return base


def test_load_config_from_repo_config_dir():
    cfg = load_config(Path("config"))

    assert cfg["cache"]["ttl_seconds"] == 30
    assert cfg["feed"]["timeout_seconds"] == 12
    assert cfg["output"]["max_records"] == 5000
    assert cfg["region"]["bbox_wgs84"] == {"min_lat": 27.0, "max_lat": 44.8, "min_lon": -19.5, "max_lon": 5.5}
    assert "averiado" in cfg["classifier"]["keywords"]
    assert cfg["extraction"]["reject_unparsable_coordinates"] is False


def test_load_config_applies_overlay_values(tmp_path: Path):
    base = _copy_base(tmp_path)
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "feed.yml").write_text(
        """cache:
  ttl_seconds: 5
extraction:
  reject_unparsable_coordinates: true
""",
        encoding="utf-8",
    )

    cfg = load_config(base, overlay_config_dir=overlay)

    assert cfg["cache"]["ttl_seconds"] == 5
    assert cfg["cache"]["path"] == "cache/_cache_dgt_datex2_v36.xml"
    assert cfg["extraction"]["reject_unparsable_coordinates"] is True


def test_load_config_ignores_empty_overlay_file(tmp_path: Path):
    base = _copy_base(tmp_path)
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "feed.yml").write_text("", encoding="utf-8")

    assert load_config(base, overlay_config_dir=overlay)["cache"]["ttl_seconds"] == 30


def test_load_config_rejects_non_mapping_overlay(tmp_path: Path):
    base = _copy_base(tmp_path)
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "feed.yml").write_text("- not\n- a\n- mapping\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(base, overlay_config_dir=overlay)


def test_load_config_rejects_unknown_keys_unless_allowed(tmp_path: Path):
    base = _copy_base(tmp_path)
    with (base / "feed.yml").open("a", encoding="utf-8") as f:
        f.write("extra_section:\n  x: 1\n")

    with pytest.raises(ConfigError):
        load_config(base)
    assert "extra_section" in load_config(base, allow_unknown=True)


def test_load_config_rejects_inverted_bbox(tmp_path: Path):
    base = _copy_base(tmp_path)
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "feed.yml").write_text("region:\n  bbox_wgs84:\n    min_lat: 50\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(base, overlay_config_dir=overlay)


def test_load_config_missing_file(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_resolve_cache_path(tmp_path: Path):
    cfg = {"cache": {"path": "cache/feed.xml"}}
    assert resolve_cache_path(cfg, tmp_path) == tmp_path / "cache" / "feed.xml"

    absolute = tmp_path / "elsewhere.xml"
    assert resolve_cache_path({"cache": {"path": str(absolute)}}, Path("data")) == absolute
