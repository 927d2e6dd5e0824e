from __future__ import annotations

import json
from pathlib import Path

import pytest

from v16_beacons.cli import parse_args, run_command

FIXTURE = Path("tests/fixtures/datex2/situation_publication_v36.xml")


def _run_once(data_dir: Path, run_id: str) -> dict:
    args = parse_args(["parse", "--input", str(FIXTURE), "--all", "--debug", "--data-dir", str(data_dir), "--run-id", run_id])
    assert run_command(args) == 0
    payload = json.loads((data_dir / "out" / "v16_points.json").read_text(encoding="utf-8"))
    payload.pop("generado_en")
    return payload


@pytest.mark.regression
def test_payloads_are_stable_for_same_input(tmp_path: Path):
    assert _run_once(tmp_path / "first", "run-a") == _run_once(tmp_path / "second", "run-b")
