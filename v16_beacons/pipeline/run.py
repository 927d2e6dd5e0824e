"""Extraction, bounding and classification in one linear pass."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from v16_beacons.common.constants import HAZARD_KEYWORDS, MAX_RECORDS
from v16_beacons.common.geometry import SPAIN, BoundingBox, in_region
from v16_beacons.common.models import IncidentRecord, PipelineStats
from v16_beacons.pipeline.classify import is_candidate, normalise_keywords
from v16_beacons.pipeline.extract import extract_records


@dataclass(frozen=True)
class PipelineResult:
    records: list[IncidentRecord]
    stats: PipelineStats


def options_from_config(cfg: dict) -> dict:
    return {
        "bbox": BoundingBox.from_mapping(cfg["region"]["bbox_wgs84"]),
        "keywords": normalise_keywords(cfg["classifier"]["keywords"]),
        "max_records": int(cfg["output"]["max_records"]),
        "reject_unparsable_coordinates": cfg["extraction"]["reject_unparsable_coordinates"],
    }


def run_pipeline(
    xml: bytes | str,
    *,
    include_all: bool = False,
    bbox: BoundingBox = SPAIN,
    keywords: Iterable[str] = HAZARD_KEYWORDS,
    max_records: int = MAX_RECORDS,
    reject_unparsable_coordinates: bool = False,
) -> PipelineResult:
    """Run the feed pipeline over one raw document.

    Stats are always computed; exposing them is the caller's decision. The
    post-filter count is taken before truncation to ``max_records``.
    """
    extraction = extract_records(xml, reject_unparsable_coordinates=reject_unparsable_coordinates)
    keywords = tuple(keywords)

    in_bbox = 0
    kept: list[IncidentRecord] = []
    for record in extraction.records:
        if not in_region(record.latitude, record.longitude, bbox):
            continue
        in_bbox += 1
        if not include_all and not is_candidate(record, keywords):
            continue
        kept.append(record)

    stats = PipelineStats(
        total_records=extraction.total_records,
        with_coordinates=len(extraction.records),
        in_bbox=in_bbox,
        post_filter=len(kept),
        filter_bypassed=include_all,
    )
    return PipelineResult(records=kept[:max_records], stats=stats)
