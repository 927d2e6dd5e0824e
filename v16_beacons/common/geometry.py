"""Geographic bounding helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from v16_beacons.common.constants import SPAIN_BBOX


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @classmethod
    def from_mapping(cls, bbox: Mapping[str, float]) -> "BoundingBox":
        return cls(
            min_lat=float(bbox["min_lat"]),
            max_lat=float(bbox["max_lat"]),
            min_lon=float(bbox["min_lon"]),
            max_lon=float(bbox["max_lon"]),
        )

    def contains(self, lat: float, lon: float) -> bool:
        # Inclusive on every edge; NaN compares false and falls outside.
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon


SPAIN = BoundingBox.from_mapping(SPAIN_BBOX)


def in_region(lat: float, lon: float, bbox: BoundingBox = SPAIN) -> bool:
    return bbox.contains(lat, lon)
