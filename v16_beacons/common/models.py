"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class IncidentRecord:
    id: str
    record_type: str
    description: str
    cause: str
    timestamp: str
    latitude: float
    longitude: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "record_type": self.record_type,
            "description": self.description,
            "cause": self.cause,
            "timestamp": self.timestamp,
            "lat": self.latitude,
            "lng": self.longitude,
        }


@dataclass(frozen=True)
class PipelineStats:
    total_records: int
    with_coordinates: int
    in_bbox: int
    post_filter: int
    filter_bypassed: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "registros_total": self.total_records,
            "con_coordenadas": self.with_coordinates,
            "en_bbox": self.in_bbox,
            "tras_filtro": self.post_filter,
            "sin_filtro": self.filter_bypassed,
        }


@dataclass(frozen=True)
class CacheEntry:
    body: bytes
    stored_at: float

    def age_seconds(self, now: float) -> float:
        return now - self.stored_at
