"""Keyword heuristic for probable V16 hazard-beacon incidents.

This is an inference over free text, not a DATEX2 classification. False
positives and negatives are expected.
"""

from __future__ import annotations

from typing import Iterable

from v16_beacons.common.constants import HAZARD_KEYWORDS
from v16_beacons.common.models import IncidentRecord


def normalise_keywords(keywords: Iterable[str]) -> tuple[str, ...]:
    return tuple(kw for kw in (str(k).strip().lower() for k in keywords) if kw)


def is_candidate(record: IncidentRecord, keywords: Iterable[str] = HAZARD_KEYWORDS) -> bool:
    fields = (record.record_type.lower(), record.description.lower(), record.cause.lower())
    return any(keyword in field for keyword in keywords for field in fields)
