"""DATEX2 situation-record extraction.

Elements are matched on their local (namespace-stripped) tag so the same walk
works for any prefix or namespace binding the publisher chooses. Location is
probed through an ordered chain of strategies because the feed exposes
coordinates under different substructures depending on the record category.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from v16_beacons.common.constants import XSI_NAMESPACE
from v16_beacons.common.errors import MalformedXmlError
from v16_beacons.common.models import IncidentRecord

SITUATION_RECORD = "situationRecord"
XSI_TYPE = f"{{{XSI_NAMESPACE}}}type"

DESCRIPTION_LOOKUPS = (
    ("value", "generalPublicComment"),
    ("value", "comment"),
    ("generalPublicComment", None),
)
TIMESTAMP_TAGS = frozenset({"situationRecordCreationTime", "situationRecordVersionTime"})


@dataclass(frozen=True)
class _Node:
    name: str
    ancestors: frozenset[str]
    element: ET.Element


@dataclass(frozen=True)
class ExtractionResult:
    total_records: int
    records: list[IncidentRecord]


RawPair = tuple[str, str]
CoordinateStrategy = Callable[[Sequence[_Node]], Optional[RawPair]]


def _localname(tag: object) -> str:
    # Comments and processing instructions carry a callable tag.
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _descendants(record: ET.Element) -> list[_Node]:
    """Flatten the record subtree in document order, tracking ancestor names."""
    out: list[_Node] = []
    stack: list[tuple[ET.Element, frozenset[str]]] = [(child, frozenset()) for child in reversed(record)]
    while stack:
        element, ancestors = stack.pop()
        name = _localname(element.tag)
        if not name:
            continue
        out.append(_Node(name=name, ancestors=ancestors, element=element))
        inner = ancestors | {name}
        stack.extend((child, inner) for child in reversed(element))
    return out


def _first(nodes: Sequence[_Node], name: str, under: str | None = None) -> _Node | None:
    for node in nodes:
        if node.name == name and (under is None or under in node.ancestors):
            return node
    return None


def _text(node: _Node | None) -> str:
    if node is None:
        return ""
    return "".join(node.element.itertext()).strip()


def _pair_under(container: str | None) -> CoordinateStrategy:
    def strategy(nodes: Sequence[_Node]) -> RawPair | None:
        lat = _first(nodes, "latitude", container)
        lon = _first(nodes, "longitude", container)
        if lat is None or lon is None:
            return None
        return _text(lat), _text(lon)

    strategy.__name__ = f"pair_under_{container or 'record'}"
    return strategy


# locationForDisplay also covers its nested pointCoordinates form.
COORDINATE_STRATEGIES: tuple[CoordinateStrategy, ...] = (
    _pair_under("pointByCoordinates"),
    _pair_under("pointCoordinates"),
    _pair_under("locationForDisplay"),
    _pair_under("alertCPointLocation"),
    _pair_under(None),
)


def find_raw_coordinates(nodes: Sequence[_Node]) -> RawPair | None:
    for strategy in COORDINATE_STRATEGIES:
        pair = strategy(nodes)
        if pair is not None:
            return pair
    return None


def parse_coordinate(text: str, *, reject_unparsable: bool = False) -> float | None:
    """Parse a coordinate literal; unparsable text becomes 0.0 unless rejected."""
    try:
        return float(text.strip())
    except ValueError:
        return None if reject_unparsable else 0.0


def _description(nodes: Sequence[_Node]) -> str:
    for name, under in DESCRIPTION_LOOKUPS:
        node = _first(nodes, name, under)
        if node is not None:
            return _text(node)
    return ""


def _timestamp(nodes: Sequence[_Node]) -> str:
    for node in nodes:
        if node.name in TIMESTAMP_TAGS:
            return _text(node)
    return ""


def _record_type(record: ET.Element) -> str:
    return record.get(XSI_TYPE) or _localname(record.tag)


def extract_record(record: ET.Element, *, reject_unparsable_coordinates: bool = False) -> IncidentRecord | None:
    """Build an IncidentRecord from one situationRecord, or None when it has no usable location."""
    nodes = _descendants(record)
    raw_pair = find_raw_coordinates(nodes)
    if raw_pair is None:
        return None

    lat = parse_coordinate(raw_pair[0], reject_unparsable=reject_unparsable_coordinates)
    lon = parse_coordinate(raw_pair[1], reject_unparsable=reject_unparsable_coordinates)
    if lat is None or lon is None:
        return None

    return IncidentRecord(
        id=record.get("id") or "",
        record_type=_record_type(record),
        description=_description(nodes),
        cause=_text(_first(nodes, "causeType")),
        timestamp=_timestamp(nodes),
        latitude=lat,
        longitude=lon,
    )


def parse_document(xml: bytes | str) -> ET.Element:
    try:
        return ET.fromstring(xml)
    except ET.ParseError as exc:
        raise MalformedXmlError(f"Invalid XML: {exc}") from exc


def iter_situation_records(root: ET.Element) -> list[ET.Element]:
    return [element for element in root.iter() if _localname(element.tag) == SITUATION_RECORD]


def extract_records(xml: bytes | str, *, reject_unparsable_coordinates: bool = False) -> ExtractionResult:
    root = parse_document(xml)
    situation_records = iter_situation_records(root)

    records: list[IncidentRecord] = []
    for element in situation_records:
        record = extract_record(element, reject_unparsable_coordinates=reject_unparsable_coordinates)
        if record is not None:
            records.append(record)

    return ExtractionResult(total_records=len(situation_records), records=records)
