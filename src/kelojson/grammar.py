"""Wire-level schema of KeloJSON: field names, type tags, value conversion.

A KeloJSON document is a GeoJSON FeatureCollection whose features carry
either a ``geometry`` (with an extra ``nodeIds`` array, one list of node
identifiers per ring), a ``relation`` object with a ``members`` list, or
only ``properties``.
"""

from __future__ import annotations

import json
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from loguru import logger

from kelojson.errors import ErrorKind, IllegalDataError
from kelojson.model import PrimitiveType

if TYPE_CHECKING:
    from kelojson.config import KeloJSONSettings
    from kelojson.model import Way

FILE_EXTENSION = "kelojson"

TYPE = "type"
FEATURES = "features"
FEATURE = "Feature"
FEATURE_COLLECTION = "FeatureCollection"
ID = "id"
PROPERTIES = "properties"
GEOMETRY = "geometry"
COORDINATES = "coordinates"
NODEIDS = "nodeIds"
RELATION = "relation"
MEMBERS = "members"
ROLE = "role"

POINT = "Point"
LINESTRING = "LineString"
POLYGON = "Polygon"
MULTIPOLYGON = "MultiPolygon"
GEOMETRY_TYPES = (POINT, LINESTRING, POLYGON, MULTIPOLYGON)

MEMBER_TYPES = {t.value: t for t in PrimitiveType}

# Tag values wrapped in these markers are emitted as JSON objects
JSON_VALUE_START_MARKER = "{"
JSON_VALUE_END_MARKER = "}"


def member_type(tag: Any, relation_id: int | None = None) -> PrimitiveType:
    """Map a wire member type tag to its PrimitiveType."""
    try:
        return MEMBER_TYPES[tag]
    except (KeyError, TypeError):
        raise IllegalDataError(
            f"Unknown member type: {tag!r}", primitive_id=relation_id
        ) from None


def parse_id(value: Any, what: str = "feature") -> int:
    """Decode a string-encoded (or plain integer) identifier."""
    if isinstance(value, bool):
        raise IllegalDataError(f"Invalid {what} id: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise IllegalDataError(f"Invalid {what} id: {value!r}")


def format_id(primitive_id: int) -> str:
    return str(primitive_id)


def round_coordinate(value: float, precision: int) -> float:
    """Round half-up to a fixed number of fractional digits."""
    quantum = Decimal(1).scaleb(-precision)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def parse_position(raw: Any, primitive_id: int | None = None) -> tuple[float, float]:
    """Validate one ``[east, north]`` (optionally ``[east, north, z]``) position."""
    if not isinstance(raw, list) or len(raw) not in (2, 3):
        raise IllegalDataError(
            f"Invalid coordinate: {raw!r}",
            kind=ErrorKind.INVALID_GEOMETRY,
            primitive_id=primitive_id,
        )
    east, north = raw[0], raw[1]
    for v in (east, north):
        if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v):
            raise IllegalDataError(
                f"Invalid coordinate: {raw!r}",
                kind=ErrorKind.INVALID_GEOMETRY,
                primitive_id=primitive_id,
            )
    return float(east), float(north)


def value_to_json(value: str) -> Any:
    """Tag value as emitted in ``properties``.

    Values that look like JSON objects are emitted as objects; anything else
    (including JSON-looking text that fails to parse) stays a string.
    """
    if value.startswith(JSON_VALUE_START_MARKER) and value.endswith(JSON_VALUE_END_MARKER):
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.warning(f"Tag value is not valid JSON, writing as string: {e}")
    return value


def value_from_json(value: Any) -> str | None:
    """Tag value from a ``properties`` entry; None means no tag.

    Non-string values become compact JSON text, so the conversion is lossy
    for formatting: a tag written as ``{ "a": 1 }`` reads back as
    ``{"a":1}``.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def tags_from_properties(properties: Any) -> dict[str, str]:
    if not isinstance(properties, dict):
        return {}
    tags = {}
    for key, raw in properties.items():
        value = value_from_json(raw)
        if value is not None:
            tags[str(key)] = value
    return tags


def is_area(way: Way, settings: KeloJSONSettings) -> bool:
    """Default area policy: ``area=yes|no`` first, then known area keys."""
    area = way.tags.get("area")
    if area == "yes":
        return True
    if area == "no":
        return False
    return any(key in way.tags for key in settings.area_keys)
