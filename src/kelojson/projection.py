"""Coordinate transforms between lat/lon and planar east/north metres.

KeloJSON stores planar coordinates in spherical Mercator (EPSG:3857).  The
writer subtracts an origin from every projected coordinate to keep emitted
numbers small; the reader adds the same origin back before unprojecting.

Convention:
    - LatLon is (lat, lon) in degrees
    - EastNorth is (east, north) in metres, +east = +lon, +north = +lat
    - The origin is the projected position of the first node tagged
      ``name=origin`` (configurable), or (0, 0) when there is none
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, NamedTuple, Protocol

from loguru import logger

from kelojson.errors import CoordinateRangeError

if TYPE_CHECKING:
    from kelojson.config import KeloJSONSettings
    from kelojson.model import DataSet, Node

EARTH_RADIUS = 6_378_137.0
# Latitude at which spherical Mercator maps to a square world
MAX_MERCATOR_LAT = 85.05112877980659
# Slack for float error when an easting at the antimeridian is inverted
LON_TOLERANCE = 1e-9


class LatLon(NamedTuple):
    lat: float
    lon: float


class EastNorth(NamedTuple):
    east: float
    north: float

    def add(self, other: EastNorth) -> EastNorth:
        return EastNorth(self.east + other.east, self.north + other.north)

    def subtract(self, other: EastNorth) -> EastNorth:
        return EastNorth(self.east - other.east, self.north - other.north)


ZERO = EastNorth(0.0, 0.0)


class Projection(Protocol):
    """Forward/inverse mapping supplied by the host environment."""

    def project(self, coor: LatLon) -> EastNorth: ...

    def unproject(self, en: EastNorth) -> LatLon: ...


class SphericalMercator:
    """EPSG:3857 on a sphere of radius 6378137 m.

    Latitudes or longitudes outside their geographic range raise
    CoordinateRangeError; unproject allows LON_TOLERANCE past +/-180 and
    clamps.  Latitudes beyond the Mercator limit (the poles
    map to infinity) are clamped to +/-MAX_MERCATOR_LAT.
    """

    code = "EPSG:3857"

    def project(self, coor: LatLon) -> EastNorth:
        lat, lon = coor
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise CoordinateRangeError(f"Non-finite coordinate: {lat}, {lon}")
        if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
            raise CoordinateRangeError(f"Coordinate out of range: {lat}, {lon}")
        lat = max(-MAX_MERCATOR_LAT, min(MAX_MERCATOR_LAT, lat))
        east = EARTH_RADIUS * math.radians(lon)
        north = EARTH_RADIUS * math.log(math.tan(math.pi / 4 + math.radians(lat) / 2))
        return EastNorth(east, north)

    def unproject(self, en: EastNorth) -> LatLon:
        east, north = en
        if not (math.isfinite(east) and math.isfinite(north)):
            raise CoordinateRangeError(f"Non-finite coordinate: {east}, {north}")
        lon = math.degrees(east / EARTH_RADIUS)
        if abs(lon) > 180.0 + LON_TOLERANCE:
            raise CoordinateRangeError(f"Easting out of range: {east}")
        lon = max(-180.0, min(180.0, lon))
        lat = math.degrees(2 * math.atan(math.exp(north / EARTH_RADIUS)) - math.pi / 2)
        return LatLon(lat, lon)


def is_origin_tags(tags: dict, settings: KeloJSONSettings) -> bool:
    """True if a tag mapping marks the sentinel origin node."""
    return tags.get(settings.origin_key) == settings.origin_value


def find_origin_node(dataset: DataSet, settings: KeloJSONSettings) -> Node | None:
    """Return the first complete, non-deleted node tagged as the origin."""
    for node in dataset.nodes:
        if node.deleted or node.incomplete or node.coor is None:
            continue
        if is_origin_tags(node.tags, settings):
            return node
    return None


def find_origin(
    dataset: DataSet, projection: Projection, settings: KeloJSONSettings
) -> EastNorth:
    """Projected position of the sentinel origin node, or ZERO."""
    node = find_origin_node(dataset, settings)
    if node is None:
        return ZERO
    origin = projection.project(node.coor)
    logger.info(f"Setting custom origin at: {origin.east},{origin.north}")
    return origin
