"""KeloJSON — GeoJSON extended with relation membership and node identity.

Reads and writes nodes, ways and relations (with roles and tags) as a
GeoJSON FeatureCollection in spherical-Mercator planar coordinates.
"""

from kelojson.errors import (
    CoordinateRangeError,
    DataIntegrityError,
    ErrorKind,
    IllegalDataError,
    KeloJSONError,
    KeloJSONIOError,
    ReadWarning,
)
from kelojson.model import DataSet, Node, PrimitiveId, PrimitiveType, Relation, RelationMember, Way
from kelojson.projection import EastNorth, LatLon, Projection, SphericalMercator
from kelojson.reader import KeloJSONReader, parse_dataset
from kelojson.writer import KeloJSONWriter, write_dataset

__all__ = [
    "CoordinateRangeError",
    "DataIntegrityError",
    "DataSet",
    "EastNorth",
    "ErrorKind",
    "IllegalDataError",
    "KeloJSONError",
    "KeloJSONIOError",
    "KeloJSONReader",
    "KeloJSONWriter",
    "LatLon",
    "Node",
    "PrimitiveId",
    "PrimitiveType",
    "Projection",
    "ReadWarning",
    "Relation",
    "RelationMember",
    "SphericalMercator",
    "Way",
    "parse_dataset",
    "write_dataset",
]
