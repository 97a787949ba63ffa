"""Parse KeloJSON into a DataSet.

Reading is an explicit two-phase process:

1. Every feature is visited in document order.  Geometry features are
   assembled into nodes/ways/multipolygons immediately, tag-only features
   become member-less relations, and relation features are cached.
2. Once all potential members exist, every cached relation is created
   empty and added, then its members are resolved by (type, id).  Members
   that cannot be found are dropped with a warning.

Planar coordinates are shifted by the origin recovered from the sentinel
origin feature (a Point whose properties carry ``name=origin``); the
sentinel itself is stored at its absolute position.
"""

from __future__ import annotations

import json
from typing import IO, Any, Callable

from loguru import logger

from kelojson import grammar
from kelojson.config import KeloJSONSettings, settings as default_settings
from kelojson.errors import (
    DataIntegrityError,
    ErrorKind,
    IllegalDataError,
    ReadWarning,
)
from kelojson.geometry import GeometryAssembler
from kelojson.model import DataSet, PrimitiveType, Relation
from kelojson.projection import ZERO, EastNorth, Projection, SphericalMercator, is_origin_tags

ProgressCallback = Callable[[int, int], None]


class KeloJSONReader:
    """Reader for one KeloJSON document.

    Attributes:
        warnings: Non-fatal conditions recorded by the last parse.
    """

    def __init__(
        self,
        projection: Projection | None = None,
        settings: KeloJSONSettings | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.projection = projection or SphericalMercator()
        self.settings = settings or default_settings
        self.progress = progress
        self.warnings: list[ReadWarning] = []
        self._relations_cache: list[tuple[int, dict]] = []
        self._origin_feature: dict | None = None
        self._assembler: GeometryAssembler | None = None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def parse(self, text: str | bytes) -> DataSet:
        """Parse a KeloJSON document.

        Raises:
            IllegalDataError: If the text is not well-formed KeloJSON.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise IllegalDataError(
                f"Invalid JSON: {e.msg}", line=e.lineno, column=e.colno
            ) from e
        except UnicodeDecodeError as e:
            raise IllegalDataError(f"Input is not UTF-8: {e}") from e
        return self.parse_document(data)

    def parse_stream(self, stream: IO) -> DataSet:
        return self.parse(stream.read())

    def parse_document(self, data: Any) -> DataSet:
        """Build a DataSet from an already-decoded JSON document."""
        self.warnings = []
        self._relations_cache = []

        if not isinstance(data, dict):
            raise IllegalDataError("Top-level JSON value is not an object")
        doc_type = data.get(grammar.TYPE)
        if doc_type == grammar.FEATURE_COLLECTION:
            features = data.get(grammar.FEATURES)
            if not isinstance(features, list):
                raise IllegalDataError("FeatureCollection without a features array")
        elif doc_type == grammar.FEATURE:
            features = [data]
        else:
            raise IllegalDataError(f"Unsupported top-level type: {doc_type!r}")

        dataset = DataSet()
        self._origin_feature = self._find_origin_feature(features)
        origin = self._origin(self._origin_feature)
        self._assembler = GeometryAssembler(dataset, self.projection, origin)
        self._reserve_ids(features)
        try:
            self._parse_features(features)
            self._parse_relation_cache()
        finally:
            self._assembler = None
            self._relations_cache = []
            self._origin_feature = None
        return dataset

    # ------------------------------------------------------------------
    # Origin
    # ------------------------------------------------------------------

    def _find_origin_feature(self, features: list) -> dict | None:
        for feature in features:
            if not isinstance(feature, dict):
                continue
            geometry = feature.get(grammar.GEOMETRY)
            if not isinstance(geometry, dict) or geometry.get(grammar.TYPE) != grammar.POINT:
                continue
            tags = grammar.tags_from_properties(feature.get(grammar.PROPERTIES))
            if is_origin_tags(tags, self.settings):
                return feature
        return None

    def _origin(self, feature: dict | None) -> EastNorth:
        if feature is None:
            return ZERO
        east, north = grammar.parse_position(feature[grammar.GEOMETRY].get(grammar.COORDINATES))
        origin = EastNorth(east, north)
        logger.info(f"Using custom origin at: {origin.east},{origin.north}")
        return origin

    # ------------------------------------------------------------------
    # Identifier reservation
    # ------------------------------------------------------------------

    def _reserve_ids(self, features: list) -> None:
        """Reserve every id the document names so generated ids avoid them.

        A feature id may end up as a node, way or relation, so it is
        reserved for all three.  Malformed entries are skipped here and
        reported by the passes that parse them.
        """
        ids = self._assembler.ids
        for feature in features:
            if not isinstance(feature, dict):
                continue
            feature_id = _optional_id(feature.get(grammar.ID))
            if feature_id is not None:
                for t in PrimitiveType:
                    ids.reserve(t, feature_id)
            geometry = feature.get(grammar.GEOMETRY)
            if isinstance(geometry, dict):
                for node_id in _flatten(geometry.get(grammar.NODEIDS)):
                    ids.reserve(PrimitiveType.NODE, node_id)
            relation = feature.get(grammar.RELATION)
            members = relation.get(grammar.MEMBERS) if isinstance(relation, dict) else None
            for m in members if isinstance(members, list) else ():
                if not isinstance(m, dict):
                    continue
                tag = m.get(grammar.TYPE)
                mtype = grammar.MEMBER_TYPES.get(tag) if isinstance(tag, str) else None
                member_id = _optional_id(m.get(grammar.ID))
                if mtype is not None and member_id is not None:
                    ids.reserve(mtype, member_id)

    # ------------------------------------------------------------------
    # Pass 1: geometry and tag-only features
    # ------------------------------------------------------------------

    def _parse_features(self, features: list) -> None:
        total = len(features)
        for done, feature in enumerate(features, start=1):
            if not isinstance(feature, dict):
                raise IllegalDataError(f"Feature #{done} is not an object")
            self._parse_feature(feature)
            if self.progress is not None:
                self.progress(done, total)

    def _parse_feature(self, feature: dict) -> None:
        feature_id = grammar.parse_id(feature.get(grammar.ID))
        geometry = feature.get(grammar.GEOMETRY)
        relation = feature.get(grammar.RELATION)
        if isinstance(geometry, dict):
            if isinstance(relation, dict):
                self._warn(
                    ErrorKind.IGNORED_FEATURE,
                    "Feature has both geometry and relation; relation ignored",
                    feature_id,
                )
            self._guard(self._parse_geometry, feature, feature_id, geometry)
        elif isinstance(relation, dict):
            self._relations_cache.append((feature_id, feature))
        elif isinstance(feature.get(grammar.PROPERTIES), dict):
            self._guard(self._parse_non_geometry_feature, feature, feature_id)
        else:
            self._warn(
                ErrorKind.IGNORED_FEATURE,
                "Relation/non-geometry feature without properties found",
                feature_id,
            )

    def _guard(self, fn: Callable, *args: Any) -> None:
        try:
            fn(*args)
        except DataIntegrityError as e:
            raise IllegalDataError(e.message, primitive_id=e.primitive_id) from e

    def _parse_geometry(self, feature: dict, feature_id: int, geometry: dict) -> None:
        geom_type = geometry.get(grammar.TYPE)
        coordinates = geometry.get(grammar.COORDINATES)
        node_ids = geometry.get(grammar.NODEIDS)
        tags = grammar.tags_from_properties(feature.get(grammar.PROPERTIES))

        if geom_type == grammar.POINT:
            self._parse_point(feature, feature_id, coordinates, tags)
        elif geom_type == grammar.LINESTRING:
            ring = self._ring(coordinates, feature_id)
            way = self._assembler.create_line(ring, feature_id, self._ring_ids(node_ids, 0, feature_id))
            if way is not None:
                way.tags.update(tags)
        elif geom_type == grammar.POLYGON:
            rings = self._rings(coordinates, feature_id)
            self._assembler.create_polygon(
                rings, feature_id, self._polygon_ids(node_ids, len(rings), feature_id), tags
            )
        elif geom_type == grammar.MULTIPOLYGON:
            if not isinstance(coordinates, list):
                raise self._geometry_error("MultiPolygon coordinates", coordinates, feature_id)
            for i, polygon in enumerate(coordinates):
                rings = self._rings(polygon, feature_id)
                polygon_ids = None
                if node_ids is not None:
                    if not isinstance(node_ids, list) or i >= len(node_ids):
                        raise self._geometry_error("nodeIds", node_ids, feature_id)
                    polygon_ids = self._polygon_ids(node_ids[i], len(rings), feature_id)
                self._assembler.create_polygon(
                    rings, feature_id if i == 0 else None, polygon_ids, tags
                )
        else:
            raise IllegalDataError(
                f"Unknown geometry type: {geom_type!r}",
                kind=ErrorKind.INVALID_GEOMETRY,
                primitive_id=feature_id,
            )

    def _parse_point(self, feature: dict, feature_id: int, coordinates: Any, tags: dict) -> None:
        position = grammar.parse_position(coordinates, feature_id)
        coor = self._assembler.latlon(position, absolute=feature is self._origin_feature)
        node = self._assembler.create_node(coor, feature_id)
        node.tags.update(tags)

    def _parse_non_geometry_feature(self, feature: dict, feature_id: int) -> None:
        relation = Relation(feature_id, tags=grammar.tags_from_properties(feature[grammar.PROPERTIES]))
        self._assembler.dataset.add_primitive(relation)

    def _ring(self, coordinates: Any, feature_id: int) -> list[tuple[float, float]]:
        if not isinstance(coordinates, list):
            raise self._geometry_error("ring", coordinates, feature_id)
        return [grammar.parse_position(c, feature_id) for c in coordinates]

    def _rings(self, coordinates: Any, feature_id: int) -> list[list[tuple[float, float]]]:
        if not isinstance(coordinates, list):
            raise self._geometry_error("polygon", coordinates, feature_id)
        return [self._ring(ring, feature_id) for ring in coordinates]

    def _ring_ids(self, node_ids: Any, ring: int, feature_id: int) -> list[int] | None:
        if node_ids is None:
            return None
        if not isinstance(node_ids, list) or ring >= len(node_ids) or not isinstance(node_ids[ring], list):
            raise self._geometry_error("nodeIds", node_ids, feature_id)
        return [grammar.parse_id(i, "node") for i in node_ids[ring]]

    def _polygon_ids(self, node_ids: Any, rings: int, feature_id: int) -> list[list[int]] | None:
        if node_ids is None:
            return None
        if not isinstance(node_ids, list):
            raise self._geometry_error("nodeIds", node_ids, feature_id)
        return [self._ring_ids(node_ids, i, feature_id) for i in range(min(rings, len(node_ids)))]

    @staticmethod
    def _geometry_error(what: str, value: Any, feature_id: int) -> IllegalDataError:
        return IllegalDataError(
            f"Invalid {what}: {value!r}",
            kind=ErrorKind.INVALID_GEOMETRY,
            primitive_id=feature_id,
        )

    # ------------------------------------------------------------------
    # Pass 2: relations
    # ------------------------------------------------------------------

    def _parse_relation_cache(self) -> None:
        logger.info(f"Parsing {len(self._relations_cache)} relations")
        dataset = self._assembler.dataset
        created: list[tuple[Relation, dict]] = []
        for feature_id, feature in self._relations_cache:
            relation = Relation(
                feature_id, tags=grammar.tags_from_properties(feature.get(grammar.PROPERTIES))
            )
            self._guard(dataset.add_primitive, relation)
            created.append((relation, feature[grammar.RELATION]))

        for relation, rel_obj in created:
            self._resolve_members(dataset, relation, rel_obj)

    def _resolve_members(self, dataset: DataSet, relation: Relation, rel_obj: dict) -> None:
        members = rel_obj.get(grammar.MEMBERS, [])
        if not isinstance(members, list):
            raise IllegalDataError("Relation members is not an array", primitive_id=relation.id)
        for m in members:
            if not isinstance(m, dict):
                raise IllegalDataError(f"Invalid relation member: {m!r}", primitive_id=relation.id)
            mtype = grammar.member_type(m.get(grammar.TYPE), relation.id)
            role = m.get(grammar.ROLE, "")
            if not isinstance(role, str):
                raise IllegalDataError(f"Invalid member role: {role!r}", primitive_id=relation.id)
            member_id = grammar.parse_id(m.get(grammar.ID), "member")
            primitive = dataset.get(mtype, member_id)
            if primitive is None:
                self._warn(
                    ErrorKind.UNRESOLVED_MEMBER,
                    f"Relation member {mtype.value} {member_id} not found, dropped",
                    relation.id,
                )
                continue
            relation.add_member(role, primitive)

    def _warn(self, kind: ErrorKind, message: str, primitive_id: int | None) -> None:
        logger.warning(f"KeloJSON: {message} (id {primitive_id})")
        self.warnings.append(ReadWarning(kind, message, primitive_id))


def _optional_id(value: Any) -> int | None:
    try:
        return grammar.parse_id(value)
    except IllegalDataError:
        return None


def _flatten(value: Any):
    """Yield every parseable id in an arbitrarily nested nodeIds value."""
    if isinstance(value, list):
        for item in value:
            yield from _flatten(item)
    else:
        node_id = _optional_id(value)
        if node_id is not None:
            yield node_id


def parse_dataset(
    source: str | bytes | IO,
    projection: Projection | None = None,
    settings: KeloJSONSettings | None = None,
    progress: ProgressCallback | None = None,
) -> DataSet:
    """Parse KeloJSON text, bytes or a readable stream into a DataSet."""
    reader = KeloJSONReader(projection, settings, progress)
    if isinstance(source, (str, bytes)):
        return reader.parse(source)
    return reader.parse_stream(source)
