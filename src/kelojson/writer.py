"""Write a DataSet as KeloJSON.

Relations are emitted before every other primitive so a reader sees the
complete set of relation features up front.  Coordinates are projected,
shifted by the origin and rounded half-up; the sentinel origin node is
written at its absolute projected position so the origin survives a round
trip.
"""

from __future__ import annotations

import json
from typing import Callable

from kelojson import grammar
from kelojson.config import KeloJSONSettings, settings as default_settings
from kelojson.model import DataSet, Node, Primitive, PrimitiveType, Relation, Way
from kelojson.projection import (
    ZERO,
    EastNorth,
    Projection,
    SphericalMercator,
    find_origin,
    find_origin_node,
)

AreaPolicy = Callable[[Way], bool]


class KeloJSONWriter:
    """Serializes one DataSet; does not mutate it.

    Args:
        dataset: The data set to write.
        projection: Planar transform (EPSG:3857 by default).
        settings: Codec settings (module settings by default).
        area_policy: Decides whether a closed, tagged way is an area.
    """

    def __init__(
        self,
        dataset: DataSet,
        projection: Projection | None = None,
        settings: KeloJSONSettings | None = None,
        area_policy: AreaPolicy | None = None,
    ) -> None:
        self.data = dataset
        self.projection = projection or SphericalMercator()
        self.settings = settings or default_settings
        self.area_policy = area_policy or (lambda way: grammar.is_area(way, self.settings))
        self.origin: EastNorth = ZERO
        self._origin_node: Node | None = None
        self._emitters: dict[PrimitiveType, Callable[[Primitive, dict], None]] = {
            PrimitiveType.NODE: self._emit_node,
            PrimitiveType.WAY: self._emit_way,
            PrimitiveType.RELATION: self._emit_relation,
        }

    def write(self, pretty: bool | None = None) -> str:
        """Return the data set as KeloJSON text."""
        if pretty is None:
            pretty = self.settings.pretty
        return json.dumps(
            self.to_dict(), indent=4 if pretty else None, ensure_ascii=False
        )

    def to_dict(self) -> dict:
        """Return the data set as a KeloJSON FeatureCollection dict."""
        self.origin = find_origin(self.data, self.projection, self.settings)
        self._origin_node = find_origin_node(self.data, self.settings)

        primitives = self.data.all_non_deleted()
        features = []
        # Relations first
        for p in primitives:
            if isinstance(p, Relation):
                self._append_primitive(p, features)
        for p in primitives:
            if not isinstance(p, Relation):
                self._append_primitive(p, features)

        return {
            grammar.TYPE: grammar.FEATURE_COLLECTION,
            grammar.FEATURES: features,
        }

    def _append_primitive(self, p: Primitive, features: list) -> None:
        if p.incomplete or (
            isinstance(p, Node)
            and (p.coor is None or (self.settings.skip_empty_nodes and not p.tags))
        ):
            return

        feature = {grammar.TYPE: grammar.FEATURE, grammar.ID: grammar.format_id(p.id)}
        properties = {
            key: grammar.value_to_json(value)
            for key, value in p.tags.items()
            if key not in self.settings.reserved_keys
        }
        if properties:
            feature[grammar.PROPERTIES] = properties
        self._emitters[p.type](p, feature)
        features.append(feature)

    # ------------------------------------------------------------------
    # Per-variant emitters
    # ------------------------------------------------------------------

    def _emit_node(self, node: Node, feature: dict) -> None:
        feature[grammar.GEOMETRY] = {
            grammar.TYPE: grammar.POINT,
            grammar.COORDINATES: self._coor_array(node, absolute=node is self._origin_node),
        }

    def _emit_way(self, way: Way, feature: dict) -> None:
        nodes = [n for n in way.nodes if n.coor is not None]
        coords = [self._coor_array(n) for n in nodes]
        ids = [n.id for n in nodes]
        if way.is_closed and (
            (not way.tags and self.settings.untagged_closed_is_polygon)
            or (way.tags and self.area_policy(way))
        ):
            geometry = {
                grammar.TYPE: grammar.POLYGON,
                grammar.COORDINATES: [coords],
            }
        else:
            geometry = {
                grammar.TYPE: grammar.LINESTRING,
                grammar.COORDINATES: coords,
            }
        geometry[grammar.NODEIDS] = [ids]
        feature[grammar.GEOMETRY] = geometry

    def _emit_relation(self, relation: Relation, feature: dict) -> None:
        feature[grammar.RELATION] = {
            grammar.MEMBERS: [
                {
                    grammar.ID: grammar.format_id(rm.member.id),
                    grammar.TYPE: rm.member.type.value,
                    grammar.ROLE: rm.role,
                }
                for rm in relation.members
            ]
        }

    def _coor_array(self, node: Node, absolute: bool = False) -> list[float]:
        en = self.projection.project(node.coor)
        if not absolute:
            en = en.subtract(self.origin)
        precision = self.settings.coordinate_precision
        return [
            grammar.round_coordinate(en.east, precision),
            grammar.round_coordinate(en.north, precision),
        ]


def write_dataset(
    dataset: DataSet,
    projection: Projection | None = None,
    settings: KeloJSONSettings | None = None,
    pretty: bool | None = None,
) -> str:
    """Serialize a DataSet to KeloJSON text."""
    return KeloJSONWriter(dataset, projection, settings).write(pretty)
