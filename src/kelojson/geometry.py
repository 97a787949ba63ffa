"""Geometry assembly: planar rings to nodes, ways and multipolygons.

One GeometryAssembler lives for a single parse.  It owns the node index used
to collapse coincident points and the allocator handing out identifiers for
primitives the wire format does not name (inner rings of a polygon, ring
nodes without ``nodeIds``).
"""

from __future__ import annotations

from collections import defaultdict
from typing import Sequence

from kelojson.errors import ErrorKind, IllegalDataError
from kelojson.model import DataSet, Node, PrimitiveType, Relation, Way
from kelojson.projection import ZERO, EastNorth, LatLon, Projection

Position = tuple[float, float]


class NodeIndex:
    """Exact-coordinate lookup of the nodes created during one parse."""

    def __init__(self) -> None:
        self._nodes: dict[LatLon, Node] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, coor: LatLon) -> Node | None:
        return self._nodes.get(coor)

    def add(self, node: Node) -> None:
        self._nodes.setdefault(node.coor, node)


class IdAllocator:
    """Hands out negative identifiers not used in a data set or reserved.

    Identifiers named anywhere in the input are reserved up front so a
    generated id never collides with a feature read later.
    """

    def __init__(self, dataset: DataSet) -> None:
        self._dataset = dataset
        self._next: dict[PrimitiveType, int] = defaultdict(lambda: -1)
        self._reserved: dict[PrimitiveType, set[int]] = defaultdict(set)

    def reserve(self, type: PrimitiveType, id: int) -> None:
        self._reserved[type].add(id)

    def allocate(self, type: PrimitiveType) -> int:
        candidate = self._next[type]
        while (
            candidate in self._reserved[type]
            or self._dataset.get(type, candidate) is not None
        ):
            candidate -= 1
        self._next[type] = candidate - 1
        return candidate


class GeometryAssembler:
    """Builds graph primitives from planar coordinates.

    Args:
        dataset: Data set receiving every created primitive.
        projection: Transform used to turn planar positions into LatLon.
        origin: Offset added to every non-absolute planar position.
    """

    def __init__(
        self,
        dataset: DataSet,
        projection: Projection,
        origin: EastNorth = ZERO,
    ) -> None:
        self.dataset = dataset
        self.projection = projection
        self.origin = origin
        self.index = NodeIndex()
        self.ids = IdAllocator(dataset)

    def latlon(self, position: Position, absolute: bool = False) -> LatLon:
        en = EastNorth(*position)
        if not absolute:
            en = en.add(self.origin)
        return self.projection.unproject(en)

    def create_node(self, coor: LatLon, node_id: int | None = None) -> Node:
        """Reuse the node at exactly this coordinate, or create one."""
        existing = self.index.get(coor)
        if existing is not None:
            return existing
        if node_id is None:
            node_id = self.ids.allocate(PrimitiveType.NODE)
        node = Node(node_id, coor)
        self.dataset.add_primitive(node)
        self.index.add(node)
        return node

    def create_way(
        self,
        ring: Sequence[Position],
        way_id: int | None,
        node_ids: Sequence[int] | None,
        auto_close: bool,
    ) -> Way | None:
        """Assemble one way from a coordinate ring; None for an empty ring."""
        if not ring:
            return None
        if node_ids is not None and len(node_ids) != len(ring):
            raise IllegalDataError(
                f"nodeIds has {len(node_ids)} entries for {len(ring)} coordinates",
                kind=ErrorKind.INVALID_GEOMETRY,
                primitive_id=way_id,
            )
        latlons = [self.latlon(position) for position in ring]

        do_autoclose = auto_close and len(latlons) > 1 and latlons[0] != latlons[-1]

        raw_nodes = [
            self.create_node(coor, node_ids[i] if node_ids is not None else None)
            for i, coor in enumerate(latlons)
        ]
        if do_autoclose:
            raw_nodes.append(raw_nodes[0])

        # Collapse adjacent references to the same node
        way_nodes: list[Node] = []
        for node in raw_nodes:
            if not way_nodes or way_nodes[-1] is not node:
                way_nodes.append(node)

        if way_id is None:
            way_id = self.ids.allocate(PrimitiveType.WAY)
        return self.dataset.add_primitive(Way(way_id, way_nodes))

    def create_line(
        self,
        ring: Sequence[Position],
        way_id: int | None,
        node_ids: Sequence[int] | None = None,
    ) -> Way | None:
        return self.create_way(ring, way_id, node_ids, auto_close=False)

    def create_polygon(
        self,
        rings: Sequence[Sequence[Position]],
        feature_id: int | None,
        node_ids: Sequence[Sequence[int]] | None = None,
        tags: dict[str, str] | None = None,
    ) -> Way | Relation | None:
        """Assemble a polygon.

        A single ring becomes one closed way carrying ``feature_id`` and
        ``tags``.  Several rings become a multipolygon relation with the
        feature id and tags; the first ring is its "outer" way (also named
        ``feature_id``) and the rest are "inner" ways with fresh ids.
        """
        if not rings:
            return None

        def ring_ids(i: int) -> Sequence[int] | None:
            if node_ids is None or i >= len(node_ids):
                return None
            return node_ids[i]

        if len(rings) == 1:
            way = self.create_way(rings[0], feature_id, ring_ids(0), auto_close=True)
            if way is not None and tags:
                way.tags.update(tags)
            return way

        multipolygon = Relation(
            feature_id if feature_id is not None else self.ids.allocate(PrimitiveType.RELATION)
        )
        outer = self.create_way(rings[0], feature_id, ring_ids(0), auto_close=True)
        if outer is not None:
            multipolygon.add_member("outer", outer)
        for i in range(1, len(rings)):
            inner = self.create_way(rings[i], None, ring_ids(i), auto_close=True)
            if inner is not None:
                multipolygon.add_member("inner", inner)
        if tags:
            multipolygon.tags.update(tags)
        multipolygon.tags["type"] = "multipolygon"
        return self.dataset.add_primitive(multipolygon)
