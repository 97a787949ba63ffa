"""Object graph model: nodes, ways, relations and the data set holding them.

Primitives compare and hash by identity.  A DataSet indexes them by
PrimitiveId, i.e. (type, id); identifiers are unique per type only, so a
node, a way and a relation may share the same numeric id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, NamedTuple, Union

from kelojson.errors import DataIntegrityError
from kelojson.projection import LatLon


class PrimitiveType(str, Enum):
    """Primitive variant; the value is the wire-format type tag."""

    NODE = "Node"
    WAY = "Way"
    RELATION = "Relation"


class PrimitiveId(NamedTuple):
    type: PrimitiveType
    id: int


@dataclass(eq=False)
class Node:
    """A point with an optional coordinate (None while incomplete)."""

    id: int
    coor: LatLon | None = None
    tags: dict[str, str] = field(default_factory=dict)
    incomplete: bool = False
    deleted: bool = False

    type = PrimitiveType.NODE

    @property
    def primitive_id(self) -> PrimitiveId:
        return PrimitiveId(PrimitiveType.NODE, self.id)


@dataclass(eq=False)
class Way:
    """An ordered sequence of node references."""

    id: int
    nodes: list[Node] = field(default_factory=list)
    tags: dict[str, str] = field(default_factory=dict)
    incomplete: bool = False
    deleted: bool = False

    type = PrimitiveType.WAY

    @property
    def primitive_id(self) -> PrimitiveId:
        return PrimitiveId(PrimitiveType.WAY, self.id)

    @property
    def is_closed(self) -> bool:
        """Structural closure: 3+ references, first and last the same node."""
        return len(self.nodes) > 2 and self.nodes[0] is self.nodes[-1]


@dataclass(eq=False)
class RelationMember:
    role: str
    member: Primitive


@dataclass(eq=False)
class Relation:
    """An ordered list of role-tagged members."""

    id: int
    members: list[RelationMember] = field(default_factory=list)
    tags: dict[str, str] = field(default_factory=dict)
    incomplete: bool = False
    deleted: bool = False

    type = PrimitiveType.RELATION

    @property
    def primitive_id(self) -> PrimitiveId:
        return PrimitiveId(PrimitiveType.RELATION, self.id)

    @property
    def is_multipolygon(self) -> bool:
        return self.tags.get("type") == "multipolygon"

    def add_member(self, role: str, member: Primitive) -> None:
        self.members.append(RelationMember(role, member))


Primitive = Union[Node, Way, Relation]


class DataSet:
    """Insertion-ordered container of primitives keyed by PrimitiveId."""

    def __init__(self) -> None:
        self._primitives: dict[PrimitiveId, Primitive] = {}

    def __len__(self) -> int:
        return len(self._primitives)

    def __iter__(self) -> Iterator[Primitive]:
        return iter(list(self._primitives.values()))

    def __contains__(self, primitive: object) -> bool:
        pid = getattr(primitive, "primitive_id", None)
        return pid is not None and self._primitives.get(pid) is primitive

    def add_primitive(self, primitive: Primitive) -> Primitive:
        """Add a primitive.

        Raises:
            DataIntegrityError: If the id is taken for this type, or the
                primitive references nodes/members outside this data set.
        """
        pid = primitive.primitive_id
        if pid in self._primitives:
            raise DataIntegrityError(
                f"Duplicate {pid.type.value} identifier", primitive_id=pid.id
            )
        if isinstance(primitive, Way):
            for node in primitive.nodes:
                if node not in self:
                    raise DataIntegrityError(
                        f"Way references node {node.id} outside the data set",
                        primitive_id=pid.id,
                    )
        elif isinstance(primitive, Relation):
            for rm in primitive.members:
                if rm.member not in self:
                    raise DataIntegrityError(
                        f"Relation references {rm.member.type.value} "
                        f"{rm.member.id} outside the data set",
                        primitive_id=pid.id,
                    )
        self._primitives[pid] = primitive
        return primitive

    def get_primitive_by_id(self, pid: PrimitiveId) -> Primitive | None:
        return self._primitives.get(pid)

    def get(self, type: PrimitiveType, id: int) -> Primitive | None:
        return self._primitives.get(PrimitiveId(type, id))

    def all_non_deleted(self) -> list[Primitive]:
        return [p for p in self._primitives.values() if not p.deleted]

    @property
    def nodes(self) -> list[Node]:
        return [p for p in self._primitives.values() if isinstance(p, Node)]

    @property
    def ways(self) -> list[Way]:
        return [p for p in self._primitives.values() if isinstance(p, Way)]

    @property
    def relations(self) -> list[Relation]:
        return [p for p in self._primitives.values() if isinstance(p, Relation)]
