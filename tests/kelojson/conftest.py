"""Shared fixtures for KeloJSON tests."""

from __future__ import annotations

import pytest

from kelojson.config import KeloJSONSettings
from kelojson.model import DataSet, Node, PrimitiveType, Relation, Way
from kelojson.projection import EastNorth, LatLon


class IdentityProjection:
    """Planar coordinates equal (lon, lat); keeps expected values readable."""

    def project(self, coor: LatLon) -> EastNorth:
        return EastNorth(coor.lon, coor.lat)

    def unproject(self, en: EastNorth) -> LatLon:
        return LatLon(en.north, en.east)


@pytest.fixture
def identity():
    return IdentityProjection()


@pytest.fixture
def settings():
    return KeloJSONSettings()


@pytest.fixture
def sample_dataset():
    """A bench, a square building, a footpath and two nested relations."""
    ds = DataSet()
    bench = ds.add_primitive(Node(1, LatLon(47.0, 8.0), {"amenity": "bench"}))
    corners = [
        ds.add_primitive(Node(2, LatLon(47.001, 8.001))),
        ds.add_primitive(Node(3, LatLon(47.001, 8.002))),
        ds.add_primitive(Node(4, LatLon(47.002, 8.002))),
        ds.add_primitive(Node(5, LatLon(47.002, 8.001))),
    ]
    building = ds.add_primitive(
        Way(10, corners + [corners[0]], {"building": "yes", "name": "Hall"})
    )
    path = ds.add_primitive(Way(11, [bench, corners[1]], {"highway": "footway"}))
    site = Relation(20, tags={"type": "site", "name": "Campus"})
    site.add_member("outer", building)
    site.add_member("", bench)
    site.add_member("path", path)
    ds.add_primitive(site)
    group = Relation(21, tags={"type": "group"})
    group.add_member("sub", site)
    ds.add_primitive(group)
    return ds


def _snapshot(ds: DataSet) -> dict:
    """Comparable view of a data set: ids, tags, node lists, members, coords."""
    view = {}
    for p in ds:
        if p.type is PrimitiveType.NODE:
            body = (dict(p.tags), p.coor)
        elif p.type is PrimitiveType.WAY:
            body = (dict(p.tags), [n.id for n in p.nodes])
        else:
            body = (
                dict(p.tags),
                [(rm.role, rm.member.type, rm.member.id) for rm in p.members],
            )
        view[p.primitive_id] = body
    return view


@pytest.fixture
def snapshot():
    return _snapshot
