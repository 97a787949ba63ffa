"""Tests for kelojson.projection — spherical Mercator and origin discovery."""

import math

import pytest

from kelojson.errors import CoordinateRangeError, IllegalDataError
from kelojson.model import DataSet, Node
from kelojson.projection import (
    EARTH_RADIUS,
    MAX_MERCATOR_LAT,
    ZERO,
    EastNorth,
    LatLon,
    SphericalMercator,
    find_origin,
    find_origin_node,
)

HALF_WORLD = math.pi * EARTH_RADIUS


@pytest.fixture
def mercator():
    return SphericalMercator()


class TestSphericalMercator:
    """Forward and inverse EPSG:3857."""

    @pytest.mark.unit
    def test_null_island(self, mercator):
        en = mercator.project(LatLon(0.0, 0.0))
        assert en.east == pytest.approx(0.0)
        assert en.north == pytest.approx(0.0, abs=1e-6)

    @pytest.mark.unit
    def test_antimeridian_easting(self, mercator):
        en = mercator.project(LatLon(0.0, 180.0))
        assert en.east == pytest.approx(HALF_WORLD)

    @pytest.mark.unit
    def test_mercator_limit_is_square(self, mercator):
        en = mercator.project(LatLon(MAX_MERCATOR_LAT, 0.0))
        assert en.north == pytest.approx(HALF_WORLD)

    @pytest.mark.unit
    def test_polar_latitude_clamped(self, mercator):
        assert mercator.project(LatLon(90.0, 0.0)).north == pytest.approx(HALF_WORLD)
        assert mercator.project(LatLon(-89.0, 0.0)).north == pytest.approx(-HALF_WORLD)

    @pytest.mark.unit
    @pytest.mark.parametrize("lon", [180.0, -180.0])
    def test_antimeridian_inverse(self, mercator, lon):
        back = mercator.unproject(mercator.project(LatLon(10.0, lon)))
        assert back.lon == lon
        assert back.lat == pytest.approx(10.0, abs=1e-12)

    @pytest.mark.unit
    def test_inverse(self, mercator):
        coor = LatLon(47.3769, 8.5417)
        back = mercator.unproject(mercator.project(coor))
        assert back.lat == pytest.approx(coor.lat, abs=1e-12)
        assert back.lon == pytest.approx(coor.lon, abs=1e-12)

    @pytest.mark.unit
    @pytest.mark.parametrize("coor", [LatLon(91.0, 0.0), LatLon(0.0, -181.0), LatLon(math.nan, 0.0)])
    def test_out_of_range_raises(self, mercator, coor):
        with pytest.raises(CoordinateRangeError):
            mercator.project(coor)

    @pytest.mark.unit
    def test_easting_just_past_antimeridian_rejected(self, mercator):
        with pytest.raises(CoordinateRangeError):
            mercator.unproject(EastNorth(HALF_WORLD + 1.0, 0.0))

    @pytest.mark.unit
    def test_range_error_is_data_and_value_error(self, mercator):
        with pytest.raises(IllegalDataError):
            mercator.unproject(EastNorth(math.inf, 0.0))
        with pytest.raises(ValueError):
            mercator.unproject(EastNorth(3 * HALF_WORLD, 0.0))


class TestEastNorth:

    @pytest.mark.unit
    def test_add_subtract(self):
        a = EastNorth(10.0, 20.0)
        b = EastNorth(1.5, 2.5)
        assert a.subtract(b) == EastNorth(8.5, 17.5)
        assert a.subtract(b).add(b) == a


class TestFindOrigin:
    """The first complete node tagged name=origin fixes the offset."""

    @pytest.mark.unit
    def test_no_sentinel_is_zero(self, identity, settings):
        ds = DataSet()
        ds.add_primitive(Node(1, LatLon(1.0, 2.0), {"name": "other"}))
        assert find_origin(ds, identity, settings) == ZERO

    @pytest.mark.unit
    def test_sentinel_found(self, identity, settings):
        ds = DataSet()
        ds.add_primitive(Node(1, LatLon(1.0, 2.0)))
        ds.add_primitive(Node(2, LatLon(3.0, 4.0), {"name": "origin"}))
        ds.add_primitive(Node(3, LatLon(5.0, 6.0), {"name": "origin"}))
        assert find_origin(ds, identity, settings) == EastNorth(4.0, 3.0)

    @pytest.mark.unit
    def test_deleted_and_incomplete_ignored(self, settings):
        ds = DataSet()
        ds.add_primitive(Node(1, LatLon(1.0, 2.0), {"name": "origin"}, deleted=True))
        ds.add_primitive(Node(2, None, {"name": "origin"}, incomplete=True))
        assert find_origin_node(ds, settings) is None
