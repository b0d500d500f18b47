"""Tests for tiles.coords module."""

import pytest

from gpkg_pyramid.shared.constants import (
    WEB_MERCATOR_HALF_WORLD_WIDTH,
    WEB_MERCATOR_MAX_LAT,
    WEB_MERCATOR_MIN_LAT,
)
from gpkg_pyramid.tiles.coords import (
    TileAddress,
    lat2tile,
    long2tile,
    tile2lat,
    tile2lon,
    tile_bounding_box,
    tile_web_mercator_bounding_box,
    tiles_per_side,
)


class TestTileToDegrees:
    """Tests for tile2lon/tile2lat."""

    def test_zoom_zero_spans_world(self):
        assert tile2lon(0, 0) == -180.0
        assert tile2lon(1, 0) == 180.0

    def test_top_and_bottom_edges(self):
        assert tile2lat(0, 0) == pytest.approx(WEB_MERCATOR_MAX_LAT)
        assert tile2lat(1, 0) == pytest.approx(WEB_MERCATOR_MIN_LAT)

    def test_equator_at_zoom_one(self):
        assert tile2lat(1, 1) == pytest.approx(0.0, abs=1e-12)


class TestDegreesToTile:
    """Tests for long2tile/lat2tile."""

    def test_origin_at_zoom_one(self):
        """The origin belongs to the tile south-east of it."""
        assert long2tile(0.0, 1) == 1
        assert lat2tile(0.0, 1) == 1

    def test_east_edge_clamped(self):
        assert long2tile(180.0, 3) == 7

    def test_west_edge(self):
        assert long2tile(-180.0, 3) == 0

    def test_poles_clamped(self):
        assert lat2tile(90.0, 4) == 0
        assert lat2tile(-90.0, 4) == 15

    @pytest.mark.parametrize('z', range(8))
    def test_long2tile_inverts_tile2lon(self, z):
        for x in range(tiles_per_side(z)):
            assert long2tile(tile2lon(x, z), z) == x

    @pytest.mark.parametrize('z', [2, 5, 9])
    def test_lat2tile_inside_row(self, z):
        """Latitude just south of a row's northern edge lands in that row."""
        for y in range(tiles_per_side(z)):
            north = tile2lat(y, z)
            south = tile2lat(y + 1, z)
            assert lat2tile((north + south) / 2.0, z) == y


class TestTileBoxes:
    """Tests for tile boxes."""

    def test_wgs84_box(self):
        box = tile_bounding_box(1, 0, 1)
        assert box.min_longitude == 0.0
        assert box.max_longitude == 180.0
        assert box.min_latitude == pytest.approx(0.0, abs=1e-12)
        assert box.max_latitude == pytest.approx(WEB_MERCATOR_MAX_LAT)

    def test_web_mercator_box(self):
        half = WEB_MERCATOR_HALF_WORLD_WIDTH
        box = tile_web_mercator_bounding_box(0, 0, 1)
        assert box.as_tuple() == pytest.approx((-half, 0.0, 0.0, half))


class TestTileAddress:
    """Tests for TileAddress."""

    def test_as_tuple(self):
        assert TileAddress(3, 4, 5).as_tuple() == (3, 4, 5)

    def test_out_of_range_column(self):
        with pytest.raises(ValueError):
            TileAddress(1, 2, 0)

    def test_negative_zoom(self):
        with pytest.raises(ValueError):
            TileAddress(-1, 0, 0)

    def test_bounding_box(self):
        assert TileAddress(0, 0, 0).bounding_box().min_longitude == -180.0

    def test_hashable(self):
        assert len({TileAddress(1, 0, 0), TileAddress(1, 0, 0)}) == 1
