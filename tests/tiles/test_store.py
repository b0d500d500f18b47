"""Tests for tile stores."""

from __future__ import annotations

import sqlite3

import numpy as np
import pytest

from gpkg_pyramid.geo.bounding_box import BoundingBox
from gpkg_pyramid.shared.constants import (
    GPKG_APPLICATION_ID,
    GPKG_USER_VERSION,
    WEB_MERCATOR_HALF_WORLD_WIDTH,
    TileFormat,
)
from gpkg_pyramid.tiles.store import GeoPackageTileStore, MemoryTileStore, TileStore

BBOX_3857 = BoundingBox(0.0, 0.0, 111319.49, 111325.14)


@pytest.fixture
def gpkg_path(tmp_path):
    return tmp_path / 'out' / 'tiles.gpkg'


@pytest.fixture
def store(gpkg_path):
    s = GeoPackageTileStore(gpkg_path)
    yield s
    s.close()


class TestMemoryTileStore:
    """Tests for MemoryTileStore."""

    def test_is_tile_store(self):
        assert isinstance(MemoryTileStore(), TileStore)

    def test_add_and_get(self):
        mem = MemoryTileStore()
        mem.add_tile(b'a', 'overlay', 3, 2, 1)
        assert mem.get_tile('overlay', 3, 2, 1) == b'a'
        assert mem.get_tile('overlay', 3, 1, 2) is None

    def test_replace(self):
        mem = MemoryTileStore()
        mem.add_tile(b'a', 'overlay', 3, 2, 1)
        mem.add_tile(b'b', 'overlay', 3, 2, 1)
        assert mem.count_tiles('overlay') == 1
        assert mem.get_tile('overlay', 3, 2, 1) == b'b'

    def test_count_per_zoom(self):
        mem = MemoryTileStore()
        mem.add_tile(b'a', 't', 1, 0, 0)
        mem.add_tile(b'b', 't', 2, 0, 0)
        mem.add_tile(b'c', 'other', 2, 0, 0)
        assert mem.count_tiles('t') == 2
        assert mem.count_tiles('t', zoom=2) == 1

    def test_create_tile_table_records_levels(self):
        mem = MemoryTileStore()
        mem.create_tile_table('t', BBOX_3857, [4, 2, 4])
        assert mem.zoom_levels['t'] == [2, 4]


class TestGeoPackageSchema:
    """Tests for GeoPackage metadata tables."""

    def test_creates_file_and_parent(self, store, gpkg_path):
        assert gpkg_path.exists()

    def test_pragmas(self, store, gpkg_path):
        conn = sqlite3.connect(str(gpkg_path))
        try:
            assert conn.execute('PRAGMA application_id').fetchone()[0] == GPKG_APPLICATION_ID
            assert conn.execute('PRAGMA user_version').fetchone()[0] == GPKG_USER_VERSION
        finally:
            conn.close()

    def test_spatial_ref_sys_rows(self, store):
        ids = {r[0] for r in store._conn.execute('SELECT srs_id FROM gpkg_spatial_ref_sys')}
        assert {-1, 0, 4326, 3857} <= ids

    def test_reopen_is_idempotent(self, gpkg_path):
        GeoPackageTileStore(gpkg_path).close()
        with GeoPackageTileStore(gpkg_path) as again:
            count = again._conn.execute('SELECT COUNT(*) FROM gpkg_spatial_ref_sys').fetchone()[0]
        assert count == 4

    def test_create_tile_table(self, store):
        store.create_tile_table('overlay', BBOX_3857, [6, 2, 4])
        assert store.tile_tables() == ['overlay']
        assert store.zoom_levels('overlay') == [2, 4, 6]
        row = store._conn.execute(
            'SELECT data_type, srs_id, min_x, max_y FROM gpkg_contents WHERE table_name = ?',
            ('overlay',),
        ).fetchone()
        assert row[0] == 'tiles'
        assert row[1] == 3857
        assert row[2] == pytest.approx(BBOX_3857.min_longitude)
        assert row[3] == pytest.approx(BBOX_3857.max_latitude)

    def test_tile_matrix_set_is_world(self, store):
        store.create_tile_table('overlay', BBOX_3857, [0])
        min_x, max_y = store._conn.execute(
            'SELECT min_x, max_y FROM gpkg_tile_matrix_set WHERE table_name = ?', ('overlay',)
        ).fetchone()
        assert min_x == pytest.approx(-WEB_MERCATOR_HALF_WORLD_WIDTH)
        assert max_y == pytest.approx(WEB_MERCATOR_HALF_WORLD_WIDTH)

    def test_tile_matrix_rows(self, store):
        store.create_tile_table('overlay', BBOX_3857, [0, 3])
        width, tile_width, pixel_size = store._conn.execute(
            '''SELECT matrix_width, tile_width, pixel_x_size FROM gpkg_tile_matrix
               WHERE table_name = ? AND zoom_level = 3''',
            ('overlay',),
        ).fetchone()
        assert width == 8
        assert tile_width == 256
        assert pixel_size == pytest.approx(2 * WEB_MERCATOR_HALF_WORLD_WIDTH / (8 * 256))

    def test_extending_levels(self, store):
        store.create_tile_table('overlay', BBOX_3857, [2])
        store.create_tile_table('overlay', BBOX_3857, [5])
        assert store.zoom_levels('overlay') == [2, 5]

    def test_tile_scaling_registered(self, store):
        """Readers may scale across one ladder step in both directions."""
        store.create_tile_table('overlay', BBOX_3857, [2, 4])
        assert store.tile_scaling('overlay') == ('in_out', 2, 2)
        rows = store._conn.execute(
            '''SELECT table_name, column_name, scope FROM gpkg_extensions
               WHERE extension_name = 'nga_tile_scaling' ''',
        ).fetchall()
        assert rows == [('overlay', None, 'read-write')]

    def test_tile_scaling_registered_once(self, store):
        store.create_tile_table('overlay', BBOX_3857, [2])
        store.create_tile_table('overlay', BBOX_3857, [4])
        store.create_tile_table('other', BBOX_3857, [0])
        count = store._conn.execute('SELECT COUNT(*) FROM gpkg_extensions').fetchone()[0]
        assert count == 2
        assert store.tile_scaling('other') == ('in_out', 2, 2)

    def test_tile_scaling_absent_for_unknown_table(self, store):
        assert store.tile_scaling('nope') is None


class TestGeoPackageTiles:
    """Tests for tile rows."""

    def test_add_and_get(self, store):
        store.create_tile_table('overlay', BBOX_3857, [3])
        store.add_tile(b'png', 'overlay', 3, 2, 5)
        assert store.get_tile('overlay', 3, 2, 5) == b'png'
        assert store.get_tile('overlay', 3, 5, 2) is None

    def test_add_is_idempotent(self, store):
        store.create_tile_table('overlay', BBOX_3857, [3])
        store.add_tile(b'old', 'overlay', 3, 2, 5)
        store.add_tile(b'new', 'overlay', 3, 2, 5)
        assert store.count_tiles('overlay') == 1
        assert store.get_tile('overlay', 3, 2, 5) == b'new'

    def test_row_and_column_stored_in_place(self, store):
        store.create_tile_table('overlay', BBOX_3857, [3])
        store.add_tile(b'x', 'overlay', 3, 2, 5)
        column, row = store._conn.execute(
            'SELECT tile_column, tile_row FROM "overlay"'
        ).fetchone()
        assert (column, row) == (5, 2)

    def test_numpy_buffer_encoded_as_png(self, store):
        store.create_tile_table('overlay', BBOX_3857, [0])
        store.add_tile(np.zeros((256, 256, 4), dtype=np.uint8), 'overlay', 0, 0, 0)
        assert store.get_tile('overlay', 0, 0, 0).startswith(b'\x89PNG')

    def test_webp_format(self, gpkg_path):
        with GeoPackageTileStore(gpkg_path, tile_format=TileFormat.WEBP) as webp:
            webp.create_tile_table('overlay', BBOX_3857, [0])
            webp.add_tile(np.zeros((256, 256, 4), dtype=np.uint8), 'overlay', 0, 0, 0)
            data = webp.get_tile('overlay', 0, 0, 0)
        assert data[:4] == b'RIFF'
        assert data[8:12] == b'WEBP'

    def test_quoted_table_name(self, store):
        name = 'my "odd" table'
        store.create_tile_table(name, BBOX_3857, [0])
        store.add_tile(b'x', name, 0, 0, 0)
        assert store.count_tiles(name) == 1

    def test_empty_table_name(self, store):
        with pytest.raises(ValueError):
            store.create_tile_table('', BBOX_3857, [0])

    def test_missing_table_propagates(self, store):
        with pytest.raises(sqlite3.OperationalError):
            store.add_tile(b'x', 'nope', 0, 0, 0)

    def test_closed_store(self, gpkg_path):
        s = GeoPackageTileStore(gpkg_path)
        s.close()
        with pytest.raises(sqlite3.ProgrammingError):
            s.tile_tables()
