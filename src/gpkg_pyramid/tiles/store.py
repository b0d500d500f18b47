"""Tile stores: where rendered tiles end up.

This module provides:
- TileStore: the protocol the pyramid builder writes through
- MemoryTileStore: dict-backed store, handy for previews and tests
- GeoPackageTileStore: SQLite GeoPackage tile pyramid tables
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, Union, runtime_checkable

import numpy as np

from gpkg_pyramid.shared.constants import (
    GPKG_APPLICATION_ID,
    GPKG_TILES_DATA_TYPE,
    GPKG_EXTENSION_SCOPE,
    GPKG_USER_VERSION,
    TILE_SCALING_DEFINITION,
    TILE_SCALING_EXTENSION,
    TILE_SCALING_TYPE,
    TILE_SIZE,
    WEB_MERCATOR_CODE,
    WEB_MERCATOR_HALF_WORLD_WIDTH,
    WGS84_CODE,
    TileFormat,
)
from gpkg_pyramid.tiles.coords import tiles_per_side
from gpkg_pyramid.tiles.zoom import ZOOM_LADDER_STEP

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from gpkg_pyramid.geo.bounding_box import BoundingBox

logger = logging.getLogger(__name__)

TileData = Union[bytes, np.ndarray]

_WGS84_DEFINITION = (
    'GEOGCS["WGS 84",DATUM["WGS_1984",SPHEROID["WGS 84",6378137,298.257223563,'
    'AUTHORITY["EPSG","7030"]],AUTHORITY["EPSG","6326"]],PRIMEM["Greenwich",0,'
    'AUTHORITY["EPSG","8901"]],UNIT["degree",0.0174532925199433,'
    'AUTHORITY["EPSG","9122"]],AUTHORITY["EPSG","4326"]]'
)
_WEB_MERCATOR_DEFINITION = (
    'PROJCS["WGS 84 / Pseudo-Mercator",GEOGCS["WGS 84",DATUM["WGS_1984",'
    'SPHEROID["WGS 84",6378137,298.257223563,AUTHORITY["EPSG","7030"]],'
    'AUTHORITY["EPSG","6326"]],PRIMEM["Greenwich",0,AUTHORITY["EPSG","8901"]],'
    'UNIT["degree",0.0174532925199433,AUTHORITY["EPSG","9122"]],'
    'AUTHORITY["EPSG","4326"]],PROJECTION["Mercator_1SP"],'
    'PARAMETER["central_meridian",0],PARAMETER["scale_factor",1],'
    'PARAMETER["false_easting",0],PARAMETER["false_northing",0],'
    'UNIT["metre",1,AUTHORITY["EPSG","9001"]],AXIS["X",EAST],AXIS["Y",NORTH],'
    'AUTHORITY["EPSG","3857"]]'
)


@runtime_checkable
class TileStore(Protocol):
    """Destination for rendered tiles, keyed by (table, zoom, row, column)."""

    def add_tile(
        self, data: TileData, table: str, zoom: int, row: int, column: int
    ) -> None: ...


def _quote_identifier(name: str) -> str:
    if not name:
        msg = 'Table name must not be empty'
        raise ValueError(msg)
    return '"' + name.replace('"', '""') + '"'


class MemoryTileStore:
    """In-memory tile store. Writes to an existing key replace the tile."""

    def __init__(self) -> None:
        self.tiles: dict[tuple[str, int, int, int], TileData] = {}
        self.zoom_levels: dict[str, list[int]] = {}

    def create_tile_table(
        self, table: str, bbox: BoundingBox, zoom_levels: Sequence[int]
    ) -> None:
        self.zoom_levels[table] = sorted(set(zoom_levels))

    def add_tile(
        self, data: TileData, table: str, zoom: int, row: int, column: int
    ) -> None:
        self.tiles[(table, zoom, row, column)] = data

    def get_tile(self, table: str, zoom: int, row: int, column: int) -> TileData | None:
        return self.tiles.get((table, zoom, row, column))

    def count_tiles(self, table: str, zoom: int | None = None) -> int:
        return sum(
            1
            for (t, z, _, _) in self.tiles
            if t == table and (zoom is None or z == zoom)
        )


class GeoPackageTileStore:
    """Tile pyramid tables inside a GeoPackage (SQLite) file.

    Tile tables follow the standard Web Mercator tile matrix set, so XYZ
    column/row map one-to-one onto ``tile_column``/``tile_row``.

    Usage:
        with GeoPackageTileStore('overlays.gpkg') as store:
            store.create_tile_table('overlay', bbox_3857, [4, 6, 8])
            store.add_tile(png_bytes, 'overlay', zoom=8, row=90, column=130)
    """

    def __init__(
        self,
        path: str | Path,
        tile_format: TileFormat = TileFormat.PNG,
        tile_size: int = TILE_SIZE,
    ) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.tile_format = TileFormat(tile_format)
        self.tile_size = tile_size
        self._conn = sqlite3.connect(str(self.path))
        self._conn.execute('PRAGMA journal_mode=WAL')
        self._conn.execute('PRAGMA synchronous=NORMAL')
        self._init_schema()
        logger.info('GeoPackageTileStore opened at %s', self.path)

    def _init_schema(self) -> None:
        conn = self._conn
        conn.execute(f'PRAGMA application_id = {GPKG_APPLICATION_ID}')
        conn.execute(f'PRAGMA user_version = {GPKG_USER_VERSION}')
        conn.executescript('''
            CREATE TABLE IF NOT EXISTS gpkg_spatial_ref_sys (
                srs_name TEXT NOT NULL,
                srs_id INTEGER NOT NULL PRIMARY KEY,
                organization TEXT NOT NULL,
                organization_coordsys_id INTEGER NOT NULL,
                definition TEXT NOT NULL,
                description TEXT
            );

            CREATE TABLE IF NOT EXISTS gpkg_contents (
                table_name TEXT NOT NULL PRIMARY KEY,
                data_type TEXT NOT NULL,
                identifier TEXT UNIQUE,
                description TEXT DEFAULT '',
                last_change DATETIME NOT NULL
                    DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
                min_x DOUBLE,
                min_y DOUBLE,
                max_x DOUBLE,
                max_y DOUBLE,
                srs_id INTEGER,
                CONSTRAINT fk_gc_r_srs_id FOREIGN KEY (srs_id)
                    REFERENCES gpkg_spatial_ref_sys(srs_id)
            );

            CREATE TABLE IF NOT EXISTS gpkg_tile_matrix_set (
                table_name TEXT NOT NULL PRIMARY KEY,
                srs_id INTEGER NOT NULL,
                min_x DOUBLE NOT NULL,
                min_y DOUBLE NOT NULL,
                max_x DOUBLE NOT NULL,
                max_y DOUBLE NOT NULL,
                CONSTRAINT fk_gtms_table_name FOREIGN KEY (table_name)
                    REFERENCES gpkg_contents(table_name),
                CONSTRAINT fk_gtms_srs FOREIGN KEY (srs_id)
                    REFERENCES gpkg_spatial_ref_sys (srs_id)
            );

            CREATE TABLE IF NOT EXISTS gpkg_tile_matrix (
                table_name TEXT NOT NULL,
                zoom_level INTEGER NOT NULL,
                matrix_width INTEGER NOT NULL,
                matrix_height INTEGER NOT NULL,
                tile_width INTEGER NOT NULL,
                tile_height INTEGER NOT NULL,
                pixel_x_size DOUBLE NOT NULL,
                pixel_y_size DOUBLE NOT NULL,
                CONSTRAINT pk_ttm PRIMARY KEY (table_name, zoom_level),
                CONSTRAINT fk_tmm_table_name FOREIGN KEY (table_name)
                    REFERENCES gpkg_contents(table_name)
            );

            CREATE TABLE IF NOT EXISTS gpkg_extensions (
                table_name TEXT,
                column_name TEXT,
                extension_name TEXT NOT NULL,
                definition TEXT NOT NULL,
                scope TEXT NOT NULL,
                CONSTRAINT ge_tce UNIQUE (table_name, column_name, extension_name)
            );

            CREATE TABLE IF NOT EXISTS nga_tile_scaling (
                table_name TEXT NOT NULL PRIMARY KEY,
                scaling_type TEXT NOT NULL,
                zoom_in INTEGER,
                zoom_out INTEGER,
                CONSTRAINT fk_nts_table_name FOREIGN KEY (table_name)
                    REFERENCES gpkg_tile_matrix_set(table_name)
            );
        ''')
        conn.executemany(
            '''INSERT OR IGNORE INTO gpkg_spatial_ref_sys
               (srs_name, srs_id, organization, organization_coordsys_id,
                definition, description)
               VALUES (?, ?, ?, ?, ?, ?)''',
            [
                ('WGS 84 geodetic', WGS84_CODE, 'EPSG', WGS84_CODE,
                 _WGS84_DEFINITION, 'longitude/latitude coordinates in decimal degrees'),
                ('Undefined cartesian SRS', -1, 'NONE', -1, 'undefined',
                 'undefined cartesian coordinate reference system'),
                ('Undefined geographic SRS', 0, 'NONE', 0, 'undefined',
                 'undefined geographic coordinate reference system'),
                ('WGS 84 / Pseudo-Mercator', WEB_MERCATOR_CODE, 'EPSG', WEB_MERCATOR_CODE,
                 _WEB_MERCATOR_DEFINITION, 'Web Mercator'),
            ],
        )
        conn.commit()

    def create_tile_table(
        self,
        table: str,
        bbox: BoundingBox,
        zoom_levels: Iterable[int],
    ) -> None:
        """Create (or extend) a standard Web Mercator tile pyramid table.

        Args:
            table: Tile table name.
            bbox: EPSG:3857 extent of the content, stored in gpkg_contents.
            zoom_levels: Zoom levels to describe in gpkg_tile_matrix.
        """
        quoted = _quote_identifier(table)
        levels = sorted(set(zoom_levels))
        half = WEB_MERCATOR_HALF_WORLD_WIDTH
        with self._conn:
            self._conn.execute(f'''
                CREATE TABLE IF NOT EXISTS {quoted} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    zoom_level INTEGER NOT NULL,
                    tile_column INTEGER NOT NULL,
                    tile_row INTEGER NOT NULL,
                    tile_data BLOB NOT NULL,
                    UNIQUE (zoom_level, tile_column, tile_row)
                )
            ''')
            self._conn.execute(
                '''INSERT OR REPLACE INTO gpkg_contents
                   (table_name, data_type, identifier, min_x, min_y, max_x, max_y, srs_id)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)''',
                (table, GPKG_TILES_DATA_TYPE, table, *bbox.as_tuple(), WEB_MERCATOR_CODE),
            )
            self._conn.execute(
                '''INSERT OR REPLACE INTO gpkg_tile_matrix_set
                   (table_name, srs_id, min_x, min_y, max_x, max_y)
                   VALUES (?, ?, ?, ?, ?, ?)''',
                (table, WEB_MERCATOR_CODE, -half, -half, half, half),
            )
            rows = []
            for zoom in levels:
                side = tiles_per_side(zoom)
                pixel_size = 2.0 * half / (side * self.tile_size)
                rows.append(
                    (table, zoom, side, side, self.tile_size, self.tile_size,
                     pixel_size, pixel_size)
                )
            self._conn.executemany(
                '''INSERT OR REPLACE INTO gpkg_tile_matrix
                   (table_name, zoom_level, matrix_width, matrix_height,
                    tile_width, tile_height, pixel_x_size, pixel_y_size)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)''',
                rows,
            )
            self._register_tile_scaling(table)
        logger.info('Tile table %s ready with zoom levels %s', table, levels)

    def _register_tile_scaling(self, table: str) -> None:
        """Let readers scale tiles across the gaps of the zoom ladder.

        The ladder skips every other level, so a missing level is filled from
        a stored one up to one ladder step away, in either direction.
        """
        self._conn.execute(
            '''INSERT INTO gpkg_extensions
               (table_name, column_name, extension_name, definition, scope)
               SELECT ?, NULL, ?, ?, ?
               WHERE NOT EXISTS (
                   SELECT 1 FROM gpkg_extensions
                   WHERE table_name = ? AND column_name IS NULL
                     AND extension_name = ?
               )''',
            (table, TILE_SCALING_EXTENSION, TILE_SCALING_DEFINITION,
             GPKG_EXTENSION_SCOPE, table, TILE_SCALING_EXTENSION),
        )
        self._conn.execute(
            '''INSERT OR REPLACE INTO nga_tile_scaling
               (table_name, scaling_type, zoom_in, zoom_out)
               VALUES (?, ?, ?, ?)''',
            (table, TILE_SCALING_TYPE, ZOOM_LADDER_STEP, ZOOM_LADDER_STEP),
        )

    def tile_scaling(self, table: str) -> tuple[str, int, int] | None:
        """(scaling_type, zoom_in, zoom_out) registered for the table."""
        cursor = self._conn.execute(
            'SELECT scaling_type, zoom_in, zoom_out FROM nga_tile_scaling '
            'WHERE table_name = ?',
            (table,),
        )
        found = cursor.fetchone()
        return None if found is None else (found[0], found[1], found[2])

    def _encode(self, data: TileData) -> bytes:
        if isinstance(data, np.ndarray):
            # imaging imports tiles.coords, so resolve at call time
            from gpkg_pyramid.imaging.rasterizer import encode_tile

            return encode_tile(data, self.tile_format)
        return bytes(data)

    def add_tile(
        self, data: TileData, table: str, zoom: int, row: int, column: int
    ) -> None:
        """Store one tile; an existing tile at the same key is replaced."""
        self._conn.execute(
            f'''INSERT OR REPLACE INTO {_quote_identifier(table)}
                (zoom_level, tile_column, tile_row, tile_data)
                VALUES (?, ?, ?, ?)''',
            (zoom, column, row, self._encode(data)),
        )
        self._conn.commit()

    def get_tile(self, table: str, zoom: int, row: int, column: int) -> bytes | None:
        cursor = self._conn.execute(
            f'''SELECT tile_data FROM {_quote_identifier(table)}
                WHERE zoom_level = ? AND tile_column = ? AND tile_row = ?''',
            (zoom, column, row),
        )
        found = cursor.fetchone()
        return None if found is None else found[0]

    def count_tiles(self, table: str, zoom: int | None = None) -> int:
        quoted = _quote_identifier(table)
        if zoom is None:
            cursor = self._conn.execute(f'SELECT COUNT(*) FROM {quoted}')
        else:
            cursor = self._conn.execute(
                f'SELECT COUNT(*) FROM {quoted} WHERE zoom_level = ?', (zoom,)
            )
        return int(cursor.fetchone()[0])

    def zoom_levels(self, table: str) -> list[int]:
        """Zoom levels described in gpkg_tile_matrix for the table."""
        cursor = self._conn.execute(
            'SELECT zoom_level FROM gpkg_tile_matrix WHERE table_name = ? ORDER BY zoom_level',
            (table,),
        )
        return [r[0] for r in cursor]

    def tile_tables(self) -> list[str]:
        cursor = self._conn.execute(
            'SELECT table_name FROM gpkg_contents WHERE data_type = ? ORDER BY table_name',
            (GPKG_TILES_DATA_TYPE,),
        )
        return [r[0] for r in cursor]

    def close(self) -> None:
        self._conn.close()
        logger.info('GeoPackageTileStore closed')

    def __enter__(self) -> GeoPackageTileStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
