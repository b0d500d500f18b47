"""Tiles package - XYZ tile math, coverage, zoom selection and stores."""

from gpkg_pyramid.tiles.coords import (
    TileAddress,
    lat2tile,
    long2tile,
    tile2lat,
    tile2lon,
    tile_bounding_box,
)
from gpkg_pyramid.tiles.coverage import (
    TileGrid,
    TileRange,
    Visit,
    iterate_tiles,
    tile_count,
    tile_grids,
    x_range,
    y_range,
)
from gpkg_pyramid.tiles.store import GeoPackageTileStore, MemoryTileStore, TileStore
from gpkg_pyramid.tiles.zoom import natural_scale, zoom_level_set

__all__ = [
    'GeoPackageTileStore',
    'MemoryTileStore',
    'TileAddress',
    'TileGrid',
    'TileRange',
    'TileStore',
    'Visit',
    'iterate_tiles',
    'lat2tile',
    'long2tile',
    'natural_scale',
    'tile2lat',
    'tile2lon',
    'tile_bounding_box',
    'tile_count',
    'tile_grids',
    'x_range',
    'y_range',
    'zoom_level_set',
]
