"""GeoPackage tile pyramids from geo-referenced overlay images."""

from gpkg_pyramid.geo.bounding_box import BoundingBox, InvalidBoundingBoxError
from gpkg_pyramid.imaging.raster import InvalidRasterError, RgbaRaster
from gpkg_pyramid.service import PyramidResult, build_pyramid
from gpkg_pyramid.settings import PyramidSettings, load_settings, save_settings
from gpkg_pyramid.tiles.store import GeoPackageTileStore, MemoryTileStore

__version__ = '0.1.0'

__all__ = [
    'BoundingBox',
    'GeoPackageTileStore',
    'InvalidBoundingBoxError',
    'InvalidRasterError',
    'MemoryTileStore',
    'PyramidResult',
    'PyramidSettings',
    'RgbaRaster',
    'build_pyramid',
    'load_settings',
    'save_settings',
]
