"""Imaging package - source rasters and tile resampling."""

from gpkg_pyramid.imaging.raster import (
    InvalidRasterError,
    RgbaRaster,
    SourceRaster,
    crop_to_web_mercator,
    validate_raster,
)
from gpkg_pyramid.imaging.rasterizer import (
    TileRasterizer,
    decode_tile,
    encode_tile,
    is_empty,
)

__all__ = [
    'InvalidRasterError',
    'RgbaRaster',
    'SourceRaster',
    'TileRasterizer',
    'crop_to_web_mercator',
    'decode_tile',
    'encode_tile',
    'is_empty',
    'validate_raster',
]
