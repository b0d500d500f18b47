"""Shared constants and progress reporting."""

from gpkg_pyramid.shared.constants import (
    MAX_ZOOM,
    MIN_ZOOM,
    TILE_SIZE,
    WEB_MERCATOR_MAX_LAT,
    WEB_MERCATOR_MIN_LAT,
    TileFormat,
)
from gpkg_pyramid.shared.progress import ConsoleProgress, set_progress_callback

__all__ = [
    'MAX_ZOOM',
    'MIN_ZOOM',
    'TILE_SIZE',
    'WEB_MERCATOR_MAX_LAT',
    'WEB_MERCATOR_MIN_LAT',
    'ConsoleProgress',
    'TileFormat',
    'set_progress_callback',
]
