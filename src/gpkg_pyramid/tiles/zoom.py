"""Zoom level selection for an overlay image."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from gpkg_pyramid.shared.constants import (
    MAX_ZOOM,
    MIN_ZOOM,
    TILE_SIZE,
    WORLD_LNG_SPAN_DEG,
)
from gpkg_pyramid.tiles.coverage import tile_count

if TYPE_CHECKING:
    from gpkg_pyramid.geo.bounding_box import BoundingBox

logger = logging.getLogger(__name__)

# Step between consecutive levels of the zoom ladder
ZOOM_LADDER_STEP = 2


def clamp_zoom(zoom: int) -> int:
    return min(MAX_ZOOM, max(MIN_ZOOM, zoom))


def natural_scale(bbox: BoundingBox, image_width: int, tile_size: int = TILE_SIZE) -> int:
    """Zoom level at which one image pixel maps to about one tile pixel.

    ``360 / 2**z`` is the tile width in degrees at zoom ``z``; the natural
    scale is the floored ``z`` for which that matches ``tile_size`` image
    pixels. A zero-width box has no finite scale and maps to ``MAX_ZOOM``.
    """
    if image_width <= 0:
        msg = f'Image width must be positive, got {image_width}'
        raise ValueError(msg)
    width_deg = abs(bbox.expand_wgs84_coordinates().longitude_range)
    if width_deg == 0.0:
        return MAX_ZOOM
    tile_width_deg = tile_size * width_deg / image_width
    return math.floor(math.log2(WORLD_LNG_SPAN_DEG / tile_width_deg))


def zoom_level_set(bbox: BoundingBox, scale: float) -> list[int]:
    """Ladder of zoom levels from the natural scale down to a single tile.

    Starts at the rounded, clamped scale and steps down by two. The walk
    ends with the first level whose footprint is exactly one tile; if it
    runs below zero first, level 0 closes the ladder. Sorted ascending.
    """
    z = clamp_zoom(math.floor(scale + 0.5))
    levels: list[int] = []
    while True:
        footprint = tile_count(bbox, z)
        levels.append(z)
        logger.debug('Zoom %d footprint: %d tiles', z, footprint)
        if footprint == 1:
            break
        z -= ZOOM_LADDER_STEP
        if z < MIN_ZOOM:
            if MIN_ZOOM not in levels:
                levels.append(MIN_ZOOM)
            break
    return sorted(set(levels))
