"""XYZ (slippy map) tile coordinate math.

Origin is the upper-left corner of the Web Mercator world: column grows
eastward, row grows southward, row 0 is the northernmost tile.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from gpkg_pyramid.geo.bounding_box import BoundingBox
from gpkg_pyramid.shared.constants import (
    WEB_MERCATOR_HALF_WORLD_WIDTH,
    WEB_MERCATOR_MAX_LAT,
    WEB_MERCATOR_MIN_LAT,
    WORLD_LNG_HALF_SPAN_DEG,
    WORLD_LNG_SPAN_DEG,
)


@dataclass(frozen=True)
class TileAddress:
    """Map tile coordinates."""

    zoom: int
    column: int
    row: int

    def __post_init__(self) -> None:
        if self.zoom < 0:
            msg = f'zoom must be non-negative, got {self.zoom}'
            raise ValueError(msg)
        side = tiles_per_side(self.zoom)
        if not (0 <= self.column < side and 0 <= self.row < side):
            msg = (
                f'tile {self.column}/{self.row} outside [0, {side - 1}] '
                f'at zoom {self.zoom}'
            )
            raise ValueError(msg)

    def as_tuple(self) -> tuple[int, int, int]:
        """Return as (z, x, y) tuple."""
        return (self.zoom, self.column, self.row)

    def bounding_box(self) -> BoundingBox:
        return tile_bounding_box(self.column, self.row, self.zoom)


def tiles_per_side(zoom: int) -> int:
    return 1 << zoom


def tile2lon(x: float, z: int) -> float:
    """Western edge longitude of tile column ``x``."""
    return x / tiles_per_side(z) * WORLD_LNG_SPAN_DEG - WORLD_LNG_HALF_SPAN_DEG


def tile2lat(y: float, z: int) -> float:
    """Northern edge latitude of tile row ``y``."""
    n = math.pi - 2.0 * math.pi * y / tiles_per_side(z)
    return math.degrees(math.atan(math.sinh(n)))


def long2tile(lon: float, zoom: int) -> int:
    """Tile column containing ``lon``, clamped to the valid range."""
    side = tiles_per_side(zoom)
    column = math.floor((lon + WORLD_LNG_HALF_SPAN_DEG) / WORLD_LNG_SPAN_DEG * side)
    return min(side - 1, max(0, column))


def lat2tile(lat: float, zoom: int) -> int:
    """Tile row containing ``lat``, clamped to the valid range."""
    side = tiles_per_side(zoom)
    lat = min(max(lat, WEB_MERCATOR_MIN_LAT), WEB_MERCATOR_MAX_LAT)
    lat_rad = math.radians(lat)
    row = math.floor(
        (1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi)
        / 2.0
        * side
    )
    return min(side - 1, max(0, row))


def tile_bounding_box(x: int, y: int, z: int) -> BoundingBox:
    """WGS84 box of a tile."""
    return BoundingBox(
        min_longitude=tile2lon(x, z),
        min_latitude=tile2lat(y + 1, z),
        max_longitude=tile2lon(x + 1, z),
        max_latitude=tile2lat(y, z),
    )


def tile_web_mercator_bounding_box(x: int, y: int, z: int) -> BoundingBox:
    """EPSG:3857 box of a tile computed directly in meters."""
    size = 2.0 * WEB_MERCATOR_HALF_WORLD_WIDTH / tiles_per_side(z)
    min_x = -WEB_MERCATOR_HALF_WORLD_WIDTH + x * size
    max_y = WEB_MERCATOR_HALF_WORLD_WIDTH - y * size
    return BoundingBox(min_x, max_y - size, min_x + size, max_y)
