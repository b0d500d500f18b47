"""Tile rasterizer: resamples a geo-referenced image into XYZ tiles.

Every destination pixel is walked back to the source image:
tile pixel -> Web Mercator meters -> WGS84 degrees -> image pixel. The
lookup is nearest-neighbour; destination pixels whose source falls outside
the image stay transparent. The whole tile is computed at once on numpy
arrays, pixels are independent of each other.
"""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING

import numpy as np
from PIL import Image

from gpkg_pyramid.geo.projection import wgs84_to_web_mercator
from gpkg_pyramid.imaging.raster import validate_raster
from gpkg_pyramid.shared.constants import (
    TILE_SIZE,
    WORLD_LNG_HALF_SPAN_DEG,
    WORLD_LNG_SPAN_DEG,
    TileFormat,
)
from gpkg_pyramid.tiles.coords import tile_bounding_box

if TYPE_CHECKING:
    from gpkg_pyramid.geo.bounding_box import BoundingBox
    from gpkg_pyramid.geo.projection import ProjectionTransform
    from gpkg_pyramid.imaging.raster import SourceRaster
    from gpkg_pyramid.tiles.coords import TileAddress

logger = logging.getLogger(__name__)


class TileRasterizer:
    """Renders ``tile_size`` x ``tile_size`` RGBA buffers for tile addresses.

    Args:
        raster: Source image, upper-left origin.
        image_bbox: WGS84 box the image covers (ordered, non-empty).
        projection: EPSG:4326 -> EPSG:3857 transform. Defaults to the shared one.
        tile_size: Edge length of produced tiles in pixels.
    """

    def __init__(
        self,
        raster: SourceRaster,
        image_bbox: BoundingBox,
        projection: ProjectionTransform | None = None,
        tile_size: int = TILE_SIZE,
    ) -> None:
        validate_raster(raster, image_bbox)
        if tile_size <= 0:
            msg = f'tile_size must be positive, got {tile_size}'
            raise ValueError(msg)
        self.image_bbox = image_bbox
        self.tile_size = tile_size
        self.projection = projection or wgs84_to_web_mercator()
        self._pixels = raster.to_array()
        self.image_width = raster.width
        self.image_height = raster.height
        self.pixel_width_deg = image_bbox.longitude_range / self.image_width
        self.pixel_height_deg = image_bbox.latitude_range / self.image_height
        self._offsets = np.arange(tile_size, dtype=np.float64)

    def tile_web_mercator_box(self, zoom: int, column: int, row: int) -> BoundingBox:
        return tile_bounding_box(column, row, zoom).transform(self.projection)

    def source_pixels(
        self, zoom: int, column: int, row: int
    ) -> tuple[np.ndarray, np.ndarray]:
        """Fractional source pixel coordinates for every tile pixel.

        Returns ``(src_x, src_y)`` arrays shaped ``(tile_size, tile_size)``
        indexed ``[py, px]``.
        """
        merc = self.tile_web_mercator_box(zoom, column, row)
        pixel_width_m = merc.longitude_range / self.tile_size
        pixel_height_m = merc.latitude_range / self.tile_size
        xs = merc.min_longitude + self._offsets * pixel_width_m
        ys = merc.max_latitude - self._offsets * pixel_height_m
        grid_x, grid_y = np.meshgrid(xs, ys)
        lon, lat = self.projection.inverse_arrays(grid_x, grid_y)
        lon = np.asarray(lon)
        west = self.image_bbox.min_longitude
        if west < -WORLD_LNG_HALF_SPAN_DEG or self.image_bbox.max_longitude > WORLD_LNG_HALF_SPAN_DEG:
            # image expanded across the antimeridian: wrap into [west, west + 360)
            outside = (lon < west) | (lon >= west + WORLD_LNG_SPAN_DEG)
            lon = np.where(outside, west + np.mod(lon - west, WORLD_LNG_SPAN_DEG), lon)
        src_x = (lon - west) / self.pixel_width_deg
        src_y = self.image_height - (
            np.asarray(lat) - self.image_bbox.min_latitude
        ) / self.pixel_height_deg
        return src_x, src_y

    def render(self, zoom: int, column: int, row: int) -> np.ndarray:
        """Fresh ``(tile_size, tile_size, 4)`` uint8 buffer for one tile."""
        src_x, src_y = self.source_pixels(zoom, column, row)
        inside = (
            (src_x >= 0)
            & (src_x < self.image_width)
            & (src_y >= 0)
            & (src_y < self.image_height)
        )
        buffer = np.zeros((self.tile_size, self.tile_size, 4), dtype=np.uint8)
        if inside.any():
            ix = np.floor(src_x[inside]).astype(np.intp)
            iy = np.floor(src_y[inside]).astype(np.intp)
            buffer[inside] = self._pixels[iy, ix]
        return buffer

    def render_address(self, address: TileAddress) -> np.ndarray:
        return self.render(address.zoom, address.column, address.row)


def is_empty(buffer: np.ndarray) -> bool:
    """True when every pixel of the tile is fully transparent."""
    return not buffer[..., 3].any()


def encode_tile(buffer: np.ndarray, tile_format: TileFormat = TileFormat.PNG) -> bytes:
    """Encode an RGBA tile buffer as image bytes."""
    out = io.BytesIO()
    Image.fromarray(buffer).save(out, format=TileFormat(tile_format).value)
    return out.getvalue()


def decode_tile(data: bytes) -> np.ndarray:
    """Decode stored tile bytes back into an RGBA array."""
    with Image.open(io.BytesIO(data)) as img:
        return np.asarray(img.convert('RGBA'))
