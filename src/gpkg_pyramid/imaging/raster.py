"""Source rasters: read-only RGBA images feeding the tile rasterizer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import numpy as np
from PIL import Image

from gpkg_pyramid.geo.bounding_box import BoundingBox
from gpkg_pyramid.shared.constants import (
    TRANSPARENT,
    WEB_MERCATOR_MAX_LAT,
    WEB_MERCATOR_MIN_LAT,
)

if TYPE_CHECKING:
    from io import BytesIO

logger = logging.getLogger(__name__)


class InvalidRasterError(ValueError):
    """Raised for rasters (or raster boxes) that cannot be tiled."""


@runtime_checkable
class SourceRaster(Protocol):
    """Read-only image with an upper-left origin."""

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    def get_pixel(self, x: int, y: int) -> tuple[int, int, int, int]: ...

    def to_array(self) -> np.ndarray: ...


class RgbaRaster:
    """RGBA raster backed by an ``(height, width, 4)`` uint8 array."""

    def __init__(self, array: np.ndarray) -> None:
        if array.ndim != 3 or array.shape[2] != 4:
            msg = f'Expected an (h, w, 4) RGBA array, got shape {array.shape}'
            raise InvalidRasterError(msg)
        self._array = np.array(array, dtype=np.uint8)
        self._array.setflags(write=False)

    @classmethod
    def from_image(cls, image: Image.Image) -> RgbaRaster:
        return cls(np.asarray(image.convert('RGBA')))

    @classmethod
    def open(cls, source: str | Path | BytesIO) -> RgbaRaster:
        """Decode any image format Pillow understands."""
        with Image.open(source) as img:
            img.load()
            raster = cls.from_image(img)
        logger.info('Opened raster %dx%d from %s', raster.width, raster.height, source)
        return raster

    @property
    def width(self) -> int:
        return int(self._array.shape[1])

    @property
    def height(self) -> int:
        return int(self._array.shape[0])

    def get_pixel(self, x: int, y: int) -> tuple[int, int, int, int]:
        if not (0 <= x < self.width and 0 <= y < self.height):
            msg = f'Pixel ({x}, {y}) outside {self.width}x{self.height} raster'
            raise IndexError(msg)
        r, g, b, a = self._array[y, x]
        return int(r), int(g), int(b), int(a)

    def to_array(self) -> np.ndarray:
        return self._array

    def to_image(self) -> Image.Image:
        return Image.fromarray(self._array)

    def crop_rows(self, top: int, bottom: int) -> RgbaRaster:
        """Keep rows ``[top, bottom)``."""
        return RgbaRaster(self._array[top:bottom])

    def rotate(self, rotation_deg: float) -> RgbaRaster:
        """Rotate counter-clockwise, growing the canvas to fit."""
        rotated = self.to_image().rotate(
            rotation_deg,
            resample=Image.Resampling.NEAREST,
            expand=True,
            fillcolor=TRANSPARENT,
        )
        return RgbaRaster.from_image(rotated)


def validate_raster(raster: SourceRaster, bbox: BoundingBox) -> None:
    """Reject rasters the tile loop would divide by zero on."""
    if raster.width <= 0 or raster.height <= 0:
        msg = f'Raster has no pixels: {raster.width}x{raster.height}'
        raise InvalidRasterError(msg)
    bbox.require_ordered()
    if bbox.longitude_range <= 0.0 or bbox.latitude_range <= 0.0:
        msg = f'Raster bounding box has zero area: {bbox.as_tuple()}'
        raise InvalidRasterError(msg)


def crop_to_web_mercator(
    bbox: BoundingBox, raster: RgbaRaster
) -> tuple[BoundingBox, RgbaRaster]:
    """Cut rows lying outside the Web Mercator latitude band.

    The share of rows removed from the top (bottom) matches the share of the
    latitude span above (below) the band; the box latitudes are clamped to
    match.
    """
    if bbox.min_latitude >= WEB_MERCATOR_MAX_LAT or bbox.max_latitude <= WEB_MERCATOR_MIN_LAT:
        msg = f'Raster lies entirely outside the Web Mercator band: {bbox.as_tuple()}'
        raise InvalidRasterError(msg)

    min_lat, max_lat = bbox.min_latitude, bbox.max_latitude
    if max_lat > WEB_MERCATOR_MAX_LAT:
        ratio = (WEB_MERCATOR_MAX_LAT - min_lat) / (max_lat - min_lat)
        top = round((1.0 - ratio) * raster.height)
        top = min(top, raster.height - 1)
        logger.info('Cropping %d rows above %.6f deg', top, WEB_MERCATOR_MAX_LAT)
        raster = raster.crop_rows(top, raster.height)
        max_lat = WEB_MERCATOR_MAX_LAT
    if min_lat < WEB_MERCATOR_MIN_LAT:
        ratio = (WEB_MERCATOR_MIN_LAT - min_lat) / (max_lat - min_lat)
        keep = round((1.0 - ratio) * raster.height)
        keep = max(keep, 1)
        logger.info(
            'Cropping %d rows below %.6f deg', raster.height - keep, WEB_MERCATOR_MIN_LAT
        )
        raster = raster.crop_rows(0, keep)
        min_lat = WEB_MERCATOR_MIN_LAT
    return (
        BoundingBox(bbox.min_longitude, min_lat, bbox.max_longitude, max_lat),
        raster,
    )
