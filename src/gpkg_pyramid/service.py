"""Pyramid service: turns a geo-referenced overlay image into stored tiles.

Pipeline:
1. validate the image and its WGS84 box (antimeridian boxes are expanded)
2. optional rotation of image and box
3. crop rows outside the Web Mercator band
4. natural scale and zoom ladder, clamped to the configured zoom window
5. walk every covering tile, render it and hand it to the tile store
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING, Union

from PIL import Image

from gpkg_pyramid.geo.bounding_box import BoundingBox
from gpkg_pyramid.geo.projection import wgs84_to_web_mercator
from gpkg_pyramid.geo.rotation import ROTATION_EPSILON, rotated_envelope
from gpkg_pyramid.imaging.raster import RgbaRaster, crop_to_web_mercator, validate_raster
from gpkg_pyramid.imaging.rasterizer import TileRasterizer, encode_tile, is_empty
from gpkg_pyramid.settings import PyramidSettings
from gpkg_pyramid.shared.constants import (
    WEB_MERCATOR_HALF_WORLD_WIDTH,
    WORLD_LNG_HALF_SPAN_DEG,
)
from gpkg_pyramid.shared.progress import ConsoleProgress
from gpkg_pyramid.tiles.coverage import Visit, iterate_tiles, tile_count
from gpkg_pyramid.tiles.zoom import natural_scale, zoom_level_set

if TYPE_CHECKING:
    from gpkg_pyramid.tiles.coords import TileAddress
    from gpkg_pyramid.tiles.store import TileStore

logger = logging.getLogger(__name__)

ImageSource = Union[RgbaRaster, Image.Image, str, Path, BytesIO]


@dataclass(frozen=True)
class PyramidResult:
    """Summary of one pyramid build."""

    table: str
    zoom_levels: list[int]
    natural_scale: int
    tiles_written: int
    tiles_skipped: int
    # WGS84 box the tiles were cut from, after rotation and cropping
    bounding_box: BoundingBox
    cancelled: bool = False
    elapsed: float = field(default=0.0, compare=False)


def load_raster(image: ImageSource) -> RgbaRaster:
    if isinstance(image, RgbaRaster):
        return image
    if isinstance(image, Image.Image):
        return RgbaRaster.from_image(image)
    return RgbaRaster.open(image)


def clamp_levels(levels: list[int], settings: PyramidSettings) -> list[int]:
    """Clamp every level into the configured zoom window, dedup, sort."""
    return sorted(
        {min(settings.max_zoom, max(settings.min_zoom, z)) for z in levels}
    )


def content_extent(bbox: BoundingBox, buffer_percentage: float = 0.0) -> BoundingBox:
    """Web Mercator extent of the overlay for gpkg_contents.

    Each antimeridian part is projected on its own. An eastern part is moved
    one world width east, so a crossing overlay reads as one extent that
    runs past the eastern edge of the world.
    """
    if buffer_percentage > 0.0:
        bbox = bbox.square_expand(buffer_percentage)
    to_mercator = wgs84_to_web_mercator()
    parts = [
        part.transform(to_mercator)
        for part in bbox.split_antimeridian(WORLD_LNG_HALF_SPAN_DEG)
    ]
    west = parts[0]
    if len(parts) == 1:
        return west
    east = parts[1]
    return BoundingBox(
        west.min_longitude,
        min(west.min_latitude, east.min_latitude),
        east.max_longitude + 2.0 * WEB_MERCATOR_HALF_WORLD_WIDTH,
        max(west.max_latitude, east.max_latitude),
    )


def build_pyramid(
    image: ImageSource,
    bbox: BoundingBox,
    store: TileStore,
    table: str,
    rotation: float | None = None,
    settings: PyramidSettings | None = None,
    progress: bool = False,
    should_stop: Callable[[], bool] | None = None,
) -> PyramidResult:
    """Render the overlay into an XYZ tile pyramid.

    Args:
        image: Overlay image (raster, Pillow image or anything Pillow opens).
        bbox: WGS84 box the image covers; may cross the antimeridian.
        store: Destination; ``create_tile_table`` is called when it has one.
        table: Tile table name.
        rotation: Counter-clockwise rotation of the overlay in degrees.
        settings: Build settings, defaults when omitted.
        progress: Show a console progress bar.
        should_stop: Polled before each tile; returning True cancels the walk.

    Returns:
        PyramidResult with the zoom levels and tile counters.
    """
    settings = settings or PyramidSettings()
    started = time.monotonic()

    raster = load_raster(image)
    source_bbox = bbox.expand_wgs84_coordinates()
    validate_raster(raster, source_bbox)

    if rotation is not None and abs(rotation) >= ROTATION_EPSILON:
        logger.info('Rotating overlay by %.3f deg', rotation)
        raster = raster.rotate(rotation)
        source_bbox = rotated_envelope(source_bbox, rotation)

    source_bbox, raster = crop_to_web_mercator(source_bbox, raster)
    validate_raster(raster, source_bbox)

    scale = natural_scale(source_bbox, raster.width, settings.tile_size)
    zoom_levels = clamp_levels(zoom_level_set(source_bbox, scale), settings)
    logger.info(
        'Overlay %dx%d px, natural scale %d, zoom levels %s',
        raster.width,
        raster.height,
        scale,
        zoom_levels,
    )

    create_table = getattr(store, 'create_tile_table', None)
    if create_table is not None:
        create_table(
            table, content_extent(source_bbox, settings.buffer_percentage), zoom_levels
        )

    rasterizer = TileRasterizer(raster, source_bbox, tile_size=settings.tile_size)
    total = sum(tile_count(source_bbox, z) for z in zoom_levels)
    bar = ConsoleProgress(total, label=f'Tiles {table}') if progress else None

    written = 0
    skipped = 0
    cancelled = False

    def visit(address: TileAddress) -> Visit:
        nonlocal written, skipped, cancelled
        if should_stop is not None and should_stop():
            cancelled = True
            return Visit.STOP
        buffer = rasterizer.render_address(address)
        if settings.skip_empty_tiles and is_empty(buffer):
            skipped += 1
        else:
            store.add_tile(
                encode_tile(buffer, settings.tile_format),
                table,
                address.zoom,
                address.row,
                address.column,
            )
            written += 1
        if bar is not None:
            bar.step(note=f'z{address.zoom}')
        return Visit.CONTINUE

    try:
        iterate_tiles(source_bbox, zoom_levels, visit)
    finally:
        if bar is not None:
            bar.close()

    elapsed = time.monotonic() - started
    if cancelled:
        logger.warning('Pyramid %s cancelled after %d tiles', table, written + skipped)
    logger.info(
        'Pyramid %s: %d tiles written, %d empty skipped in %.2fs',
        table,
        written,
        skipped,
        elapsed,
    )
    return PyramidResult(
        table=table,
        zoom_levels=zoom_levels,
        natural_scale=scale,
        tiles_written=written,
        tiles_skipped=skipped,
        bounding_box=source_bbox,
        cancelled=cancelled,
        elapsed=elapsed,
    )
