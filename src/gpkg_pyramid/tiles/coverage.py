"""Tile ranges covering a bounding box and the tile walk driver."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, NamedTuple

from gpkg_pyramid.shared.constants import MAX_ZOOM, MIN_ZOOM, WORLD_LNG_HALF_SPAN_DEG
from gpkg_pyramid.tiles.coords import TileAddress, lat2tile, long2tile

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from gpkg_pyramid.geo.bounding_box import BoundingBox

logger = logging.getLogger(__name__)


class Visit(Enum):
    """Visitor verdict after each tile."""

    CONTINUE = 'continue'
    STOP = 'stop'


class TileRange(NamedTuple):
    min: int
    max: int


@dataclass(frozen=True)
class TileGrid:
    """Inclusive column/row rectangle of tiles at one zoom level."""

    zoom: int
    min_column: int
    max_column: int
    min_row: int
    max_row: int

    @property
    def width(self) -> int:
        return self.max_column - self.min_column + 1

    @property
    def height(self) -> int:
        return self.max_row - self.min_row + 1

    @property
    def count(self) -> int:
        return self.width * self.height

    def contains(self, address: TileAddress) -> bool:
        return (
            address.zoom == self.zoom
            and self.min_column <= address.column <= self.max_column
            and self.min_row <= address.row <= self.max_row
        )

    def __iter__(self) -> Iterator[TileAddress]:
        # column outer, row inner
        for x in range(self.min_column, self.max_column + 1):
            for y in range(self.min_row, self.max_row + 1):
                yield TileAddress(self.zoom, x, y)


def x_range(bbox: BoundingBox, zoom: int) -> TileRange:
    """Column range covering the box.

    Both corners are used so the range stays ordered even when west and east
    got swapped by reprojection.
    """
    west = long2tile(bbox.max_longitude, zoom)
    east = long2tile(bbox.min_longitude, zoom)
    return TileRange(max(0, min(west, east)), max(0, max(west, east)))


def y_range(bbox: BoundingBox, zoom: int) -> TileRange:
    """Row range covering the box."""
    south = lat2tile(bbox.min_latitude, zoom)
    north = lat2tile(bbox.max_latitude, zoom)
    return TileRange(max(0, min(south, north)), max(0, max(south, north)))


def tile_grid(bbox: BoundingBox, zoom: int) -> TileGrid:
    """Tile grid covering an ordered (non-wrapping) WGS84 box."""
    bbox.require_ordered()
    xs = x_range(bbox, zoom)
    ys = y_range(bbox, zoom)
    return TileGrid(zoom, xs.min, xs.max, ys.min, ys.max)


def tile_grids(bbox: BoundingBox, zoom: int) -> list[TileGrid]:
    """Tile grids for a WGS84 box, split at the antimeridian when needed."""
    return [
        tile_grid(part, zoom)
        for part in bbox.split_antimeridian(WORLD_LNG_HALF_SPAN_DEG)
    ]


def _distinct_grids(grids: list[TileGrid]) -> list[TileGrid]:
    """Trim the column ranges of later grids that earlier grids already cover.

    Antimeridian halves share the same rows, so overlap can only happen on
    columns (at zoom 0 both halves land on column 0).
    """
    distinct: list[TileGrid] = []
    for grid in grids:
        pieces = [(grid.min_column, grid.max_column)]
        for taken in distinct:
            remaining = []
            for lo, hi in pieces:
                if hi < taken.min_column or lo > taken.max_column:
                    remaining.append((lo, hi))
                    continue
                if lo < taken.min_column:
                    remaining.append((lo, taken.min_column - 1))
                if hi > taken.max_column:
                    remaining.append((taken.max_column + 1, hi))
            pieces = remaining
        distinct.extend(
            TileGrid(grid.zoom, lo, hi, grid.min_row, grid.max_row) for lo, hi in pieces
        )
    return distinct


def tile_count(bbox: BoundingBox, zoom: int) -> int:
    """Number of distinct tiles covering the box at one zoom level."""
    return sum(grid.count for grid in _distinct_grids(tile_grids(bbox, zoom)))


def normalize_zoom_levels(zoom_levels: Iterable[int]) -> list[int]:
    """Deduplicate and sort ascending; every level must be in range."""
    levels = sorted({int(z) for z in zoom_levels})
    for z in levels:
        if not MIN_ZOOM <= z <= MAX_ZOOM:
            msg = f'Zoom level {z} outside [{MIN_ZOOM}, {MAX_ZOOM}]'
            raise ValueError(msg)
    return levels


def iter_tiles(bbox: BoundingBox, zoom_levels: Iterable[int]) -> Iterator[TileAddress]:
    """Yield every tile covering the box, coarsest zoom first.

    Within a zoom level columns are the outer loop and rows the inner one.
    """
    for zoom in normalize_zoom_levels(zoom_levels):
        for grid in _distinct_grids(tile_grids(bbox, zoom)):
            yield from grid


def iterate_tiles(
    bbox: BoundingBox,
    zoom_levels: Iterable[int],
    visit: Callable[[TileAddress], Visit],
) -> int:
    """Call ``visit`` for each tile until it answers ``Visit.STOP``.

    Stopping ends the whole walk, not just the current zoom level. Returns the
    number of tiles visited.
    """
    visited = 0
    for address in iter_tiles(bbox, zoom_levels):
        visited += 1
        if visit(address) is Visit.STOP:
            logger.info(
                'Tile walk stopped at z%d/%d/%d after %d tiles',
                address.zoom,
                address.column,
                address.row,
                visited,
            )
            break
    return visited
