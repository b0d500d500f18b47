"""Bounding box value type and its algebra.

Boxes hold either geographic degrees (EPSG:4326) or projected meters
(EPSG:3857); which one is implied by the operation applied to them.

A box with ``min_longitude > max_longitude`` crosses the antimeridian.
Operations that need an ordered box call :meth:`BoundingBox.require_ordered`
or normalise first with :meth:`BoundingBox.expand_coordinates` /
:meth:`BoundingBox.split_antimeridian`.

All operations return new boxes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from gpkg_pyramid.shared.constants import (
    MAX_BUFFER_PERCENTAGE,
    WEB_MERCATOR_HALF_WORLD_WIDTH,
    WEB_MERCATOR_MAX_LAT,
    WEB_MERCATOR_MIN_LAT,
    WORLD_LNG_HALF_SPAN_DEG,
)

if TYPE_CHECKING:
    from gpkg_pyramid.geo.projection import ProjectionTransform


class InvalidBoundingBoxError(ValueError):
    """Raised for malformed boxes (non-finite or inverted edges)."""


@dataclass(frozen=True)
class BoundingBox:
    """Geographic or projected extent: west, south, east, north."""

    min_longitude: float
    min_latitude: float
    max_longitude: float
    max_latitude: float

    def __post_init__(self) -> None:
        values = (
            self.min_longitude,
            self.min_latitude,
            self.max_longitude,
            self.max_latitude,
        )
        if not all(math.isfinite(v) for v in values):
            msg = f'Bounding box edges must be finite: {values}'
            raise InvalidBoundingBoxError(msg)
        if self.min_latitude > self.max_latitude:
            msg = (
                f'min_latitude {self.min_latitude} is greater than '
                f'max_latitude {self.max_latitude}'
            )
            raise InvalidBoundingBoxError(msg)

    @classmethod
    def from_point(cls, longitude: float, latitude: float) -> BoundingBox:
        return cls(longitude, latitude, longitude, latitude)

    def as_tuple(self) -> tuple[float, float, float, float]:
        """Return as (west, south, east, north)."""
        return (
            self.min_longitude,
            self.min_latitude,
            self.max_longitude,
            self.max_latitude,
        )

    @property
    def longitude_range(self) -> float:
        return self.max_longitude - self.min_longitude

    @property
    def latitude_range(self) -> float:
        return self.max_latitude - self.min_latitude

    @property
    def is_point(self) -> bool:
        return (
            self.min_longitude == self.max_longitude
            and self.min_latitude == self.max_latitude
        )

    @property
    def crosses_antimeridian(self) -> bool:
        return self.min_longitude > self.max_longitude

    def require_ordered(self) -> BoundingBox:
        """Return self, or raise when the box wraps through the antimeridian."""
        if self.crosses_antimeridian:
            msg = (
                f'min_longitude {self.min_longitude} is greater than '
                f'max_longitude {self.max_longitude}; expand or split '
                'antimeridian-crossing boxes first'
            )
            raise InvalidBoundingBoxError(msg)
        return self

    def centroid(self) -> tuple[float, float]:
        """Planar centre as (x, y)."""
        return (
            (self.min_longitude + self.max_longitude) / 2.0,
            (self.min_latitude + self.max_latitude) / 2.0,
        )

    def corners(self) -> list[tuple[float, float]]:
        """Corner ring (SW, SE, NE, NW), not closed."""
        return [
            (self.min_longitude, self.min_latitude),
            (self.max_longitude, self.min_latitude),
            (self.max_longitude, self.max_latitude),
            (self.min_longitude, self.max_latitude),
        ]

    def contains(self, other: BoundingBox) -> bool:
        """Inclusive containment on all four edges."""
        return (
            self.min_longitude <= other.min_longitude
            and self.max_longitude >= other.max_longitude
            and self.min_latitude <= other.min_latitude
            and self.max_latitude >= other.max_latitude
        )

    def overlap(self, other: BoundingBox, allow_empty: bool = False) -> BoundingBox | None:
        """Intersection of the two boxes, or None when they do not overlap.

        With ``allow_empty`` a zero-width or zero-height intersection (touching
        edges, points) still counts as an overlap.
        """
        min_lon = max(self.min_longitude, other.min_longitude)
        max_lon = min(self.max_longitude, other.max_longitude)
        min_lat = max(self.min_latitude, other.min_latitude)
        max_lat = min(self.max_latitude, other.max_latitude)
        if (allow_empty and min_lon <= max_lon and min_lat <= max_lat) or (
            min_lon < max_lon and min_lat < max_lat
        ):
            return BoundingBox(min_lon, min_lat, max_lon, max_lat)
        return None

    def union(self, other: BoundingBox) -> BoundingBox | None:
        """Smallest box containing both, or None if an axis collapses."""
        min_lon = min(self.min_longitude, other.min_longitude)
        max_lon = max(self.max_longitude, other.max_longitude)
        min_lat = min(self.min_latitude, other.min_latitude)
        max_lat = max(self.max_latitude, other.max_latitude)
        if min_lon < max_lon and min_lat < max_lat:
            return BoundingBox(min_lon, min_lat, max_lon, max_lat)
        return None

    def complementary(self, max_projection_longitude: float) -> BoundingBox | None:
        """Same extent shifted by one world width back into range.

        Only applies when exactly one longitude edge lies outside
        ``[-max, max]``; returns None otherwise.
        """
        adjust = None
        if self.min_longitude < -max_projection_longitude:
            if self.max_longitude <= max_projection_longitude:
                adjust = 2.0 * max_projection_longitude
        elif self.max_longitude > max_projection_longitude:
            if self.min_longitude >= -max_projection_longitude:
                adjust = -2.0 * max_projection_longitude
        if adjust is None:
            return None
        return replace(
            self,
            min_longitude=self.min_longitude + adjust,
            max_longitude=self.max_longitude + adjust,
        )

    def complementary_wgs84(self) -> BoundingBox | None:
        return self.complementary(WORLD_LNG_HALF_SPAN_DEG)

    def complementary_web_mercator(self) -> BoundingBox | None:
        return self.complementary(WEB_MERCATOR_HALF_WORLD_WIDTH)

    def bound_coordinates(self, max_projection_longitude: float) -> BoundingBox:
        """Wrap both longitude edges into ``[-max, max)``.

        The result may have ``min_longitude > max_longitude``, the canonical
        antimeridian-crossing form.
        """
        world = 2.0 * max_projection_longitude
        return replace(
            self,
            min_longitude=(self.min_longitude + max_projection_longitude) % world
            - max_projection_longitude,
            max_longitude=(self.max_longitude + max_projection_longitude) % world
            - max_projection_longitude,
        )

    def bound_wgs84_coordinates(self) -> BoundingBox:
        return self.bound_coordinates(WORLD_LNG_HALF_SPAN_DEG)

    def bound_web_mercator_coordinates(self) -> BoundingBox:
        return self.bound_coordinates(WEB_MERCATOR_HALF_WORLD_WIDTH)

    def expand_coordinates(self, max_projection_longitude: float) -> BoundingBox:
        """Undo antimeridian wrapping by pushing max_longitude past +max."""
        if not self.crosses_antimeridian:
            return replace(self)
        world = 2.0 * max_projection_longitude
        wraps = 1 + int((self.min_longitude - self.max_longitude) / world)
        return replace(self, max_longitude=self.max_longitude + wraps * world)

    def expand_wgs84_coordinates(self) -> BoundingBox:
        return self.expand_coordinates(WORLD_LNG_HALF_SPAN_DEG)

    def expand_web_mercator_coordinates(self) -> BoundingBox:
        return self.expand_coordinates(WEB_MERCATOR_HALF_WORLD_WIDTH)

    def split_antimeridian(self, max_projection_longitude: float) -> list[BoundingBox]:
        """One or two non-wrapping boxes covering the same extent.

        Wrapping or out-of-range boxes are cut at ``+max`` into a western part
        and an eastern part re-expressed from ``-max``.
        """
        world = 2.0 * max_projection_longitude
        box = self.expand_coordinates(max_projection_longitude)
        if box.longitude_range >= world:
            return [
                replace(
                    box,
                    min_longitude=-max_projection_longitude,
                    max_longitude=max_projection_longitude,
                )
            ]
        shift = -math.floor((box.min_longitude + max_projection_longitude) / world)
        if shift:
            box = replace(
                box,
                min_longitude=box.min_longitude + shift * world,
                max_longitude=box.max_longitude + shift * world,
            )
        if box.max_longitude <= max_projection_longitude:
            return [box]
        return [
            replace(box, max_longitude=max_projection_longitude),
            replace(
                box,
                min_longitude=-max_projection_longitude,
                max_longitude=box.max_longitude - world,
            ),
        ]

    def square_expand(self, buffer_percentage: float = 0.0) -> BoundingBox:
        """Equalise the spans around the centre, then pad every side.

        The pad is ``(range / (1 - 2p) - range) / 2`` so that the original
        range takes up ``1 - 2p`` of the result. A point box is first widened
        by one ULP per axis when a buffer is requested.
        """
        if not 0.0 <= buffer_percentage < MAX_BUFFER_PERCENTAGE:
            msg = (
                f'buffer_percentage must be in [0, {MAX_BUFFER_PERCENTAGE}), '
                f'got {buffer_percentage}'
            )
            raise ValueError(msg)
        self.require_ordered()

        min_lon, min_lat = self.min_longitude, self.min_latitude
        max_lon, max_lat = self.max_longitude, self.max_latitude

        if self.is_point and buffer_percentage > 0.0:
            lon_ulp = math.ulp(min_lon)
            min_lon -= lon_ulp
            max_lon += lon_ulp
            lat_ulp = math.ulp(min_lat)
            min_lat -= lat_ulp
            max_lat += lat_ulp

        lon_range = max_lon - min_lon
        lat_range = max_lat - min_lat
        if lon_range < lat_range:
            half_diff = (lat_range - lon_range) / 2.0
            min_lon -= half_diff
            max_lon += half_diff
        elif lat_range < lon_range:
            half_diff = (lon_range - lat_range) / 2.0
            min_lat -= half_diff
            max_lat += half_diff

        rng = max(lon_range, lat_range)
        buffer = ((rng / (1.0 - 2.0 * buffer_percentage)) - rng) / 2.0
        return BoundingBox(
            min_lon - buffer,
            min_lat - buffer,
            max_lon + buffer,
            max_lat + buffer,
        )

    def clamp_to_web_mercator(self) -> BoundingBox:
        """Clamp the latitudes of a WGS84 box to the Web Mercator band."""
        return BoundingBox(
            self.min_longitude,
            max(min(self.min_latitude, WEB_MERCATOR_MAX_LAT), WEB_MERCATOR_MIN_LAT),
            self.max_longitude,
            min(max(self.max_latitude, WEB_MERCATOR_MIN_LAT), WEB_MERCATOR_MAX_LAT),
        )

    def transform(self, projection: ProjectionTransform) -> BoundingBox:
        """Project the lower-left and upper-right corners independently."""
        if projection.is_same_projection:
            return replace(self)
        box = self
        if projection.from_is_degrees and projection.to_is_web_mercator:
            box = box.clamp_to_web_mercator()
        min_x, min_y = projection.transform_point(box.min_longitude, box.min_latitude)
        max_x, max_y = projection.transform_point(box.max_longitude, box.max_latitude)
        return BoundingBox(min_x, min_y, max_x, max_y)


def overlap(
    box: BoundingBox,
    box2: BoundingBox,
    allow_empty: bool = False,
    max_longitude: float = 0.0,
) -> BoundingBox | None:
    """Intersection after moving ``box2`` next to ``box`` across the antimeridian.

    With a positive ``max_longitude`` the second box is shifted by a world
    width when the two lie on opposite sides of the world.
    """
    adjustment = 0.0
    if max_longitude > 0:
        if box.min_longitude > box2.max_longitude:
            adjustment = max_longitude * 2.0
        elif box.max_longitude < box2.min_longitude:
            adjustment = max_longitude * -2.0
    if adjustment != 0.0:
        box2 = replace(
            box2,
            min_longitude=box2.min_longitude + adjustment,
            max_longitude=box2.max_longitude + adjustment,
        )
    return box.overlap(box2, allow_empty=allow_empty)


def union(box: BoundingBox, box2: BoundingBox) -> BoundingBox | None:
    return box.union(box2)


def is_point_in_bounding_box(
    longitude: float,
    latitude: float,
    box: BoundingBox,
    max_longitude: float = 0.0,
) -> bool:
    point = BoundingBox.from_point(longitude, latitude)
    return overlap(box, point, allow_empty=True, max_longitude=max_longitude) is not None
