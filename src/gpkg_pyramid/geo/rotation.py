"""Envelope of a rotated ground overlay."""

from __future__ import annotations

import logging
from functools import lru_cache

from pyproj import Geod

from gpkg_pyramid.geo.bounding_box import BoundingBox

logger = logging.getLogger(__name__)

# Rotations smaller than this (degrees) are treated as none
ROTATION_EPSILON = 1e-9


@lru_cache(maxsize=1)
def _geod() -> Geod:
    return Geod(ellps='WGS84')


def rotate_corners(
    bbox: BoundingBox, rotation_deg: float
) -> list[tuple[float, float]]:
    """Rotate the box corners about its centre.

    Positive angles turn counter-clockwise (KML ``LatLonBox/rotation``).
    Each corner keeps its geodesic distance from the centre; only its
    azimuth changes.
    """
    geod = _geod()
    center_lon, center_lat = bbox.centroid()
    rotated = []
    for lon, lat in bbox.corners():
        azimuth, _, distance = geod.inv(center_lon, center_lat, lon, lat)
        new_lon, new_lat, _ = geod.fwd(
            center_lon, center_lat, azimuth - rotation_deg, distance
        )
        # Geod normalises to [-180, 180]; keep corners next to the centre
        new_lon = center_lon + ((new_lon - center_lon + 180.0) % 360.0 - 180.0)
        rotated.append((float(new_lon), float(new_lat)))
    return rotated


def rotated_envelope(bbox: BoundingBox, rotation_deg: float) -> BoundingBox:
    """Envelope of the box polygon after rotation.

    Rotating the polygon (not the min/max pairs) gives the true extent the
    rotated overlay covers.
    """
    bbox.require_ordered()
    if abs(rotation_deg) < ROTATION_EPSILON or bbox.is_point:
        return BoundingBox(*bbox.as_tuple())
    corners = rotate_corners(bbox, rotation_deg)
    lons = [p[0] for p in corners]
    lats = [p[1] for p in corners]
    envelope = BoundingBox(min(lons), min(lats), max(lons), max(lats))
    logger.debug(
        'Rotated %s by %.3f deg -> %s', bbox.as_tuple(), rotation_deg, envelope.as_tuple()
    )
    return envelope
