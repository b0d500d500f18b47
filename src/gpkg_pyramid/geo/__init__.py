"""Geo module - bounding boxes, projections and rotation."""

from gpkg_pyramid.geo.bounding_box import (
    BoundingBox,
    InvalidBoundingBoxError,
    is_point_in_bounding_box,
    overlap,
    union,
)
from gpkg_pyramid.geo.projection import (
    ProjectionTransform,
    web_mercator_to_wgs84,
    wgs84_to_web_mercator,
)
from gpkg_pyramid.geo.rotation import rotated_envelope

__all__ = [
    'BoundingBox',
    'InvalidBoundingBoxError',
    'ProjectionTransform',
    'is_point_in_bounding_box',
    'overlap',
    'rotated_envelope',
    'union',
    'web_mercator_to_wgs84',
    'wgs84_to_web_mercator',
]
