"""Projection transforms between named coordinate reference systems.

Thin wrapper over pyproj. Points are always (x, y) = (longitude, latitude)
for geographic systems, i.e. transformers are built with ``always_xy=True``.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING

from pyproj import CRS, Transformer

from gpkg_pyramid.shared.constants import (
    WEB_MERCATOR_CODE,
    WEB_MERCATOR_CRS,
    WGS84_CRS,
)

if TYPE_CHECKING:
    import numpy as np

logger = logging.getLogger(__name__)


@lru_cache(maxsize=32)
def _crs(code: str) -> CRS:
    return CRS.from_user_input(code)


@lru_cache(maxsize=32)
def _transformer(from_code: str, to_code: str) -> Transformer:
    logger.debug('Building transformer %s -> %s', from_code, to_code)
    return Transformer.from_crs(_crs(from_code), _crs(to_code), always_xy=True)


class ProjectionTransform:
    """Converts points, arrays and boxes from one CRS to another."""

    def __init__(self, from_crs: str, to_crs: str) -> None:
        self.from_crs = from_crs.upper()
        self.to_crs = to_crs.upper()
        self._forward = _transformer(self.from_crs, self.to_crs)
        self._backward = _transformer(self.to_crs, self.from_crs)

    def __repr__(self) -> str:
        return f'ProjectionTransform({self.from_crs!r}, {self.to_crs!r})'

    @property
    def is_same_projection(self) -> bool:
        return _crs(self.from_crs) == _crs(self.to_crs)

    @property
    def from_is_degrees(self) -> bool:
        return _crs(self.from_crs).is_geographic

    @property
    def to_is_web_mercator(self) -> bool:
        return _crs(self.to_crs).to_epsg() == WEB_MERCATOR_CODE

    def transform_point(self, x: float, y: float) -> tuple[float, float]:
        """Forward transform of a single point."""
        tx, ty = self._forward.transform(x, y)
        return float(tx), float(ty)

    def inverse_point(self, x: float, y: float) -> tuple[float, float]:
        """Backward transform of a single point."""
        tx, ty = self._backward.transform(x, y)
        return float(tx), float(ty)

    def inverse_arrays(
        self, xs: np.ndarray, ys: np.ndarray
    ) -> tuple[np.ndarray, np.ndarray]:
        """Backward transform of coordinate arrays (any matching shape)."""
        return self._backward.transform(xs, ys)

    def inverse(self) -> ProjectionTransform:
        return ProjectionTransform(self.to_crs, self.from_crs)


@lru_cache(maxsize=1)
def wgs84_to_web_mercator() -> ProjectionTransform:
    """Shared EPSG:4326 -> EPSG:3857 transform."""
    return ProjectionTransform(WGS84_CRS, WEB_MERCATOR_CRS)


@lru_cache(maxsize=1)
def web_mercator_to_wgs84() -> ProjectionTransform:
    """Shared EPSG:3857 -> EPSG:4326 transform."""
    return ProjectionTransform(WEB_MERCATOR_CRS, WGS84_CRS)
