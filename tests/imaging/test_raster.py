"""Tests for imaging.raster module."""

import io

import numpy as np
import pytest
from PIL import Image

from gpkg_pyramid.geo.bounding_box import BoundingBox
from gpkg_pyramid.imaging.raster import (
    InvalidRasterError,
    RgbaRaster,
    SourceRaster,
    crop_to_web_mercator,
    validate_raster,
)
from gpkg_pyramid.shared.constants import WEB_MERCATOR_MAX_LAT, WEB_MERCATOR_MIN_LAT


def solid(width, height, color=(255, 0, 0, 255)):
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[...] = color
    return RgbaRaster(arr)


class TestRgbaRaster:
    """Tests for RgbaRaster."""

    def test_dimensions(self):
        raster = solid(3, 2)
        assert raster.width == 3
        assert raster.height == 2
        assert isinstance(raster, SourceRaster)

    def test_get_pixel(self):
        arr = np.zeros((2, 2, 4), dtype=np.uint8)
        arr[1, 0] = (1, 2, 3, 4)
        assert RgbaRaster(arr).get_pixel(0, 1) == (1, 2, 3, 4)

    def test_get_pixel_out_of_bounds(self):
        with pytest.raises(IndexError):
            solid(2, 2).get_pixel(2, 0)

    def test_wrong_shape(self):
        with pytest.raises(InvalidRasterError):
            RgbaRaster(np.zeros((2, 2, 3), dtype=np.uint8))

    def test_read_only_copy(self):
        """Caller's array stays writable and detached."""
        arr = np.zeros((2, 2, 4), dtype=np.uint8)
        raster = RgbaRaster(arr)
        arr[0, 0] = 255
        assert raster.get_pixel(0, 0) == (0, 0, 0, 0)
        assert not raster.to_array().flags.writeable

    def test_from_rgb_image(self):
        raster = RgbaRaster.from_image(Image.new('RGB', (4, 3), (10, 20, 30)))
        assert raster.get_pixel(3, 2) == (10, 20, 30, 255)

    def test_open_bytes(self):
        buf = io.BytesIO()
        Image.new('RGBA', (5, 7), (1, 2, 3, 4)).save(buf, format='PNG')
        buf.seek(0)
        raster = RgbaRaster.open(buf)
        assert (raster.width, raster.height) == (5, 7)

    def test_crop_rows(self):
        arr = np.zeros((4, 1, 4), dtype=np.uint8)
        arr[:, 0, 0] = [0, 1, 2, 3]
        cropped = RgbaRaster(arr).crop_rows(1, 3)
        assert cropped.height == 2
        assert cropped.get_pixel(0, 0)[0] == 1

    def test_rotate_expands_canvas(self):
        rotated = solid(4, 2).rotate(90)
        assert (rotated.width, rotated.height) == (2, 4)

    def test_rotate_fills_transparent(self):
        rotated = solid(10, 10).rotate(45)
        assert rotated.width > 10
        assert rotated.get_pixel(0, 0)[3] == 0


class TestValidateRaster:
    """Tests for validate_raster."""

    def test_zero_pixels(self):
        raster = RgbaRaster(np.zeros((0, 0, 4), dtype=np.uint8))
        with pytest.raises(InvalidRasterError):
            validate_raster(raster, BoundingBox(0.0, 0.0, 1.0, 1.0))

    def test_zero_area_box(self):
        with pytest.raises(InvalidRasterError):
            validate_raster(solid(2, 2), BoundingBox(0.0, 0.0, 0.0, 1.0))

    def test_valid(self):
        validate_raster(solid(2, 2), BoundingBox(0.0, 0.0, 1.0, 1.0))


class TestCropToWebMercator:
    """Tests for crop_to_web_mercator."""

    def test_inside_band_unchanged(self):
        raster = solid(10, 10)
        box = BoundingBox(0.0, -10.0, 10.0, 10.0)
        new_box, new_raster = crop_to_web_mercator(box, raster)
        assert new_box == box
        assert new_raster.height == 10

    def test_crops_both_ends(self):
        box, raster = crop_to_web_mercator(BoundingBox(0.0, -90.0, 10.0, 90.0), solid(10, 180))
        assert box.max_latitude == WEB_MERCATOR_MAX_LAT
        assert box.min_latitude == WEB_MERCATOR_MIN_LAT
        # 5 rows off the top, 5 off the bottom
        assert raster.height == 170

    def test_crops_top_only(self):
        arr = np.zeros((100, 1, 4), dtype=np.uint8)
        arr[:, 0, 0] = np.arange(100)
        box, raster = crop_to_web_mercator(BoundingBox(0.0, 80.0, 1.0, 90.0), RgbaRaster(arr))
        assert box.min_latitude == 80.0
        assert raster.height < 100
        # remaining rows are the southern ones
        assert raster.get_pixel(0, raster.height - 1)[0] == 99

    def test_entirely_outside(self):
        with pytest.raises(InvalidRasterError):
            crop_to_web_mercator(BoundingBox(0.0, 86.0, 10.0, 89.0), solid(2, 2))
