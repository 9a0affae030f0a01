"""Tests for crop-surface geometry (display space to pixel crop)."""
import pytest
from PIL import Image

from photo_ratio_tool.crop_area import (
    clamp_zoom, compute_cropped_area, crop_for_aspect, fit_media_size, get_crop_size,
    restrict_position,
)
from photo_ratio_tool.errors import InvalidGeometryError
from photo_ratio_tool.models import CropRect
from photo_ratio_tool.transform import render_raster

from conftest import assert_same_pixels


class TestSizing:
    def test_fit_media_contain(self):
        assert fit_media_size(800, 600, 400, 400) == (400, 300)
        assert fit_media_size(600, 800, 400, 400) == (300, 400)

    def test_crop_size_limited_by_height(self):
        assert get_crop_size(800, 600, 800, 600, 1.0) == (600, 600)

    def test_crop_size_limited_by_width(self):
        assert get_crop_size(800, 600, 800, 600, 16 / 9) == pytest.approx((800, 450))

    def test_crop_size_uses_rotated_media(self):
        # Rotated media is 600x800 inside an 800x600 container
        assert get_crop_size(800, 600, 800, 600, 0.75, rotation=90) == pytest.approx((450, 600))

    @pytest.mark.parametrize("zoom, expected", [(0.01, 0.1), (0.1, 0.1), (1.5, 1.5), (3, 3), (10, 3)])
    def test_clamp_zoom(self, zoom, expected):
        assert clamp_zoom(zoom) == expected


class TestRestrictPosition:
    def test_pan_clamped_to_media(self):
        assert restrict_position((1000, -1000), (800, 600), (600, 600), 1.0) == (100, 0)

    def test_zoom_widens_range(self):
        assert restrict_position((1000, 1000), (800, 600), (600, 600), 2.0) == (500, 300)


class TestComputeCroppedArea:
    def test_centred_square(self):
        percentages, pixels = compute_cropped_area((0, 0), (800, 600), (800, 600), (600, 600), 1.0, 1.0)
        assert percentages == CropRect(12.5, 0, 75, 100)
        assert pixels == CropRect(100, 0, 600, 600)

    def test_display_scale_does_not_change_pixels(self):
        # Same view, media displayed at half size
        _, pixels = compute_cropped_area((0, 0), (400, 300), (800, 600), (300, 300), 1.0, 1.0)
        assert pixels == CropRect(100, 0, 600, 600)


class TestCropForAspect:
    def test_square_of_landscape(self):
        assert crop_for_aspect(800, 600, 1.0) == CropRect(100, 0, 600, 600)

    def test_wide_of_landscape(self):
        assert crop_for_aspect(800, 600, 16 / 9) == CropRect(0, 75, 800, 450)

    def test_pan_is_restricted(self):
        assert crop_for_aspect(800, 600, 1.0, pan=(1000, 0)) == CropRect(0, 0, 600, 600)
        assert crop_for_aspect(800, 600, 1.0, pan=(-1000, 0)) == CropRect(200, 0, 600, 600)

    def test_zoom_in(self):
        assert crop_for_aspect(800, 600, 1.0, zoom=2) == CropRect(250, 150, 300, 300)

    def test_rotated_quarter_turn(self):
        assert crop_for_aspect(800, 600, 0.75, rotation=90) == CropRect(75, 100, 450, 600)

    def test_zoom_out_without_restriction_adds_margins(self):
        assert crop_for_aspect(800, 600, 1.0, zoom=0.5, restrict=False) == CropRect(-200, -300, 1200, 1200)

    def test_zoom_out_with_restriction_stays_inside(self):
        crop = crop_for_aspect(800, 600, 1.0, zoom=0.5, restrict=True)
        assert crop.x >= 0 and crop.y >= 0
        assert crop.x + crop.w <= 800 and crop.y + crop.h <= 600

    @pytest.mark.parametrize("aspect", [0, -1, float("nan")])
    def test_invalid_aspect(self, aspect):
        with pytest.raises(InvalidGeometryError):
            crop_for_aspect(800, 600, aspect)

    def test_margins_render_with_fill(self, source_800x600):
        crop = crop_for_aspect(800, 600, 1.0, zoom=0.5, restrict=False)
        out = render_raster(source_800x600, crop, fill_color="white")
        assert out.size == (1200, 1200)
        assert out.getpixel((100, 100)) == (255, 255, 255)
        assert_same_pixels(out.crop((200, 300, 1000, 900)), source_800x600)
