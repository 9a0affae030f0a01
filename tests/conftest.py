"""
Pytest fixtures for photo_ratio_tool tests
"""

import pytest
from PIL import Image, ImageChops


def make_image(width: int, height: int, pixel) -> Image.Image:
    """Build an RGB image whose pixel (x, y) is ``pixel(x, y)``."""
    img = Image.new("RGB", (width, height))
    img.putdata([pixel(x, y) for y in range(height) for x in range(width)])
    return img


def assert_same_pixels(a: Image.Image, b: Image.Image) -> None:
    assert a.size == b.size
    assert ImageChops.difference(a.convert("RGB"), b.convert("RGB")).getbbox() is None


@pytest.fixture(scope="module")
def source_800x600() -> Image.Image:
    """
    Returns an 800x600 test pattern that contains no white pixels.
    :return: The RGB image
    """
    return make_image(800, 600, lambda x, y: (x % 256, y % 256, 100))


@pytest.fixture(scope="module")
def small_gradient() -> Image.Image:
    """Smooth 120x80 gradient, suited to resampling comparisons."""
    return make_image(120, 80, lambda x, y: (2 * x, 3 * y, 100))


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Redirect persisted configuration into a temporary directory."""
    monkeypatch.setattr("photo_ratio_tool.ratios.config_dir", lambda: tmp_path)
    return tmp_path
