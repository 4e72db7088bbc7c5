"""Tests for per-screen color sampling and the change filter."""

import numpy as np
import pytest

from screensync.core.model import Color, NormalizedPoint, NormalizedRect, ScreenDetection
from screensync.core.sampler import (
    ColorChangeFilter,
    apply_brightness,
    color_diff,
    sample_area_color,
    sample_point_color,
    sample_screen_color,
)


def _canvas(color: tuple[int, int, int], size: int = 200) -> np.ndarray:
    canvas = np.zeros((size, size, 4), dtype=np.uint8)
    canvas[..., :3] = color
    canvas[..., 3] = 255
    return canvas


class TestSampleAreaColor:
    """Test suite for sample_area_color."""

    def test_uniform_region_returns_its_color(self) -> None:
        canvas = _canvas((10, 200, 33))
        color = sample_area_color(canvas, NormalizedRect(0.2, 0.3, 0.25, 0.1))
        assert color == Color(10, 200, 33)

    def test_deterministic(self) -> None:
        canvas = np.random.default_rng(4).integers(0, 256, (200, 200, 4), dtype=np.uint8)
        area = NormalizedRect(0.13, 0.41, 0.3, 0.22)
        assert sample_area_color(canvas, area) == sample_area_color(canvas, area)

    def test_only_pixels_inside_the_area_count(self) -> None:
        canvas = _canvas((0, 0, 0))
        canvas[:, 100:, :3] = 255
        assert sample_area_color(canvas, NormalizedRect(0.6, 0.2, 0.3, 0.3)) == Color(255, 255, 255)
        assert sample_area_color(canvas, NormalizedRect(0.1, 0.2, 0.3, 0.3)) == Color(0, 0, 0)

    def test_center_pixels_weigh_more(self) -> None:
        canvas = _canvas((0, 0, 0))
        # Bright core in the middle of the area
        canvas[90:110, 90:110, :3] = 255
        color = sample_area_color(canvas, NormalizedRect(0.3, 0.3, 0.4, 0.4))
        # Plain average would be 255 * 400 / 6400, about 16
        assert color.r > 22

    def test_area_reaching_past_the_canvas_is_cropped(self) -> None:
        canvas = _canvas((80, 80, 80))
        color = sample_area_color(canvas, NormalizedRect(0.9, 0.9, 0.5, 0.5))
        assert color == Color(80, 80, 80)

    def test_tiny_area_is_clamped_to_minimum(self) -> None:
        canvas = _canvas((5, 6, 7))
        color = sample_area_color(canvas, NormalizedRect(0.5, 0.5, 0.0, 0.0))
        assert color == Color(5, 6, 7)


class TestSamplePoint:
    """Test suite for point sampling."""

    def test_nearest_pixel(self) -> None:
        canvas = _canvas((0, 0, 0))
        canvas[50, 100, :3] = (1, 2, 3)
        assert sample_point_color(canvas, NormalizedPoint(0.5, 0.25)) == Color(1, 2, 3)

    def test_edge_of_unit_square_is_clamped(self) -> None:
        canvas = _canvas((0, 0, 0))
        canvas[199, 199, :3] = (9, 9, 9)
        assert sample_point_color(canvas, NormalizedPoint(1.0, 1.0)) == Color(9, 9, 9)

    def test_screen_without_area_samples_center(self) -> None:
        canvas = _canvas((0, 0, 0))
        canvas[20, 40, :3] = (50, 60, 70)
        detection = ScreenDetection(center=NormalizedPoint(0.2, 0.1), area=None, pixel_count=0)
        assert sample_screen_color(canvas, detection) == Color(50, 60, 70)

    def test_screen_with_area_samples_area(self) -> None:
        canvas = _canvas((40, 40, 40))
        detection = ScreenDetection(
            center=NormalizedPoint(0.5, 0.5),
            area=NormalizedRect(0.4, 0.4, 0.2, 0.2),
            pixel_count=100,
        )
        assert sample_screen_color(canvas, detection) == Color(40, 40, 40)


class TestColorHelpers:
    """Test suite for brightness and color difference."""

    def test_brightness_rounds_half_up(self) -> None:
        assert apply_brightness(Color(255, 128, 1), 0.5) == Color(128, 64, 1)

    def test_brightness_bounds(self) -> None:
        color = Color(12, 34, 56)
        assert apply_brightness(color, 1.0) == color
        assert apply_brightness(color, 0.0) == Color(0, 0, 0)

    def test_color_diff_is_manhattan(self) -> None:
        assert color_diff(Color(10, 20, 30), Color(13, 18, 30)) == 5

    def test_color_diff_symmetric_and_zero_iff_equal(self) -> None:
        rng = np.random.default_rng(8)
        for _ in range(50):
            a = Color(*(int(v) for v in rng.integers(0, 256, 3)))
            b = Color(*(int(v) for v in rng.integers(0, 256, 3)))
            assert color_diff(a, b) == color_diff(b, a)
            assert (color_diff(a, b) == 0) == (a == b)
            assert color_diff(a, a) == 0


class TestColorChangeFilter:
    """Test suite for ColorChangeFilter."""

    def test_first_color_always_passes(self) -> None:
        assert ColorChangeFilter().update("a", Color(0, 0, 0))

    def test_small_change_is_suppressed(self) -> None:
        flt = ColorChangeFilter(threshold=3)
        flt.update("a", Color(100, 100, 100))
        assert not flt.update("a", Color(101, 101, 101))
        assert flt.last_color("a") == Color(100, 100, 100)

    def test_change_above_threshold_passes(self) -> None:
        flt = ColorChangeFilter(threshold=3)
        flt.update("a", Color(100, 100, 100))
        assert flt.update("a", Color(102, 102, 100))
        assert flt.last_color("a") == Color(102, 102, 100)

    def test_drift_is_measured_from_last_sent(self) -> None:
        flt = ColorChangeFilter(threshold=3)
        flt.update("a", Color(0, 0, 0))
        assert not flt.update("a", Color(2, 0, 0))
        assert flt.update("a", Color(4, 0, 0))

    def test_screens_are_independent(self) -> None:
        flt = ColorChangeFilter()
        flt.update("a", Color(50, 50, 50))
        assert flt.update("b", Color(50, 50, 50))

    def test_reset(self) -> None:
        flt = ColorChangeFilter()
        flt.update("a", Color(1, 1, 1))
        flt.reset()
        assert flt.last_color("a") is None
        assert flt.update("a", Color(1, 1, 1))
