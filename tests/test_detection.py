"""Tests for screen detection on synthetic frames.

Synthetic probes light the whole frame slightly (ambient spill from
the lit screen) plus a bright rectangle, as a real camera sees it.

Verifies that:
- A single lit rectangle is found with an accurate center and box
- Identical frames are not detected
- Only the larger of two lit rectangles is reported
- Blobs below the minimum size are rejected
- A saturated rectangle on a pure black frame is still found
"""

import numpy as np
import pytest

from screensync.core.detection import (
    ScreenDetector,
    detect_screen_area,
    refine_bounding_box,
    weighted_centroid,
)
from screensync.core.geometry import point_from_unit_square, rect_from_unit_square
from screensync.core.model import Blob, DetectionConfig

WIDTH = 160
HEIGHT = 120
AMBIENT = 12


def make_frames(
    *rects: tuple[int, int, int, int],
    width: int = WIDTH,
    height: int = HEIGHT,
    ambient: int = AMBIENT,
) -> tuple[np.ndarray, np.ndarray]:
    """Dark reference and a probe with ``rects`` (x, y, w, h) at full white."""
    reference = np.zeros((height, width, 4), dtype=np.uint8)
    reference[..., 3] = 255
    probe = reference.copy()
    probe[..., :3] = ambient
    for x, y, w, h in rects:
        probe[y:y + h, x:x + w, :3] = 255
    return reference, probe


def overlap_fraction(box, rect: tuple[int, int, int, int]) -> float:
    """Share of ``rect`` covered by ``box`` (a PixelRect)."""
    x, y, w, h = rect
    ix = max(0.0, min(box.right, x + w) - max(box.x, x))
    iy = max(0.0, min(box.bottom, y + h) - max(box.y, y))
    return (ix * iy) / (w * h)


class TestSingleScreen:
    """Detection of one lit rectangle."""

    RECT = (40, 30, 40, 30)

    def test_center_within_a_pixel(self) -> None:
        reference, probe = make_frames(self.RECT)
        detection = ScreenDetector().detect(reference, probe)

        assert detection is not None
        cx, cy = point_from_unit_square(detection.center, WIDTH, HEIGHT)
        assert cx == pytest.approx(59.5, abs=1.5)
        assert cy == pytest.approx(44.5, abs=1.5)

    def test_box_covers_the_rectangle(self) -> None:
        reference, probe = make_frames(self.RECT)
        detection = ScreenDetector().detect(reference, probe)

        assert detection is not None and detection.area is not None
        box = rect_from_unit_square(detection.area, WIDTH, HEIGHT)
        assert overlap_fraction(box, self.RECT) >= 0.9
        # The refined box hugs the screen
        assert box.width * box.height <= 1.3 * 40 * 30

    def test_pixel_count_matches_blob(self) -> None:
        reference, probe = make_frames(self.RECT)
        detection = ScreenDetector().detect(reference, probe)
        assert detection is not None
        assert detection.pixel_count == pytest.approx(40 * 30, rel=0.1)

    def test_portrait_frame(self) -> None:
        rect = (30, 60, 40, 30)
        reference, probe = make_frames(rect, width=120, height=160)
        detection = ScreenDetector().detect(reference, probe)

        assert detection is not None
        cx, cy = point_from_unit_square(detection.center, 120, 160)
        assert cx == pytest.approx(49.5, abs=1.5)
        assert cy == pytest.approx(74.5, abs=1.5)

    def test_noisy_frames(self) -> None:
        rng = np.random.default_rng(21)
        reference, probe = make_frames(self.RECT)
        reference[..., :3] = rng.integers(0, 7, reference[..., :3].shape, dtype=np.uint8)
        noise = rng.integers(0, 7, probe[..., :3].shape, dtype=np.uint8)
        probe[..., :3] = np.where(probe[..., :3] == 255, 255, AMBIENT + noise).astype(np.uint8)

        detection = ScreenDetector().detect(reference, probe)
        assert detection is not None
        cx, cy = point_from_unit_square(detection.center, WIDTH, HEIGHT)
        assert cx == pytest.approx(59.5, abs=1.5)
        assert cy == pytest.approx(44.5, abs=1.5)

    def test_normalized_values_in_unit_square(self) -> None:
        reference, probe = make_frames((0, 0, 60, 50))
        detection = detect_screen_area(reference, probe)

        assert detection is not None
        area = detection.area
        for value in (detection.center.x, detection.center.y, area.x, area.y):
            assert 0.0 <= value <= 1.0
        assert 0.02 <= area.width <= 0.65
        assert 0.02 <= area.height <= 0.65


class TestBlackBackground:
    """A white rectangle on a fully black frame with no ambient spill."""

    RECT = (40, 30, 40, 30)

    def test_saturated_rectangle_is_detected(self) -> None:
        reference, probe = make_frames(self.RECT, ambient=0)
        debug = ScreenDetector().analyze(reference, probe)

        assert debug.threshold < float(debug.blurred.max())
        assert debug.detection is not None
        cx, cy = point_from_unit_square(debug.detection.center, WIDTH, HEIGHT)
        assert cx == pytest.approx(59.5, abs=1.0)
        assert cy == pytest.approx(44.5, abs=1.0)

    def test_box_covers_the_rectangle(self) -> None:
        reference, probe = make_frames(self.RECT, ambient=0)
        detection = ScreenDetector().detect(reference, probe)

        assert detection is not None and detection.area is not None
        box = rect_from_unit_square(detection.area, WIDTH, HEIGHT)
        assert overlap_fraction(box, self.RECT) >= 0.9
        assert box.width * box.height <= 1.3 * 40 * 30
        assert detection.pixel_count == pytest.approx(40 * 30, rel=0.1)


class TestNotDetected:
    """Cases that must report no screen."""

    def test_identical_frames(self) -> None:
        reference, _ = make_frames()
        assert ScreenDetector().detect(reference, reference.copy()) is None

    def test_blob_below_minimum_size(self) -> None:
        reference, probe = make_frames((40, 30, 40, 30))
        detector = ScreenDetector(DetectionConfig(min_blob_size=5000))
        debug = detector.analyze(reference, probe)

        assert debug.detection is None
        assert debug.blob is not None
        assert debug.mask.any()

    def test_darker_probe(self) -> None:
        reference = np.full((HEIGHT, WIDTH, 4), 200, dtype=np.uint8)
        probe = reference.copy()
        probe[30:60, 40:80, :3] = 20
        assert ScreenDetector().detect(reference, probe) is None

    def test_mismatched_frames_raise(self) -> None:
        reference, _ = make_frames()
        _, probe = make_frames(width=100)
        with pytest.raises(ValueError):
            ScreenDetector().detect(reference, probe)


class TestMultipleBlobs:
    """Only the largest lit region is reported."""

    def test_larger_rectangle_wins(self) -> None:
        reference, probe = make_frames((10, 10, 40, 30), (110, 80, 20, 15))
        detection = ScreenDetector().detect(reference, probe)

        assert detection is not None
        cx, cy = point_from_unit_square(detection.center, WIDTH, HEIGHT)
        assert cx == pytest.approx(29.5, abs=1.5)
        assert cy == pytest.approx(24.5, abs=1.5)


class TestAnalyze:
    """Intermediate products exposed for previews."""

    def test_debug_products(self) -> None:
        reference, probe = make_frames((40, 30, 40, 30))
        debug = ScreenDetector().analyze(reference, probe)

        assert debug.difference.shape == (HEIGHT, WIDTH)
        assert debug.blurred.shape == (HEIGHT, WIDTH)
        assert debug.mask.dtype == np.uint8
        assert debug.threshold >= DetectionConfig().brightness_threshold
        assert debug.detection is not None


class TestRefineBoundingBox:
    """Test suite for refine_bounding_box."""

    def test_no_edges_keeps_bounds(self) -> None:
        diff = np.zeros((20, 20), dtype=np.float32)
        assert refine_bounding_box(diff, (5, 5, 10, 10)) == (5, 5, 10, 10)

    def test_extends_to_edge_pixels_within_padding(self) -> None:
        diff = np.zeros((30, 30), dtype=np.float32)
        diff[10:15, 10:15] = 100.0
        diff[12, 7] = 50.0  # three pixels left of the blob
        assert refine_bounding_box(diff, (10, 10, 14, 14), padding=5) == (7, 10, 14, 14)

    def test_ignores_pixels_beyond_padding(self) -> None:
        diff = np.zeros((30, 30), dtype=np.float32)
        diff[12, 1] = 50.0
        assert refine_bounding_box(diff, (10, 10, 14, 14), padding=5) == (10, 10, 14, 14)

    def test_edges_only_move_outward(self) -> None:
        diff = np.zeros((30, 30), dtype=np.float32)
        diff[12, 12] = 50.0  # inside the box only
        assert refine_bounding_box(diff, (10, 10, 14, 14)) == (10, 10, 14, 14)

    def test_search_window_is_clamped_to_frame(self) -> None:
        diff = np.full((10, 10), 50.0, dtype=np.float32)
        assert refine_bounding_box(diff, (1, 1, 8, 8), padding=5) == (0, 0, 9, 9)


class TestWeightedCentroid:
    """Test suite for weighted_centroid."""

    def test_leans_toward_brighter_pixels(self) -> None:
        diff = np.zeros((1, 5), dtype=np.float32)
        diff[0, 0] = 1.0
        diff[0, 4] = 3.0
        blob = Blob(xs=np.array([0, 4]), ys=np.array([0, 0]))
        assert weighted_centroid(diff, blob) == pytest.approx((3.0, 0.0))

    def test_zero_weights_fall_back_to_box_center(self) -> None:
        diff = np.zeros((5, 5), dtype=np.float32)
        blob = Blob(xs=np.array([1, 3]), ys=np.array([0, 4]))
        assert weighted_centroid(diff, blob) == pytest.approx((2.0, 2.0))
