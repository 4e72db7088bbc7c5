"""Screen position detection.

Runs the full pipeline on a reference/probe frame pair:

    difference -> blur -> adaptive threshold -> closing -> largest blob
    -> edge-refined bounding box + weighted centroid -> unit square

A blob smaller than ``min_blob_size`` is a normal "not detected"
outcome (occluded, off-frame or too distant screen), reported as None.
"""

from typing import Optional

import numpy as np

from .blobs import find_largest_blob
from .constants import EDGE_PADDING_PX, EDGE_THRESHOLD
from .diff import adaptive_threshold, binary_mask, gaussian_blur, luminance_difference
from .geometry import clamp_point, clamp_rect, point_to_unit_square, rect_to_unit_square
from .logging import get_logger
from .model import Blob, DetectionConfig, DetectionDebug, PixelRect, ScreenDetection
from .morphology import close_mask


def refine_bounding_box(
    diff: np.ndarray,
    bounds: tuple[int, int, int, int],
    padding: int = EDGE_PADDING_PX,
    edge_threshold: float = EDGE_THRESHOLD,
) -> tuple[int, int, int, int]:
    """Push box edges outward to the true screen edges.

    Blur and morphology erode the lit region slightly. Within the blob box
    expanded by ``padding`` (clamped to the frame), every pixel whose
    difference exceeds ``edge_threshold`` may extend the box. Edges only
    move outward.

    Args:
        diff: Difference map the blob was found in
        bounds: Blob extremes as (min_x, min_y, max_x, max_y)
        padding: Search margin in pixels
        edge_threshold: Minimum difference of an edge pixel

    Returns:
        Refined (min_x, min_y, max_x, max_y)
    """
    height, width = diff.shape
    min_x, min_y, max_x, max_y = bounds

    search_min_x = max(0, min_x - padding)
    search_max_x = min(width - 1, max_x + padding)
    search_min_y = max(0, min_y - padding)
    search_max_y = min(height - 1, max_y + padding)

    window = diff[search_min_y:search_max_y + 1, search_min_x:search_max_x + 1]
    edge_ys, edge_xs = np.nonzero(window > edge_threshold)
    if edge_xs.size == 0:
        return bounds

    return (
        min(min_x, int(edge_xs.min()) + search_min_x),
        min(min_y, int(edge_ys.min()) + search_min_y),
        max(max_x, int(edge_xs.max()) + search_min_x),
        max(max_y, int(edge_ys.max()) + search_min_y),
    )


def weighted_centroid(diff: np.ndarray, blob: Blob) -> tuple[float, float]:
    """Difference-weighted mean of the blob's pixel coordinates.

    Brightness across a lit screen is uneven (vignetting, viewing angle),
    so the centroid leans toward the brightest part. Falls back to the
    center of the blob's box if every weight is zero.
    """
    weights = diff[blob.ys, blob.xs].astype(np.float64)
    total = float(weights.sum())
    if total > 0:
        return (
            float((blob.xs * weights).sum() / total),
            float((blob.ys * weights).sum() / total),
        )

    min_x, min_y, max_x, max_y = blob.bounds()
    return ((min_x + max_x) / 2, (min_y + max_y) / 2)


class ScreenDetector:
    """Locates one lit screen in a probe frame.

    Holds the immutable configuration; every call is independent.
    """

    def __init__(self, config: Optional[DetectionConfig] = None) -> None:
        self._config = config or DetectionConfig()
        self._logger = get_logger()

    @property
    def config(self) -> DetectionConfig:
        return self._config

    def analyze(self, reference: np.ndarray, probe: np.ndarray) -> DetectionDebug:
        """Run the pipeline and keep every intermediate product.

        Raises:
            ValueError: If the frames have different shapes
        """
        cfg = self._config
        height, width = reference.shape[:2]

        difference = luminance_difference(reference, probe)
        blurred = gaussian_blur(difference, cfg.blur_radius)
        threshold = adaptive_threshold(
            blurred,
            minimum=cfg.brightness_threshold,
            noise_floor=cfg.noise_floor,
            std_multiplier=cfg.threshold_std_multiplier,
            peak_fraction=cfg.peak_fraction,
        )
        mask = close_mask(binary_mask(blurred, threshold), cfg.morphology_kernel)
        blob = find_largest_blob(mask)

        debug = DetectionDebug(
            difference=difference,
            blurred=blurred,
            threshold=threshold,
            mask=mask,
            blob=blob,
        )

        if blob is None or blob.size < cfg.min_blob_size:
            self._logger.debug(
                "No blob large enough",
                threshold=threshold,
                blob_size=0 if blob is None else blob.size,
                min_blob_size=cfg.min_blob_size,
            )
            return debug

        min_x, min_y, max_x, max_y = refine_bounding_box(
            blurred,
            blob.bounds(),
            padding=cfg.edge_padding,
            edge_threshold=cfg.edge_threshold,
        )
        center_x, center_y = weighted_centroid(blurred, blob)

        area = clamp_rect(
            rect_to_unit_square(
                PixelRect(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y),
                width,
                height,
            ),
            cfg.min_normalized_area,
            cfg.max_normalized_area,
        )
        center = clamp_point(point_to_unit_square(center_x, center_y, width, height))

        debug.detection = ScreenDetection(center=center, area=area, pixel_count=blob.size)
        self._logger.debug(
            "Blob accepted",
            threshold=threshold,
            blob_size=blob.size,
            box=f"{min_x},{min_y}-{max_x},{max_y}",
        )
        return debug

    def detect(self, reference: np.ndarray, probe: np.ndarray) -> Optional[ScreenDetection]:
        """Detect the lit screen, None if nothing large enough changed."""
        return self.analyze(reference, probe).detection


def detect_screen_area(
    reference: np.ndarray,
    probe: np.ndarray,
    config: Optional[DetectionConfig] = None,
) -> Optional[ScreenDetection]:
    """Convenience wrapper around ``ScreenDetector.detect``."""
    return ScreenDetector(config).detect(reference, probe)
