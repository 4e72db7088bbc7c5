"""Difference map, blur and adaptive thresholding.

Implements the first half of the detection pipeline:
1. Luminance difference between probe and reference (negative deltas
   floored to zero, only "screen turned on" matters)
2. Separable Gaussian blur with edge replication
3. Adaptive threshold derived from the frame's own difference statistics,
   capped below the peak so a saturated screen still passes
4. Binary mask
"""

import cv2
import numpy as np

from .capture import to_luminance
from .constants import (
    BRIGHTNESS_THRESHOLD,
    NOISE_FLOOR,
    PEAK_THRESHOLD_FRACTION,
    THRESHOLD_STD_MULTIPLIER,
)
from .logging import get_logger


def luminance_difference(reference: np.ndarray, probe: np.ndarray) -> np.ndarray:
    """Per-pixel brightening of the probe frame over the reference.

    Args:
        reference: Frame with all screens off (RGBA or 2-D luminance)
        probe: Frame with one screen lit, same shape

    Returns:
        float32 map of max(0, lum(probe) - lum(reference))

    Raises:
        ValueError: If frames have different shapes
    """
    if reference.shape != probe.shape:
        error_msg = f"Frame shapes must match: {reference.shape} vs {probe.shape}"
        get_logger().error(
            error_msg,
            reference_shape=str(reference.shape),
            probe_shape=str(probe.shape),
        )
        raise ValueError(error_msg)

    delta = to_luminance(probe) - to_luminance(reference)
    return np.maximum(delta, 0.0).astype(np.float32)


def gaussian_kernel(radius: int) -> np.ndarray:
    """Build a normalized 1-D Gaussian kernel of ``2 * radius + 1`` taps.

    Weights are exp(-i^2 / (2 sigma^2)) with sigma = radius / 2.

    Raises:
        ValueError: If radius < 1
    """
    if radius < 1:
        raise ValueError(f"Blur radius must be >= 1, got {radius}")

    sigma = radius / 2
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    kernel = np.exp(-(offsets ** 2) / (2 * sigma * sigma))
    return kernel / kernel.sum()


def gaussian_blur(data: np.ndarray, radius: int) -> np.ndarray:
    """Separable Gaussian blur with edge replication.

    Args:
        data: 2-D map to smooth
        radius: Kernel radius in pixels

    Returns:
        Blurred float32 map of the same shape
    """
    kernel = gaussian_kernel(radius)
    blurred = cv2.sepFilter2D(
        data.astype(np.float64),
        cv2.CV_64F,
        kernel,
        kernel,
        borderType=cv2.BORDER_REPLICATE,
    )
    return blurred.astype(np.float32)


def adaptive_threshold(
    data: np.ndarray,
    minimum: float = BRIGHTNESS_THRESHOLD,
    noise_floor: float = NOISE_FLOOR,
    std_multiplier: float = THRESHOLD_STD_MULTIPLIER,
    peak_fraction: float = PEAK_THRESHOLD_FRACTION,
) -> float:
    """Derive a detection threshold from the difference statistics.

    Only pixels brighter than ``noise_floor`` are counted so the dark
    background does not dominate. The threshold is mean + k * std. When
    that reaches the peak (a saturated screen on a black background gives
    a near-constant lit set) no pixel could pass, so ``peak_fraction`` of
    the peak is used instead. ``minimum`` is always a lower bound.

    Args:
        data: Blurred difference map
        minimum: Lower bound, also the fallback when no pixel qualifies
        noise_floor: Pixels at or below this are excluded
        std_multiplier: k
        peak_fraction: Share of the peak used when mean + k * std >= peak

    Returns:
        Threshold value
    """
    values = data[data > noise_floor].astype(np.float64)
    if values.size == 0:
        return float(minimum)

    threshold = float(values.mean()) + std_multiplier * float(values.std())
    peak = float(values.max())
    if threshold >= peak:
        threshold = peak_fraction * peak
    return max(float(minimum), threshold)


def binary_mask(data: np.ndarray, threshold: float) -> np.ndarray:
    """255 where ``data`` exceeds the threshold, 0 elsewhere."""
    return np.where(data > threshold, 255, 0).astype(np.uint8)
