"""Per-screen color sampling from the animation canvas.

Colors are computed so the same canvas and area always give
bit-identical output; half-up rounding is used everywhere.
"""

import math
from typing import Optional

import numpy as np

from .constants import COLOR_CHANGE_THRESHOLD, MAX_NORMALIZED_AREA, MIN_NORMALIZED_AREA
from .geometry import clamp_rect
from .model import Color, NormalizedPoint, NormalizedRect, ScreenDetection


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def sample_area_color(
    canvas: np.ndarray,
    area: NormalizedRect,
    min_area: float = MIN_NORMALIZED_AREA,
    max_area: float = MAX_NORMALIZED_AREA,
) -> Color:
    """Weighted average color of a screen's area on the canvas.

    Each pixel is weighted by exp(-d^2), d being its distance from the
    area center measured in half-widths/half-heights (d = 1 at the edge
    midpoints). Pixels falling outside the canvas are skipped.

    Args:
        canvas: Square RGBA canvas (size, size, 4)
        area: Screen area in unit square coordinates

    Returns:
        Weighted mean RGB
    """
    size = canvas.shape[0]
    rect = clamp_rect(area, min_area, max_area)

    area_x = int(math.floor(rect.x * size))
    area_y = int(math.floor(rect.y * size))
    area_w = max(1, int(math.floor(rect.width * size)))
    area_h = max(1, int(math.floor(rect.height * size)))

    dx = (np.arange(area_w, dtype=np.float64) - area_w / 2) / (area_w / 2)
    dy = (np.arange(area_h, dtype=np.float64) - area_h / 2) / (area_h / 2)
    weights = np.exp(-(dy[:, None] ** 2 + dx[None, :] ** 2))

    # Crop the window and its weights to the canvas
    x0 = max(0, area_x)
    y0 = max(0, area_y)
    x1 = min(size, area_x + area_w)
    y1 = min(size, area_y + area_h)
    if x0 >= x1 or y0 >= y1:
        return Color(0, 0, 0)

    pixels = canvas[y0:y1, x0:x1, :3].astype(np.float64)
    weights = weights[y0 - area_y:y1 - area_y, x0 - area_x:x1 - area_x]

    total_weight = float(weights.sum())
    channels = (pixels * weights[:, :, None]).sum(axis=(0, 1)) / total_weight
    r, g, b = (_round_half_up(float(c)) for c in channels)
    return Color(r, g, b)


def sample_point_color(canvas: np.ndarray, point: NormalizedPoint) -> Color:
    """Color of the canvas pixel nearest to a normalized point."""
    size = canvas.shape[0]
    px = min(size - 1, max(0, int(math.floor(point.x * size))))
    py = min(size - 1, max(0, int(math.floor(point.y * size))))
    r, g, b = (int(c) for c in canvas[py, px, :3])
    return Color(r, g, b)


def sample_screen_color(
    canvas: np.ndarray,
    detection: ScreenDetection,
    min_area: float = MIN_NORMALIZED_AREA,
    max_area: float = MAX_NORMALIZED_AREA,
) -> Color:
    """Sample by area when the detection has one, else at its center."""
    if detection.area is not None:
        return sample_area_color(canvas, detection.area, min_area, max_area)
    return sample_point_color(canvas, detection.center)


def apply_brightness(color: Color, brightness: float) -> Color:
    """Scale every channel by ``brightness`` (0-1)."""
    return Color(
        _round_half_up(color.r * brightness),
        _round_half_up(color.g * brightness),
        _round_half_up(color.b * brightness),
    )


def color_diff(a: Color, b: Color) -> int:
    """Manhattan distance between two colors."""
    return abs(a.r - b.r) + abs(a.g - b.g) + abs(a.b - b.b)


class ColorChangeFilter:
    """Suppresses re-sending colors that barely changed.

    A color passes if the screen has no previous color or it differs
    from the last passed color by more than ``threshold``.
    """

    def __init__(self, threshold: int = COLOR_CHANGE_THRESHOLD) -> None:
        self._threshold = threshold
        self._last: dict[str, Color] = {}

    @property
    def threshold(self) -> int:
        return self._threshold

    def last_color(self, screen_id: str) -> Optional[Color]:
        return self._last.get(screen_id)

    def update(self, screen_id: str, color: Color) -> bool:
        """Record ``color`` if it should be sent. Returns True if so."""
        last = self._last.get(screen_id)
        if last is not None and color_diff(last, color) <= self._threshold:
            return False
        self._last[screen_id] = color
        return True

    def reset(self) -> None:
        """Forget all previous colors."""
        self._last.clear()
