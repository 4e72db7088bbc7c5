"""Conversion between camera pixel space and the unit square.

The unit square is aspect-ratio corrected: the longer image axis spans
[0, 1] and the shorter axis is scaled by ``short / long`` and centered
with equal padding on both sides. A screen therefore keeps its physical
proportions regardless of camera orientation, and the animation canvas
(always square) can be sampled with the same coordinates.
"""

from .constants import MAX_NORMALIZED_AREA, MIN_NORMALIZED_AREA
from .model import NormalizedPoint, NormalizedRect, PixelRect


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp a value to the given range."""
    return max(min_val, min(max_val, value))


def _axis_scale(width: float, height: float) -> tuple[bool, float, float]:
    """Return (landscape, scale, padding) for a frame size."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Frame size must be positive, got {width}x{height}")
    landscape = width >= height
    scale = height / width if landscape else width / height
    return landscape, scale, (1 - scale) / 2


def rect_to_unit_square(rect: PixelRect, width: float, height: float) -> NormalizedRect:
    """Normalize a pixel rectangle into the unit square.

    Args:
        rect: Rectangle in pixel coordinates
        width: Frame width in pixels
        height: Frame height in pixels

    Returns:
        Rectangle in unit square coordinates (not clamped)
    """
    landscape, scale, pad = _axis_scale(width, height)
    if landscape:
        return NormalizedRect(
            x=rect.x / width,
            y=(rect.y / height) * scale + pad,
            width=rect.width / width,
            height=(rect.height / height) * scale,
        )
    return NormalizedRect(
        x=(rect.x / width) * scale + pad,
        y=rect.y / height,
        width=(rect.width / width) * scale,
        height=rect.height / height,
    )


def rect_from_unit_square(rect: NormalizedRect, width: float, height: float) -> PixelRect:
    """Inverse of ``rect_to_unit_square``."""
    landscape, scale, pad = _axis_scale(width, height)
    if landscape:
        return PixelRect(
            x=rect.x * width,
            y=((rect.y - pad) / scale) * height,
            width=rect.width * width,
            height=(rect.height / scale) * height,
        )
    return PixelRect(
        x=((rect.x - pad) / scale) * width,
        y=rect.y * height,
        width=(rect.width / scale) * width,
        height=rect.height * height,
    )


def point_to_unit_square(x: float, y: float, width: float, height: float) -> NormalizedPoint:
    """Normalize a pixel coordinate into the unit square."""
    landscape, scale, pad = _axis_scale(width, height)
    if landscape:
        return NormalizedPoint(x=x / width, y=(y / height) * scale + pad)
    return NormalizedPoint(x=(x / width) * scale + pad, y=y / height)


def point_from_unit_square(point: NormalizedPoint, width: float, height: float) -> tuple[float, float]:
    """Inverse of ``point_to_unit_square``, returns pixel (x, y)."""
    landscape, scale, pad = _axis_scale(width, height)
    if landscape:
        return (point.x * width, ((point.y - pad) / scale) * height)
    return (((point.x - pad) / scale) * width, point.y * height)


def clamp_point(point: NormalizedPoint) -> NormalizedPoint:
    """Clamp both coordinates to [0, 1]."""
    return NormalizedPoint(x=clamp(point.x, 0.0, 1.0), y=clamp(point.y, 0.0, 1.0))


def clamp_rect(
    rect: NormalizedRect,
    min_area: float = MIN_NORMALIZED_AREA,
    max_area: float = MAX_NORMALIZED_AREA,
) -> NormalizedRect:
    """Clamp a normalized rectangle.

    x and y are clamped to [0, 1]; width and height to [min_area, max_area].
    This rejects single-pixel noise and near whole-frame detections.
    """
    return NormalizedRect(
        x=clamp(rect.x, 0.0, 1.0),
        y=clamp(rect.y, 0.0, 1.0),
        width=clamp(rect.width, min_area, max_area),
        height=clamp(rect.height, min_area, max_area),
    )
