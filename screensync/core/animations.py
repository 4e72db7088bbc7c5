"""Animation renderers for the virtual canvas.

Each renderer is a pure function of canvas size and elapsed time (seconds)
returning a square RGBA uint8 array. The playback loop only reads pixels
from the result.
"""

from typing import Callable

import numpy as np

Renderer = Callable[[int, float], np.ndarray]


def hsl_to_rgb(h: np.ndarray, s: float, l: float) -> np.ndarray:
    """Vectorized HSL -> RGB.

    Args:
        h: Hue array in [0, 1)
        s: Saturation in [0, 1]
        l: Lightness in [0, 1]

    Returns:
        Array of shape h.shape + (3,) with uint8 channels
    """
    h = np.asarray(h, dtype=np.float64) % 1.0
    if s == 0:
        gray = np.full(h.shape + (3,), round(l * 255), dtype=np.uint8)
        return gray

    q = l * (1 + s) if l < 0.5 else l + s - l * s
    p = 2 * l - q

    def hue_to_channel(t: np.ndarray) -> np.ndarray:
        t = t % 1.0
        return np.select(
            [t < 1 / 6, t < 1 / 2, t < 2 / 3],
            [p + (q - p) * 6 * t, np.full_like(t, q), p + (q - p) * (2 / 3 - t) * 6],
            default=p,
        )

    rgb = np.stack(
        [hue_to_channel(h + 1 / 3), hue_to_channel(h), hue_to_channel(h - 1 / 3)],
        axis=-1,
    )
    return np.floor(rgb * 255 + 0.5).astype(np.uint8)


def _rgba(rgb: np.ndarray) -> np.ndarray:
    alpha = np.full(rgb.shape[:2] + (1,), 255, dtype=np.uint8)
    return np.concatenate([rgb.astype(np.uint8), alpha], axis=2)


def gradient(size: int, time: float) -> np.ndarray:
    """Horizontal hue gradient scrolling to the left."""
    offset = (time * 0.5) % 1
    hue = np.arange(size, dtype=np.float64) / max(1, size - 1) + offset
    row = hsl_to_rgb(hue, 1.0, 0.5)
    return _rgba(np.broadcast_to(row, (size, size, 3)))


def rainbow(size: int, time: float) -> np.ndarray:
    """Hue wheel rotating around the canvas center."""
    center = size / 2
    ys, xs = np.mgrid[0:size, 0:size]
    angle = np.arctan2(ys - center, xs - center)
    hue = angle / (2 * np.pi) + 0.5 + time * 0.3
    return _rgba(hsl_to_rgb(hue, 1.0, 0.5))


def radial(size: int, time: float) -> np.ndarray:
    """Colored rings expanding from the center."""
    center = size / 2
    ys, xs = np.mgrid[0:size, 0:size]
    dist = np.hypot(xs - center, ys - center)
    max_radius = np.hypot(center, center)
    num_rings = 5

    rgb = np.zeros((size, size, 3), dtype=np.float64)
    ring_width = max_radius / num_rings * 0.4
    for i in range(num_rings):
        phase = (time * 0.8 + i / num_rings) % 1
        radius = phase * max_radius
        hue = np.full(dist.shape, ((i * 72 + time * 50) % 360) / 360)
        color = hsl_to_rgb(hue, 1.0, 0.5).astype(np.float64)
        on_ring = (np.abs(dist - radius) <= ring_width)[:, :, None]
        rgb = np.where(on_ring, color * (1 - phase), rgb)
    return _rgba(np.floor(rgb + 0.5))


def pulse(size: int, time: float) -> np.ndarray:
    """Whole canvas breathing in a slowly shifting hue."""
    level = 0.5 + 0.5 * np.sin(time * 2 * np.pi)
    hue = np.array([(time * 0.1) % 1])
    color = hsl_to_rgb(hue, 1.0, 0.5)[0].astype(np.float64) * level
    rgb = np.broadcast_to(np.floor(color + 0.5), (size, size, 3))
    return _rgba(rgb)


def sweep(size: int, time: float) -> np.ndarray:
    """White vertical bar sweeping left to right over black."""
    position = ((time * 0.5) % 1) * size
    xs = np.arange(size, dtype=np.float64)
    falloff = np.clip(1 - np.abs(xs - position) / (size * 0.1), 0, 1)
    row = np.repeat(np.floor(falloff * 255 + 0.5)[:, None], 3, axis=1)
    return _rgba(np.broadcast_to(row, (size, size, 3)))


ANIMATIONS: dict[str, Renderer] = {
    "gradient": gradient,
    "rainbow": rainbow,
    "radial": radial,
    "pulse": pulse,
    "sweep": sweep,
}


def render_animation(name: str, size: int, time: float) -> np.ndarray:
    """Render one frame, unknown names fall back to ``gradient``."""
    renderer = ANIMATIONS.get(name, gradient)
    return renderer(size, time)
