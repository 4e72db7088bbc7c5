"""Core data models for ScreenSync.

Defines the coordinate types, detection results, screen records,
scan state machine enum and the immutable detection configuration.
"""

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any, Optional, Union

import numpy as np

from .constants import (
    ANIMATION_FPS,
    BLUR_RADIUS,
    BRIGHTNESS_THRESHOLD,
    CANVAS_SIZE,
    CAPTURE_COUNT_DEFAULT,
    COLOR_CHANGE_THRESHOLD,
    COOLDOWN_SEC,
    EDGE_PADDING_PX,
    EDGE_THRESHOLD,
    FLASH_SEC,
    MAX_NORMALIZED_AREA,
    MIN_BLOB_SIZE,
    MIN_NORMALIZED_AREA,
    MORPHOLOGY_KERNEL,
    NOISE_FLOOR,
    PEAK_THRESHOLD_FRACTION,
    PROBE_INTERVAL_SEC,
    REFERENCE_INTERVAL_SEC,
    SETTLE_SEC,
    THRESHOLD_STD_MULTIPLIER,
)


class ScanState(Enum):
    """Scan session states."""

    Idle = auto()
    """No scan running"""

    ReferenceCapture = auto()
    """All screens off, capturing the baseline frame"""

    Flash = auto()
    """One screen switched to white"""

    Settle = auto()
    """Waiting for the lit display to stabilize"""

    Capture = auto()
    """Capturing the probe frames"""

    Detect = auto()
    """Running the detection pipeline"""

    Report = auto()
    """Handing the outcome to the result sink"""

    Off = auto()
    """Switching the probed screen off"""

    Cooldown = auto()
    """Pause before the next screen"""


@dataclass(frozen=True)
class PixelRect:
    """A rectangle in camera pixel space.

    Attributes:
        x: Left edge
        y: Top edge
        width: Width in pixels
        height: Height in pixels
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        """Right edge X coordinate."""
        return self.x + self.width

    @property
    def bottom(self) -> float:
        """Bottom edge Y coordinate."""
        return self.y + self.height

    @property
    def center(self) -> tuple[float, float]:
        """Center point (cx, cy)."""
        return (self.x + self.width / 2, self.y + self.height / 2)


@dataclass(frozen=True)
class NormalizedPoint:
    """A point in the aspect-corrected unit square."""

    x: float
    y: float

    def as_tuple(self) -> tuple[float, float]:
        """Return as (x, y) tuple."""
        return (self.x, self.y)


@dataclass(frozen=True)
class NormalizedRect:
    """A rectangle in the aspect-corrected unit square.

    The longer camera axis maps to [0, 1]; the shorter one is centered
    with symmetric padding so physical proportions are preserved.
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> NormalizedPoint:
        """Center of the rectangle."""
        return NormalizedPoint(self.x + self.width / 2, self.y + self.height / 2)


@dataclass(frozen=True)
class ScreenDetection:
    """Where one screen was found in the camera frame.

    Attributes:
        center: Difference-weighted centroid (normalized)
        area: Refined, clamped bounding box (normalized)
        pixel_count: Size of the blob the detection came from
    """

    center: NormalizedPoint
    area: Optional[NormalizedRect]
    pixel_count: int


@dataclass(frozen=True)
class ScanOutcome:
    """Per-screen result of a scan. ``detection`` is None if not detected."""

    screen_id: str
    detection: Optional[ScreenDetection]

    @property
    def detected(self) -> bool:
        return self.detection is not None


_NAMED_COLORS: dict[str, tuple[int, int, int]] = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "red": (255, 0, 0),
    "green": (0, 255, 0),
    "blue": (0, 0, 255),
    "yellow": (255, 255, 0),
    "cyan": (0, 255, 255),
    "magenta": (255, 0, 255),
}


@dataclass(frozen=True)
class Color:
    """An RGB color, each channel 0-255."""

    r: int
    g: int
    b: int

    def as_tuple(self) -> tuple[int, int, int]:
        """Return as (r, g, b) tuple."""
        return (self.r, self.g, self.b)

    def to_hex(self) -> str:
        """Format as ``#rrggbb``."""
        return "#{:02x}{:02x}{:02x}".format(*self.as_tuple())

    @classmethod
    def parse(cls, value: Union["Color", str, tuple, list]) -> "Color":
        """Build a color from a Color, RGB triple, hex string or color name.

        Raises:
            ValueError: If the value cannot be interpreted as a color
        """
        if isinstance(value, Color):
            return value

        if isinstance(value, (tuple, list)):
            if len(value) != 3:
                raise ValueError(f"RGB triple expected, got {value!r}")
            r, g, b = (int(round(float(c))) for c in value)
        elif isinstance(value, str):
            text = value.strip().lower()
            if text in _NAMED_COLORS:
                r, g, b = _NAMED_COLORS[text]
            elif text.startswith("#") and len(text) in (4, 7):
                digits = text[1:]
                if len(digits) == 3:
                    digits = "".join(ch * 2 for ch in digits)
                try:
                    r, g, b = (int(digits[i:i + 2], 16) for i in (0, 2, 4))
                except ValueError as e:
                    raise ValueError(f"Invalid hex color: {value!r}") from e
            else:
                raise ValueError(f"Unknown color: {value!r}")
        else:
            raise ValueError(f"Unsupported color value: {value!r}")

        for channel in (r, g, b):
            if not 0 <= channel <= 255:
                raise ValueError(f"Color channel out of range: {value!r}")
        return cls(r, g, b)


BLACK = Color(0, 0, 0)
WHITE = Color(255, 255, 255)


@dataclass
class ScreenRecord:
    """Registry entry for one connected screen.

    Attributes:
        screen_id: Stable identifier of the screen
        name: Display name
        position: Last detected center, None until scanned
        area: Last detected area, None if the scan found no area
        color: Color the screen currently shows
    """

    screen_id: str
    name: str
    position: Optional[NormalizedPoint] = None
    area: Optional[NormalizedRect] = None
    color: Optional[Color] = None

    @property
    def is_detected(self) -> bool:
        """Whether the screen has a position from a scan."""
        return self.position is not None

    def detection(self) -> Optional[ScreenDetection]:
        """Rebuild the detection value used by the sampler."""
        if self.position is None:
            return None
        return ScreenDetection(center=self.position, area=self.area, pixel_count=0)


@dataclass
class Blob:
    """A 4-connected set of lit mask pixels.

    Attributes:
        xs: Column index of every pixel
        ys: Row index of every pixel
    """

    xs: np.ndarray
    ys: np.ndarray

    @property
    def size(self) -> int:
        """Pixel count."""
        return int(self.xs.size)

    def bounds(self) -> tuple[int, int, int, int]:
        """Extreme coordinates as (min_x, min_y, max_x, max_y)."""
        return (
            int(self.xs.min()),
            int(self.ys.min()),
            int(self.xs.max()),
            int(self.ys.max()),
        )


@dataclass(frozen=True)
class DetectionConfig:
    """Immutable set of tunables passed to every component.

    Attributes:
        capture_count: Frames averaged per capture
        settle_sec: Wait before the reference capture
        reference_interval_sec: Spacing of reference frames
        probe_interval_sec: Spacing of probe frames
        flash_sec: Flash hold time before probing
        cooldown_sec: Pause after a screen is switched off
        brightness_threshold: Minimum adaptive threshold
        min_blob_size: Smallest accepted blob in pixels
        blur_radius: Gaussian blur radius
        morphology_kernel: Odd closing window size
        min_normalized_area: Lower clamp of area width/height
        max_normalized_area: Upper clamp of area width/height
        animation_fps: Playback frame rate
        color_change_threshold: Resend threshold for playback colors
        canvas_size: Virtual canvas side length
        noise_floor: Threshold statistics ignore differences at or below this
        threshold_std_multiplier: k in mean + k * std
        peak_fraction: Share of the blurred peak used when mean + k * std reaches it
        edge_threshold: Edge refinement difference threshold
        edge_padding: Edge refinement search margin
    """

    capture_count: int = CAPTURE_COUNT_DEFAULT
    settle_sec: float = SETTLE_SEC
    reference_interval_sec: float = REFERENCE_INTERVAL_SEC
    probe_interval_sec: float = PROBE_INTERVAL_SEC
    flash_sec: float = FLASH_SEC
    cooldown_sec: float = COOLDOWN_SEC
    brightness_threshold: float = BRIGHTNESS_THRESHOLD
    min_blob_size: int = MIN_BLOB_SIZE
    blur_radius: int = BLUR_RADIUS
    morphology_kernel: int = MORPHOLOGY_KERNEL
    min_normalized_area: float = MIN_NORMALIZED_AREA
    max_normalized_area: float = MAX_NORMALIZED_AREA
    animation_fps: float = ANIMATION_FPS
    color_change_threshold: int = COLOR_CHANGE_THRESHOLD
    canvas_size: int = CANVAS_SIZE
    noise_floor: float = NOISE_FLOOR
    threshold_std_multiplier: float = THRESHOLD_STD_MULTIPLIER
    peak_fraction: float = PEAK_THRESHOLD_FRACTION
    edge_threshold: float = EDGE_THRESHOLD
    edge_padding: int = EDGE_PADDING_PX

    def replace(self, **changes: Any) -> "DetectionConfig":
        """Return a copy with the given fields changed."""
        return replace(self, **changes)

    def without_delays(self) -> "DetectionConfig":
        """Copy with every scan wait set to zero (offline runs, tests)."""
        return self.replace(
            settle_sec=0.0,
            reference_interval_sec=0.0,
            probe_interval_sec=0.0,
            flash_sec=0.0,
            cooldown_sec=0.0,
        )


@dataclass
class DetectionDebug:
    """Intermediate products of one detection run.

    Attributes:
        difference: Raw luminance difference map
        blurred: Blurred difference map
        threshold: Adaptive threshold that produced the mask
        mask: Closed binary mask
        blob: Largest blob, None if the mask was empty
        detection: Final result, None if not detected
    """

    difference: np.ndarray
    blurred: np.ndarray
    threshold: float
    mask: np.ndarray
    blob: Optional[Blob] = None
    detection: Optional[ScreenDetection] = field(default=None)
