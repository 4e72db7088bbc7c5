"""Default tunables for scanning, detection and playback.

Every value here is only a default: components receive an explicit
``DetectionConfig`` built from these constants.
"""

from typing import Final

# Capture settings
CAPTURE_COUNT_DEFAULT: Final[int] = 3
"""Frames averaged per reference/probe capture"""

REFERENCE_INTERVAL_SEC: Final[float] = 0.05
"""Spacing between the averaged reference frames"""

PROBE_INTERVAL_SEC: Final[float] = 0.03
"""Spacing between the averaged probe frames"""

CAPTURE_RETRY_N: Final[int] = 3
"""Read attempts before a capture source gives up"""

CAPTURE_RETRY_INTERVAL_MS: Final[int] = 100
"""Wait between capture read attempts"""

# Scan timing
SETTLE_SEC: Final[float] = 0.6
"""Wait after all screens go dark, before the reference capture"""

FLASH_SEC: Final[float] = 0.4
"""Hold time of the white flash before the probe capture"""

COOLDOWN_SEC: Final[float] = 0.25
"""Pause after a screen is switched off again"""

# Detection
BRIGHTNESS_THRESHOLD: Final[float] = 40.0
"""Lower bound of the adaptive threshold (0-255 luminance)"""

NOISE_FLOOR: Final[float] = 5.0
"""Differences at or below this are left out of the threshold statistics"""

THRESHOLD_STD_MULTIPLIER: Final[float] = 1.5
"""Adaptive threshold = mean + k * std"""

PEAK_THRESHOLD_FRACTION: Final[float] = 0.5
"""Threshold used as a share of the blurred peak when mean + k * std reaches the peak"""

MIN_BLOB_SIZE: Final[int] = 30
"""Smallest blob (pixels) accepted as a screen"""

BLUR_RADIUS: Final[int] = 2
"""Gaussian blur radius in pixels (sigma = radius / 2)"""

MORPHOLOGY_KERNEL: Final[int] = 3
"""Odd window size of the closing operation"""

EDGE_THRESHOLD: Final[float] = 20.0
"""Difference above which a pixel extends the refined bounding box"""

EDGE_PADDING_PX: Final[int] = 5
"""Search margin around the blob for edge refinement"""

MIN_NORMALIZED_AREA: Final[float] = 0.02
"""Smallest normalized width/height of a detected area"""

MAX_NORMALIZED_AREA: Final[float] = 0.65
"""Largest normalized width/height of a detected area"""

# Playback
ANIMATION_FPS: Final[float] = 30.0
"""Target frame rate of the playback loop"""

COLOR_CHANGE_THRESHOLD: Final[int] = 3
"""Manhattan RGB distance a color must exceed to be re-sent"""

CANVAS_SIZE: Final[int] = 200
"""Side length of the virtual animation canvas"""

PLAYBACK_TICK_SEC: Final[float] = 0.005
"""Polling interval of the playback loop clock"""

BANG_STEPS: Final[int] = 18
BANG_HOLD_SEC: Final[float] = 0.12
BANG_DURATION_SEC: Final[float] = 0.9
BANG_DECAY_EXPONENT: Final[float] = 1.6

# Logging
LOG_BUFFER_SIZE: Final[int] = 200
"""Maximum entries kept in the log ring buffer"""

# Luminance conversion weights (ITU-R BT.601)
LUMA_WEIGHT_R: Final[float] = 0.299
LUMA_WEIGHT_G: Final[float] = 0.587
LUMA_WEIGHT_B: Final[float] = 0.114
