"""Core detection pipeline and engines.

This package provides the core functionality for ScreenSync:
- Data models (PixelRect, NormalizedRect, ScreenDetection, ScanState, etc.)
- Camera/desktop capture and frame averaging
- Difference, blur, threshold, morphology and blob extraction
- Screen detection and unit square normalization
- Area color sampling and animations
- Scan and playback engines
- Logging with circular buffer
"""

from .constants import (
    ANIMATION_FPS,
    BRIGHTNESS_THRESHOLD,
    CANVAS_SIZE,
    CAPTURE_COUNT_DEFAULT,
    CAPTURE_RETRY_INTERVAL_MS,
    CAPTURE_RETRY_N,
    COLOR_CHANGE_THRESHOLD,
    LOG_BUFFER_SIZE,
    MAX_NORMALIZED_AREA,
    MIN_BLOB_SIZE,
    MIN_NORMALIZED_AREA,
)
from .model import (
    BLACK,
    WHITE,
    Blob,
    Color,
    DetectionConfig,
    DetectionDebug,
    NormalizedPoint,
    NormalizedRect,
    PixelRect,
    ScanOutcome,
    ScanState,
    ScreenDetection,
    ScreenRecord,
)

__all__ = [
    # Constants
    "CAPTURE_COUNT_DEFAULT",
    "CAPTURE_RETRY_N",
    "CAPTURE_RETRY_INTERVAL_MS",
    "BRIGHTNESS_THRESHOLD",
    "MIN_BLOB_SIZE",
    "MIN_NORMALIZED_AREA",
    "MAX_NORMALIZED_AREA",
    "ANIMATION_FPS",
    "COLOR_CHANGE_THRESHOLD",
    "CANVAS_SIZE",
    "LOG_BUFFER_SIZE",
    # Models
    "ScanState",
    "PixelRect",
    "NormalizedPoint",
    "NormalizedRect",
    "ScreenDetection",
    "ScanOutcome",
    "Color",
    "BLACK",
    "WHITE",
    "ScreenRecord",
    "Blob",
    "DetectionConfig",
    "DetectionDebug",
]
