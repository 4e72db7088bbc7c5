"""Frame capture and averaging.

Capture sources deliver RGBA frames as ``(height, width, 4)`` uint8
arrays. Two sources are provided: a camera read through OpenCV and a
desktop region grabbed with mss (for a phone camera mirrored to the
desktop or an IP camera viewer window).
"""

import sys
import threading
import time
from typing import Callable, Optional, Sequence, Union

import cv2
import mss
from mss.exception import ScreenShotError
import numpy as np

from .constants import (
    CAPTURE_RETRY_INTERVAL_MS,
    CAPTURE_RETRY_N,
    LUMA_WEIGHT_B,
    LUMA_WEIGHT_G,
    LUMA_WEIGHT_R,
)
from .logging import get_logger


class CaptureError(Exception):
    """Exception raised when a capture source is unavailable or keeps failing."""

    pass


def average_frames(frames: Sequence[np.ndarray]) -> np.ndarray:
    """Average frames channel by channel.

    Each output value is the arithmetic mean of the corresponding input
    values, rounded half-up and clamped to [0, 255].

    Args:
        frames: One or more frames of identical shape

    Returns:
        Averaged frame as uint8

    Raises:
        ValueError: If no frames are given or their shapes differ
    """
    if len(frames) == 0:
        raise ValueError("At least one frame is required")

    shape = frames[0].shape
    for frame in frames[1:]:
        if frame.shape != shape:
            raise ValueError(f"Frame shapes must match: {shape} vs {frame.shape}")

    total = np.zeros(shape, dtype=np.float64)
    for frame in frames:
        total += frame
    mean = np.floor(total / len(frames) + 0.5)
    return np.clip(mean, 0, 255).astype(np.uint8)


def to_luminance(frame: np.ndarray) -> np.ndarray:
    """Convert an RGBA/RGB frame to perceptual luminance.

    Uses ITU-R BT.601 weights: Y = 0.299*R + 0.587*G + 0.114*B

    Args:
        frame: Frame in RGB or RGBA channel order, or a 2-D luminance map

    Returns:
        Luminance as float32 array of shape (height, width)
    """
    if frame.ndim == 2:
        # Already single channel
        return frame.astype(np.float32)

    r = frame[:, :, 0].astype(np.float32)
    g = frame[:, :, 1].astype(np.float32)
    b = frame[:, :, 2].astype(np.float32)

    return LUMA_WEIGHT_R * r + LUMA_WEIGHT_G * g + LUMA_WEIGHT_B * b


class CaptureSource:
    """Base class for frame sources."""

    def start(self) -> None:
        """Acquire the device."""

    def stop(self) -> None:
        """Release the device."""

    def capture(self) -> np.ndarray:
        """Return one RGBA frame."""
        raise NotImplementedError

    def __enter__(self) -> "CaptureSource":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


def _read_with_retry(
    read: Callable[[], Optional[np.ndarray]],
    source_name: str,
    retry_count: int,
    retry_interval_ms: int,
) -> np.ndarray:
    """Call ``read`` until it yields a frame or the retries run out."""
    logger = get_logger()
    last_error: Optional[Exception] = None

    for attempt in range(retry_count):
        try:
            frame = read()
            if frame is not None:
                return frame
            last_error = CaptureError("empty frame")
        except (cv2.error, ScreenShotError) as e:
            last_error = e

        logger.warning(
            f"{source_name} read failed",
            attempt=attempt + 1,
            error=str(last_error),
        )
        if attempt < retry_count - 1:
            time.sleep(retry_interval_ms / 1000.0)

    raise CaptureError(
        f"{source_name} capture failed after {retry_count} attempts. Last error: {last_error}"
    )


class CameraCapture(CaptureSource):
    """Camera source using OpenCV ``VideoCapture``.

    Frames are converted from OpenCV's BGR order to RGBA.
    """

    def __init__(
        self,
        index: int = 0,
        width: int = 1280,
        height: int = 720,
        retry_count: int = CAPTURE_RETRY_N,
        retry_interval_ms: int = CAPTURE_RETRY_INTERVAL_MS,
    ) -> None:
        self._index = index
        self._requested_size = (width, height)
        self._retry_count = retry_count
        self._retry_interval_ms = retry_interval_ms
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def start(self) -> None:
        """Open the camera.

        Raises:
            CaptureError: If the camera cannot be opened
        """
        if self._cap is not None:
            return

        backend = cv2.CAP_DSHOW if sys.platform == "win32" else cv2.CAP_ANY
        cap = cv2.VideoCapture(self._index, backend)
        if not cap.isOpened():
            cap.release()
            raise CaptureError(f"Camera {self._index} is not available")

        width, height = self._requested_size
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        # Keep latency low so every capture is a fresh frame
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        self._cap = cap
        get_logger().info(
            "Camera opened",
            index=self._index,
            width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )

    def stop(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def _read(self) -> Optional[np.ndarray]:
        ok, frame = self._cap.read()  # type: ignore[union-attr]
        if not ok or frame is None:
            return None
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGBA)

    def capture(self) -> np.ndarray:
        """Read one frame.

        Raises:
            CaptureError: If the camera is not open or reads keep failing
        """
        if self._cap is None:
            raise CaptureError("Camera not started. Call start() first.")
        return _read_with_retry(
            self._read, f"Camera {self._index}", self._retry_count, self._retry_interval_ms
        )


# mss keeps per-thread GDI handles on Windows, so each thread needs its own instance
_thread_local = threading.local()


def _get_mss() -> "mss.base.MSSBase":
    """Get or create a thread-local mss instance."""
    if getattr(_thread_local, "mss_instance", None) is None:
        _thread_local.mss_instance = mss.mss()
    return _thread_local.mss_instance


def _reset_mss() -> None:
    """Drop the thread-local mss instance (after an error)."""
    instance = getattr(_thread_local, "mss_instance", None)
    if instance is not None:
        instance.close()
        _thread_local.mss_instance = None


class DesktopCapture(CaptureSource):
    """Desktop region source using mss.

    Args:
        region: Monitor index (0 = all monitors) or an explicit
            ``{"left", "top", "width", "height"}`` region
    """

    def __init__(
        self,
        region: Union[int, dict[str, int]] = 1,
        retry_count: int = CAPTURE_RETRY_N,
        retry_interval_ms: int = CAPTURE_RETRY_INTERVAL_MS,
    ) -> None:
        self._region = region
        self._retry_count = retry_count
        self._retry_interval_ms = retry_interval_ms

    def _monitor(self) -> dict[str, int]:
        if isinstance(self._region, dict):
            return self._region
        monitors = _get_mss().monitors
        if not 0 <= self._region < len(monitors):
            raise CaptureError(
                f"Monitor {self._region} not found ({len(monitors) - 1} available)"
            )
        return monitors[self._region]

    def _read(self) -> Optional[np.ndarray]:
        try:
            shot = _get_mss().grab(self._monitor())
        except ScreenShotError:
            _reset_mss()
            raise
        bgra = np.array(shot)
        # mss returns BGRA
        return np.ascontiguousarray(bgra[:, :, [2, 1, 0, 3]])

    def stop(self) -> None:
        _reset_mss()

    def capture(self) -> np.ndarray:
        """Grab one frame of the configured region.

        Raises:
            CaptureError: If grabbing keeps failing
        """
        return _read_with_retry(
            self._read, "Desktop", self._retry_count, self._retry_interval_ms
        )


def capture_averaged(
    source: CaptureSource,
    count: int,
    interval_sec: float,
    wait: Callable[[float], object] = time.sleep,
) -> np.ndarray:
    """Capture ``count`` frames ``interval_sec`` apart and average them.

    Args:
        source: Frame source
        count: Number of frames (at least 1)
        interval_sec: Spacing between consecutive frames
        wait: Wait function, lets the scan engine use an interruptible wait

    Returns:
        Averaged frame
    """
    if count < 1:
        raise ValueError(f"Capture count must be >= 1, got {count}")

    frames: list[np.ndarray] = []
    for i in range(count):
        frames.append(source.capture())
        if i < count - 1 and interval_sec > 0:
            wait(interval_sec)
    return average_frames(frames)


def save_frame_preview(image: np.ndarray, filepath: str) -> None:
    """Save a frame, mask or difference map as PNG for debugging.

    RGBA frames are written as-is; 2-D float maps are scaled to 0-255.

    Args:
        image: RGBA frame or 2-D map
        filepath: Output file path (should end in .png)
    """
    from PIL import Image

    if image.ndim == 3:
        img = Image.fromarray(image.astype(np.uint8))
    else:
        data = image.astype(np.float32)
        peak = float(data.max()) if data.size else 0.0
        if image.dtype != np.uint8 and peak > 0:
            data = data * (255.0 / peak)
        img = Image.fromarray(np.clip(data, 0, 255).astype(np.uint8))

    img.save(filepath)
