"""Scan and playback engines.

Implements:
- Scan state machine (Idle/ReferenceCapture/Flash/Settle/Capture/
  Detect/Report/Off/Cooldown) flashing one screen at a time
- Fixed-rate, frame-dropping animation playback
- Flash-with-decay "bang" broadcast

Each loop runs in a QObject worker moved to its own QThread. Waits use
``threading.Event.wait`` so a stop request wakes them immediately.
"""

import math
import threading
import time
from typing import Callable, Optional, Sequence

from PySide6.QtCore import QObject, QThread, Qt, Signal

from .animations import render_animation
from .capture import CaptureError, CaptureSource, capture_averaged
from .constants import (
    BANG_DECAY_EXPONENT,
    BANG_DURATION_SEC,
    BANG_HOLD_SEC,
    BANG_STEPS,
    PLAYBACK_TICK_SEC,
)
from .detection import ScreenDetector
from .logging import Logger, get_logger
from .model import BLACK, WHITE, Color, DetectionConfig, ScanOutcome, ScanState, ScreenDetection
from .relay import IlluminationControl, ScanResultSink
from .sampler import ColorChangeFilter, apply_brightness, sample_screen_color
from .validation import validate_config


class ScanWorker(QObject):
    """Worker that runs one scan session in a separate thread.

    Exactly one screen is lit at a time. A screen that is not detected
    is reported as such and the scan moves on.
    """

    state_changed = Signal(ScanState)
    progress_updated = Signal(int, int)  # current (1-based), total
    screen_scanned = Signal(object)  # ScanOutcome
    scan_cancelled = Signal()
    scan_finished = Signal(list)  # list[ScanOutcome]
    error_occurred = Signal(str)
    capture_failed = Signal(str)

    def __init__(
        self,
        screen_ids: Sequence[str],
        capture: CaptureSource,
        illumination: IlluminationControl,
        sink: ScanResultSink,
        config: Optional[DetectionConfig] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        """Initialize the worker.

        Args:
            screen_ids: Screens to probe, in probe order
            capture: Camera frame source (already started)
            illumination: Controls what each screen shows
            sink: Receives every outcome
            config: Detection and timing tunables
            logger: Logger instance (uses global if None)
        """
        super().__init__()

        self._screen_ids = list(screen_ids)
        self._capture = capture
        self._illumination = illumination
        self._sink = sink
        self._config = config or DetectionConfig()
        self._detector = ScreenDetector(self._config)
        self._logger = logger or get_logger()

        self._state = ScanState.Idle
        self._outcomes: list[ScanOutcome] = []
        self._completed = False
        self._stop_event = threading.Event()

    @property
    def state(self) -> ScanState:
        """Current state."""
        return self._state

    @property
    def outcomes(self) -> list[ScanOutcome]:
        """Outcomes reported so far."""
        return list(self._outcomes)

    def _set_state(self, new_state: ScanState) -> None:
        """Update state and emit signal."""
        old_state = self._state
        self._state = new_state
        self._logger.state_change(old_state.name, new_state.name)
        self.state_changed.emit(new_state)

    def _wait(self, seconds: float) -> None:
        """Interruptible wait; returns early on stop."""
        if seconds > 0:
            self._stop_event.wait(seconds)

    def request_stop(self) -> None:
        """Request stop (thread-safe). Honoured between screens."""
        self._stop_event.set()

    def run(self) -> None:
        """Run the scan.

        This is called in the worker thread.
        """
        try:
            self._run_scan()
        except CaptureError as e:
            self._logger.error(f"Capture failed: {e}")
            self.capture_failed.emit(str(e))
        except ValueError as e:
            self._logger.error(f"Scan aborted: {e}")
            self.error_occurred.emit(str(e))
        except Exception as e:
            self._logger.exception("Scan error", e)
            self.error_occurred.emit(str(e))
        finally:
            if not self._completed:
                self._switch_all_off()
            self._set_state(ScanState.Idle)
            self._logger.clear_context()
            self.scan_finished.emit(list(self._outcomes))

    def _switch_all_off(self) -> None:
        """Best-effort blackout after an aborted scan."""
        try:
            self._illumination.all_off()
        except Exception as e:
            self._logger.exception("Could not switch screens off", e)
            self.error_occurred.emit(str(e))

    def _run_scan(self) -> None:
        """Main scan loop implementation."""
        cfg = self._config
        n = len(self._screen_ids)
        if n == 0:
            raise ValueError("No screens to scan")

        self._logger.info(f"Starting scan of {n} screens")
        self._sink.clear_positions()

        # Baseline with every screen dark
        self._set_state(ScanState.ReferenceCapture)
        self._illumination.all_off()
        self._wait(cfg.settle_sec)
        if self._stop_event.is_set():
            self._cancel()
            return

        reference = capture_averaged(
            self._capture, cfg.capture_count, cfg.reference_interval_sec, self._wait
        )
        self._logger.info(
            "Reference captured",
            frames=cfg.capture_count,
            size=f"{reference.shape[1]}x{reference.shape[0]}",
        )

        for idx, screen_id in enumerate(self._screen_ids):
            if self._stop_event.is_set():
                self._cancel()
                return

            self._logger.set_progress(idx + 1, n)
            self.progress_updated.emit(idx + 1, n)

            detection = self._probe(screen_id, reference)

            if self._stop_event.is_set():
                # Stop arrived mid-probe: the result is not trusted
                self._report(screen_id, None)
                self._cancel()
                return

            self._report(screen_id, detection)

            self._set_state(ScanState.Off)
            self._illumination.set_color(screen_id, BLACK)

            self._set_state(ScanState.Cooldown)
            self._wait(cfg.cooldown_sec)

        self._completed = True
        found = sum(1 for o in self._outcomes if o.detected)
        self._logger.info(f"Scan complete: {found}/{n} screens detected")

    def _probe(self, screen_id: str, reference) -> Optional[ScreenDetection]:
        """Flash one screen, capture it and run detection."""
        cfg = self._config

        self._set_state(ScanState.Flash)
        self._illumination.set_color(screen_id, WHITE)

        self._set_state(ScanState.Settle)
        self._wait(cfg.flash_sec)

        self._set_state(ScanState.Capture)
        probe = capture_averaged(
            self._capture, cfg.capture_count, cfg.probe_interval_sec, self._wait
        )

        self._set_state(ScanState.Detect)
        return self._detector.detect(reference, probe)

    def _report(self, screen_id: str, detection: Optional[ScreenDetection]) -> None:
        self._set_state(ScanState.Report)
        outcome = ScanOutcome(screen_id=screen_id, detection=detection)
        self._sink.report(screen_id, detection)
        self._outcomes.append(outcome)

        if detection is None:
            self._logger.detection_result(screen_id, None)
        else:
            size = (detection.area.width, detection.area.height) if detection.area else None
            self._logger.detection_result(
                screen_id, detection.center.as_tuple(), size, detection.pixel_count
            )
        self.screen_scanned.emit(outcome)

    def _cancel(self) -> None:
        self._logger.info("Scan stopped by user")
        self._illumination.all_off()
        self._completed = True
        self.scan_cancelled.emit()


class FrameThrottle:
    """Admits at most one frame per ``1 / fps`` seconds.

    Ticks arriving early are dropped, never queued.
    """

    def __init__(self, fps: float) -> None:
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self._interval = 1.0 / fps
        self._last: Optional[float] = None

    @property
    def interval(self) -> float:
        return self._interval

    def ready(self, now: float) -> bool:
        """True if a frame may be produced at time ``now``."""
        if self._last is not None and now - self._last < self._interval:
            return False
        self._last = now
        return True

    def reset(self) -> None:
        self._last = None


class PlaybackMapper:
    """Turns a rendered canvas into the per-screen colors worth sending."""

    def __init__(
        self,
        screens: Sequence[tuple[str, ScreenDetection]],
        config: Optional[DetectionConfig] = None,
        brightness: float = 1.0,
    ) -> None:
        self._screens = list(screens)
        self._config = config or DetectionConfig()
        self._filter = ColorChangeFilter(self._config.color_change_threshold)
        self.brightness = brightness

    @property
    def screen_ids(self) -> list[str]:
        return [screen_id for screen_id, _ in self._screens]

    @property
    def brightness(self) -> float:
        return self._brightness

    @brightness.setter
    def brightness(self, value: float) -> None:
        self._brightness = max(0.0, min(1.0, value))

    def frame_colors(self, canvas) -> list[tuple[str, Color]]:
        """Sample every screen; keep only colors that changed enough."""
        cfg = self._config
        changed: list[tuple[str, Color]] = []
        for screen_id, detection in self._screens:
            color = sample_screen_color(
                canvas, detection, cfg.min_normalized_area, cfg.max_normalized_area
            )
            color = apply_brightness(color, self._brightness)
            if self._filter.update(screen_id, color):
                changed.append((screen_id, color))
        return changed

    def reset(self) -> None:
        self._filter.reset()


class PlaybackWorker(QObject):
    """Fixed-rate animation loop.

    Renders the animation at ``elapsed * speed``, samples every mapped
    screen and sends the colors that changed. With ``duration`` set the
    loop renders a last frame at the duration and ends (one-shot).
    """

    frame_rendered = Signal(float, int)  # animation time, colors sent
    playback_finished = Signal()
    error_occurred = Signal(str)

    def __init__(
        self,
        animation: str,
        screens: Sequence[tuple[str, ScreenDetection]],
        illumination: IlluminationControl,
        config: Optional[DetectionConfig] = None,
        speed: float = 1.0,
        brightness: float = 1.0,
        duration: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__()

        self._animation = animation
        self._illumination = illumination
        self._config = config or DetectionConfig()
        self._mapper = PlaybackMapper(screens, self._config, brightness)
        self._throttle = FrameThrottle(self._config.animation_fps)
        self._speed = speed
        self._duration = duration
        self._clock = clock
        self._logger = logger or get_logger()
        self._frames = 0
        self._stop_event = threading.Event()

    @property
    def frames(self) -> int:
        """Frames rendered so far."""
        return self._frames

    def set_speed(self, speed: float) -> None:
        self._speed = speed

    def set_brightness(self, brightness: float) -> None:
        self._mapper.brightness = brightness

    def request_stop(self) -> None:
        """Request stop (thread-safe)."""
        self._stop_event.set()

    def process_frame(self, animation_time: float) -> list[tuple[str, Color]]:
        """Render, sample and send one frame."""
        canvas = render_animation(self._animation, self._config.canvas_size, animation_time)
        colors = self._mapper.frame_colors(canvas)
        if colors:
            self._illumination.set_colors(colors)
        self._frames += 1
        self.frame_rendered.emit(animation_time, len(colors))
        return colors

    def run(self) -> None:
        """Run the loop until stopped or the one-shot duration ends."""
        try:
            self._run_loop()
        except Exception as e:
            self._logger.exception("Playback error", e)
            self.error_occurred.emit(str(e))
        finally:
            self._logger.info("Playback stopped", frames=self._frames)
            self.playback_finished.emit()

    def _run_loop(self) -> None:
        if not self._mapper.screen_ids:
            self._logger.warning("No screens with positions")
            return

        self._logger.info(
            f"Playback started: {self._animation}",
            screens=len(self._mapper.screen_ids),
            fps=self._config.animation_fps,
        )
        start = self._clock()

        while not self._stop_event.is_set():
            now = self._clock()
            elapsed = now - start

            if self._duration is not None and elapsed >= self._duration:
                self.process_frame(self._duration * self._speed)
                break

            if self._throttle.ready(now):
                self.process_frame(elapsed * self._speed)

            self._stop_event.wait(PLAYBACK_TICK_SEC)


def bang_sequence(
    color: Color,
    steps: int = BANG_STEPS,
    hold: float = BANG_HOLD_SEC,
    duration: float = BANG_DURATION_SEC,
) -> list[tuple[float, Color]]:
    """Flash ``color`` and let it decay to black.

    Returns:
        (delay in seconds from the start, color) pairs, the first at full
        intensity after ``hold``, the last black at ``duration``
    """
    fade = duration - hold
    sequence: list[tuple[float, Color]] = []
    for i in range(steps + 1):
        t = i / steps
        factor = 1.0 if i == 0 else (1 - t) ** BANG_DECAY_EXPONENT
        scaled = Color(
            int(math.floor(color.r * factor + 0.5)),
            int(math.floor(color.g * factor + 0.5)),
            int(math.floor(color.b * factor + 0.5)),
        )
        sequence.append((hold + fade * t, scaled))
    return sequence


class BangWorker(QObject):
    """Broadcasts a bang sequence on schedule."""

    bang_finished = Signal()
    error_occurred = Signal(str)

    def __init__(
        self,
        color: Color,
        illumination: IlluminationControl,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__()
        self._sequence = bang_sequence(color)
        self._illumination = illumination
        self._clock = clock
        self._logger = logger or get_logger()
        self._stop_event = threading.Event()

    def request_stop(self) -> None:
        self._stop_event.set()

    def run(self) -> None:
        start = self._clock()
        try:
            for delay, color in self._sequence:
                remaining = start + delay - self._clock()
                if remaining > 0 and self._stop_event.wait(remaining):
                    break
                if self._stop_event.is_set():
                    break
                self._illumination.broadcast(color)
        except Exception as e:
            self._logger.exception("Bang error", e)
            self.error_occurred.emit(str(e))
        finally:
            self.bang_finished.emit()


def _start_in_thread(worker: QObject, finished: Signal) -> QThread:
    """Move ``worker`` to a new thread and run it; the thread quits when done."""
    thread = QThread()
    worker.moveToThread(thread)
    thread.started.connect(worker.run)
    # quit() is thread-safe; called from the worker thread
    finished.connect(thread.quit, Qt.ConnectionType.DirectConnection)
    thread.start()
    return thread


class ScanEngine(QObject):
    """Main scan controller.

    Manages the worker thread and provides the interface for callers.
    """

    # Signals (forwarded from worker)
    state_changed = Signal(ScanState)
    progress_updated = Signal(int, int)
    screen_scanned = Signal(object)
    scan_cancelled = Signal()
    scan_finished = Signal(list)
    error_occurred = Signal(str)
    capture_failed = Signal(str)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        """Initialize the engine."""
        super().__init__(parent)

        self._worker: Optional[ScanWorker] = None
        self._thread: Optional[QThread] = None
        self._logger = get_logger()

    @property
    def is_running(self) -> bool:
        """Check if a scan is currently running."""
        return self._thread is not None and self._thread.isRunning()

    @property
    def state(self) -> ScanState:
        """Get current state."""
        if self._worker:
            return self._worker.state
        return ScanState.Idle

    def start(
        self,
        screen_ids: Sequence[str],
        capture: CaptureSource,
        illumination: IlluminationControl,
        sink: ScanResultSink,
        config: Optional[DetectionConfig] = None,
    ) -> bool:
        """Start a scan.

        Returns:
            True if started, False if already running or the input is invalid
        """
        if self.is_running:
            self._logger.warning("Scan already running")
            return False

        if not screen_ids:
            self._logger.error("No screens to scan")
            self.error_occurred.emit("No screens to scan")
            return False

        config = config or DetectionConfig()
        validation = validate_config(config)
        if not validation.valid:
            error_msg = "; ".join(validation.errors)
            self._logger.error(f"Invalid configuration: {error_msg}")
            self.error_occurred.emit(error_msg)
            return False

        self._worker = ScanWorker(screen_ids, capture, illumination, sink, config, self._logger)

        # Connect signals
        self._worker.state_changed.connect(self.state_changed.emit)
        self._worker.progress_updated.connect(self.progress_updated.emit)
        self._worker.screen_scanned.connect(self.screen_scanned.emit)
        self._worker.scan_cancelled.connect(self.scan_cancelled.emit)
        self._worker.scan_finished.connect(self.scan_finished.emit)
        self._worker.error_occurred.connect(self.error_occurred.emit)
        self._worker.capture_failed.connect(self.capture_failed.emit)

        self._thread = _start_in_thread(self._worker, self._worker.scan_finished)
        return True

    def stop(self) -> None:
        """Stop the scan after the current screen."""
        if self._worker:
            self._worker.request_stop()

    def wait(self, timeout_ms: int = 30000) -> bool:
        """Block until the scan thread ends."""
        if self._thread is None:
            return True
        return self._thread.wait(timeout_ms)


class PlaybackEngine(QObject):
    """Runs animation playback and bang flashes, one at a time."""

    frame_rendered = Signal(float, int)
    playback_finished = Signal()
    error_occurred = Signal(str)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)

        self._worker: Optional[QObject] = None
        self._thread: Optional[QThread] = None
        self._logger = get_logger()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.isRunning()

    def play(
        self,
        animation: str,
        screens: Sequence[tuple[str, ScreenDetection]],
        illumination: IlluminationControl,
        config: Optional[DetectionConfig] = None,
        speed: float = 1.0,
        brightness: float = 1.0,
        duration: Optional[float] = None,
    ) -> bool:
        """Start playback, replacing whatever is running.

        Returns:
            False if no screen has a position or the config is invalid
        """
        if not screens:
            self._logger.warning("No screens with positions")
            return False

        config = config or DetectionConfig()
        validation = validate_config(config)
        if not validation.valid:
            error_msg = "; ".join(validation.errors)
            self._logger.error(f"Invalid configuration: {error_msg}")
            self.error_occurred.emit(error_msg)
            return False

        self.stop()
        worker = PlaybackWorker(
            animation,
            screens,
            illumination,
            config,
            speed=speed,
            brightness=brightness,
            duration=duration,
            logger=self._logger,
        )
        worker.frame_rendered.connect(self.frame_rendered.emit)
        worker.playback_finished.connect(self.playback_finished.emit)
        worker.error_occurred.connect(self.error_occurred.emit)

        self._worker = worker
        self._thread = _start_in_thread(worker, worker.playback_finished)
        return True

    def set_speed(self, speed: float) -> None:
        if isinstance(self._worker, PlaybackWorker):
            self._worker.set_speed(speed)

    def set_brightness(self, brightness: float) -> None:
        if isinstance(self._worker, PlaybackWorker):
            self._worker.set_brightness(brightness)

    def bang(self, color: Color, illumination: IlluminationControl) -> None:
        """Stop playback and flash every screen with a decaying color."""
        self.stop()
        worker = BangWorker(color, illumination)
        worker.error_occurred.connect(self.error_occurred.emit)
        self._worker = worker
        self._thread = _start_in_thread(worker, worker.bang_finished)

    def blackout(self, illumination: IlluminationControl) -> None:
        """Stop everything and turn every screen black."""
        self.stop()
        illumination.all_off()

    def wait(self, timeout_ms: int = 30000) -> bool:
        """Block until the current playback or bang ends by itself."""
        if self._thread is None:
            return True
        return self._thread.wait(timeout_ms)

    def stop(self, timeout_ms: int = 2000) -> None:
        """Stop the running worker and wait for its thread."""
        if self._worker is not None:
            self._worker.request_stop()  # type: ignore[attr-defined]
        if self._thread is not None:
            self._thread.quit()
            self._thread.wait(timeout_ms)
        self._worker = None
        self._thread = None
