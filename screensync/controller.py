"""Controller that wires the scan and playback engines to the relay.

Owns the screen registry, the in-process relay and both engines, and
exposes the operations a front end needs (register, scan, play, bang,
blackout).
"""

from typing import Callable, Optional, Sequence

from PySide6.QtCore import QObject, Signal, Slot

from screensync.core.capture import CaptureSource
from screensync.core.engine import PlaybackEngine, ScanEngine
from screensync.core.logging import get_logger
from screensync.core.model import Color, DetectionConfig, ScanOutcome, ScreenRecord
from screensync.core.relay import ColorLike, LocalRelay, ScreenRegistry


class SyncController(QObject):
    """Controller that connects screens to the engines.

    Responsibilities:
    - Keep the screen registry and relay
    - Start/stop scans against the registered screens
    - Start/stop playback over the detected screens
    - Report engine errors
    """

    scan_finished = Signal(list)
    error_occurred = Signal(str)

    def __init__(
        self,
        config: Optional[DetectionConfig] = None,
        display: Optional[Callable[[str, Color], None]] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        """Initialize the controller.

        Args:
            config: Tunables shared by both engines
            display: Callback receiving every color sent to a screen
            parent: Parent QObject
        """
        super().__init__(parent)

        self._config = config or DetectionConfig()
        self._registry = ScreenRegistry()
        self._relay = LocalRelay(self._registry, display)
        self._scan_engine = ScanEngine(self)
        self._playback_engine = PlaybackEngine(self)
        self._logger = get_logger()

        self._connect_signals()

    def _connect_signals(self) -> None:
        """Connect engine signals."""
        self._scan_engine.screen_scanned.connect(self._on_screen_scanned)
        self._scan_engine.scan_finished.connect(self._on_scan_finished)
        self._scan_engine.scan_cancelled.connect(self._on_scan_cancelled)
        self._scan_engine.error_occurred.connect(self._on_error_occurred)
        self._scan_engine.capture_failed.connect(self._on_capture_failed)
        self._playback_engine.error_occurred.connect(self._on_error_occurred)

    @property
    def config(self) -> DetectionConfig:
        return self._config

    @config.setter
    def config(self, config: DetectionConfig) -> None:
        self._config = config

    @property
    def registry(self) -> ScreenRegistry:
        return self._registry

    @property
    def relay(self) -> LocalRelay:
        return self._relay

    @property
    def scan_engine(self) -> ScanEngine:
        return self._scan_engine

    @property
    def playback_engine(self) -> PlaybackEngine:
        return self._playback_engine

    # Screens

    def register_screen(self, screen_id: str, name: Optional[str] = None) -> ScreenRecord:
        return self._relay.register(screen_id, name)

    def disconnect_screen(self, screen_id: str) -> None:
        self._relay.disconnect(screen_id)

    def clear_positions(self) -> None:
        self._relay.clear_positions()

    # Scan

    def start_scan(
        self,
        capture: CaptureSource,
        screen_ids: Optional[Sequence[str]] = None,
    ) -> bool:
        """Scan the given screens, or every registered screen.

        Playback is stopped first so only the probed screen is lit.
        """
        if screen_ids is None:
            screen_ids = [r.screen_id for r in self._registry.list_all()]

        self._playback_engine.stop()
        if self._scan_engine.start(screen_ids, capture, self._relay, self._relay, self._config):
            self._logger.info(f"Scan started for {len(screen_ids)} screens")
            return True
        return False

    def stop_scan(self) -> None:
        self._scan_engine.stop()

    # Playback

    def play(
        self,
        animation: str,
        speed: float = 1.0,
        brightness: float = 1.0,
        duration: Optional[float] = None,
    ) -> bool:
        """Play an animation over every detected screen."""
        if self._scan_engine.is_running:
            self._logger.warning("Cannot play while a scan is running")
            return False

        screens = [
            (record.screen_id, record.detection())
            for record in self._registry.detected()
        ]
        return self._playback_engine.play(
            animation,
            screens,
            self._relay,
            self._config,
            speed=speed,
            brightness=brightness,
            duration=duration,
        )

    def stop_playback(self) -> None:
        self._playback_engine.stop()

    def set_speed(self, speed: float) -> None:
        self._playback_engine.set_speed(speed)

    def set_brightness(self, brightness: float) -> None:
        self._playback_engine.set_brightness(brightness)

    def bang(self, color: ColorLike = "white") -> None:
        self._playback_engine.bang(Color.parse(color), self._relay)

    def blackout(self) -> None:
        self._playback_engine.blackout(self._relay)

    def shutdown(self) -> None:
        """Stop both engines and switch every screen off."""
        self._scan_engine.stop()
        self._scan_engine.wait()
        self._playback_engine.blackout(self._relay)

    # Engine handlers

    @Slot(object)
    def _on_screen_scanned(self, outcome: ScanOutcome) -> None:
        record = self._registry.get(outcome.screen_id)
        name = record.name if record is not None else outcome.screen_id
        status = "found" if outcome.detected else "not found"
        self._logger.debug(f"{name}: {status}", screen=outcome.screen_id)

    @Slot(list)
    def _on_scan_finished(self, outcomes: list) -> None:
        found = sum(1 for o in outcomes if o.detected)
        self._logger.info(f"Scan finished: {found}/{len(outcomes)} detected")
        self.scan_finished.emit(outcomes)

    @Slot()
    def _on_scan_cancelled(self) -> None:
        self._logger.warning("Scan cancelled")

    @Slot(str)
    def _on_error_occurred(self, error_msg: str) -> None:
        self.error_occurred.emit(error_msg)

    @Slot(str)
    def _on_capture_failed(self, error_msg: str) -> None:
        self._logger.error("Camera capture failed, check the camera and scan again")
        self.error_occurred.emit(error_msg)
