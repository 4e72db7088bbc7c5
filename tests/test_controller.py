"""Tests for SyncController wiring."""

import numpy as np

from screensync.controller import SyncController
from screensync.core.capture import CaptureSource
from screensync.core.model import BLACK, WHITE, DetectionConfig

RECTS = {"left": (20, 40, 30, 24), "right": (100, 40, 30, 24)}


class TwoScreenCamera(CaptureSource):
    def __init__(self, controller: SyncController) -> None:
        self._controller = controller

    def capture(self) -> np.ndarray:
        frame = np.zeros((120, 160, 4), dtype=np.uint8)
        frame[..., 3] = 255
        for record in self._controller.registry.list_all():
            if record.color == WHITE:
                frame[..., :3] = np.maximum(frame[..., :3], 12)
                x, y, w, h = RECTS[record.screen_id]
                frame[y:y + h, x:x + w, :3] = 255
        return frame


class TestSyncController:
    """Test suite for SyncController."""

    def _controller(self) -> SyncController:
        controller = SyncController(DetectionConfig().without_delays())
        controller.register_screen("left", "Left phone")
        controller.register_screen("right", "Right phone")
        return controller

    def test_relay_shares_the_controller_registry(self, qapp) -> None:
        controller = SyncController()
        assert controller.relay.registry is controller.registry

        controller.register_screen("left")
        assert [r.screen_id for r in controller.registry.list_all()] == ["left"]

    def test_scan_then_play(self, qapp) -> None:
        controller = self._controller()

        assert controller.start_scan(TwoScreenCamera(controller))
        assert controller.scan_engine.wait(10000)

        detected = controller.registry.detected()
        assert [r.screen_id for r in detected] == ["left", "right"]
        assert detected[0].position.x < detected[1].position.x

        assert controller.play("pulse", duration=0.05)
        assert controller.playback_engine.wait(5000)
        assert controller.registry.get("left").color != BLACK

        controller.blackout()
        assert all(r.color == BLACK for r in controller.registry.list_all())

    def test_scan_without_screens_fails(self, qapp) -> None:
        controller = SyncController(DetectionConfig().without_delays())
        errors: list[str] = []
        controller.scan_engine.error_occurred.connect(errors.append)

        assert not controller.start_scan(TwoScreenCamera(controller))
        assert errors == ["No screens to scan"]

    def test_play_needs_detected_screens(self, qapp) -> None:
        controller = self._controller()
        assert not controller.play("gradient")

    def test_disconnect_and_clear(self, qapp) -> None:
        controller = self._controller()
        controller.relay.report("left", None)
        controller.disconnect_screen("right")
        controller.clear_positions()
        assert [r.screen_id for r in controller.registry.list_all()] == ["left"]

    def test_shutdown_turns_screens_off(self, qapp) -> None:
        controller = self._controller()
        controller.relay.broadcast("white")
        controller.shutdown()
        assert controller.relay.last_broadcast == BLACK
