"""Boundary interfaces to the screens and an in-process relay.

The engines talk to screens only through ``IlluminationControl`` (what
each screen shows) and ``ScanResultSink`` (where detections go).
``LocalRelay`` implements both on top of a ``ScreenRegistry``; a
networked relay would implement the same two interfaces.
"""

from threading import Lock
from typing import Callable, Iterable, Optional, Union

from .geometry import clamp_point, clamp_rect
from .logging import get_logger
from .model import BLACK, Color, NormalizedPoint, NormalizedRect, ScreenDetection, ScreenRecord

ColorLike = Union[Color, str, tuple, list]


class IlluminationControl:
    """Sets the colors shown by the screens."""

    def set_color(self, screen_id: str, color: ColorLike) -> None:
        raise NotImplementedError

    def set_colors(self, colors: Iterable[tuple[str, Color]]) -> None:
        """Send a batch of per-screen colors."""
        for screen_id, color in colors:
            self.set_color(screen_id, color)

    def broadcast(self, color: ColorLike) -> None:
        """Show the same color on every screen."""
        raise NotImplementedError

    def all_off(self) -> None:
        """Switch every screen to black."""
        self.broadcast(BLACK)


class ScanResultSink:
    """Receives scan outcomes."""

    def report(self, screen_id: str, detection: Optional[ScreenDetection]) -> None:
        """Record a detection, or None for "not detected"."""
        raise NotImplementedError

    def clear_positions(self) -> None:
        """Forget every stored position and area."""
        raise NotImplementedError


class ScreenRegistry:
    """Screens keyed by a stable identifier.

    Only bounded queries are exposed; records handed out are copies so
    callers never share mutable state with the registry.
    """

    def __init__(self) -> None:
        self._records: dict[str, ScreenRecord] = {}
        self._lock = Lock()

    @staticmethod
    def _copy(record: ScreenRecord) -> ScreenRecord:
        return ScreenRecord(
            screen_id=record.screen_id,
            name=record.name,
            position=record.position,
            area=record.area,
            color=record.color,
        )

    def list_all(self) -> list[ScreenRecord]:
        """All screens in registration order."""
        with self._lock:
            return [self._copy(r) for r in self._records.values()]

    def get(self, screen_id: str) -> Optional[ScreenRecord]:
        with self._lock:
            record = self._records.get(screen_id)
            return self._copy(record) if record is not None else None

    def upsert(self, record: ScreenRecord) -> None:
        """Insert a record or replace the one with the same id."""
        with self._lock:
            self._records[record.screen_id] = self._copy(record)

    def update_color(self, screen_id: str, color: Color) -> bool:
        """Set a screen's current color. Returns False if it is unknown."""
        with self._lock:
            record = self._records.get(screen_id)
            if record is None:
                return False
            record.color = color
            return True

    def update_position(
        self,
        screen_id: str,
        position: Optional[NormalizedPoint],
        area: Optional[NormalizedRect],
    ) -> bool:
        """Set a screen's detected position and area. Returns False if it is unknown."""
        with self._lock:
            record = self._records.get(screen_id)
            if record is None:
                return False
            record.position = position
            record.area = area
            return True

    def remove(self, screen_id: str) -> bool:
        """Delete a screen. Returns False if it was unknown."""
        with self._lock:
            return self._records.pop(screen_id, None) is not None

    def clear_positions(self) -> None:
        """Drop position and area of every screen."""
        with self._lock:
            for record in self._records.values():
                record.position = None
                record.area = None

    def detected(self) -> list[ScreenRecord]:
        """Screens that have a position."""
        return [r for r in self.list_all() if r.is_detected]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, screen_id: object) -> bool:
        with self._lock:
            return screen_id in self._records


class LocalRelay(IlluminationControl, ScanResultSink):
    """In-process relay over a ``ScreenRegistry``.

    Keeps each record's current color, remembers the last broadcast so
    screens registering later start with it, and forwards every color
    change to an optional ``display`` callback.
    """

    def __init__(
        self,
        registry: Optional[ScreenRegistry] = None,
        display: Optional[Callable[[str, Color], None]] = None,
    ) -> None:
        self._registry = registry if registry is not None else ScreenRegistry()
        self._display = display
        self._last_broadcast: Optional[Color] = None
        self._logger = get_logger()

    @property
    def registry(self) -> ScreenRegistry:
        return self._registry

    @property
    def last_broadcast(self) -> Optional[Color]:
        return self._last_broadcast

    def register(self, screen_id: str, name: Optional[str] = None) -> ScreenRecord:
        """Add a screen; it inherits the last broadcast color."""
        record = ScreenRecord(
            screen_id=screen_id,
            name=name or f"Screen-{screen_id[:6]}",
        )
        self._registry.upsert(record)
        self._logger.info("Screen registered", screen=screen_id, name=record.name)

        if self._last_broadcast is not None:
            self._show(screen_id, self._last_broadcast)
        return self._registry.get(screen_id)  # type: ignore[return-value]

    def disconnect(self, screen_id: str) -> None:
        if self._registry.remove(screen_id):
            self._logger.info("Screen disconnected", screen=screen_id)

    def _show(self, screen_id: str, color: Color) -> None:
        if not self._registry.update_color(screen_id, color):
            return
        if self._display is not None:
            self._display(screen_id, color)

    def set_color(self, screen_id: str, color: ColorLike) -> None:
        self._show(screen_id, Color.parse(color))

    def broadcast(self, color: ColorLike) -> None:
        parsed = Color.parse(color)
        self._last_broadcast = parsed
        for record in self._registry.list_all():
            self._show(record.screen_id, parsed)

    def report(self, screen_id: str, detection: Optional[ScreenDetection]) -> None:
        if detection is None:
            position, area = None, None
        else:
            position = clamp_point(detection.center)
            area = clamp_rect(detection.area, 0.0, 1.0) if detection.area is not None else None

        if not self._registry.update_position(screen_id, position, area):
            self._logger.warning("Result for unknown screen dropped", screen=screen_id)

    def clear_positions(self) -> None:
        self._registry.clear_positions()
        self._logger.info("All screen positions cleared")
