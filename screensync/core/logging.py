"""Thread-safe logging system with circular buffer.

Provides a logging interface for the scan and playback engines that:
- Uses a circular buffer (max 200 entries) to prevent memory growth
- Is thread-safe for worker thread -> controller communication
- Formats log entries with timestamps, scan state, progress and context
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from threading import Lock
from typing import Any, Callable, Optional

from .constants import LOG_BUFFER_SIZE


class LogLevel(Enum):
    """Log entry severity levels."""

    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()


@dataclass
class LogEntry:
    """A single log entry.

    Attributes:
        timestamp: When the entry was created
        level: Severity level
        message: Log message content
        state: Current scan state (if applicable)
        progress: Current progress as (i, N) tuple (if applicable)
        screen: Screen the entry refers to (if applicable)
        context: Extra key/value details
    """

    timestamp: datetime
    level: LogLevel
    message: str
    state: Optional[str] = None
    progress: Optional[tuple[int, int]] = None
    screen: Optional[str] = None
    context: dict[str, Any] = field(default_factory=dict)

    def format(self) -> str:
        """Format the log entry as a string."""
        time_str = self.timestamp.strftime("%H:%M:%S.%f")[:-3]
        parts = [f"[{time_str}]", f"[{self.level.name}]"]

        if self.state:
            parts.append(f"[{self.state}]")

        if self.progress:
            i, n = self.progress
            parts.append(f"[{i}/{n}]")

        if self.screen:
            parts.append(f"<{self.screen}>")

        parts.append(self.message)

        for key, value in self.context.items():
            if isinstance(value, float):
                parts.append(f"{key}={value:.4f}")
            else:
                parts.append(f"{key}={value}")

        return " ".join(parts)


@dataclass
class LogBuffer:
    """Thread-safe circular buffer for log entries.

    Uses a deque with maxlen to automatically discard old entries.
    Thread-safe for multiple writers and readers.
    """

    max_size: int = LOG_BUFFER_SIZE
    _buffer: deque[LogEntry] = field(default_factory=lambda: deque(maxlen=LOG_BUFFER_SIZE))
    _lock: Lock = field(default_factory=Lock)
    _listeners: list[Callable[[LogEntry], None]] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Reinitialize buffer with correct maxlen if max_size differs."""
        if self._buffer.maxlen != self.max_size:
            self._buffer = deque(maxlen=self.max_size)

    def add(self, entry: LogEntry) -> None:
        """Add a log entry to the buffer and notify listeners."""
        with self._lock:
            self._buffer.append(entry)
            listeners = list(self._listeners)

        # Notify outside the lock so a listener may log again
        for listener in listeners:
            listener(entry)

    def get_all(self) -> list[LogEntry]:
        """Get all entries in the buffer (thread-safe)."""
        with self._lock:
            return list(self._buffer)

    def get_recent(self, count: int) -> list[LogEntry]:
        """Get the most recent N entries (thread-safe)."""
        with self._lock:
            if count >= len(self._buffer):
                return list(self._buffer)
            return list(self._buffer)[-count:]

    def clear(self) -> None:
        """Clear all entries (thread-safe)."""
        with self._lock:
            self._buffer.clear()

    def add_listener(self, callback: Callable[[LogEntry], None]) -> None:
        """Add a listener to be notified of new entries."""
        with self._lock:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[LogEntry], None]) -> None:
        """Remove a listener."""
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def __len__(self) -> int:
        """Return current buffer size."""
        with self._lock:
            return len(self._buffer)


class Logger:
    """Main logging interface for the engines.

    Provides convenience methods for logging at different levels
    with scan context (state, progress) and keyword details.
    """

    def __init__(self, buffer: Optional[LogBuffer] = None) -> None:
        """Initialize logger with optional existing buffer."""
        self._buffer = buffer if buffer is not None else LogBuffer()
        self._current_state: Optional[str] = None
        self._current_progress: Optional[tuple[int, int]] = None

    @property
    def buffer(self) -> LogBuffer:
        """Access the underlying log buffer."""
        return self._buffer

    def set_state(self, state: str) -> None:
        """Set the current state for subsequent log entries."""
        self._current_state = state

    def set_progress(self, current: int, total: int) -> None:
        """Set the current progress for subsequent log entries.

        Args:
            current: Current screen index (1-based for display)
            total: Total screen count
        """
        self._current_progress = (current, total)

    def clear_context(self) -> None:
        """Clear current state and progress context."""
        self._current_state = None
        self._current_progress = None

    def _log(
        self,
        level: LogLevel,
        message: str,
        screen: Optional[str] = None,
        **context: Any,
    ) -> LogEntry:
        """Internal logging method."""
        entry = LogEntry(
            timestamp=datetime.now(),
            level=level,
            message=message,
            state=self._current_state,
            progress=self._current_progress,
            screen=screen,
            context=context,
        )
        self._buffer.add(entry)
        return entry

    def debug(self, message: str, **kwargs: Any) -> LogEntry:
        """Log a debug message."""
        return self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> LogEntry:
        """Log an info message."""
        return self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> LogEntry:
        """Log a warning message."""
        return self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> LogEntry:
        """Log an error message."""
        return self._log(LogLevel.ERROR, message, **kwargs)

    def exception(self, message: str, error: BaseException, **kwargs: Any) -> LogEntry:
        """Log an error together with the exception that caused it."""
        return self._log(
            LogLevel.ERROR,
            f"{message}: {type(error).__name__}: {error}",
            **kwargs,
        )

    def state_change(self, old_state: str, new_state: str) -> LogEntry:
        """Log a state transition."""
        self.set_state(new_state)
        return self.debug(f"State: {old_state} -> {new_state}")

    def detection_result(
        self,
        screen: str,
        center: Optional[tuple[float, float]],
        size: Optional[tuple[float, float]] = None,
        pixel_count: int = 0,
    ) -> LogEntry:
        """Log the outcome of one screen probe."""
        if center is None:
            return self.warning("Screen not detected", screen=screen)

        msg = f"Detected at ({center[0] * 100:.1f}%, {center[1] * 100:.1f}%)"
        if size is not None:
            msg += f" area {size[0] * 100:.1f}% x {size[1] * 100:.1f}%"
        return self.info(msg, screen=screen, pixels=pixel_count)


# Global logger instance for convenience
_global_logger: Optional[Logger] = None


def get_logger() -> Logger:
    """Get the global logger instance, creating one if needed."""
    global _global_logger
    if _global_logger is None:
        _global_logger = Logger()
    return _global_logger


def set_logger(logger: Logger) -> None:
    """Set the global logger instance."""
    global _global_logger
    _global_logger = logger
