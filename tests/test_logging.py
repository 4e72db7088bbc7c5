"""Tests for the circular-buffer logger."""

from datetime import datetime

from screensync.core.logging import LogBuffer, LogEntry, Logger, LogLevel, get_logger, set_logger


class TestLogBuffer:
    """Test suite for LogBuffer."""

    def test_discards_oldest_entries(self) -> None:
        buffer = LogBuffer(max_size=3)
        logger = Logger(buffer)
        for i in range(5):
            logger.info(f"msg {i}")

        assert len(buffer) == 3
        assert [e.message for e in buffer.get_all()] == ["msg 2", "msg 3", "msg 4"]
        assert [e.message for e in buffer.get_recent(2)] == ["msg 3", "msg 4"]

    def test_listeners_are_notified(self) -> None:
        buffer = LogBuffer()
        received: list[LogEntry] = []
        buffer.add_listener(received.append)

        Logger(buffer).warning("careful")
        buffer.remove_listener(received.append)
        Logger(buffer).warning("unheard")

        assert [e.message for e in received] == ["careful"]

    def test_listener_may_log_again(self) -> None:
        buffer = LogBuffer()
        logger = Logger(buffer)

        def echo(entry: LogEntry) -> None:
            if entry.message == "ping":
                logger.info("pong")

        buffer.add_listener(echo)
        logger.info("ping")
        assert [e.message for e in buffer.get_all()] == ["ping", "pong"]

    def test_clear(self) -> None:
        buffer = LogBuffer()
        Logger(buffer).info("x")
        buffer.clear()
        assert len(buffer) == 0


class TestLogEntry:
    """Test suite for LogEntry.format."""

    def test_full_format(self) -> None:
        entry = LogEntry(
            timestamp=datetime(2024, 1, 2, 3, 4, 5, 678000),
            level=LogLevel.INFO,
            message="Detected",
            state="Report",
            progress=(2, 5),
            screen="abc",
            context={"pixels": 120, "threshold": 41.5},
        )
        assert entry.format() == (
            "[03:04:05.678] [INFO] [Report] [2/5] <abc> Detected pixels=120 threshold=41.5000"
        )

    def test_minimal_format(self) -> None:
        entry = LogEntry(timestamp=datetime(2024, 1, 1, 0, 0, 0), level=LogLevel.ERROR, message="boom")
        assert entry.format() == "[00:00:00.000] [ERROR] boom"


class TestLogger:
    """Test suite for Logger helpers."""

    def test_writes_to_the_given_empty_buffer(self) -> None:
        buffer = LogBuffer(max_size=3)
        logger = Logger(buffer)
        logger.info("x")

        assert logger.buffer is buffer
        assert len(buffer) == 1

    def test_state_and_progress_context(self) -> None:
        logger = Logger()
        logger.state_change("Idle", "Flash")
        logger.set_progress(1, 3)
        entry = logger.info("lit")

        assert entry.state == "Flash"
        assert entry.progress == (1, 3)

        logger.clear_context()
        entry = logger.info("done")
        assert entry.state is None
        assert entry.progress is None

    def test_detection_result(self) -> None:
        logger = Logger()
        missed = logger.detection_result("a", None)
        assert missed.level == LogLevel.WARNING
        assert missed.screen == "a"

        found = logger.detection_result("b", (0.25, 0.5), (0.1, 0.2), 300)
        assert found.level == LogLevel.INFO
        assert "25.0%" in found.message
        assert found.context == {"pixels": 300}

    def test_exception_includes_type(self) -> None:
        entry = Logger().exception("Playback error", RuntimeError("bad"))
        assert entry.level == LogLevel.ERROR
        assert "RuntimeError: bad" in entry.message

    def test_global_logger(self) -> None:
        logger = Logger()
        set_logger(logger)
        assert get_logger() is logger
