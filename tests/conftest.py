"""Shared pytest fixtures."""

import pytest
from PySide6.QtCore import QCoreApplication

from screensync.core.logging import Logger, set_logger


@pytest.fixture(scope="session")
def qapp() -> QCoreApplication:
    """One Qt application for every test that needs signals or threads."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    return app


@pytest.fixture(autouse=True)
def fresh_logger() -> Logger:
    """Give every test its own global logger."""
    logger = Logger()
    set_logger(logger)
    return logger
