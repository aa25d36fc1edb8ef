"""Shared fixtures."""
import logging
import sys

import pytest

from respimg.utils import logging_config


@pytest.fixture
def clean_logging(monkeypatch):
    """Undo setup_logging(), install_excepthook() and pushed context after a test."""
    root = logging.getLogger()
    level = root.level
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    yield
    logging_config.setup_logging(to_stderr=False, capture_warnings=False, quiet_libs=[])
    logging.captureWarnings(False)
    logging_config.pop_context()
    root.setLevel(level)
