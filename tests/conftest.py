"""Test configuration and shared fixtures."""

from __future__ import annotations

import pytest
import structlog
from structlog.testing import LogCapture


@pytest.fixture
def log_output() -> LogCapture:
    """Capture structlog events emitted during a test."""
    capture = LogCapture()
    structlog.configure(processors=[capture])
    yield capture
    structlog.reset_defaults()
