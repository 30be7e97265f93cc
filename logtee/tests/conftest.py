"""Pytest fixtures for logtee tests."""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from fakes import FakeTransport, RecordingSink
from logtee.clock import Clock
from logtee.context import clear_correlation


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def frozen_clock():
    """Clock frozen at 2024-01-01T12:00:00Z."""
    return Clock(frozen_time=datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture(autouse=True)
def reset_env():
    """Reset environment variables after each test."""
    original_env = os.environ.copy()
    yield
    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)
    clear_correlation()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
