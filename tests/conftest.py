"""Pytest configuration and fixtures for aquarium tests."""

import random
from datetime import datetime, timedelta

import pytest

from aquarium_core.clock import ManualClock
from aquarium_core.models import AppRestriction, AppUsageData
from aquarium_core.scheduling import ManualScheduler


@pytest.fixture
def clock():
    """A manual clock starting Wednesday 2024-01-03 12:00."""
    return ManualClock(datetime(2024, 1, 3, 12, 0, 0))


@pytest.fixture
def scheduler(clock):
    """A scheduler whose timers fire only when advanced."""
    return ManualScheduler(clock)


@pytest.fixture
def seeded_rng():
    """Provide a deterministic RNG for tests."""
    return random.Random(42)


@pytest.fixture
def data_dir(tmp_path):
    """Empty directory for snapshot files."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def make_sample(clock):
    """Build a usage sample for ``package`` with ``minutes`` of daily usage."""

    def _make(package="com.example.video", minutes=0.0, app_name="", last_used=None):
        return AppUsageData(
            app_id=package,
            package_name=package,
            daily_usage=timedelta(minutes=minutes),
            last_used=last_used or clock.now(),
            app_name=app_name,
        )

    return _make


@pytest.fixture
def video_restriction():
    """A 30 minute daily limit on the video app."""
    return AppRestriction(
        app_id="com.example.video",
        package_name="com.example.video",
        app_name="Video",
        daily_limit=timedelta(minutes=30),
    )
