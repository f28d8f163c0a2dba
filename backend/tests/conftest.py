"""
Shared pytest fixtures for redeployer tests.
"""

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest


@pytest.fixture
def ticking_clock():
    """Clock that advances one second per call."""
    start = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
    ticks = count()
    return lambda: start + timedelta(seconds=next(ticks))


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
