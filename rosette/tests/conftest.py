"""
Pytest fixtures for rosette tests.
"""

import pytest

from ..engine_core.rules import FINKEL, RuleSet
from ..session.clock import ManualClock
from .helpers import RecordingBroadcaster, RecordingSink, TINY


@pytest.fixture
def finkel() -> RuleSet:
    return FINKEL


@pytest.fixture
def tiny() -> RuleSet:
    """One-piece ruleset for short games."""
    return TINY


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
