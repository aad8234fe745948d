"""Pytest configuration for the stopover test suite."""

import sys
from pathlib import Path

import pytest

# Ensure the project root is on the path so tests can import the `stopover`
# package without installing it.
sys.path.insert(0, str(Path(__file__).parent.parent))

from fakes import FakeDirections, FakePlaces, point_at_mile  # noqa: E402


@pytest.fixture
def places() -> FakePlaces:
    return FakePlaces()


@pytest.fixture
def directions() -> FakeDirections:
    return FakeDirections(
        endpoints={"Start Town": point_at_mile(0), "End City": point_at_mile(300)}
    )
