"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from wikipulse.collection import WikiCollection
from wikipulse.config import CollectionConfig


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> datetime:
        self.now += timedelta(minutes=minutes, seconds=seconds)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def edit() -> dict:
    """A plain human edit on the home wiki."""
    return {
        "title": "Foo",
        "comment": "yo",
        "namespace": 0,
        "user": "Jon",
        "length": {"old": 1, "new": 2},
        "wiki": "enwiki",
    }


@pytest.fixture
def collection(clock: FakeClock) -> WikiCollection:
    """Collection without persistence or timer."""
    return WikiCollection(CollectionConfig(), clock=clock)
