from datetime import date, timedelta

import pytest

from lending.database import FileStore
from lending.library import Library


class FakeClock:
    """A controllable 'today' for the library."""

    def __init__(self, today: date) -> None:
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int) -> None:
        self.today += timedelta(days=days)


@pytest.fixture
def clock():
    return FakeClock(date(2024, 3, 1))


@pytest.fixture
def data_dir(tmp_path):
    # Each test gets its own data directory
    return tmp_path / "data"


@pytest.fixture
def store(data_dir):
    return FileStore(data_dir)


@pytest.fixture
def lib(store, clock):
    return Library(store, clock=clock)
