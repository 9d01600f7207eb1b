from pathlib import Path

import pytest

from yearcompass.config import default_config
from yearcompass.events import EventBus
from yearcompass.grid import CalendarGrid
from yearcompass.persistence import WeekKeyStore


@pytest.fixture()
def config():
    return default_config()


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "yearcompass.json"


@pytest.fixture()
def store(db_path: Path) -> WeekKeyStore:
    return WeekKeyStore(db_path)


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def grid(config, store, bus) -> CalendarGrid:
    return CalendarGrid(config, store, bus, year=2026, week=2)
