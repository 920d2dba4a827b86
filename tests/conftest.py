from datetime import datetime, timezone

import pytest

from cadence.application.review_service import ReviewService
from cadence.infrastructure.adapters.memory_store import InMemoryStore

# Fixed reference instant: Tuesday 2026-03-10 12:00 UTC
NOON = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def noon():
    return NOON


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def service(store):
    return ReviewService(cards=store, history=store, tz=timezone.utc)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config files
    monkeypatch.setenv("HOME", str(home))
    return home
