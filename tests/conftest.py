"""Shared fixtures for the talentmatch test suite."""

import pytest

from talentmatch.logging.context import clear_log_context
from talentmatch.persistence import close_database, init_database
from tests.helpers.builders import TickingClock


@pytest.fixture
def database():
    """Fresh in-memory SQLite database with the schema created."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def clock():
    """Clock that moves one second forward on every call."""
    return TickingClock()


@pytest.fixture(autouse=True)
def reset_log_context():
    yield
    clear_log_context()
