"""Pytest configuration and shared fixtures."""

from datetime import date

import pytest


@pytest.fixture
def today() -> date:
    """Fixed reference day used by bucketing and recurrence tests."""
    return date(2024, 6, 10)


@pytest.fixture
def sample_task_data():
    """Returns sample task data for testing."""
    return {
        "name": "Take out trash",
        "description": "Bins go out Monday night",
        "points": 5,
        "due_date": "2024-01-01",
        "recurrence": "weekly",
    }
