"""
Global pytest configuration and fixtures for Kalender tests
"""

import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add the src directory to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / 'src'))

from kalender.config import CalendarConfig
from kalender.persistence.memory import InMemoryEventAdapter

# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# Suppress noisy logs during testing
logging.getLogger('aiosqlite').setLevel(logging.WARNING)

FIXED_NOW = datetime(2026, 3, 14, 9, 30, 0)

ENV_VARS = (
    'KALENDER_STORAGE_BACKEND',
    'KALENDER_STORE_PATH',
    'KALENDER_NOTIFICATION_INTERVAL',
    'KALENDER_REMINDER_LEAD_MINUTES',
    'KALENDER_AUTOSAVE_INTERVAL',
    'KALENDER_LOG_LEVEL',
)


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep KALENDER_* variables of the developer's shell out of the tests"""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def clock():
    return FakeClock(FIXED_NOW)


@pytest.fixture
def memory_adapter():
    return InMemoryEventAdapter()


@pytest.fixture
def config(tmp_path):
    """Config pointing at a temp store, with schedulers too slow to fire on their own"""
    return CalendarConfig(
        store_path=str(tmp_path / 'calendar_events.json'),
        notification_interval=3600,
        notification_initial_delay=3600,
        autosave_interval=3600,
        autosave_initial_delay=3600,
    )


@pytest.fixture
def sample_fields():
    """Provide sample event fields for testing"""
    return [
        {
            'title': 'Team standup',
            'description': 'Daily sync',
            'timestamp': datetime(2026, 3, 16, 9, 0),
            'location': 'Room 4',
            'category': 'Work',
            'priority': 6,
        },
        {
            'title': 'Dentist',
            'description': 'Bring insurance card',
            'timestamp': datetime(2026, 3, 15, 14, 30),
            'location': 'Main St 12',
            'category': 'Personal',
            'priority': 8,
        },
        {
            'title': 'Grandma\'s birthday',
            'timestamp': datetime(2026, 4, 2, 18, 0),
            'category': 'Family',
            'priority': 9,
        },
    ]


def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Tests that wait on real timers")
