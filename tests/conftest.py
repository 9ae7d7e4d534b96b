"""
Pytest configuration and fixtures for the insights engine tests.

The engine needs no external services. Route tests that touch stored
records mock the database service, so no real DATABASE_URL is required.
To run tests:
    python -m pytest tests/ -v
"""
import pytest
import os
import sys
from datetime import datetime
from pathlib import Path

# Add backend to path for imports
backend_path = Path(__file__).parent.parent / 'backend'
sys.path.insert(0, str(backend_path))

# Load environment variables from .env files before importing app
from dotenv import load_dotenv

env_locations = [
    backend_path / '.env',
    Path(__file__).parent.parent / '.env',
    Path(__file__).parent / '.env',
]

for env_path in env_locations:
    if env_path.exists():
        load_dotenv(env_path)
        break

os.environ.setdefault('LOG_LEVEL', 'INFO')


@pytest.fixture(scope="function")
def test_client():
    """Create a test client for the FastAPI app.

    Note: scope="function" ensures rate limiter is reset between tests.
    """
    from fastapi.testclient import TestClient
    from kindra.main import app
    from kindra.middleware.security import rate_limiter

    rate_limiter.reset()
    client = TestClient(app, raise_server_exceptions=False)
    yield client
    rate_limiter.reset()


@pytest.fixture
def now():
    """Fixed reference time used across the cycle tests."""
    return datetime(2024, 3, 1, 12, 0, 0)


@pytest.fixture
def make_moment():
    """Factory for moments with sensible defaults."""
    from kindra.models.schemas import Moment

    counter = {"id": 0}

    def _make(timestamp=None, emoji="😊", tags=None, is_intimate=False, connection_id=1):
        counter["id"] += 1
        return Moment(
            id=counter["id"],
            connection_id=connection_id,
            timestamp=timestamp,
            emoji=emoji,
            tags=tags or [],
            is_intimate=is_intimate,
        )

    return _make


@pytest.fixture
def make_cycle():
    """Factory for cycle records."""
    from kindra.models.schemas import CycleRecord

    def _make(start, end=None, connection_id=None, cycle_id=None):
        return CycleRecord(
            id=cycle_id,
            connection_id=connection_id,
            period_start_date=start,
            cycle_end_date=end,
        )

    return _make
