"""
Pytest configuration and fixtures for testing
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from tests.test_utils import make_message, make_user

FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now():
    """Fixed UTC 'now' returned by the patched mongodb.get_current_time"""
    return FIXED_NOW


@pytest.fixture
def mock_db():
    """Mock database with the collections the services use"""
    mock_db = MagicMock()
    mock_db.users = MagicMock()
    mock_db.keyword_matches = MagicMock()
    mock_db.auth_sessions = MagicMock()
    return mock_db


@pytest.fixture
def sample_user():
    return make_user(user_id=101, keywords=["urgent", "deploy"], character_limit=100)


@pytest.fixture
def sample_message():
    return make_message(text="Urgent: deploy is broken", chat_title="Ops", sender_name="Alice")
