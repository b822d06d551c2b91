"""
Pytest configuration and fixtures for unit tests.

Unit tests are fast, isolated tests that don't require external dependencies.
"""

from unittest.mock import MagicMock, Mock

import pytest


@pytest.fixture
def mock_cursor():
    """Cursor shared by get_cursor() and transaction() of mock_database."""
    cursor = MagicMock()
    cursor.description = []
    cursor.fetchone.return_value = None
    cursor.fetchall.return_value = []
    return cursor


@pytest.fixture
def mock_database(mock_cursor):
    """Mock database whose cursor contexts let exceptions propagate."""
    db = Mock()
    db.get_cursor.return_value.__enter__ = Mock(return_value=mock_cursor)
    db.get_cursor.return_value.__exit__ = Mock(return_value=False)
    db.transaction.return_value.__enter__ = Mock(return_value=mock_cursor)
    db.transaction.return_value.__exit__ = Mock(return_value=False)
    return db

