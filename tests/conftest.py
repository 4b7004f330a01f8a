import pytest
import sys
import os

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Import fixtures so they're available to all tests
from tests.fixtures.database import (
    test_engine,
    test_session_maker,
    test_session,
    alice,
    bob,
    carol,
    connected_pair,
    catalog,
    fast_retries,
    reset_diagnostics,
)

# Configure pytest
def pytest_configure(config):
    config.addinivalue_line(
        "markers", "swipes: tests related to recording and deleting swipes"
    )
    config.addinivalue_line(
        "markers", "match_finding: tests related to finding matches"
    )
    config.addinivalue_line(
        "markers", "connections: tests related to connection requests"
    )
    config.addinivalue_line(
        "markers", "resets: tests related to category reset requests"
    )
    config.addinivalue_line(
        "markers", "startup: tests related to startup integrity checks"
    )
    config.addinivalue_line(
        "markers", "repositories: tests related to the store repositories"
    )
