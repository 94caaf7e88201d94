"""
Root conftest.py - Global configuration for all test layers.

Test Layers:
    - integration/: Service tests against real PostgreSQL (skipped when unreachable)
    - component/  : Component tests (in-memory store, mocked event bus)
    - unit/       : Unit tests (pure functions, no I/O)
    - contracts/  : Test data factories and event payload contracts
"""
import os
import sys

import pytest

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)


# =============================================================================
# Pytest Hooks
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "component: Component tests")
    config.addinivalue_line("markers", "unit: Unit tests")


def pytest_collection_modifyitems(config, items):
    """Skip database tests when SKIP_DB_TESTS is set"""
    if not os.getenv("SKIP_DB_TESTS"):
        return

    skip_db = pytest.mark.skip(reason="SKIP_DB_TESTS is set")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_db)
