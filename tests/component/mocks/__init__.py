"""
Component Test Mocks

Shared mock implementations for component testing.
These mocks replace real I/O dependencies (database, NATS).
"""

from .nats_mock import MockEventBus

# Service-specific mocks live in tests/component/{service}/conftest.py

__all__ = [
    'MockEventBus',
]
