"""
NATS Event Bus Mock for Component Testing

Mocks the event bus for testing event publishing and subscription.
"""
import fnmatch
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from core.nats_client import Event


class MockEventBus:
    """Mock for NATS event bus"""

    def __init__(self):
        self.published_events: List[Dict[str, Any]] = []
        self.subscriptions: Dict[str, Callable] = {}
        self.durables: Dict[str, Optional[str]] = {}
        self._should_raise: Optional[Exception] = None
        self._reject = False

    async def publish_event(self, event: Any) -> bool:
        """Mock event publishing"""
        if self._should_raise:
            raise self._should_raise
        if self._reject:
            return False

        self.published_events.append({
            "id": getattr(event, 'id', 'mock_event_id'),
            "type": getattr(event, 'type', 'unknown'),
            "source": str(getattr(event, 'source', 'unknown')),
            "data": getattr(event, 'data', {}),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
        return True

    async def subscribe_to_events(self, pattern: str, handler: Callable, durable: Optional[str] = None):
        """Mock event subscription"""
        self.subscriptions[pattern] = handler
        self.durables[pattern] = durable
        return durable

    async def close(self):
        """Mock close"""
        pass

    # Test helper methods

    def get_published(self, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get published events, optionally filtered by type"""
        if event_type:
            return [e for e in self.published_events if e.get("type") == event_type]
        return self.published_events

    def get_last_event(self) -> Optional[Dict[str, Any]]:
        """Get the last published event"""
        return self.published_events[-1] if self.published_events else None

    def clear(self):
        """Clear published events and subscriptions"""
        self.published_events.clear()
        self.subscriptions.clear()

    def set_error(self, error: Exception):
        """Set an error to be raised on publish"""
        self._should_raise = error

    def set_reject(self, reject: bool = True):
        """Make publish_event report failure without raising"""
        self._reject = reject

    def assert_event_published(self, event_type: str, data_match: Optional[Dict] = None):
        """Assert that an event was published"""
        events = self.get_published(event_type)
        assert len(events) > 0, f"No events of type '{event_type}' were published. Published: {self.published_events}"

        if data_match:
            for event in events:
                if all(event.get("data", {}).get(k) == v for k, v in data_match.items()):
                    return event
            raise AssertionError(
                f"No event of type '{event_type}' matched data {data_match}. Events: {events}"
            )
        return events[0]

    def assert_no_events_published(self, event_type: Optional[str] = None):
        """Assert that no events were published"""
        if event_type:
            events = self.get_published(event_type)
            assert len(events) == 0, f"Expected no events of type '{event_type}', but got: {events}"
        else:
            assert len(self.published_events) == 0, f"Expected no events, but got: {self.published_events}"

    async def simulate_event(self, subject: str, data: Dict[str, Any], source: str = "test"):
        """Deliver an event envelope to every matching subscribed handler"""
        delivered = 0
        for pattern, handler in self.subscriptions.items():
            if self._matches_pattern(pattern, subject):
                await handler(Event(event_type=subject, source=source, data=data, subject=subject))
                delivered += 1
        return delivered

    def _matches_pattern(self, pattern: str, subject: str) -> bool:
        """Check if subject matches pattern (NATS-style wildcards)"""
        fnmatch_pattern = pattern.replace(".", "/").replace(">", "**")
        fnmatch_subject = subject.replace(".", "/")
        return fnmatch.fnmatch(fnmatch_subject, fnmatch_pattern)
