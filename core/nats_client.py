"""
NATS JetStream Client for Python Microservices
Provides event-driven communication between platform services

This module wraps nats-py JetStream with the platform Event envelope.
"""

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import nats
from nats.errors import Error as NATSError
from nats.js.errors import Error as JetStreamError

from core.config import InfraConfig

logger = logging.getLogger(__name__)


class DecimalEncoder(json.JSONEncoder):
    """Custom JSON encoder that handles Decimal types"""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


class EventType(Enum):
    """Event types exchanged with peer services"""

    # Order Events
    ORDER_CREATED = "order.created"
    ORDER_CANCELED = "order.canceled"

    # Payment Events
    PAYMENT_COMPLETED = "payment.completed"
    PAYMENT_FAILED = "payment.failed"

    # Inventory Events
    INVENTORY_RESERVED = "inventory.reserved"
    INVENTORY_COMMITTED = "inventory.committed"
    INVENTORY_RELEASED = "inventory.released"
    INVENTORY_EXPIRED = "inventory.expired"
    INVENTORY_FAILED = "inventory.failed"


class ServiceSource(Enum):
    """Service sources"""

    INVENTORY_SERVICE = "inventory_service"
    ORDER_SERVICE = "order_service"
    PAYMENT_SERVICE = "payment_service"


def _enum_value(value: Union[Enum, str]) -> str:
    return value.value if isinstance(value, Enum) else value


class Event:
    """Event model"""

    def __init__(
        self,
        event_type: Union[EventType, str],
        source: Union[ServiceSource, str],
        data: Dict[str, Any],
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ):
        self.id = str(uuid.uuid4())
        self.type = _enum_value(event_type)
        self.source = _enum_value(source)
        self.data = data
        self.subject = subject
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.metadata = metadata or {}
        self.version = "1.0.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "source": self.source,
            "subject": self.subject,
            "timestamp": self.timestamp,
            "data": self.data,
            "metadata": self.metadata,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        event = cls.__new__(cls)
        event.id = data.get("id")
        event.type = data.get("type")
        event.source = data.get("source")
        event.subject = data.get("subject")
        event.timestamp = data.get("timestamp")
        event.data = data.get("data", {})
        event.metadata = data.get("metadata", {})
        event.version = data.get("version", "1.0.0")
        return event


EventHandler = Callable[[Event], Awaitable[None]]


class NATSEventBus:
    """
    NATS JetStream event bus.

    Publishes platform Event envelopes as JSON and runs durable push
    consumers for subscribed subjects.
    """

    STREAM_MAX_MSGS = 100000

    def __init__(
        self,
        service_name: str,
        config: Optional[InfraConfig] = None,
    ):
        """
        Initialize NATS Event Bus.

        Args:
            service_name: Name of the service (used as the connection name)
            config: Optional InfraConfig with NATS endpoints
        """
        if config is None:
            config = InfraConfig.from_env()

        self.service_name = service_name
        self.servers = config.nats_servers

        self._nc = None
        self._js = None
        self._subscriptions: Dict[str, Any] = {}
        self._streams: set = set()
        self._is_connected = False

        logger.info(f"NATS EventBus initialized: {self.servers}")

    async def connect(self):
        """Connect to NATS and open a JetStream context"""
        try:
            self._nc = await nats.connect(servers=[self.servers], name=self.service_name)
            self._js = self._nc.jetstream()
            self._is_connected = True
            logger.info(f"Connected to NATS as {self.service_name}")
        except (NATSError, OSError) as e:
            logger.error(f"Failed to connect to NATS at {self.servers}: {e}")
            raise

    @staticmethod
    def _get_stream_name_for_event(event_type: str) -> str:
        """inventory.reserved -> inventory-stream"""
        prefix = event_type.split('.')[0]
        return f"{prefix}-stream"

    async def _ensure_stream(self, subject: str) -> str:
        prefix = subject.split('.')[0]
        stream_name = self._get_stream_name_for_event(prefix)
        if stream_name not in self._streams:
            await self.create_stream(stream_name, [f"{prefix}.>"])
        return stream_name

    async def publish_event(self, event: Event) -> bool:
        """
        Publish an event to NATS JetStream.

        The event type is the subject; the stream is derived from its first
        token (inventory.* -> inventory-stream).
        """
        if not self._is_connected or not self._js:
            logger.error("Not connected to NATS")
            return False

        try:
            subject = event.subject or event.type
            data = json.dumps(event.to_dict(), cls=DecimalEncoder).encode()
            stream_name = await self._ensure_stream(subject)

            ack = await self._js.publish(subject, data)
            logger.info(f"Published event {event.type} [{event.id}] to stream {stream_name}, seq={ack.seq}")
            return True

        except (NATSError, JetStreamError) as e:
            logger.error(f"Error publishing event {event.id}: {e}")
            return False

    async def subscribe_to_events(
        self, pattern: str, handler: EventHandler, durable: Optional[str] = None
    ) -> Optional[str]:
        """
        Subscribe to events with a pattern using a durable JetStream consumer.

        Messages are acked after the handler returns and nacked (redelivered)
        when it raises.

        Args:
            pattern: Subject pattern to subscribe to (e.g., "order.created")
            handler: Async callback function to handle events
            durable: Optional durable name for the consumer
        """
        if not self._is_connected or not self._js:
            logger.error("Not connected to NATS")
            return None

        await self._ensure_stream(pattern)
        consumer_name = durable or f"{self.service_name}-{pattern.replace('.', '-').replace('*', 'all').replace('>', 'all')}"

        async def _on_message(msg):
            try:
                payload = json.loads(msg.data.decode())
                if 'type' in payload and 'source' in payload and 'data' in payload:
                    event = Event.from_dict(payload)
                else:
                    # Raw payload without the platform envelope
                    event = Event(event_type=msg.subject, source="unknown", data=payload, subject=msg.subject)
                await handler(event)
                await msg.ack()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error processing message on {msg.subject}: {e}", exc_info=True)
                await msg.nak()

        sub = await self._js.subscribe(pattern, durable=consumer_name, cb=_on_message, manual_ack=True)
        self._subscriptions[pattern] = sub
        logger.info(f"Subscribed to {pattern} (JetStream consumer {consumer_name})")
        return consumer_name

    async def unsubscribe(self, pattern: str) -> bool:
        """Unsubscribe from a pattern"""
        sub = self._subscriptions.pop(pattern, None)
        if sub is None:
            return False
        await sub.unsubscribe()
        logger.info(f"Unsubscribed from {pattern}")
        return True

    async def create_stream(self, name: str, subjects: List[str], max_msgs: Optional[int] = None) -> bool:
        """Create a JetStream stream (idempotent); max_msgs defaults to STREAM_MAX_MSGS"""
        if not self._is_connected or not self._js:
            return False

        try:
            await self._js.add_stream(name=name, subjects=subjects, max_msgs=max_msgs or self.STREAM_MAX_MSGS)
            self._streams.add(name)
            return True
        except JetStreamError as e:
            logger.debug(f"Stream creation note for {name}: {e}")
            return False

    async def close(self):
        """Drain subscriptions and close the NATS connection"""
        self._subscriptions.clear()

        if self._nc:
            await self._nc.drain()
            self._nc = None
            self._js = None

        self._is_connected = False
        logger.info("Disconnected from NATS")

    @property
    def is_connected(self) -> bool:
        """Check if connected to NATS"""
        return self._is_connected


# Singleton instance
_event_bus: Optional[NATSEventBus] = None


async def get_event_bus(
    service_name: str,
    config: Optional[InfraConfig] = None,
) -> NATSEventBus:
    """
    Get or create event bus instance.

    Args:
        service_name: Name of the service using the event bus
        config: Optional InfraConfig with NATS endpoints

    Returns:
        Connected NATSEventBus instance
    """
    global _event_bus

    if _event_bus is None:
        bus = NATSEventBus(service_name=service_name, config=config)
        await bus.connect()
        _event_bus = bus

    return _event_bus


__all__ = [
    "DecimalEncoder",
    "EventType",
    "ServiceSource",
    "Event",
    "EventHandler",
    "NATSEventBus",
    "get_event_bus",
]
