"""
Inventory Service Event Models

Pydantic models for events published by inventory service
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Event Type Definitions (Service-Specific)
# =============================================================================

class InventoryEventType(str, Enum):
    """
    Events published by inventory_service.

    Stream: inventory-stream
    Subjects: inventory.>
    """
    STOCK_RESERVED = "inventory.reserved"
    STOCK_COMMITTED = "inventory.committed"
    STOCK_RELEASED = "inventory.released"
    STOCK_EXPIRED = "inventory.expired"
    STOCK_FAILED = "inventory.failed"


class InventorySubscribedEventType(str, Enum):
    """Events that inventory_service subscribes to from other services."""
    ORDER_CREATED = "order.created"
    ORDER_CANCELED = "order.canceled"
    PAYMENT_COMPLETED = "payment.completed"
    PAYMENT_FAILED = "payment.failed"


class InventoryStreamConfig:
    """Stream configuration for inventory_service"""
    STREAM_NAME = "inventory-stream"
    SUBJECTS = ["inventory.>"]
    MAX_MESSAGES = 100000
    CONSUMER_PREFIX = "inventory"


# =============================================================================
# Event Data Models
# =============================================================================

class ReservedItem(BaseModel):
    """Reserved line carried on inventory events"""
    product_id: str
    quantity: int


class StockReservedEvent(BaseModel):
    """Event published when stock is successfully reserved for an order"""
    order_id: str
    reservation_id: str
    items: List[ReservedItem]
    expires_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class StockCommittedEvent(BaseModel):
    """Event published when reservation is committed (after payment)"""
    order_id: str
    reservation_id: str
    items: List[ReservedItem]
    committed_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class StockReleasedEvent(BaseModel):
    """Event published when a pending reservation is released (order canceled, manual)"""
    order_id: str
    reservation_id: str
    items: List[ReservedItem]
    reason: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class StockExpiredEvent(BaseModel):
    """Event published when the expiry sweep frees an overdue reservation"""
    order_id: str
    reservation_id: str
    items: List[ReservedItem]
    expired_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class StockFailedEvent(BaseModel):
    """Event published when a reservation is rejected or marked failed"""
    order_id: str
    reservation_id: Optional[str] = None
    items: List[Dict[str, Any]] = Field(default_factory=list)
    error_code: Optional[str] = None
    error_message: str
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=_utcnow)
