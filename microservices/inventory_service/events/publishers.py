"""
Inventory Service Event Publishers

Functions to publish events from inventory service. Publishing happens after
the unit of work commits; a failure here is logged and never undoes the
committed change.
"""

import logging
from typing import Any, Dict, List, Optional

from core.nats_client import Event, ServiceSource

from ..models import InventoryReservation
from .models import (
    InventoryEventType,
    ReservedItem,
    StockCommittedEvent,
    StockExpiredEvent,
    StockFailedEvent,
    StockReleasedEvent,
    StockReservedEvent,
)

logger = logging.getLogger(__name__)


def _reserved_items(reservation: InventoryReservation) -> List[ReservedItem]:
    return [ReservedItem(product_id=i.product_id, quantity=i.quantity) for i in reservation.items]


async def _publish(event_bus, event_type: InventoryEventType, payload, order_id: str) -> bool:
    if not event_bus:
        logger.warning(f"Event bus not available, skipping {event_type.value} event")
        return False

    try:
        event = Event(
            event_type=event_type.value,
            source=ServiceSource.INVENTORY_SERVICE,
            data=payload.model_dump(mode='json')
        )

        published = await event_bus.publish_event(event)
        if published is False:
            logger.warning(f"Event bus rejected {event_type.value} event for order {order_id}")
            return False
        logger.info(f"Published {event_type.value} event for order {order_id}")
        return True

    except Exception as e:
        logger.error(f"Failed to publish {event_type.value} event: {e}")
        return False


async def publish_stock_reserved(
    event_bus,
    reservation: InventoryReservation,
    metadata: Optional[Dict[str, Any]] = None
) -> bool:
    """Publish inventory.reserved event"""
    payload = StockReservedEvent(
        order_id=reservation.order_id,
        reservation_id=reservation.id,
        items=_reserved_items(reservation),
        expires_at=reservation.expires_at,
        metadata=metadata or {}
    )
    return await _publish(event_bus, InventoryEventType.STOCK_RESERVED, payload, reservation.order_id)


async def publish_stock_committed(
    event_bus,
    reservation: InventoryReservation,
    metadata: Optional[Dict[str, Any]] = None
) -> bool:
    """Publish inventory.committed event"""
    payload = StockCommittedEvent(
        order_id=reservation.order_id,
        reservation_id=reservation.id,
        items=_reserved_items(reservation),
        committed_at=reservation.completed_at,
        metadata=metadata or {}
    )
    return await _publish(event_bus, InventoryEventType.STOCK_COMMITTED, payload, reservation.order_id)


async def publish_stock_released(
    event_bus,
    reservation: InventoryReservation,
    metadata: Optional[Dict[str, Any]] = None
) -> bool:
    """Publish inventory.released event"""
    payload = StockReleasedEvent(
        order_id=reservation.order_id,
        reservation_id=reservation.id,
        items=_reserved_items(reservation),
        reason=reservation.failure_reason,
        metadata=metadata or {}
    )
    return await _publish(event_bus, InventoryEventType.STOCK_RELEASED, payload, reservation.order_id)


async def publish_stock_expired(
    event_bus,
    reservation: InventoryReservation,
    metadata: Optional[Dict[str, Any]] = None
) -> bool:
    """Publish inventory.expired event"""
    payload = StockExpiredEvent(
        order_id=reservation.order_id,
        reservation_id=reservation.id,
        items=_reserved_items(reservation),
        expired_at=reservation.completed_at,
        metadata=metadata or {}
    )
    return await _publish(event_bus, InventoryEventType.STOCK_EXPIRED, payload, reservation.order_id)


async def publish_stock_failed(
    event_bus,
    order_id: str,
    error_message: str,
    error_code: Optional[str] = None,
    reservation_id: Optional[str] = None,
    items: Optional[List[Dict[str, Any]]] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> bool:
    """Publish inventory.failed event"""
    payload = StockFailedEvent(
        order_id=order_id,
        reservation_id=reservation_id,
        items=items or [],
        error_code=error_code,
        error_message=error_message,
        metadata=metadata or {}
    )
    return await _publish(event_bus, InventoryEventType.STOCK_FAILED, payload, order_id)
