"""
Inventory Service Event Handlers

Handle events from other services that drive the reservation lifecycle.

Recoverable rejections (insufficient stock, unknown product, refused
transition) are logged and acknowledged. Anything raised propagates to the
event bus, which logs it and leaves the message for redelivery.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from ..models import MAX_REASON_LENGTH
from .publishers import publish_stock_failed

logger = logging.getLogger(__name__)


def extract_event_data(event_or_data: Union[Dict[str, Any], Any]) -> Dict[str, Any]:
    """
    Extract data from either an Event object or a raw dict.

    Handles both:
    - Event objects with .data attribute (from NATS)
    - Raw dict (for testing or direct calls)
    """
    if hasattr(event_or_data, 'data'):
        return event_or_data.data or {}
    return event_or_data or {}


def _order_id(event_data: Dict[str, Any]) -> Optional[str]:
    """order_id from the payload or its metadata, in the stored (stripped string) form"""
    value = event_data.get("order_id")
    if value is None or value == "":
        value = (event_data.get("metadata") or {}).get("order_id")
    if value is None:
        return None
    return str(value).strip() or None


def _reservation_lines(items: List[Any]) -> List[Dict[str, Any]]:
    lines = []
    for item in items:
        if not isinstance(item, dict):
            continue
        lines.append({
            "product_id": item.get("product_id") or item.get("sku_id") or item.get("id"),
            "quantity": item.get("quantity", 1),
        })
    return lines


# ============================================================================
# Event Handlers
# ============================================================================


async def handle_order_created(event_or_data, inventory_service) -> None:
    """
    Handle order.created event from order_service

    Reserve inventory for the order items

    Event data:
        - order_id: Order ID
        - items: [{product_id, quantity}, ...]
        - hold_minutes: Optional hold window
    """
    event_data = extract_event_data(event_or_data)
    order_id = _order_id(event_data)
    items = event_data.get("items") or []

    if not order_id:
        logger.warning("order.created event missing order_id")
        return

    logger.info(f"Processing order.created event for order {order_id}")

    # Redelivered message: the order already has a reservation
    existing = await inventory_service.list_reservations(order_id=order_id, limit=1)
    if existing:
        logger.info(f"Order {order_id} already has reservation {existing[0].id}; skipping")
        return

    lines = _reservation_lines(items)
    result = await inventory_service.create_reservation(
        order_id=order_id,
        items=lines,
        hold_minutes=event_data.get("hold_minutes"),
    )

    if result.is_ok:
        logger.info(f"Reserved inventory for order {order_id}, reservation {result.value.id}")
        return

    await publish_stock_failed(
        inventory_service.event_bus,
        order_id=order_id,
        items=lines,
        error_code=result.code,
        error_message=str(result.error),
        metadata={"source_event": "order.created"},
    )


async def handle_payment_completed(event_or_data, inventory_service) -> None:
    """
    Handle payment.completed event from payment_service

    Commit the order's pending reservation
    """
    event_data = extract_event_data(event_or_data)
    order_id = _order_id(event_data)

    if not order_id:
        logger.warning("payment.completed event missing order_id")
        return

    logger.info(f"Processing payment.completed event for order {order_id}")

    reservation = await inventory_service.get_active_reservation_for_order(order_id)
    if not reservation:
        logger.warning(f"No active reservation found for order {order_id}")
        return

    result = await inventory_service.commit_reservation(reservation.id)
    if not result.is_ok:
        logger.warning(f"Could not commit reservation {reservation.id} for order {order_id}: {result.error}")
        return

    logger.info(f"Committed inventory for order {order_id}, reservation {reservation.id}")


async def handle_order_canceled(event_or_data, inventory_service) -> None:
    """
    Handle order.canceled event from order_service

    Release the order's pending reservation
    """
    event_data = extract_event_data(event_or_data)
    order_id = _order_id(event_data)

    if not order_id:
        logger.warning("order.canceled event missing order_id")
        return

    logger.info(f"Processing order.canceled event for order {order_id}")

    reservation = await inventory_service.get_active_reservation_for_order(order_id)
    if not reservation:
        logger.info(f"No active reservation found for order {order_id} (may already be released)")
        return

    reason = str(event_data.get("cancellation_reason") or "order-canceled")
    result = await inventory_service.release_reservation(reservation.id, reason=reason[:MAX_REASON_LENGTH])
    if not result.is_ok:
        logger.warning(f"Could not release reservation {reservation.id} for order {order_id}: {result.error}")
        return

    logger.info(f"Released inventory for order {order_id}, reservation {reservation.id}")


async def handle_payment_failed(event_or_data, inventory_service) -> None:
    """
    Handle payment.failed event from payment_service

    Free the order's pending reservation as Failed
    """
    event_data = extract_event_data(event_or_data)
    order_id = _order_id(event_data)

    if not order_id:
        logger.warning("payment.failed event missing order_id")
        return

    logger.info(f"Processing payment.failed event for order {order_id}")

    reservation = await inventory_service.get_active_reservation_for_order(order_id)
    if not reservation:
        logger.info(f"No active reservation found for order {order_id}")
        return

    reason = str(event_data.get("error_message") or event_data.get("failure_reason") or "payment-failed")
    result = await inventory_service.fail_reservation(reservation.id, reason=reason[:MAX_REASON_LENGTH])
    if not result.is_ok:
        logger.warning(f"Could not fail reservation {reservation.id} for order {order_id}: {result.error}")
        return

    logger.info(f"Failed reservation {reservation.id} for order {order_id}")


def get_event_handlers(inventory_service) -> Dict[str, callable]:
    """
    Return a mapping of event types to handler functions

    This will be used in main.py to register event subscriptions

    Args:
        inventory_service: InventoryService instance for reservation operations

    Events subscribed:
        - order.created: Reserve stock
        - payment.completed: Commit reservation
        - order.canceled: Release reservation
        - payment.failed: Release reservation as Failed
    """
    return {
        "order.created": lambda event: handle_order_created(event, inventory_service),
        "payment.completed": lambda event: handle_payment_completed(event, inventory_service),
        "order.canceled": lambda event: handle_order_canceled(event, inventory_service),
        "payment.failed": lambda event: handle_payment_failed(event, inventory_service),
    }
