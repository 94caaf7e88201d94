"""
Inventory Service - Data Contract

Test data factory and event payload builders for inventory_service.
Zero hardcoded data - all test data generated through factory methods.

This module defines:
1. Response Contracts - Pydantic schemas for published event payloads
2. InventoryTestDataFactory - Test data generation
"""

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from microservices.inventory_service.models import (
    AdjustInventoryRequest,
    InventoryItem,
    InventoryReservation,
    InventoryReservationItem,
    ReservationStatus,
)


# ============================================================================
# Response Contracts
# ============================================================================


class ReservedItemContract(BaseModel):
    """Contract for a reserved line on inventory events"""
    product_id: str
    quantity: int


class ReservationEventContract(BaseModel):
    """Contract for inventory.reserved / committed / released / expired payloads"""
    order_id: str
    reservation_id: str
    items: List[ReservedItemContract]
    timestamp: datetime


class FailedEventContract(BaseModel):
    """Contract for inventory.failed payloads"""
    order_id: str
    reservation_id: Optional[str] = None
    error_code: Optional[str] = None
    error_message: str
    timestamp: datetime


# ============================================================================
# Test Data Factory
# ============================================================================


class InventoryTestDataFactory:
    """
    Test data factory for inventory_service - zero hardcoded data.

    Factory methods are prefixed with make_ for valid data and
    make_invalid_ for invalid data scenarios.
    """

    # ========================================================================
    # Identifiers
    # ========================================================================

    @staticmethod
    def make_product_id() -> str:
        """Generate valid product ID"""
        return f"prod_{uuid.uuid4().hex[:16]}"

    @staticmethod
    def make_order_id() -> str:
        """Generate valid order ID"""
        return f"order_{uuid.uuid4().hex[:16]}"

    @staticmethod
    def make_reservation_id() -> str:
        """Generate reservation ID that does not exist"""
        return f"res_{uuid.uuid4().hex[:24]}"

    @staticmethod
    def make_actor() -> str:
        return f"admin_{uuid.uuid4().hex[:8]}"

    @staticmethod
    def make_sku() -> str:
        return f"SKU-{secrets.token_hex(4).upper()}"

    @staticmethod
    def make_product_name() -> str:
        return f"Product {secrets.token_hex(3)}"

    @staticmethod
    def make_timestamp() -> datetime:
        return datetime.now(timezone.utc)

    # ========================================================================
    # Models and requests
    # ========================================================================

    @classmethod
    def make_adjust_request(cls, product_id: Optional[str] = None, quantity_delta: int = 100,
                            **overrides) -> AdjustInventoryRequest:
        """Generate valid adjustment request"""
        data = {
            "product_id": product_id or cls.make_product_id(),
            "product_name": cls.make_product_name(),
            "sku": cls.make_sku(),
            "quantity_delta": quantity_delta,
            "reason": "restock",
        }
        data.update(overrides)
        return AdjustInventoryRequest(**data)

    @classmethod
    def make_item(cls, product_id: Optional[str] = None, on_hand: int = 100, reserved: int = 0,
                  **overrides) -> InventoryItem:
        """Generate ledger row"""
        now = cls.make_timestamp()
        data = {
            "id": f"inv_{uuid.uuid4().hex}",
            "product_id": product_id or cls.make_product_id(),
            "product_name": cls.make_product_name(),
            "sku": cls.make_sku(),
            "quantity_on_hand": on_hand,
            "quantity_reserved": reserved,
            "created_at": now,
            "updated_at": now,
        }
        data.update(overrides)
        return InventoryItem(**data)

    @classmethod
    def make_reservation(cls, product_id: Optional[str] = None, quantity: int = 1,
                         status: ReservationStatus = ReservationStatus.PENDING,
                         hold_minutes: int = 15, **overrides) -> InventoryReservation:
        """Generate reservation record"""
        now = cls.make_timestamp()
        data = {
            "id": cls.make_reservation_id(),
            "order_id": cls.make_order_id(),
            "status": status,
            "created_at": now,
            "expires_at": now + timedelta(minutes=hold_minutes),
            "items": [InventoryReservationItem(product_id=product_id or cls.make_product_id(), quantity=quantity)],
        }
        data.update(overrides)
        return InventoryReservation(**data)

    @staticmethod
    def make_line(product_id: str, quantity: int = 1) -> Dict[str, Any]:
        """Generate reservation line as a dict"""
        return {"product_id": product_id, "quantity": quantity}

    # ========================================================================
    # Subscribed event payloads
    # ========================================================================

    @classmethod
    def make_order_created_event(cls, order_id: Optional[str] = None,
                                 items: Optional[List[Dict[str, Any]]] = None,
                                 **overrides) -> Dict[str, Any]:
        """Generate order.created payload"""
        data = {
            "order_id": order_id or cls.make_order_id(),
            "user_id": f"user_{uuid.uuid4().hex[:12]}",
            "items": items if items is not None else [cls.make_line(cls.make_product_id())],
        }
        data.update(overrides)
        return data

    @staticmethod
    def make_payment_completed_event(order_id: str, in_metadata: bool = False) -> Dict[str, Any]:
        """Generate payment.completed payload"""
        if in_metadata:
            return {"payment_id": f"pay_{uuid.uuid4().hex[:12]}", "metadata": {"order_id": order_id}}
        return {"payment_id": f"pay_{uuid.uuid4().hex[:12]}", "order_id": order_id}

    @staticmethod
    def make_payment_failed_event(order_id: str, error_message: str = "card declined") -> Dict[str, Any]:
        """Generate payment.failed payload"""
        return {"payment_id": f"pay_{uuid.uuid4().hex[:12]}", "order_id": order_id, "error_message": error_message}

    @staticmethod
    def make_order_canceled_event(order_id: str, reason: Optional[str] = None) -> Dict[str, Any]:
        """Generate order.canceled payload"""
        data = {"order_id": order_id}
        if reason:
            data["cancellation_reason"] = reason
        return data

    # ========================================================================
    # Invalid Data Generators
    # ========================================================================

    @staticmethod
    def make_invalid_lines() -> List[List[Dict[str, Any]]]:
        """Reservation line sets that must be rejected before storage access"""
        return [
            [],
            [{"product_id": "p", "quantity": 0}],
            [{"product_id": "p", "quantity": -3}],
            [{"product_id": "", "quantity": 1}],
            [{"product_id": "p", "quantity": "2"}],
        ]
