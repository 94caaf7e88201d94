"""
Inventory Service Data Models

Per-product stock ledger, reservations with their line items, and the
administrative adjustment audit trail.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Column widths in the inventory schema
MAX_REASON_LENGTH = 200
MAX_ACTOR_LENGTH = 128


# ====================
# Enumerations
# ====================

class ReservationStatus(str, Enum):
    """Reservation status. Pending is the only non-terminal state."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    RELEASED = "released"
    FAILED = "failed"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not ReservationStatus.PENDING


# ====================
# Core Data Models
# ====================

class InventoryItem(BaseModel):
    """
    Stock record for a product.

    quantity_reserved is the part of quantity_on_hand held by pending
    reservations; it never exceeds quantity_on_hand.
    """
    id: str
    product_id: str = Field(..., min_length=1)
    product_name: str = ""
    sku: str = ""
    quantity_on_hand: int = Field(default=0, ge=0)
    quantity_reserved: int = Field(default=0, ge=0)
    reorder_point: int = Field(default=0, ge=0)
    safety_stock: int = Field(default=0, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def available_quantity(self) -> int:
        return self.quantity_on_hand - self.quantity_reserved

    @model_validator(mode="after")
    def check_reserved_within_on_hand(self) -> "InventoryItem":
        if self.quantity_reserved > self.quantity_on_hand:
            raise ValueError(
                f"quantity_reserved ({self.quantity_reserved}) exceeds "
                f"quantity_on_hand ({self.quantity_on_hand}) for {self.product_id}"
            )
        return self


class InventoryReservationItem(BaseModel):
    """Reserved line; immutable once the reservation exists"""
    model_config = ConfigDict(frozen=True)

    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class InventoryReservation(BaseModel):
    """Reservation record for an order"""
    id: str
    order_id: str
    status: ReservationStatus = ReservationStatus.PENDING
    created_at: datetime
    expires_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failure_reason: Optional[str] = Field(default=None, max_length=MAX_REASON_LENGTH)
    items: List[InventoryReservationItem] = Field(default_factory=list)

    @property
    def product_ids(self) -> List[str]:
        """Distinct product ids in ascending order"""
        return sorted({item.product_id for item in self.items})


class InventoryAdjustment(BaseModel):
    """Immutable audit record of an administrative quantity change"""
    model_config = ConfigDict(frozen=True)

    id: str
    product_id: str
    quantity_delta: int
    reason: str
    created_by: str
    created_at: datetime


class AvailabilityEntry(BaseModel):
    """Availability snapshot for one product"""
    product_id: str
    quantity_on_hand: int
    quantity_reserved: int
    available_quantity: int

    @classmethod
    def from_item(cls, item: InventoryItem) -> "AvailabilityEntry":
        return cls(
            product_id=item.product_id,
            quantity_on_hand=item.quantity_on_hand,
            quantity_reserved=item.quantity_reserved,
            available_quantity=item.available_quantity,
        )


# ====================
# Request Models
# ====================

class AdjustInventoryRequest(BaseModel):
    """Administrative adjustment of on-hand quantity and thresholds"""
    product_id: str = Field(..., min_length=1)
    product_name: str = Field(..., min_length=1, max_length=200)
    sku: str = Field(default="", max_length=64)
    quantity_delta: int = Field(default=0, ge=-1_000_000, le=1_000_000)
    reorder_point: Optional[int] = Field(default=None, ge=0)
    safety_stock: Optional[int] = Field(default=None, ge=0)
    reason: str = Field(default="manual-adjustment", max_length=MAX_REASON_LENGTH)

    @field_validator("product_id", "product_name")
    @classmethod
    def strip_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @property
    def changes_anything(self) -> bool:
        return self.quantity_delta != 0 or self.reorder_point is not None or self.safety_stock is not None


class ReservationLineRequest(BaseModel):
    """Requested line of a reservation (validated by the manager, not here)"""
    product_id: str
    quantity: int


class CreateReservationRequest(BaseModel):
    """Reservation admission request"""
    order_id: str
    items: List[ReservationLineRequest] = Field(default_factory=list)
    hold_minutes: int = 15


__all__ = [
    "ReservationStatus",
    "InventoryItem",
    "InventoryReservationItem",
    "InventoryReservation",
    "InventoryAdjustment",
    "AvailabilityEntry",
    "AdjustInventoryRequest",
    "ReservationLineRequest",
    "CreateReservationRequest",
]
