"""
Inventory Service Protocols

Defines interfaces for dependency injection and testing.
Following the protocol-based architecture pattern.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from .models import (
    InventoryAdjustment,
    InventoryItem,
    InventoryReservation,
    ReservationStatus,
)


# ====================
# Unit of Work Protocol
# ====================


@runtime_checkable
class UnitOfWorkProtocol(Protocol):
    """
    Explicit transaction boundary.

    Everything written through a unit of work becomes visible to other
    readers only after commit(); rollback() (or leaving the async context
    with an exception, including cancellation) discards all of it.
    """

    async def begin(self) -> None:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...

    async def __aenter__(self) -> "UnitOfWorkProtocol":
        ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        ...


UnitOfWorkFactory = Callable[[], UnitOfWorkProtocol]


# ====================
# Repository Protocol
# ====================


@runtime_checkable
class InventoryRepositoryProtocol(Protocol):
    """Repository interface for ledger, reservation and adjustment rows"""

    async def initialize(self) -> None:
        """Create schema objects if missing"""
        ...

    # ---- ledger rows ----

    async def ensure_item(
        self, uow: UnitOfWorkProtocol, product_id: str, product_name: str, sku: str,
        reorder_point: int, safety_stock: int,
    ) -> InventoryItem:
        """
        Insert a zero-quantity row for an unseen product, then lock and return it.

        Args:
            uow: Active unit of work
            product_id: Product identifier
            product_name: Name used when the row is created
            sku: SKU used when the row is created
            reorder_point: Initial reorder point for a new row
            safety_stock: Initial safety stock for a new row

        Returns:
            The locked ledger row
        """
        ...

    async def lock_items(self, uow: UnitOfWorkProtocol, product_ids: Sequence[str]) -> Dict[str, InventoryItem]:
        """
        Lock ledger rows for update in ascending product_id order.

        Args:
            uow: Active unit of work
            product_ids: Product identifiers (duplicates allowed)

        Returns:
            Mapping of product_id to locked row; unknown ids are absent
        """
        ...

    async def save_item(self, uow: UnitOfWorkProtocol, item: InventoryItem) -> InventoryItem:
        """Persist quantities, thresholds, name and sku of a locked row"""
        ...

    async def list_items(self) -> List[InventoryItem]:
        """All committed ledger rows ordered by product name"""
        ...

    async def get_items(self, product_ids: Sequence[str]) -> List[InventoryItem]:
        """Committed ledger rows for the given ids; unknown ids are omitted"""
        ...

    # ---- reservations ----

    async def insert_reservation(self, uow: UnitOfWorkProtocol, reservation: InventoryReservation) -> InventoryReservation:
        """Insert reservation row and its line items"""
        ...

    async def lock_reservation(self, uow: UnitOfWorkProtocol, reservation_id: str) -> Optional[InventoryReservation]:
        """Load and lock a reservation with its items, or None if unknown"""
        ...

    async def update_reservation_status(self, uow: UnitOfWorkProtocol, reservation: InventoryReservation) -> None:
        """Persist status, completed_at and failure_reason"""
        ...

    async def get_reservation(self, reservation_id: str) -> Optional[InventoryReservation]:
        """Committed reservation by id"""
        ...

    async def list_reservations(
        self, order_id: Optional[str] = None, status: Optional[ReservationStatus] = None,
        limit: int = 50, offset: int = 0,
    ) -> List[InventoryReservation]:
        """Committed reservations, newest first"""
        ...

    async def list_expired_pending(self, now: datetime, limit: int) -> List[str]:
        """Ids of pending reservations whose expires_at is before now, oldest first"""
        ...

    # ---- adjustments ----

    async def insert_adjustment(self, uow: UnitOfWorkProtocol, adjustment: InventoryAdjustment) -> InventoryAdjustment:
        """Append an adjustment row"""
        ...

    async def list_adjustments(
        self, product_id: str, since: Optional[datetime] = None,
        until: Optional[datetime] = None, limit: int = 100,
    ) -> List[InventoryAdjustment]:
        """Committed adjustments for a product within [since, until), newest first"""
        ...


# ====================
# Event Bus Protocol
# ====================


@runtime_checkable
class EventBusProtocol(Protocol):
    """Event bus interface for publishing events"""

    async def publish_event(self, event: Any) -> bool:
        """
        Publish event to NATS.

        Args:
            event: core.nats_client.Event envelope
        """
        ...


# ====================
# Custom Exceptions (no I/O operations)
# ====================


class InventoryServiceError(Exception):
    """Base exception for inventory service errors"""
    code = "INVENTORY_ERROR"


class InventoryValidationError(InventoryServiceError):
    """Malformed input, rejected before any storage access"""
    code = "VALIDATION_ERROR"


class NotFoundError(InventoryServiceError):
    """Unknown product or reservation referenced by a write"""
    code = "NOT_FOUND"

    def __init__(self, message: str, product_id: Optional[str] = None, reservation_id: Optional[str] = None):
        super().__init__(message)
        self.product_id = product_id
        self.reservation_id = reservation_id


class InsufficientStockError(InventoryServiceError):
    """Requested quantity exceeds what the ledger can provide"""
    code = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        message: str,
        product_id: Optional[str] = None,
        requested: Optional[int] = None,
        available: Optional[int] = None,
    ):
        super().__init__(message)
        self.product_id = product_id
        self.requested = requested
        self.available = available


class ReservationStateConflict(InventoryServiceError):
    """Lifecycle operation refused for the reservation's current status"""
    code = "RESERVATION_STATE_CONFLICT"

    def __init__(self, message: str, reservation_id: Optional[str] = None,
                 current_status: Optional[ReservationStatus] = None, attempted: Optional[str] = None):
        super().__init__(message)
        self.reservation_id = reservation_id
        self.current_status = current_status
        self.attempted = attempted


class DataIntegrityError(InventoryServiceError):
    """
    Ledger and reservation rows have drifted apart.

    Fatal: the admission-time guarantee already failed somewhere else.
    Never retried and never converted into a recoverable result.
    """
    code = "DATA_INTEGRITY"

    def __init__(self, message: str, reservation_id: Optional[str] = None, product_id: Optional[str] = None):
        super().__init__(message)
        self.reservation_id = reservation_id
        self.product_id = product_id


class TransactionConflictError(InventoryServiceError):
    """Transient storage conflict (deadlock, serialization failure, lock timeout); safe to retry"""
    code = "TRANSACTION_CONFLICT"


__all__ = [
    "UnitOfWorkProtocol",
    "UnitOfWorkFactory",
    "InventoryRepositoryProtocol",
    "EventBusProtocol",
    "InventoryServiceError",
    "InventoryValidationError",
    "NotFoundError",
    "InsufficientStockError",
    "ReservationStateConflict",
    "DataIntegrityError",
    "TransactionConflictError",
]
