"""
Reservation Manager

Admits reservations against available stock and drives them through the
commit/release lifecycle. Every mutating method runs inside the caller's
unit of work and raises on failure so the whole unit rolls back.

Locking order: the reservation row first (release/commit), then ledger rows
in ascending product_id. Two transactions touching overlapping products
therefore always queue on the same first row instead of deadlocking.
"""

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from core.config import InventoryConfig

from .models import InventoryReservation, InventoryReservationItem, ReservationStatus
from .protocols import (
    DataIntegrityError,
    InsufficientStockError,
    InventoryRepositoryProtocol,
    InventoryValidationError,
    NotFoundError,
    ReservationStateConflict,
    UnitOfWorkProtocol,
)
from .reservation_state import ReservationEvent, TransitionKind, transition

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 1000

_FREEING_EVENTS = {
    ReservationStatus.RELEASED: ReservationEvent.RELEASE,
    ReservationStatus.EXPIRED: ReservationEvent.EXPIRE,
    ReservationStatus.FAILED: ReservationEvent.FAIL,
}


@dataclass(frozen=True)
class LifecycleOutcome:
    """What a release/commit call found and whether it changed anything"""
    reservation: Optional[InventoryReservation]
    changed: bool = False

    @property
    def found(self) -> bool:
        return self.reservation is not None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReservationManager:
    """Reservation admission and lifecycle"""

    def __init__(
        self,
        repository: InventoryRepositoryProtocol,
        config: Optional[InventoryConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.repository = repository
        self.config = config or InventoryConfig()
        self.clock = clock or _utcnow

    # ====================
    # Validation
    # ====================

    @staticmethod
    def parse_hold(hold_minutes: Any) -> Optional[int]:
        """Requested hold as whole minutes; None when not given"""
        if hold_minutes is None:
            return None
        if isinstance(hold_minutes, bool):
            raise InventoryValidationError("hold_minutes must be an integer")
        try:
            return int(hold_minutes)
        except (TypeError, ValueError, OverflowError):
            raise InventoryValidationError(f"hold_minutes must be an integer, got {hold_minutes!r}") from None

    def clamp_hold(self, hold_minutes: Any) -> int:
        """Bound a requested hold to [min_hold_minutes, max_hold_minutes]"""
        hold = self.parse_hold(hold_minutes)
        if hold is None:
            hold = self.config.default_hold_minutes
        return max(self.config.min_hold_minutes, min(hold, self.config.max_hold_minutes))

    def validate_request(
        self, order_id: str, items: Iterable[Any], hold_minutes: Any = None
    ) -> List[InventoryReservationItem]:
        """
        Check a reservation request without touching storage.

        Accepts line items as ReservationLineRequest-like objects, dicts with
        product_id/quantity, or (product_id, quantity) pairs.

        Raises:
            InventoryValidationError: Missing order id, no items, blank
                product id, non-positive quantity or non-numeric hold
        """
        if not order_id or not str(order_id).strip():
            raise InventoryValidationError("order_id is required")
        self.parse_hold(hold_minutes)

        lines: List[InventoryReservationItem] = []
        for position, raw in enumerate(items or []):
            product_id, quantity = self._line_fields(raw)
            if not product_id or not str(product_id).strip():
                raise InventoryValidationError(f"item {position}: product_id is required")
            if isinstance(quantity, bool) or not isinstance(quantity, int):
                raise InventoryValidationError(f"item {position}: quantity must be an integer")
            if quantity <= 0:
                raise InventoryValidationError(f"item {position}: quantity must be positive, got {quantity}")
            lines.append(InventoryReservationItem(product_id=str(product_id).strip(), quantity=quantity))

        if not lines:
            raise InventoryValidationError("reservation requires at least one item")
        return lines

    @staticmethod
    def _line_fields(raw: Any):
        if isinstance(raw, dict):
            return raw.get("product_id"), raw.get("quantity")
        if isinstance(raw, (tuple, list)) and len(raw) == 2:
            return raw[0], raw[1]
        return getattr(raw, "product_id", None), getattr(raw, "quantity", None)

    @staticmethod
    def _totals(lines: Iterable[InventoryReservationItem]) -> Dict[str, int]:
        """Quantity per product, keyed in ascending product_id order"""
        totals: Dict[str, int] = {}
        for line in lines:
            totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
        return OrderedDict(sorted(totals.items()))

    # ====================
    # Admission
    # ====================

    async def create_reservation(
        self,
        uow: UnitOfWorkProtocol,
        order_id: str,
        items: Iterable[Any],
        hold_minutes: Optional[int] = None,
    ) -> InventoryReservation:
        """
        Reserve every line or nothing.

        Raises:
            InventoryValidationError: Malformed request
            NotFoundError: A referenced product has no ledger row
            InsufficientStockError: A product's available quantity is short
                of the (cumulative) requested quantity
        """
        lines = self.validate_request(order_id, items)
        hold = self.clamp_hold(hold_minutes)
        requested = self._totals(lines)

        locked = await self.repository.lock_items(uow, list(requested))

        for product_id, quantity in requested.items():
            item = locked.get(product_id)
            if item is None:
                raise NotFoundError(f"Product {product_id} not found in inventory", product_id=product_id)
            if item.available_quantity < quantity:
                raise InsufficientStockError(
                    f"Insufficient stock for {product_id}: requested {quantity}, "
                    f"available {item.available_quantity}",
                    product_id=product_id,
                    requested=quantity,
                    available=item.available_quantity,
                )

        now = self.clock()
        for product_id, quantity in requested.items():
            item = locked[product_id]
            await self.repository.save_item(uow, item.model_copy(update={
                "quantity_reserved": item.quantity_reserved + quantity,
                "updated_at": now,
            }))

        reservation = InventoryReservation(
            id=f"res_{uuid.uuid4().hex[:24]}",
            order_id=str(order_id).strip(),
            status=ReservationStatus.PENDING,
            created_at=now,
            expires_at=now + timedelta(minutes=hold),
            items=lines,
        )
        await self.repository.insert_reservation(uow, reservation)

        logger.info(
            f"Reserved {sum(requested.values())} units across {len(requested)} products "
            f"for order {reservation.order_id} ({reservation.id}, hold {hold}m)"
        )
        return reservation

    # ====================
    # Lifecycle
    # ====================

    async def release_reservation(
        self,
        uow: UnitOfWorkProtocol,
        reservation_id: str,
        reason: str = "manual-release",
        target: ReservationStatus = ReservationStatus.RELEASED,
    ) -> LifecycleOutcome:
        """
        Free a pending reservation's held stock.

        Args:
            uow: Active unit of work
            reservation_id: Reservation to release
            reason: Recorded on the reservation
            target: RELEASED, EXPIRED or FAILED

        Returns:
            LifecycleOutcome; not found when the id is unknown, unchanged
            when the reservation was already freed

        Raises:
            ReservationStateConflict: Reservation is already confirmed
        """
        event = _FREEING_EVENTS.get(ReservationStatus(target))
        if event is None:
            raise ValueError(f"release target must be one of {[s.value for s in _FREEING_EVENTS]}")

        reservation = await self.repository.lock_reservation(uow, reservation_id)
        if reservation is None:
            logger.info(f"Release requested for unknown reservation {reservation_id}")
            return LifecycleOutcome(None)

        decision = transition(reservation.status, event)
        if decision.kind is TransitionKind.NOOP:
            logger.info(f"Reservation {reservation_id} already {reservation.status.value}; nothing to release")
            return LifecycleOutcome(reservation)
        if decision.kind is TransitionKind.REFUSED:
            raise ReservationStateConflict(
                f"Cannot {event.value} reservation {reservation_id} in status {reservation.status.value}",
                reservation_id=reservation_id,
                current_status=reservation.status,
                attempted=event.value,
            )

        now = self.clock()
        requested = self._totals(reservation.items)
        locked = await self.repository.lock_items(uow, list(requested))

        for product_id, quantity in requested.items():
            item = locked.get(product_id)
            if item is None:
                logger.warning(f"Reservation {reservation_id} references missing product {product_id}; skipping")
                continue
            if item.quantity_reserved < quantity:
                logger.warning(
                    f"Reservation {reservation_id} holds {quantity} of {product_id} but only "
                    f"{item.quantity_reserved} reserved; flooring at zero"
                )
            await self.repository.save_item(uow, item.model_copy(update={
                "quantity_reserved": max(0, item.quantity_reserved - quantity),
                "updated_at": now,
            }))

        updated = reservation.model_copy(update={
            "status": decision.target,
            "completed_at": now,
            "failure_reason": reason,
        })
        await self.repository.update_reservation_status(uow, updated)

        logger.info(f"Reservation {reservation_id} {decision.target.value} ({reason})")
        return LifecycleOutcome(updated, changed=True)

    async def commit_reservation(self, uow: UnitOfWorkProtocol, reservation_id: str) -> LifecycleOutcome:
        """
        Turn a pending reservation's held stock into consumed stock.

        Raises:
            ReservationStateConflict: Reservation was released, expired or failed
            DataIntegrityError: Ledger rows cannot cover the reserved lines
        """
        reservation = await self.repository.lock_reservation(uow, reservation_id)
        if reservation is None:
            logger.info(f"Commit requested for unknown reservation {reservation_id}")
            return LifecycleOutcome(None)

        decision = transition(reservation.status, ReservationEvent.CONFIRM)
        if decision.kind is TransitionKind.NOOP:
            logger.info(f"Reservation {reservation_id} already confirmed")
            return LifecycleOutcome(reservation)
        if decision.kind is TransitionKind.REFUSED:
            raise ReservationStateConflict(
                f"Cannot confirm reservation {reservation_id} in status {reservation.status.value}",
                reservation_id=reservation_id,
                current_status=reservation.status,
                attempted=ReservationEvent.CONFIRM.value,
            )

        now = self.clock()
        requested = self._totals(reservation.items)
        locked = await self.repository.lock_items(uow, list(requested))

        for product_id, quantity in requested.items():
            item = locked.get(product_id)
            if item is None:
                raise DataIntegrityError(
                    f"Reservation {reservation_id} references missing product {product_id}",
                    reservation_id=reservation_id,
                    product_id=product_id,
                )
            if item.quantity_reserved < quantity or item.quantity_on_hand < quantity:
                raise DataIntegrityError(
                    f"Reservation {reservation_id} needs {quantity} of {product_id} but ledger has "
                    f"reserved={item.quantity_reserved}, on_hand={item.quantity_on_hand}",
                    reservation_id=reservation_id,
                    product_id=product_id,
                )

        for product_id, quantity in requested.items():
            item = locked[product_id]
            await self.repository.save_item(uow, item.model_copy(update={
                "quantity_reserved": item.quantity_reserved - quantity,
                "quantity_on_hand": item.quantity_on_hand - quantity,
                "updated_at": now,
            }))

        updated = reservation.model_copy(update={
            "status": ReservationStatus.CONFIRMED,
            "completed_at": now,
        })
        await self.repository.update_reservation_status(uow, updated)

        logger.info(f"Reservation {reservation_id} confirmed for order {reservation.order_id}")
        return LifecycleOutcome(updated, changed=True)

    async def expire_reservation(
        self, uow: UnitOfWorkProtocol, reservation_id: str, now: Optional[datetime] = None
    ) -> LifecycleOutcome:
        """
        Release an overdue pending reservation as Expired.

        A reservation that is no longer overdue at `now` is left untouched.
        """
        now = now or self.clock()
        reservation = await self.repository.lock_reservation(uow, reservation_id)
        if reservation is None:
            return LifecycleOutcome(None)
        if (
            reservation.status is ReservationStatus.PENDING
            and reservation.expires_at is not None
            and reservation.expires_at >= now
        ):
            return LifecycleOutcome(reservation)
        return await self.release_reservation(uow, reservation_id, reason="expired", target=ReservationStatus.EXPIRED)

    # ====================
    # Queries
    # ====================

    async def list_expired(self, now: Optional[datetime] = None, limit: Optional[int] = None) -> List[str]:
        """Ids of pending reservations past expires_at, oldest first"""
        return await self.repository.list_expired_pending(
            now or self.clock(), limit or self.config.sweep_batch_size
        )

    async def get_reservation(self, reservation_id: str) -> Optional[InventoryReservation]:
        return await self.repository.get_reservation(reservation_id)

    async def list_reservations(
        self,
        order_id: Optional[str] = None,
        status: Optional[ReservationStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[InventoryReservation]:
        if limit < 1 or limit > MAX_LIST_LIMIT:
            raise InventoryValidationError(f"limit must be between 1 and {MAX_LIST_LIMIT}")
        if offset < 0:
            raise InventoryValidationError("offset must not be negative")
        if status is not None:
            status = ReservationStatus(status)
        return await self.repository.list_reservations(order_id=order_id, status=status, limit=limit, offset=offset)

    async def get_active_reservation_for_order(self, order_id: str) -> Optional[InventoryReservation]:
        """Most recent pending reservation for an order"""
        reservations = await self.repository.list_reservations(
            order_id=order_id, status=ReservationStatus.PENDING, limit=1, offset=0
        )
        return reservations[0] if reservations else None


__all__ = ["LifecycleOutcome", "ReservationManager"]
