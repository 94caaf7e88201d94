"""
Inventory Service - Business Logic Layer

Facade over Ledger, ReservationManager, AdjustmentLog and AvailabilityQuery.

Each mutating call:
- validates input before opening a transaction
- runs inside exactly one unit of work (retried on transient conflicts)
- returns Ok(value) or Err(error) for recoverable failures
- publishes its event only after the unit of work has committed

DataIntegrityError is logged at CRITICAL and re-raised, never returned.
"""

import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar, Union

from pydantic import ValidationError

from core.config import InventoryConfig

from .adjustment_log import AdjustmentLog
from .availability import AvailabilityQuery
from .events.publishers import (
    publish_stock_committed,
    publish_stock_expired,
    publish_stock_failed,
    publish_stock_released,
    publish_stock_reserved,
)
from .ledger import Ledger
from .models import (
    MAX_REASON_LENGTH,
    AdjustInventoryRequest,
    AvailabilityEntry,
    InventoryAdjustment,
    InventoryItem,
    InventoryReservation,
    ReservationStatus,
)
from .protocols import (
    DataIntegrityError,
    EventBusProtocol,
    InsufficientStockError,
    InventoryRepositoryProtocol,
    InventoryValidationError,
    NotFoundError,
    ReservationStateConflict,
    UnitOfWorkFactory,
    UnitOfWorkProtocol,
)
from .reservation_manager import LifecycleOutcome, ReservationManager
from .results import Err, Ok, Result
from .unit_of_work import run_atomic

logger = logging.getLogger(__name__)

T = TypeVar("T")

RECOVERABLE_ERRORS = (
    InventoryValidationError,
    NotFoundError,
    InsufficientStockError,
    ReservationStateConflict,
)


class InventoryService:
    """
    Inventory Service - Core business logic

    Operations:
    - adjust / get_inventory / get_availability
    - create_reservation / release_reservation / commit_reservation
    - fail_reservation / expire_overdue_reservations
    - get_reservation / list_reservations / list_adjustments
    """

    def __init__(
        self,
        repository: InventoryRepositoryProtocol,
        uow_factory: UnitOfWorkFactory,
        event_bus: Optional[EventBusProtocol] = None,
        config: Optional[InventoryConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize inventory service with dependencies.

        Args:
            repository: Inventory repository for data access
            uow_factory: Creates a fresh unit of work per transaction attempt
            event_bus: Event bus for publishing events (optional)
            config: Reservation engine settings
            clock: Source of "now" (UTC); injectable for expiry tests
        """
        self.repository = repository
        self.uow_factory = uow_factory
        self.event_bus = event_bus
        self.config = config or InventoryConfig()

        self.adjustment_log = AdjustmentLog(repository)
        self.ledger = Ledger(repository, self.adjustment_log)
        self.reservations = ReservationManager(repository, config=self.config, clock=clock)
        self.availability = AvailabilityQuery(repository)

    # ====================
    # Transaction helpers
    # ====================

    async def _atomic(self, work: Callable[[UnitOfWorkProtocol], Awaitable[T]]) -> T:
        return await run_atomic(
            self.uow_factory,
            work,
            attempts=self.config.transaction_retry_attempts,
            max_wait=self.config.transaction_retry_max_wait,
        )

    async def _execute(self, action: str, work: Callable[[UnitOfWorkProtocol], Awaitable[T]]) -> Result[T]:
        """Run work atomically and fold recoverable failures into Err"""
        try:
            value = await self._atomic(work)
        except DataIntegrityError as e:
            logger.critical(
                f"Data integrity violation during {action}: {e} "
                f"(reservation={e.reservation_id}, product={e.product_id})"
            )
            raise
        except RECOVERABLE_ERRORS as e:
            logger.info(f"{action} rejected [{e.code}]: {e}")
            return Err(e)
        return Ok(value)

    # ====================
    # Ledger
    # ====================

    async def adjust(
        self, request: Union[AdjustInventoryRequest, Dict[str, Any]], actor: str = "system"
    ) -> Result[InventoryItem]:
        """
        Administrative on-hand adjustment.

        Returns:
            Ok(updated item), or Err(InventoryValidationError | InsufficientStockError)
        """
        if not isinstance(request, AdjustInventoryRequest):
            try:
                request = AdjustInventoryRequest(**request)
            except ValidationError as e:
                return Err(InventoryValidationError(f"Invalid adjustment: {e.errors()[0].get('msg', e)}"))

        try:
            self.ledger.validate(request, actor)
        except InventoryValidationError as e:
            logger.info(f"adjust rejected [{e.code}]: {e}")
            return Err(e)

        return await self._execute("adjust", lambda uow: self.ledger.adjust(request, actor, uow))

    async def get_inventory(self) -> List[InventoryItem]:
        return await self.ledger.get_inventory()

    async def get_availability(self, product_ids: Iterable[str]) -> List[AvailabilityEntry]:
        return await self.availability.get_availability(product_ids)

    async def list_adjustments(
        self,
        product_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[InventoryAdjustment]:
        return await self.adjustment_log.list_for_product(product_id, since=since, until=until, limit=limit)

    # ====================
    # Reservations
    # ====================

    async def create_reservation(
        self,
        order_id: str,
        items: Iterable[Any],
        hold_minutes: Optional[int] = None,
    ) -> Result[InventoryReservation]:
        """
        Reserve stock for an order, all lines or none.

        Returns:
            Ok(pending reservation), or Err(InventoryValidationError |
            NotFoundError | InsufficientStockError)
        """
        items = list(items or [])
        try:
            self.reservations.validate_request(order_id, items, hold_minutes)
        except InventoryValidationError as e:
            logger.info(f"create_reservation rejected [{e.code}]: {e}")
            return Err(e)

        if hold_minutes is None:
            hold_minutes = self.config.default_hold_minutes

        result = await self._execute(
            "create_reservation",
            lambda uow: self.reservations.create_reservation(uow, order_id, items, hold_minutes),
        )
        if result.is_ok:
            await publish_stock_reserved(self.event_bus, result.value)
        return result

    async def release_reservation(self, reservation_id: str, reason: str = "manual-release") -> Result[bool]:
        """
        Release a pending reservation.

        Returns:
            Ok(True) when found (including repeat calls), Ok(False) when unknown,
            Err(ReservationStateConflict) when already confirmed,
            Err(InventoryValidationError) when the reason is too long
        """
        return await self._free(reservation_id, reason, ReservationStatus.RELEASED)

    async def fail_reservation(self, reservation_id: str, reason: str = "payment-failed") -> Result[bool]:
        """Release a pending reservation as Failed"""
        return await self._free(reservation_id, reason, ReservationStatus.FAILED)

    async def _free(self, reservation_id: str, reason: str, target: ReservationStatus) -> Result[bool]:
        if reason and len(reason) > MAX_REASON_LENGTH:
            error = InventoryValidationError(f"reason must be at most {MAX_REASON_LENGTH} characters")
            logger.info(f"{target.value} reservation rejected [{error.code}]: {error}")
            return Err(error)

        result = await self._execute(
            f"{target.value} reservation",
            lambda uow: self.reservations.release_reservation(uow, reservation_id, reason=reason, target=target),
        )
        if not result.is_ok:
            return result

        outcome: LifecycleOutcome = result.value
        if outcome.changed:
            await self._publish_freed(outcome.reservation)
        return Ok(outcome.found)

    async def commit_reservation(self, reservation_id: str) -> Result[bool]:
        """
        Convert a pending reservation's held stock into consumed stock.

        Returns:
            Ok(True) when found (including repeat calls), Ok(False) when unknown,
            Err(ReservationStateConflict) when released, expired or failed

        Raises:
            DataIntegrityError: Ledger cannot cover the reservation
        """
        result = await self._execute(
            "commit_reservation",
            lambda uow: self.reservations.commit_reservation(uow, reservation_id),
        )
        if not result.is_ok:
            return result

        outcome: LifecycleOutcome = result.value
        if outcome.changed:
            await publish_stock_committed(self.event_bus, outcome.reservation)
        return Ok(outcome.found)

    async def expire_overdue_reservations(self, now: Optional[datetime] = None) -> int:
        """
        Expire one batch of overdue pending reservations.

        Each reservation is expired in its own unit of work so one conflict
        does not hold back the rest. Remaining overdue reservations are picked
        up by the next sweep.

        Returns:
            Number of reservations moved to Expired
        """
        now = now or self.reservations.clock()
        overdue = await self.reservations.list_expired(now, self.config.sweep_batch_size)
        expired = 0

        for reservation_id in overdue:
            result = await self._execute(
                "expire_reservation",
                lambda uow, rid=reservation_id: self.reservations.expire_reservation(uow, rid, now=now),
            )
            if not result.is_ok:
                logger.info(f"Skipped expiring {reservation_id}: {result.error}")
                continue
            outcome: LifecycleOutcome = result.value
            if outcome.changed:
                expired += 1
                await publish_stock_expired(self.event_bus, outcome.reservation)

        if overdue:
            logger.info(f"Expiry sweep: {expired} of {len(overdue)} overdue reservations expired")
        return expired

    async def _publish_freed(self, reservation: InventoryReservation) -> None:
        if reservation.status is ReservationStatus.EXPIRED:
            await publish_stock_expired(self.event_bus, reservation)
        elif reservation.status is ReservationStatus.FAILED:
            await publish_stock_failed(
                self.event_bus,
                order_id=reservation.order_id,
                reservation_id=reservation.id,
                items=[i.model_dump() for i in reservation.items],
                error_code="RESERVATION_FAILED",
                error_message=reservation.failure_reason or "reservation failed",
            )
        else:
            await publish_stock_released(self.event_bus, reservation)

    # ====================
    # Queries
    # ====================

    async def get_reservation(self, reservation_id: str) -> Optional[InventoryReservation]:
        return await self.reservations.get_reservation(reservation_id)

    async def get_active_reservation_for_order(self, order_id: str) -> Optional[InventoryReservation]:
        return await self.reservations.get_active_reservation_for_order(order_id)

    async def list_reservations(
        self,
        order_id: Optional[str] = None,
        status: Optional[ReservationStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[InventoryReservation]:
        return await self.reservations.list_reservations(order_id=order_id, status=status, limit=limit, offset=offset)


__all__ = ["InventoryService", "RECOVERABLE_ERRORS"]
