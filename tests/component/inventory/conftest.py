"""
Inventory Service Component Test Fixtures

Provides mocks for inventory service component testing:
- MockInventoryStore: In-memory InventoryRepositoryProtocol with row locks
  and transactional staging
- MockUnitOfWork: Unit of work over MockInventoryStore
- FakeClock: Controllable "now" for expiry tests
"""

import asyncio
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

import pytest

from microservices.inventory_service.models import (
    InventoryAdjustment,
    InventoryItem,
    InventoryReservation,
    ReservationStatus,
)
from tests.contracts.inventory.data_contract import InventoryTestDataFactory


# =============================================================================
# Mock Unit of Work
# =============================================================================


class MockUnitOfWork:
    """
    Transaction over MockInventoryStore.

    Writes are staged and applied to the store only on commit. Row locks
    (asyncio.Lock per ledger row and per reservation) are held until commit
    or rollback, like SELECT ... FOR UPDATE.
    """

    def __init__(self, store: "MockInventoryStore"):
        self.store = store
        self.items: Dict[str, InventoryItem] = {}
        self.reservations: Dict[str, InventoryReservation] = {}
        self.adjustments: List[InventoryAdjustment] = []
        self.held: Dict[str, asyncio.Lock] = {}
        self.active = False
        self.committed = False
        self.rolled_back = False

    async def lock(self, key: str) -> None:
        if key in self.held:
            return
        lock = self.store.locks[key]
        await lock.acquire()
        self.held[key] = lock

    def _release_locks(self) -> None:
        for lock in self.held.values():
            lock.release()
        self.held.clear()

    async def begin(self) -> None:
        self.active = True
        self.store.units_started += 1

    async def commit(self) -> None:
        try:
            await self.store.before_commit()
            self.store.apply(self)
            self.committed = True
        finally:
            self.active = False
            self._release_locks()

    async def rollback(self) -> None:
        self.items.clear()
        self.reservations.clear()
        self.adjustments.clear()
        self.rolled_back = True
        self.active = False
        self._release_locks()

    async def __aenter__(self) -> "MockUnitOfWork":
        await self.begin()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None:
            await self.rollback()
            return False
        await self.commit()
        return False


# =============================================================================
# Mock Store (repository implementation)
# =============================================================================


class MockInventoryStore:
    """
    In-memory implementation of InventoryRepositoryProtocol.

    Every call yields to the event loop so concurrent tasks really
    interleave. Test hooks:
    - fail_on: method name that raises `failure` mid-transaction
    - conflicts: number of lock_items calls that raise TransactionConflictError
    - pause_on: method name that blocks until `resume` is set
    """

    def __init__(self):
        self.items: Dict[str, InventoryItem] = {}
        self.reservations: Dict[str, InventoryReservation] = {}
        self.adjustments: List[InventoryAdjustment] = []
        self.locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

        self.method_calls: List[tuple] = []
        self.units_started = 0
        self.commits = 0
        self.invariant_violations: List[str] = []
        self.max_reserved: Dict[str, int] = defaultdict(int)

        self.fail_on: Optional[str] = None
        self.failure: Exception = RuntimeError("storage failure")
        self.conflicts = 0
        self.pause_on: Optional[str] = None
        self.paused = asyncio.Event()
        self.resume = asyncio.Event()

    # ---- unit of work ----

    def unit_of_work(self) -> MockUnitOfWork:
        return MockUnitOfWork(self)

    async def before_commit(self) -> None:
        await asyncio.sleep(0)

    def apply(self, uow: MockUnitOfWork) -> None:
        self.items.update(uow.items)
        self.reservations.update(uow.reservations)
        self.adjustments.extend(uow.adjustments)
        self.commits += 1
        for item in uow.items.values():
            self.max_reserved[item.product_id] = max(self.max_reserved[item.product_id], item.quantity_reserved)
            if not 0 <= item.quantity_reserved <= item.quantity_on_hand:
                self.invariant_violations.append(
                    f"{item.product_id}: reserved={item.quantity_reserved} on_hand={item.quantity_on_hand}"
                )

    async def _enter(self, name: str, *args) -> None:
        from microservices.inventory_service.protocols import TransactionConflictError

        self.method_calls.append((name, *args))
        await asyncio.sleep(0)
        if name == "lock_items" and self.conflicts > 0:
            self.conflicts -= 1
            raise TransactionConflictError("simulated deadlock")
        if self.fail_on == name:
            raise self.failure
        if self.pause_on == name:
            self.paused.set()
            await self.resume.wait()

    @staticmethod
    def _view(staged: dict, committed: dict, key: str):
        return staged.get(key) if key in staged else committed.get(key)

    # ---- seeding and inspection ----

    def seed_item(self, product_id: Optional[str] = None, on_hand: int = 100, reserved: int = 0, **fields) -> InventoryItem:
        item = InventoryTestDataFactory.make_item(product_id=product_id, on_hand=on_hand, reserved=reserved, **fields)
        self.items[item.product_id] = item
        return item

    def seed_reservation(self, reservation: InventoryReservation) -> InventoryReservation:
        self.reservations[reservation.id] = reservation
        return reservation

    def item(self, product_id: str) -> InventoryItem:
        return self.items[product_id]

    def locks_held(self) -> List[str]:
        return [key for key, lock in self.locks.items() if lock.locked()]

    # ---- repository protocol ----

    async def initialize(self) -> None:
        self.method_calls.append(("initialize",))

    async def ensure_item(self, uow, product_id, product_name, sku, reorder_point=0, safety_stock=0) -> InventoryItem:
        await self._enter("ensure_item", product_id)
        await uow.lock(f"item:{product_id}")
        item = self._view(uow.items, self.items, product_id)
        if item is None:
            item = InventoryTestDataFactory.make_item(
                product_id=product_id, on_hand=0, reserved=0, product_name=product_name, sku=sku,
                reorder_point=reorder_point, safety_stock=safety_stock,
            )
            uow.items[product_id] = item
        return item

    async def lock_items(self, uow, product_ids: Sequence[str]) -> Dict[str, InventoryItem]:
        ids = sorted(set(product_ids))
        await self._enter("lock_items", tuple(ids))
        locked = {}
        for product_id in ids:
            await uow.lock(f"item:{product_id}")
            item = self._view(uow.items, self.items, product_id)
            if item is not None:
                locked[product_id] = item
        return locked

    async def save_item(self, uow, item: InventoryItem) -> InventoryItem:
        await self._enter("save_item", item.product_id)
        assert f"item:{item.product_id}" in uow.held, f"save_item without lock on {item.product_id}"
        uow.items[item.product_id] = item
        return item

    async def list_items(self) -> List[InventoryItem]:
        await self._enter("list_items")
        return sorted(self.items.values(), key=lambda i: (i.product_name, i.product_id))

    async def get_items(self, product_ids: Sequence[str]) -> List[InventoryItem]:
        await self._enter("get_items", tuple(product_ids))
        return [self.items[p] for p in sorted(set(product_ids)) if p in self.items]

    async def insert_reservation(self, uow, reservation: InventoryReservation) -> InventoryReservation:
        await self._enter("insert_reservation", reservation.id)
        await uow.lock(f"reservation:{reservation.id}")
        uow.reservations[reservation.id] = reservation
        return reservation

    async def lock_reservation(self, uow, reservation_id: str) -> Optional[InventoryReservation]:
        await self._enter("lock_reservation", reservation_id)
        await uow.lock(f"reservation:{reservation_id}")
        return self._view(uow.reservations, self.reservations, reservation_id)

    async def update_reservation_status(self, uow, reservation: InventoryReservation) -> None:
        await self._enter("update_reservation_status", reservation.id, reservation.status)
        uow.reservations[reservation.id] = reservation

    async def get_reservation(self, reservation_id: str) -> Optional[InventoryReservation]:
        await self._enter("get_reservation", reservation_id)
        return self.reservations.get(reservation_id)

    async def list_reservations(self, order_id=None, status=None, limit=50, offset=0) -> List[InventoryReservation]:
        await self._enter("list_reservations", order_id, status)
        rows = [
            r for r in self.reservations.values()
            if (order_id is None or r.order_id == order_id) and (status is None or r.status == status)
        ]
        rows.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return rows[offset:offset + limit]

    async def list_expired_pending(self, now: datetime, limit: int) -> List[str]:
        await self._enter("list_expired_pending", now, limit)
        rows = [
            r for r in self.reservations.values()
            if r.status is ReservationStatus.PENDING and r.expires_at is not None and r.expires_at < now
        ]
        rows.sort(key=lambda r: r.expires_at)
        return [r.id for r in rows[:limit]]

    async def insert_adjustment(self, uow, adjustment: InventoryAdjustment) -> InventoryAdjustment:
        await self._enter("insert_adjustment", adjustment.product_id)
        uow.adjustments.append(adjustment)
        return adjustment

    async def list_adjustments(self, product_id, since=None, until=None, limit=100) -> List[InventoryAdjustment]:
        await self._enter("list_adjustments", product_id)
        rows = [
            (position, a) for position, a in enumerate(self.adjustments)
            if a.product_id == product_id
            and (since is None or a.created_at >= since)
            and (until is None or a.created_at < until)
        ]
        # insertion order breaks created_at ties
        rows.sort(key=lambda row: (row[1].created_at, row[0]), reverse=True)
        return [a for _, a in rows[:limit]]


# =============================================================================
# Clock
# =============================================================================


class FakeClock:
    """Callable returning a settable UTC time"""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> datetime:
        self.now = self.now + timedelta(minutes=minutes, seconds=seconds)
        return self.now


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def store():
    """Create in-memory inventory store"""
    return MockInventoryStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def inventory_config():
    from core.config import InventoryConfig

    return InventoryConfig(transaction_retry_max_wait=0.01)


@pytest.fixture
def inventory_service(store, mock_event_bus, inventory_config, clock):
    """Create inventory service with mocked dependencies"""
    from microservices.inventory_service.inventory_service import InventoryService

    return InventoryService(
        repository=store,
        uow_factory=store.unit_of_work,
        event_bus=mock_event_bus,
        config=inventory_config,
        clock=clock,
    )


@pytest.fixture
def data_factory():
    """Provide data factory for test data generation"""
    return InventoryTestDataFactory
