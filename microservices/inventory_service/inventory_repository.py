"""
Inventory Repository

Data access layer for inventory operations using asyncpg.
Matches schema: inventory.inventory_items, inventory.reservations,
inventory.reservation_items, inventory.adjustments

Writes take the caller's unit of work and run on its connection; reads
without a unit of work go through the pool and see committed state only.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from core.config import InfraConfig
from core.postgres_client import PostgresClient

from .models import (
    InventoryAdjustment,
    InventoryItem,
    InventoryReservation,
    InventoryReservationItem,
    ReservationStatus,
)
from .schema import DDL_STATEMENTS, SCHEMA
from .unit_of_work import PostgresUnitOfWork

logger = logging.getLogger(__name__)


class InventoryRepository:
    """
    Repository for inventory data operations.

    Tables:
        - inventory.inventory_items: Per-product ledger
        - inventory.reservations: Reservation headers
        - inventory.reservation_items: Reservation lines
        - inventory.adjustments: Administrative audit trail
    """

    def __init__(self, db: Optional[PostgresClient] = None, config: Optional[InfraConfig] = None):
        """Initialize Inventory Repository with PostgresClient"""
        self.db = db or PostgresClient("inventory_service", config=config)

        self.schema = SCHEMA
        self.items_table = f"{SCHEMA}.inventory_items"
        self.reservations_table = f"{SCHEMA}.reservations"
        self.reservation_items_table = f"{SCHEMA}.reservation_items"
        self.adjustments_table = f"{SCHEMA}.adjustments"

        logger.info("InventoryRepository initialized with PostgresClient")

    async def initialize(self) -> None:
        """Connect and apply schema DDL"""
        await self.db.connect()
        async with self.db.acquire() as conn:
            async with conn.transaction():
                for statement in DDL_STATEMENTS:
                    await conn.execute(statement)
        logger.info(f"Inventory schema '{self.schema}' ready")

    async def close(self) -> None:
        await self.db.close()

    # ====================
    # Ledger rows
    # ====================

    async def ensure_item(
        self, uow: PostgresUnitOfWork, product_id: str, product_name: str, sku: str,
        reorder_point: int = 0, safety_stock: int = 0,
    ) -> InventoryItem:
        """Insert a zero-quantity row for an unseen product, then lock and return it"""
        now = datetime.now(timezone.utc)
        await uow.connection.execute(
            f'''
            INSERT INTO {self.items_table} (
                id, product_id, product_name, sku, quantity_on_hand, quantity_reserved,
                reorder_point, safety_stock, created_at, updated_at
            ) VALUES ($1, $2, $3, $4, 0, 0, $5, $6, $7, $7)
            ON CONFLICT (product_id) DO NOTHING
            ''',
            f"inv_{uuid.uuid4().hex}", product_id, product_name, sku, reorder_point, safety_stock, now,
        )
        row = await uow.connection.fetchrow(
            f'SELECT * FROM {self.items_table} WHERE product_id = $1 FOR UPDATE',
            product_id,
        )
        return self._row_to_item(row)

    async def lock_items(self, uow: PostgresUnitOfWork, product_ids: Sequence[str]) -> Dict[str, InventoryItem]:
        """Lock ledger rows FOR UPDATE in ascending product_id order"""
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        rows = await uow.connection.fetch(
            f'''
            SELECT * FROM {self.items_table}
            WHERE product_id = ANY($1::text[])
            ORDER BY product_id
            FOR UPDATE
            ''',
            ids,
        )
        return {row["product_id"]: self._row_to_item(row) for row in rows}

    async def save_item(self, uow: PostgresUnitOfWork, item: InventoryItem) -> InventoryItem:
        """Persist a locked ledger row"""
        row = await uow.connection.fetchrow(
            f'''
            UPDATE {self.items_table}
            SET product_name = $2,
                sku = $3,
                quantity_on_hand = $4,
                quantity_reserved = $5,
                reorder_point = $6,
                safety_stock = $7,
                updated_at = $8
            WHERE product_id = $1
            RETURNING *
            ''',
            item.product_id, item.product_name, item.sku, item.quantity_on_hand,
            item.quantity_reserved, item.reorder_point, item.safety_stock,
            item.updated_at or datetime.now(timezone.utc),
        )
        return self._row_to_item(row)

    async def list_items(self) -> List[InventoryItem]:
        """All ledger rows ordered by product name"""
        rows = await self.db.query(f'SELECT * FROM {self.items_table} ORDER BY product_name, product_id')
        return [self._row_to_item(r) for r in rows]

    async def get_items(self, product_ids: Sequence[str]) -> List[InventoryItem]:
        """Ledger rows for the given ids; unknown ids are omitted"""
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return []
        rows = await self.db.query(
            f'SELECT * FROM {self.items_table} WHERE product_id = ANY($1::text[]) ORDER BY product_id',
            [ids],
        )
        return [self._row_to_item(r) for r in rows]

    # ====================
    # Reservations
    # ====================

    async def insert_reservation(self, uow: PostgresUnitOfWork, reservation: InventoryReservation) -> InventoryReservation:
        """Insert reservation header and its line items"""
        await uow.connection.execute(
            f'''
            INSERT INTO {self.reservations_table} (
                id, order_id, status, created_at, expires_at, completed_at, failure_reason
            ) VALUES ($1, $2, $3, $4, $5, $6, $7)
            ''',
            reservation.id, reservation.order_id, reservation.status.value, reservation.created_at,
            reservation.expires_at, reservation.completed_at, reservation.failure_reason,
        )
        await uow.connection.executemany(
            f'''
            INSERT INTO {self.reservation_items_table} (reservation_id, line_no, product_id, quantity)
            VALUES ($1, $2, $3, $4)
            ''',
            [
                (reservation.id, line_no, item.product_id, item.quantity)
                for line_no, item in enumerate(reservation.items)
            ],
        )
        return reservation

    async def lock_reservation(self, uow: PostgresUnitOfWork, reservation_id: str) -> Optional[InventoryReservation]:
        """Load and lock a reservation with its items"""
        row = await uow.connection.fetchrow(
            f'SELECT * FROM {self.reservations_table} WHERE id = $1 FOR UPDATE',
            reservation_id,
        )
        if not row:
            return None
        item_rows = await uow.connection.fetch(
            f'SELECT * FROM {self.reservation_items_table} WHERE reservation_id = $1 ORDER BY line_no',
            reservation_id,
        )
        return self._row_to_reservation(dict(row), [dict(r) for r in item_rows])

    async def update_reservation_status(self, uow: PostgresUnitOfWork, reservation: InventoryReservation) -> None:
        await uow.connection.execute(
            f'''
            UPDATE {self.reservations_table}
            SET status = $2, completed_at = $3, failure_reason = $4
            WHERE id = $1
            ''',
            reservation.id, reservation.status.value, reservation.completed_at, reservation.failure_reason,
        )

    async def get_reservation(self, reservation_id: str) -> Optional[InventoryReservation]:
        """Get reservation by ID"""
        row = await self.db.query_row(
            f'SELECT * FROM {self.reservations_table} WHERE id = $1', [reservation_id]
        )
        if not row:
            return None
        items = await self._items_for([reservation_id])
        return self._row_to_reservation(row, items.get(reservation_id, []))

    async def list_reservations(
        self,
        order_id: Optional[str] = None,
        status: Optional[ReservationStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[InventoryReservation]:
        """List reservations with filtering"""
        conditions = []
        params: List[Any] = []
        param_count = 0

        if order_id:
            param_count += 1
            conditions.append(f"order_id = ${param_count}")
            params.append(order_id)

        if status:
            param_count += 1
            conditions.append(f"status = ${param_count}")
            params.append(ReservationStatus(status).value)

        where_clause = " AND ".join(conditions) if conditions else "TRUE"
        params.extend([limit, offset])
        query = f'''
            SELECT * FROM {self.reservations_table}
            WHERE {where_clause}
            ORDER BY created_at DESC, id
            LIMIT ${param_count + 1} OFFSET ${param_count + 2}
        '''

        rows = await self.db.query(query, params)
        items = await self._items_for([r["id"] for r in rows])
        return [self._row_to_reservation(r, items.get(r["id"], [])) for r in rows]

    async def list_expired_pending(self, now: datetime, limit: int) -> List[str]:
        """Ids of pending reservations past expires_at, oldest first"""
        rows = await self.db.query(
            f'''
            SELECT id FROM {self.reservations_table}
            WHERE status = 'pending' AND expires_at IS NOT NULL AND expires_at < $1
            ORDER BY expires_at
            LIMIT $2
            ''',
            [now, limit],
        )
        return [r["id"] for r in rows]

    async def _items_for(self, reservation_ids: List[str]) -> Dict[str, List[Dict[str, Any]]]:
        if not reservation_ids:
            return {}
        rows = await self.db.query(
            f'''
            SELECT * FROM {self.reservation_items_table}
            WHERE reservation_id = ANY($1::text[])
            ORDER BY reservation_id, line_no
            ''',
            [reservation_ids],
        )
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for row in rows:
            grouped.setdefault(row["reservation_id"], []).append(row)
        return grouped

    # ====================
    # Adjustments
    # ====================

    async def insert_adjustment(self, uow: PostgresUnitOfWork, adjustment: InventoryAdjustment) -> InventoryAdjustment:
        await uow.connection.execute(
            f'''
            INSERT INTO {self.adjustments_table} (id, product_id, quantity_delta, reason, created_by, created_at)
            VALUES ($1, $2, $3, $4, $5, $6)
            ''',
            adjustment.id, adjustment.product_id, adjustment.quantity_delta,
            adjustment.reason, adjustment.created_by, adjustment.created_at,
        )
        return adjustment

    async def list_adjustments(
        self,
        product_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[InventoryAdjustment]:
        """Adjustments for a product within [since, until), newest first"""
        conditions = ["product_id = $1"]
        params: List[Any] = [product_id]

        if since:
            params.append(since)
            conditions.append(f"created_at >= ${len(params)}")

        if until:
            params.append(until)
            conditions.append(f"created_at < ${len(params)}")

        params.append(limit)
        query = f'''
            SELECT * FROM {self.adjustments_table}
            WHERE {" AND ".join(conditions)}
            ORDER BY created_at DESC, id
            LIMIT ${len(params)}
        '''
        rows = await self.db.query(query, params)
        return [InventoryAdjustment(**dict(r)) for r in rows]

    # ====================
    # Row mapping
    # ====================

    @staticmethod
    def _row_to_item(row) -> InventoryItem:
        return InventoryItem(**dict(row))

    @staticmethod
    def _row_to_reservation(row: Dict[str, Any], item_rows: List[Dict[str, Any]]) -> InventoryReservation:
        return InventoryReservation(
            id=row["id"],
            order_id=row["order_id"],
            status=ReservationStatus(row["status"]),
            created_at=row["created_at"],
            expires_at=row.get("expires_at"),
            completed_at=row.get("completed_at"),
            failure_reason=row.get("failure_reason"),
            items=[
                InventoryReservationItem(product_id=i["product_id"], quantity=i["quantity"])
                for i in item_rows
            ],
        )


__all__ = ["InventoryRepository"]
