"""
Adjustment Log

Append-only audit trail of administrative on-hand changes. Rows are written
in the same unit of work as the ledger mutation they describe and are never
updated or deleted afterwards.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from .models import InventoryAdjustment
from .protocols import InventoryRepositoryProtocol, InventoryValidationError, UnitOfWorkProtocol

logger = logging.getLogger(__name__)

MAX_QUERY_LIMIT = 1000


class AdjustmentLog:

    def __init__(self, repository: InventoryRepositoryProtocol):
        self.repository = repository

    async def append(
        self,
        uow: UnitOfWorkProtocol,
        product_id: str,
        delta: int,
        reason: str,
        actor: str,
    ) -> InventoryAdjustment:
        adjustment = InventoryAdjustment(
            id=f"adj_{uuid.uuid4().hex[:24]}",
            product_id=product_id,
            quantity_delta=delta,
            reason=reason,
            created_by=actor,
            created_at=datetime.now(timezone.utc),
        )
        await self.repository.insert_adjustment(uow, adjustment)
        logger.debug(f"Recorded adjustment {adjustment.id} for {product_id}: {delta:+d} by {actor}")
        return adjustment

    async def list_for_product(
        self,
        product_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[InventoryAdjustment]:
        """
        Adjustments for one product, newest first.

        Args:
            product_id: Product identifier
            since: Inclusive lower bound on created_at
            until: Exclusive upper bound on created_at
            limit: Maximum rows (1-1000)
        """
        if not product_id or not product_id.strip():
            raise InventoryValidationError("product_id is required")
        if limit < 1 or limit > MAX_QUERY_LIMIT:
            raise InventoryValidationError(f"limit must be between 1 and {MAX_QUERY_LIMIT}")
        if since and until and since >= until:
            return []
        return await self.repository.list_adjustments(product_id.strip(), since=since, until=until, limit=limit)


__all__ = ["AdjustmentLog"]
