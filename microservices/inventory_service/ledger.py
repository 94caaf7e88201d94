"""
Ledger

Per-product quantity record and its administrative mutation primitive.
Reservation-driven changes to the same rows live in ReservationManager.
"""

import logging
from datetime import datetime, timezone
from typing import List

from .adjustment_log import AdjustmentLog
from .models import MAX_ACTOR_LENGTH, AdjustInventoryRequest, InventoryItem
from .protocols import (
    InsufficientStockError,
    InventoryRepositoryProtocol,
    InventoryValidationError,
    UnitOfWorkProtocol,
)

logger = logging.getLogger(__name__)


class Ledger:
    """
    Stock ledger operations.

    adjust() creates the row lazily for an unseen product, applies the delta
    under a row lock and appends exactly one audit row, all inside the
    caller's unit of work.
    """

    def __init__(self, repository: InventoryRepositoryProtocol, adjustment_log: AdjustmentLog):
        self.repository = repository
        self.adjustment_log = adjustment_log

    @staticmethod
    def validate(request: AdjustInventoryRequest, actor: str) -> None:
        if not actor or not actor.strip():
            raise InventoryValidationError("actor is required")
        if len(actor.strip()) > MAX_ACTOR_LENGTH:
            raise InventoryValidationError(f"actor must be at most {MAX_ACTOR_LENGTH} characters")
        if not request.changes_anything:
            raise InventoryValidationError("adjustment must change quantity or a threshold")

    async def adjust(self, request: AdjustInventoryRequest, actor: str, uow: UnitOfWorkProtocol) -> InventoryItem:
        """
        Apply an administrative adjustment.

        Args:
            request: Validated adjustment request
            actor: Who made the change (recorded as created_by)
            uow: Active unit of work

        Returns:
            Updated ledger row

        Raises:
            InventoryValidationError: Nothing to change or actor missing
            InsufficientStockError: On-hand would go negative or below reserved
        """
        self.validate(request, actor)

        item = await self.repository.ensure_item(
            uow,
            request.product_id,
            request.product_name,
            request.sku,
            reorder_point=request.reorder_point or 0,
            safety_stock=request.safety_stock or 0,
        )

        new_on_hand = item.quantity_on_hand + request.quantity_delta
        if new_on_hand < 0:
            raise InsufficientStockError(
                f"Cannot remove {-request.quantity_delta} of {item.product_id}: "
                f"only {item.quantity_on_hand} on hand",
                product_id=item.product_id,
                requested=-request.quantity_delta,
                available=item.quantity_on_hand,
            )
        if new_on_hand < item.quantity_reserved:
            raise InsufficientStockError(
                f"Cannot remove {-request.quantity_delta} of {item.product_id}: "
                f"{item.quantity_reserved} of {item.quantity_on_hand} on hand are reserved",
                product_id=item.product_id,
                requested=-request.quantity_delta,
                available=item.available_quantity,
            )

        updated = item.model_copy(update={
            "product_name": request.product_name,
            "sku": request.sku or item.sku,
            "quantity_on_hand": new_on_hand,
            "reorder_point": item.reorder_point if request.reorder_point is None else request.reorder_point,
            "safety_stock": item.safety_stock if request.safety_stock is None else request.safety_stock,
            "updated_at": datetime.now(timezone.utc),
        })
        saved = await self.repository.save_item(uow, updated)

        await self.adjustment_log.append(
            uow, saved.product_id, request.quantity_delta, request.reason, actor.strip()
        )

        logger.info(
            f"Adjusted {saved.product_id} by {request.quantity_delta:+d} "
            f"(on_hand={saved.quantity_on_hand}, reserved={saved.quantity_reserved}) by {actor}"
        )
        if saved.reorder_point and saved.available_quantity <= saved.reorder_point:
            logger.info(f"{saved.product_id} at or below reorder point ({saved.available_quantity} available)")
        return saved

    async def get_inventory(self) -> List[InventoryItem]:
        return await self.repository.list_items()


__all__ = ["Ledger"]
