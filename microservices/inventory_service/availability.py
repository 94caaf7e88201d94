"""
Availability Query

Read-only projection over committed ledger rows.
"""

import logging
from typing import Iterable, List

from .models import AvailabilityEntry
from .protocols import InventoryRepositoryProtocol

logger = logging.getLogger(__name__)


class AvailabilityQuery:

    def __init__(self, repository: InventoryRepositoryProtocol):
        self.repository = repository

    async def get_availability(self, product_ids: Iterable[str]) -> List[AvailabilityEntry]:
        """
        Availability for each known product, in first-requested order.

        Duplicate and blank ids are dropped; unknown ids are omitted rather
        than reported as errors. Reads outside any unit of work, so only
        committed state is visible.
        """
        ids = list(dict.fromkeys(p.strip() for p in product_ids if p and p.strip()))
        if not ids:
            return []

        items = {item.product_id: item for item in await self.repository.get_items(ids)}
        return [AvailabilityEntry.from_item(items[p]) for p in ids if p in items]


__all__ = ["AvailabilityQuery"]
