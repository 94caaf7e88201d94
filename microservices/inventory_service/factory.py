"""
Inventory Service Factory

Factory for creating InventoryService with real dependencies.
This is the ONLY module that imports concrete implementations.
"""

import logging
from typing import Optional

from core.config import AppConfig, get_settings
from core.postgres_client import PostgresClient

from .inventory_repository import InventoryRepository
from .inventory_service import InventoryService
from .unit_of_work import PostgresUnitOfWorkFactory

logger = logging.getLogger(__name__)


def create_inventory_service(
    config: Optional[AppConfig] = None,
    event_bus=None,
    db: Optional[PostgresClient] = None,
) -> InventoryService:
    """
    Create InventoryService with all real dependencies

    Args:
        config: Optional app config (global settings if not provided)
        event_bus: Optional event bus for event publishing
        db: Optional PostgresClient (creates one from config if not provided)

    Returns:
        InventoryService wired to PostgreSQL; call
        service.repository.initialize() before first use
    """
    if config is None:
        config = get_settings()

    if db is None:
        db = PostgresClient(config.service_name, config=config.infrastructure)

    repository = InventoryRepository(db=db)
    uow_factory = PostgresUnitOfWorkFactory(
        db,
        isolation=config.inventory.isolation_level,
        lock_timeout_ms=config.inventory.lock_timeout_ms,
    )

    return InventoryService(
        repository=repository,
        uow_factory=uow_factory,
        event_bus=event_bus,
        config=config.inventory,
    )


__all__ = ["create_inventory_service"]
