"""
Inventory Service Integration Test Fixtures

Provides a real PostgreSQL-backed InventoryService. Tests are skipped when
the database configured through POSTGRES_* is not reachable.
"""

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from core.config import AppConfig, InfraConfig, InventoryConfig
from core.postgres_client import PostgresClient
from microservices.inventory_service.factory import create_inventory_service
from microservices.inventory_service.inventory_service import InventoryService
from microservices.inventory_service.schema import SCHEMA
from tests.contracts.inventory.data_contract import InventoryTestDataFactory


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires PostgreSQL)"
    )


@pytest.fixture
def integration_config() -> AppConfig:
    infra = InfraConfig.from_env()
    infra.postgres_db = os.getenv("INVENTORY_TEST_DB", infra.postgres_db)
    return AppConfig(
        environment="testing",
        nats_enabled=False,
        infrastructure=infra,
        inventory=InventoryConfig(transaction_retry_attempts=5, transaction_retry_max_wait=0.2),
    )


@pytest_asyncio.fixture
async def pg_client(integration_config) -> AsyncGenerator[PostgresClient, None]:
    """Connected PostgresClient; skips the test when PostgreSQL is unreachable"""
    client = PostgresClient(
        "inventory_service_test", config=integration_config.infrastructure, min_size=1, max_size=10
    )
    health = await client.health_check()
    if not health["healthy"]:
        pytest.skip(f"PostgreSQL not available: {health['error']}")

    try:
        yield client
    finally:
        await client.close()


@pytest_asyncio.fixture
async def inventory_service(pg_client, integration_config, mock_event_bus) -> InventoryService:
    """InventoryService on PostgreSQL with emptied tables"""
    service = create_inventory_service(config=integration_config, event_bus=mock_event_bus, db=pg_client)
    await service.repository.initialize()
    await pg_client.execute(
        f"TRUNCATE {SCHEMA}.reservation_items, {SCHEMA}.reservations, "
        f"{SCHEMA}.adjustments, {SCHEMA}.inventory_items"
    )
    return service


@pytest.fixture
def mock_event_bus():
    from tests.component.mocks import MockEventBus

    return MockEventBus()


@pytest.fixture
def data_factory():
    return InventoryTestDataFactory


@pytest.fixture
def stocked_product(inventory_service, data_factory):
    """Stock a new product through adjust() and return its product_id"""

    async def _stock(on_hand: int = 10) -> str:
        request = data_factory.make_adjust_request(quantity_delta=on_hand, reason="initial stock")
        result = await inventory_service.adjust(request, actor="integration")
        return result.unwrap().product_id

    return _stock
