"""
Inventory Service Contracts

This module provides the contracts for inventory_service testing.
"""

from .data_contract import (
    # Response Contracts
    ReservedItemContract,
    ReservationEventContract,
    FailedEventContract,
    # Factory
    InventoryTestDataFactory,
)

__all__ = [
    # Response Contracts
    "ReservedItemContract",
    "ReservationEventContract",
    "FailedEventContract",
    # Factory
    "InventoryTestDataFactory",
]
