#!/usr/bin/env python3
"""Inventory reservation settings

Hold window bounds, expiry sweep cadence and transaction behaviour for the
reservation engine.
"""
import os
from dataclasses import dataclass

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default

def _float(val: str, default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default


@dataclass
class InventoryConfig:
    """Reservation engine settings"""

    # ===========================================
    # Reservation holds (minutes)
    # ===========================================
    default_hold_minutes: int = 15
    min_hold_minutes: int = 1
    max_hold_minutes: int = 240

    # ===========================================
    # Expiry sweep
    # ===========================================
    sweep_interval_seconds: int = 60
    sweep_batch_size: int = 100

    # ===========================================
    # Transactions
    # ===========================================
    isolation_level: str = "read_committed"
    lock_timeout_ms: int = 5000
    transaction_retry_attempts: int = 3
    transaction_retry_max_wait: float = 1.0

    @classmethod
    def from_env(cls) -> 'InventoryConfig':
        """Load inventory settings from environment variables"""
        return cls(
            default_hold_minutes=_int(os.getenv("INVENTORY_DEFAULT_HOLD_MINUTES", "15"), 15),
            min_hold_minutes=_int(os.getenv("INVENTORY_MIN_HOLD_MINUTES", "1"), 1),
            max_hold_minutes=_int(os.getenv("INVENTORY_MAX_HOLD_MINUTES", "240"), 240),
            sweep_interval_seconds=_int(os.getenv("INVENTORY_SWEEP_INTERVAL_SECONDS", "60"), 60),
            sweep_batch_size=_int(os.getenv("INVENTORY_SWEEP_BATCH_SIZE", "100"), 100),
            isolation_level=os.getenv("INVENTORY_ISOLATION_LEVEL", "read_committed"),
            lock_timeout_ms=_int(os.getenv("INVENTORY_LOCK_TIMEOUT_MS", "5000"), 5000),
            transaction_retry_attempts=_int(os.getenv("INVENTORY_TX_RETRY_ATTEMPTS", "3"), 3),
            transaction_retry_max_wait=_float(os.getenv("INVENTORY_TX_RETRY_MAX_WAIT", "1.0"), 1.0),
        )
