"""
Inventory Service Database Schema

DDL applied idempotently at startup by InventoryRepository.initialize().

Tables:
    - inventory.inventory_items: Per-product ledger (unique product_id)
    - inventory.reservations: Reservation headers (indexed by order_id, status)
    - inventory.reservation_items: Reservation lines (FK to reservations)
    - inventory.adjustments: Administrative audit trail (indexed by product_id, created_at)
"""

SCHEMA = "inventory"

DDL_STATEMENTS = [
    f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}",
    f"""
    CREATE TABLE IF NOT EXISTS {SCHEMA}.inventory_items (
        id TEXT PRIMARY KEY,
        product_id TEXT NOT NULL,
        product_name VARCHAR(200) NOT NULL DEFAULT '',
        sku VARCHAR(64) NOT NULL DEFAULT '',
        quantity_on_hand INTEGER NOT NULL DEFAULT 0,
        quantity_reserved INTEGER NOT NULL DEFAULT 0,
        reorder_point INTEGER NOT NULL DEFAULT 0,
        safety_stock INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT ck_inventory_items_on_hand_non_negative CHECK (quantity_on_hand >= 0),
        CONSTRAINT ck_inventory_items_reserved_bounds
            CHECK (quantity_reserved >= 0 AND quantity_reserved <= quantity_on_hand)
    )
    """,
    f"CREATE UNIQUE INDEX IF NOT EXISTS ux_inventory_items_product_id ON {SCHEMA}.inventory_items (product_id)",
    f"""
    CREATE TABLE IF NOT EXISTS {SCHEMA}.reservations (
        id TEXT PRIMARY KEY,
        order_id TEXT NOT NULL,
        status VARCHAR(20) NOT NULL DEFAULT 'pending',
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        expires_at TIMESTAMPTZ,
        completed_at TIMESTAMPTZ,
        failure_reason VARCHAR(200)
    )
    """,
    f"CREATE INDEX IF NOT EXISTS ix_reservations_order_id ON {SCHEMA}.reservations (order_id)",
    f"CREATE INDEX IF NOT EXISTS ix_reservations_status ON {SCHEMA}.reservations (status)",
    f"""
    CREATE INDEX IF NOT EXISTS ix_reservations_pending_expiry
        ON {SCHEMA}.reservations (expires_at) WHERE status = 'pending'
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {SCHEMA}.reservation_items (
        id BIGSERIAL PRIMARY KEY,
        reservation_id TEXT NOT NULL REFERENCES {SCHEMA}.reservations (id) ON DELETE CASCADE,
        line_no INTEGER NOT NULL,
        product_id TEXT NOT NULL,
        quantity INTEGER NOT NULL CHECK (quantity > 0),
        UNIQUE (reservation_id, line_no)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {SCHEMA}.adjustments (
        id TEXT PRIMARY KEY,
        product_id TEXT NOT NULL,
        quantity_delta INTEGER NOT NULL,
        reason VARCHAR(200) NOT NULL DEFAULT '',
        created_by VARCHAR(128) NOT NULL DEFAULT '',
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    f"CREATE INDEX IF NOT EXISTS ix_adjustments_product_created ON {SCHEMA}.adjustments (product_id, created_at)",
]


__all__ = ["SCHEMA", "DDL_STATEMENTS"]
