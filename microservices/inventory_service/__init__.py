"""
Inventory Service

Inventory reservation and stock bookkeeping service for isA platform.

Features:
- Per-product on-hand / reserved ledger with audited adjustments
- All-or-nothing reservations under row locks
- Commit / release / fail lifecycle with idempotent repeats
- Scheduled expiry sweep for abandoned reservations
- Event-driven integration with order and payment services
"""

__version__ = "1.0.0"
