#!/usr/bin/env python3
"""
Core Module for Microservices Architecture

Shared infrastructure components for the inventory service.

COMPONENTS:
    - config/: Environment-driven configuration (dataclasses + python-dotenv)
    - logger.py: Service logger setup
    - postgres_client.py: asyncpg pool wrapper
    - nats_client.py: NATS JetStream event bus

USAGE:
    from core.config import get_settings
    from core.postgres_client import PostgresClient
    from core.nats_client import get_event_bus
"""
