"""
Inventory Service Worker

Runs the reservation engine as a long-lived process:
- connects PostgreSQL and applies the inventory schema
- connects the NATS JetStream event bus (optional)
- subscribes order/payment event handlers
- schedules the reservation expiry sweep

Run with: python -m microservices.inventory_service.main
"""

import asyncio
import logging
import signal
from typing import Optional

from core.config import get_settings
from core.logger import setup_service_logger
from core.nats_client import get_event_bus

from .events import InventoryStreamConfig, get_event_handlers
from .expiry_sweeper import ExpirySweeper
from .factory import create_inventory_service
from .inventory_service import InventoryService

config = get_settings()

# Configure logging
logger = setup_service_logger(config.service_name, config=config.logging)

# Global variables
inventory_service: Optional[InventoryService] = None
event_bus = None  # NATS event bus
sweeper: Optional[ExpirySweeper] = None


async def startup() -> None:
    """Bring up storage, event bus, subscriptions and the sweep"""
    global inventory_service, event_bus, sweeper

    # Initialize NATS JetStream event bus
    if config.nats_enabled:
        try:
            event_bus = await get_event_bus(config.service_name, config=config.infrastructure)
            await event_bus.create_stream(
                InventoryStreamConfig.STREAM_NAME,
                InventoryStreamConfig.SUBJECTS,
                max_msgs=InventoryStreamConfig.MAX_MESSAGES,
            )
            logger.info("✅ Event bus initialized successfully")
        except Exception as e:
            logger.warning(f"⚠️  Failed to initialize event bus: {e}. Continuing without events.")
            event_bus = None

    # Create inventory service using factory (with or without event bus)
    inventory_service = create_inventory_service(config=config, event_bus=event_bus)
    await inventory_service.repository.initialize()
    health = await inventory_service.repository.db.health_check()
    logger.info(f"✅ Inventory repository initialized ({health.get('version', 'unknown version')})")

    # Subscribe to events if event bus is available
    if event_bus:
        handler_map = get_event_handlers(inventory_service)
        for pattern, handler_func in handler_map.items():
            await event_bus.subscribe_to_events(
                pattern=pattern,
                handler=handler_func,
                durable=f"{InventoryStreamConfig.CONSUMER_PREFIX}-{pattern.replace('.', '-')}-consumer",
            )
        logger.info(f"✅ Inventory event subscriber started ({len(handler_map)} event patterns)")

    # Start expiry sweep (APScheduler)
    sweeper = ExpirySweeper(inventory_service, interval_seconds=config.inventory.sweep_interval_seconds)
    sweeper.start()

    logger.info(f"✅ Inventory service started ({config.environment})")


async def shutdown() -> None:
    """Stop the sweep, drain the event bus, close the pool"""
    global inventory_service, event_bus, sweeper

    if sweeper:
        try:
            sweeper.shutdown()
        except Exception as e:
            logger.error(f"❌ Failed to stop expiry sweep: {e}")
        sweeper = None

    if event_bus:
        try:
            await event_bus.close()
            logger.info("✅ Event bus closed")
        except Exception as e:
            logger.error(f"❌ Error closing event bus: {e}")
        event_bus = None

    if inventory_service:
        try:
            await inventory_service.repository.close()
            logger.info("✅ Database pool closed")
        except Exception as e:
            logger.error(f"❌ Error closing database pool: {e}")
        inventory_service = None

    logger.info("Inventory service stopped")


async def run() -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop.set))

    try:
        await startup()
        await stop.wait()
    except Exception as e:
        logger.error(f"Failed to run inventory service: {e}")
        raise
    finally:
        await shutdown()


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
