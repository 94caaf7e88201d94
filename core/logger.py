"""
Service Logger Setup

Configures stdlib logging for a microservice process from LoggingConfig.

Usage:
    from core.logger import setup_service_logger

    logger = setup_service_logger("inventory_service", level="INFO")
"""

import logging
import sys
from typing import Optional

from core.config import LoggingConfig

_configured_services = set()


def setup_service_logger(
    service_name: str,
    level: Optional[str] = None,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """
    Configure root handlers once per service and return the service logger.

    Args:
        service_name: Logger name and service identity
        level: Log level override (defaults to LoggingConfig.log_level)
        config: Logging config (loaded from environment if not provided)

    Returns:
        Logger named after the service
    """
    if config is None:
        config = LoggingConfig.from_env()

    log_level = (level or config.log_level).upper()
    formatter = logging.Formatter(config.log_format)

    root = logging.getLogger()
    root.setLevel(log_level)

    if service_name not in _configured_services:
        if config.enable_console:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(formatter)
            root.addHandler(console)

        if config.log_file:
            file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

        # asyncpg and nats are chatty at DEBUG
        logging.getLogger("asyncpg").setLevel(logging.WARNING)
        logging.getLogger("nats").setLevel(logging.WARNING)

        _configured_services.add(service_name)

    logger = logging.getLogger(service_name)
    logger.setLevel(log_level)
    return logger


__all__ = ["setup_service_logger"]
