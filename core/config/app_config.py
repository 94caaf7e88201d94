#!/usr/bin/env python3
"""Inventory service main configuration

Combines all sub-configs for the inventory reservation service.
"""
import os
from dataclasses import dataclass, field

from .infra_config import InfraConfig
from .inventory_config import InventoryConfig
from .logging_config import LoggingConfig


def _bool(val: str) -> bool:
    return val.lower() == "true"


@dataclass
class AppConfig:
    """Main service configuration with all sub-configs"""

    # Environment
    environment: str = "development"
    debug: bool = False
    service_name: str = "inventory_service"

    # Event bus toggle (worker runs without NATS when disabled)
    nats_enabled: bool = True

    # Sub-configurations
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    infrastructure: InfraConfig = field(default_factory=InfraConfig)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """Load complete configuration from environment"""
        env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        return cls(
            environment=env,
            debug=_bool(os.getenv("DEBUG", "true" if env == "development" else "false")),
            service_name=os.getenv("SERVICE_NAME", "inventory_service"),
            nats_enabled=_bool(os.getenv("NATS_ENABLED", "true")),

            # Load sub-configs
            logging=LoggingConfig.from_env(),
            infrastructure=InfraConfig.from_env(),
            inventory=InventoryConfig.from_env(),
        )
