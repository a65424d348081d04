"""Process-level configuration.

Built once at process start with ``SagaConfig.from_env()`` and handed to the
stages by parameter. Nothing below the entrypoints reads the environment.
"""

import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class SagaConfig:
    environment: str = "development"
    region: str = "eu-west-2"
    inventory_table_name: str = "development-inventory-table"
    inventory_db_uri: str | None = None
    settlement_bus_name: str = "development-payment-bus"
    settlement_source: str = "order.service"
    settlement_detail_type: str = "PaymentRequested"
    redis_url: str | None = None
    allow_forced_outcome: bool = False
    rollback_partial_reservations: bool = True
    allow_unseeded_skus: bool = True

    @classmethod
    def from_env(cls) -> "SagaConfig":
        env = (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()
        return cls(
            environment=env,
            region=os.getenv("AWS_REGION", "eu-west-2"),
            inventory_table_name=os.getenv("INVENTORY_TABLE_NAME", f"{env}-inventory-table"),
            inventory_db_uri=os.getenv("INVENTORY_DATABASE_URI") or None,
            settlement_bus_name=os.getenv("SETTLEMENT_BUS_NAME", f"{env}-payment-bus"),
            redis_url=os.getenv("REDIS_URL") or None,
            allow_forced_outcome=_flag("ALLOW_FORCED_OUTCOME", False),
            rollback_partial_reservations=_flag("ROLLBACK_PARTIAL_RESERVATIONS", True),
            allow_unseeded_skus=_flag("ALLOW_UNSEEDED_SKUS", True),
        )
