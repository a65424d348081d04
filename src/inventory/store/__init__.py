"""Inventory store factory.

Provides build_inventory_store() to choose an adapter from configuration:
- SqlInventoryStore when INVENTORY_DATABASE_URI is configured
- MemoryInventoryStore otherwise (development, tests, local runner)
"""

from inventory.store.memory_adapter import MemoryInventoryStore
from inventory.store.port import InventoryRecord, InventoryStore, SettlementMarker
from shared.config import SagaConfig

__all__ = [
    "InventoryRecord",
    "InventoryStore",
    "MemoryInventoryStore",
    "SettlementMarker",
    "build_inventory_store",
]


def build_inventory_store(config: SagaConfig) -> InventoryStore:
    if config.inventory_db_uri:
        from inventory.store.sqlalchemy_adapter import SqlInventoryStore

        return SqlInventoryStore.from_uri(config.inventory_db_uri, table_name=config.inventory_table_name)
    return MemoryInventoryStore()
