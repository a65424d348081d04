"""Tests for store selection from configuration."""

from inventory.store import MemoryInventoryStore, build_inventory_store
from inventory.store.sqlalchemy_adapter import SqlInventoryStore
from shared.config import SagaConfig


class TestBuildInventoryStore:
    def test_memory_store_without_uri(self):
        assert isinstance(build_inventory_store(SagaConfig()), MemoryInventoryStore)

    def test_sql_store_with_uri(self, tmp_path):
        config = SagaConfig(
            inventory_db_uri=f"sqlite:///{tmp_path / 'inventory.db'}",
            inventory_table_name="dev_inventory",
        )
        store = build_inventory_store(config)
        assert isinstance(store, SqlInventoryStore)
        assert store.items.name == "dev_inventory"
        assert store.outcomes.name == "dev_inventory_settlements"
        store.engine.dispose()
