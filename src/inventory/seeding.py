"""Inventory provisioning.

Seeding happens out-of-band, before any purchase: every listed SKU gets
``stock`` units (100 unless told otherwise) and nothing reserved.
"""

from collections.abc import Iterable

import structlog

from inventory.store.port import InventoryStore

logger = structlog.get_logger(__name__)

DEFAULT_STOCK = 100


def seed_inventory(store: InventoryStore, skus: Iterable[str], stock: int = DEFAULT_STOCK) -> list[str]:
    if stock < 0:
        raise ValueError("Stock must not be negative")
    seeded = []
    for sku in skus:
        store.seed(sku, stock)
        seeded.append(sku)
        logger.info("Seeded inventory item", sku=sku, stock=stock, reserved=0)
    return seeded
