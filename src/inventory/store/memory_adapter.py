"""In-process inventory store.

A single lock stands in for the backing store's atomic conditional update;
each public method holds it for its whole read-modify-write.
"""

import threading

from inventory.store.port import InventoryRecord, InventoryStore, SettlementMarker


class MemoryInventoryStore(InventoryStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: dict[str, dict[str, int]] = {}
        self._outcomes: dict[str, SettlementMarker] = {}
        self._settled_lines: set[tuple[str, str]] = set()

    def seed(self, sku: str, stock: int) -> None:
        with self._lock:
            self._items[sku] = {"stock": stock, "reserved": 0}

    def get(self, sku: str) -> InventoryRecord | None:
        with self._lock:
            item = self._items.get(sku)
            if item is None:
                return None
            return InventoryRecord(sku=sku, stock=item["stock"], reserved=item["reserved"])

    def records(self) -> list[InventoryRecord]:
        with self._lock:
            return [
                InventoryRecord(sku=sku, stock=item["stock"], reserved=item["reserved"])
                for sku, item in sorted(self._items.items())
            ]

    def reserve(self, sku: str, quantity: int, allow_unseeded: bool = True) -> bool:
        with self._lock:
            item = self._items.get(sku)
            if item is None:
                if not allow_unseeded:
                    return False
                self._items[sku] = {"stock": 0, "reserved": quantity}
                return True
            if item["stock"] - item["reserved"] < quantity:
                return False
            item["reserved"] += quantity
            return True

    def release(self, sku: str, quantity: int) -> None:
        with self._lock:
            item = self._items.get(sku)
            if item is not None:
                item["reserved"] -= quantity

    def get_outcome(self, order_id: str) -> SettlementMarker | None:
        with self._lock:
            return self._outcomes.get(order_id)

    def record_outcome(self, order_id: str, payment_id: str, status: str) -> SettlementMarker:
        with self._lock:
            return self._outcomes.setdefault(
                order_id,
                SettlementMarker(order_id=order_id, payment_id=payment_id, status=status),
            )

    def settle_line(self, order_id: str, sku: str, quantity: int, commit: bool) -> bool:
        with self._lock:
            key = (order_id, sku)
            if key in self._settled_lines:
                return False
            self._settled_lines.add(key)
            item = self._items.get(sku)
            if item is not None:
                item["reserved"] -= quantity
                if commit:
                    item["stock"] -= quantity
            return True
