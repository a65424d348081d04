"""Inventory store port (abstract interface).

The store is keyed by SKU and holds two counters, ``stock`` and ``reserved``.
Every mutating method is a single atomic unit in the backing store; the
stages never read-then-write. The conditional reservation is the only
concurrency control between competing purchases.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class InventoryRecord:
    sku: str
    stock: int
    reserved: int

    @property
    def available(self) -> int:
        return self.stock - self.reserved


@dataclass(frozen=True)
class SettlementMarker:
    """Per-order record of the settlement outcome that was applied."""

    order_id: str
    payment_id: str
    status: str


class InventoryStore(ABC):
    """Abstract inventory store interface."""

    @abstractmethod
    def seed(self, sku: str, stock: int) -> None:
        """Provision a SKU: set ``stock`` and zero ``reserved``."""
        ...

    @abstractmethod
    def get(self, sku: str) -> InventoryRecord | None: ...

    @abstractmethod
    def records(self) -> list[InventoryRecord]: ...

    @abstractmethod
    def reserve(self, sku: str, quantity: int, allow_unseeded: bool = True) -> bool:
        """Atomically add ``quantity`` to ``reserved`` if ``stock - reserved >= quantity``.

        When the SKU has no record and ``allow_unseeded`` is set, the record is
        created holding the reservation. Returns False when the precondition
        rejects the update.
        """
        ...

    @abstractmethod
    def release(self, sku: str, quantity: int) -> None:
        """Atomically subtract ``quantity`` from ``reserved``."""
        ...

    @abstractmethod
    def get_outcome(self, order_id: str) -> SettlementMarker | None: ...

    @abstractmethod
    def record_outcome(self, order_id: str, payment_id: str, status: str) -> SettlementMarker:
        """Insert the settlement marker for ``order_id`` unless one exists.

        Returns the marker that is in force: the new one, or the one recorded
        by an earlier delivery of the same settlement request.
        """
        ...

    @abstractmethod
    def settle_line(self, order_id: str, sku: str, quantity: int, commit: bool) -> bool:
        """Apply the compensating update for ``(order_id, sku)`` exactly once.

        Releases ``quantity`` from ``reserved`` and, when ``commit`` is set,
        deducts it from ``stock``. Returns False, changing nothing, when the
        pair was already settled.
        """
        ...
