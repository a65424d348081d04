"""Error taxonomy shared by the reservation and settlement stages.

Validation failures use Protean's ``ValidationError`` (a ``{field: [messages]}``
mapping), like every other domain rule in this code base. The two classes
below cover what Protean does not: a business rejection from the inventory
store, and infrastructure failures that must reach the runtime so the
at-least-once delivery contract can retry them.
"""

from protean.exceptions import ValidationError

__all__ = ["InfrastructureError", "InsufficientStockError", "ValidationError"]


class InsufficientStockError(Exception):
    """The store rejected a conditional reservation for ``sku``."""

    def __init__(self, sku: str, requested: int) -> None:
        self.sku = sku
        self.requested = requested
        super().__init__(f"Insufficient stock for {sku}: {requested} requested")


class InfrastructureError(Exception):
    """The inventory store or event bus failed. Never a business outcome."""
