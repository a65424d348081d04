"""Domain events for the Purchase aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Purchase")
class PurchaseAccepted:
    """Every line was reserved and the settlement request was published."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    customer_id = String(required=True)
    items = Text(required=True)  # JSON: list of {sku, quantity}
    accepted_at = DateTime(required=True)


@ordering.event(part_of="Purchase")
class PurchaseRejected:
    """A line could not be reserved; nothing was published downstream."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    customer_id = String(required=True)
    sku = String(required=True)
    quantity = Integer()
    reason = String(required=True)
    rejected_at = DateTime(required=True)
