"""Purchase aggregate (CQRS) — the authoritative copy of an accepted purchase.

A Purchase is recorded once the reservation stage has decided on it. It is
never mutated after the decision: the saga moves on through the settlement
request, and cancellation is not supported once that has been published.

State Machine:
    PENDING → ACCEPTED
    PENDING → REJECTED
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from ordering.domain import ordering
from ordering.purchase.events import PurchaseAccepted, PurchaseRejected


class PurchaseStatus(Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


@ordering.entity(part_of="Purchase")
class PurchaseLine:
    sku = String(required=True, max_length=100)
    quantity = Integer(required=True, min_value=1)


@ordering.aggregate
class Purchase:
    order_id = Identifier(identifier=True)
    customer_id = String(required=True, max_length=255)
    lines = HasMany(PurchaseLine)
    status = String(choices=PurchaseStatus, default=PurchaseStatus.PENDING.value)
    rejected_sku = String(max_length=100)
    rejection_reason = String(max_length=255)
    placed_at = DateTime()
    decided_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, order_id, customer_id, items):
        """Record a purchase for ``items``, a sequence of ``(sku, quantity)`` pairs."""
        return cls(
            order_id=order_id,
            customer_id=customer_id,
            lines=[PurchaseLine(sku=sku, quantity=quantity) for sku, quantity in items],
            status=PurchaseStatus.PENDING.value,
            placed_at=datetime.now(UTC),
        )

    # -------------------------------------------------------------------
    # Decision
    # -------------------------------------------------------------------
    def _ensure_pending(self):
        if PurchaseStatus(self.status) != PurchaseStatus.PENDING:
            raise ValidationError({"status": [f"Purchase has already been {self.status.lower()}"]})

    def accept(self):
        self._ensure_pending()
        now = datetime.now(UTC)
        self.status = PurchaseStatus.ACCEPTED.value
        self.decided_at = now

        self.raise_(
            PurchaseAccepted(
                order_id=str(self.order_id),
                customer_id=self.customer_id,
                items=json.dumps([{"sku": line.sku, "quantity": line.quantity} for line in self.lines]),
                accepted_at=now,
            )
        )

    def reject(self, sku, reason):
        self._ensure_pending()
        now = datetime.now(UTC)
        self.status = PurchaseStatus.REJECTED.value
        self.rejected_sku = sku
        self.rejection_reason = reason
        self.decided_at = now

        quantity = sum(line.quantity for line in self.lines if line.sku == sku)
        self.raise_(
            PurchaseRejected(
                order_id=str(self.order_id),
                customer_id=self.customer_id,
                sku=sku,
                quantity=quantity or None,
                reason=reason,
                rejected_at=now,
            )
        )

    @property
    def is_decided(self):
        return PurchaseStatus(self.status) != PurchaseStatus.PENDING
