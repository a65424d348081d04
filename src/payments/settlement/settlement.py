"""Settlement stage: decides payment and applies the compensating update.

For every SKU of a settlement request the hold taken at reservation time is
released; when the payment succeeded the same quantity is also deducted from
stock. Delivery is at-least-once, so the stage is idempotent:

- the outcome is decided once per order and recorded as a settlement marker;
  a redelivered request reuses it instead of authorizing again
- each ``(order_id, sku)`` pair is applied at most once through the store's
  settlement ledger
"""

from dataclasses import dataclass
from uuid import uuid4

import structlog

from inventory.store.port import InventoryStore
from payments.authorizer import SUCCESS, PaymentAuthorizer, build_authorizer
from shared.config import SagaConfig
from shared.envelopes import Outcome, SettlementRequest

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SettlementOutcome:
    order_id: str
    payment_id: str
    status: Outcome
    duplicate: bool = False

    def to_dict(self) -> dict[str, str]:
        return {"orderId": self.order_id, "paymentId": self.payment_id, "status": self.status}


class SettlementStage:
    def __init__(
        self,
        config: SagaConfig,
        store: InventoryStore,
        authorizer: PaymentAuthorizer | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.authorizer = authorizer or build_authorizer(config)

    def settle(self, request: SettlementRequest) -> SettlementOutcome:
        log = logger.bind(order_id=request.order_id)

        marker = self.store.get_outcome(request.order_id)
        reused = marker is not None
        if marker is None:
            decision = self.authorizer.authorize(request)
            payment_id = str(uuid4())
            marker = self.store.record_outcome(request.order_id, payment_id, decision.outcome)
            # Another delivery may have recorded its outcome first; that one stands.
            reused = marker.payment_id != payment_id
            log.info("Payment outcome decided", status=marker.status, payment_id=marker.payment_id, reason=decision.reason)
        else:
            log.info("Reusing recorded payment outcome", status=marker.status, payment_id=marker.payment_id)

        commit = marker.status == SUCCESS
        lines = request.quantities_by_sku()
        applied = 0
        for sku, quantity in lines.items():
            if self.store.settle_line(request.order_id, sku, quantity, commit):
                applied += 1
                log.debug("Reservation settled", sku=sku, quantity=quantity, committed=commit)
            else:
                log.info("Duplicate settlement skipped", sku=sku)

        return SettlementOutcome(
            order_id=request.order_id,
            payment_id=marker.payment_id,
            status=marker.status,
            duplicate=applied == 0 and (bool(lines) or reused),
        )
