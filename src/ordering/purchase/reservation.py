"""Reservation stage: holds stock for every line of a purchase.

Each line is an independent conditional update against the inventory store;
there is no multi-item transaction. The first line the store refuses aborts
the purchase. Lines already held are released again (in reverse order) when
``rollback_partial_reservations`` is configured, and always when the
settlement request cannot be published.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from inventory.store.port import InventoryStore
from shared.bus.port import EventBus
from shared.config import SagaConfig
from shared.envelopes import LineItem, PurchaseRequest, SettlementRequest
from shared.exceptions import InfrastructureError, InsufficientStockError

logger = structlog.get_logger(__name__)


class ReservationStatus(Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    INVALID = "INVALID"


_STATUS_CODES = {
    ReservationStatus.ACCEPTED: 200,
    ReservationStatus.REJECTED: 409,
    ReservationStatus.INVALID: 400,
}


@dataclass(frozen=True)
class ReservationResult:
    status: ReservationStatus
    order_id: str | None = None
    sku: str | None = None
    message: str = ""
    errors: dict[str, list[str]] = field(default_factory=dict)
    message_id: str | None = None

    @classmethod
    def accepted(cls, order_id: str, message_id: str | None = None) -> "ReservationResult":
        return cls(ReservationStatus.ACCEPTED, order_id=order_id, message="Order placed", message_id=message_id)

    @classmethod
    def rejected(cls, order_id: str, sku: str, message: str) -> "ReservationResult":
        return cls(ReservationStatus.REJECTED, order_id=order_id, sku=sku, message=message)

    @classmethod
    def invalid(cls, errors: dict[str, list[str]]) -> "ReservationResult":
        return cls(ReservationStatus.INVALID, message="Invalid purchase request", errors=dict(errors))

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.status]

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {"status": self.status.value, "message": self.message}
        if self.order_id is not None:
            body["orderId"] = self.order_id
        if self.sku is not None:
            body["sku"] = self.sku
        if self.errors:
            body["errors"] = self.errors
        return {"statusCode": self.status_code, "body": body}


class ReservationStage:
    def __init__(self, config: SagaConfig, store: InventoryStore, bus: EventBus) -> None:
        self.config = config
        self.store = store
        self.bus = bus

    def reserve(self, request: PurchaseRequest) -> ReservationResult:
        log = logger.bind(order_id=request.order_id, customer_id=request.customer_id)
        log.info("Reserving purchase", lines=len(request.items))

        held: list[LineItem] = []
        try:
            for item in request.items:
                if not self.store.reserve(item.sku, item.quantity, allow_unseeded=self.config.allow_unseeded_skus):
                    raise InsufficientStockError(item.sku, item.quantity)
                held.append(item)
                log.debug("Stock reserved", sku=item.sku, quantity=item.quantity)
        except InsufficientStockError as exc:
            log.warning("Reservation rejected", sku=exc.sku, requested=exc.requested, held=len(held))
            if self.config.rollback_partial_reservations:
                self._release(held, log)
            return ReservationResult.rejected(request.order_id, exc.sku, str(exc))
        except InfrastructureError:
            log.error("Inventory store failed mid-reservation", held=len(held))
            self._release(held, log)
            raise

        settlement = SettlementRequest.from_purchase(request)
        try:
            message_id = self.bus.publish(self.config.settlement_detail_type, settlement.to_wire())
        except InfrastructureError:
            log.error("Settlement request could not be published", bus=self.config.settlement_bus_name)
            self._release(held, log)
            raise

        log.info("Purchase accepted", message_id=message_id)
        return ReservationResult.accepted(request.order_id, message_id)

    def _release(self, held: list[LineItem], log) -> None:
        for item in reversed(held):
            try:
                self.store.release(item.sku, item.quantity)
            except InfrastructureError:
                # Leaves the hold in place; the original failure is still raised.
                log.exception("Failed to release reservation", sku=item.sku, quantity=item.quantity)
                continue
            log.debug("Reservation released", sku=item.sku, quantity=item.quantity)
