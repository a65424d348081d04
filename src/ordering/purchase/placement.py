"""Purchase placement — command and handler.

The handler runs the reservation stage and records the decision on a
Purchase aggregate. A purchase whose order id has already been decided is
answered from the recorded decision, so a retried request never reserves
stock a second time.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.purchase import get_reservation_stage
from ordering.purchase.purchase import Purchase, PurchaseStatus
from ordering.purchase.reservation import ReservationResult, ReservationStatus
from shared.envelopes import parse_purchase_request

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Purchase")
class PlacePurchase:
    """Reserve stock for a purchase and request its settlement."""

    order_id = Identifier(required=True)
    customer_id = String(required=True, max_length=255)
    items = Text(required=True)  # JSON: list of {sku, quantity}
    force_outcome = String(max_length=10)  # SUCCESS | FAILURE, forwarded to settlement


def _recorded_result(purchase: Purchase) -> ReservationResult:
    if PurchaseStatus(purchase.status) == PurchaseStatus.ACCEPTED:
        return ReservationResult.accepted(str(purchase.order_id))
    return ReservationResult.rejected(
        str(purchase.order_id),
        purchase.rejected_sku,
        purchase.rejection_reason or "",
    )


@ordering.command_handler(part_of=Purchase)
class PlacePurchaseHandler:
    @handle(PlacePurchase)
    def place_purchase(self, command):
        repo = current_domain.repository_for(Purchase)
        try:
            purchase = repo.get(command.order_id)
        except ObjectNotFoundError:
            purchase = None

        if purchase is not None and purchase.is_decided:
            logger.info("Purchase already decided", order_id=str(command.order_id), status=purchase.status)
            return _recorded_result(purchase)

        items = json.loads(command.items) if isinstance(command.items, str) else command.items
        request = parse_purchase_request(
            {
                "order_id": str(command.order_id),
                "customer_id": command.customer_id,
                "items": items,
                "force_outcome": command.force_outcome,
            }
        )

        # Validated before any stock is held.
        if purchase is None:
            purchase = Purchase.place(
                order_id=request.order_id,
                customer_id=request.customer_id,
                items=[(item.sku, item.quantity) for item in request.items],
            )

        result = get_reservation_stage().reserve(request)
        if result.status == ReservationStatus.ACCEPTED:
            purchase.accept()
        else:
            purchase.reject(result.sku, result.message)
        repo.add(purchase)
        return result
