"""Purchase-request processing unit.

``handle_purchase_request`` is what the hosting runtime invokes once per
inbound purchase request. It always answers with a structured response:

- 200: every line reserved, settlement request published
- 400: the request did not validate; nothing was touched
- 409: a line could not be reserved; the body names the SKU
- 500: the inventory store or event bus failed
"""

import json
from collections.abc import Mapping
from typing import Any

import structlog
from protean.exceptions import InvalidDataError

from ordering.domain import ordering
from ordering.purchase.placement import PlacePurchase
from ordering.purchase.reservation import ReservationResult
from shared.envelopes import parse_purchase_request, unwrap_envelope
from shared.exceptions import InfrastructureError, ValidationError
from shared.logging import add_context, clear_context, configure_logging

logger = structlog.get_logger(__name__)

_domain_ready = False


def ensure_domain() -> None:
    """Initialize the ordering domain once per process."""
    global _domain_ready
    if not _domain_ready:
        ordering.init()
        _domain_ready = True


def _error_messages(exc: Exception) -> dict[str, list[str]]:
    """Normalize an exception's ``messages`` into ``{field: [message, ...]}``."""
    messages = getattr(exc, "messages", None)
    if not isinstance(messages, Mapping):
        return {"payload": [str(messages or exc)]}

    errors = {}
    for field, reasons in messages.items():
        if isinstance(reasons, list | tuple):
            errors[str(field)] = [str(reason) for reason in reasons]
        else:
            errors[str(field)] = [str(reasons)]
    return errors


def _failure(message: str) -> dict[str, Any]:
    return {"statusCode": 500, "body": {"status": "ERROR", "message": message}}


def handle_purchase_request(event: Any, context: Any = None) -> dict[str, Any]:
    configure_logging()
    ensure_domain()

    try:
        request = parse_purchase_request(unwrap_envelope(event))
    except ValidationError as exc:
        errors = _error_messages(exc)
        logger.warning("Invalid purchase request", errors=errors)
        return ReservationResult.invalid(errors).to_response()

    add_context(order_id=request.order_id)
    try:
        logger.info("Purchase request received", customer_id=request.customer_id, lines=len(request.items))
        with ordering.domain_context():
            result = ordering.process(
                PlacePurchase(
                    order_id=request.order_id,
                    customer_id=request.customer_id,
                    items=json.dumps([item.model_dump() for item in request.items]),
                    force_outcome=request.force_outcome,
                ),
                asynchronous=False,
            )
        return result.to_response()
    except (ValidationError, InvalidDataError) as exc:
        errors = _error_messages(exc)
        logger.warning("Purchase rejected by domain rules", errors=errors)
        return ReservationResult.invalid(errors).to_response()
    except InfrastructureError:
        logger.exception("Purchase could not be completed")
        return _failure("Purchase could not be completed, please retry")
    except Exception:
        logger.exception("Unexpected failure while placing purchase")
        return _failure("Unexpected error")
    finally:
        clear_context()
