"""Settlement-request processing unit.

``handle_settlement_request`` is invoked by the hosting runtime once per
delivery of a settlement request, bare or wrapped in a bus envelope under
``detail``. Malformed payloads and infrastructure failures are raised to the
runtime; a FAILURE payment outcome is a normal return value.
"""

from typing import Any

import structlog

from payments.settlement import get_settlement_stage
from shared.envelopes import parse_settlement_request, unwrap_envelope
from shared.exceptions import InfrastructureError, ValidationError
from shared.logging import add_context, clear_context, configure_logging

logger = structlog.get_logger(__name__)


def handle_settlement_request(event: Any, context: Any = None) -> dict[str, str]:
    configure_logging()
    try:
        request = parse_settlement_request(unwrap_envelope(event))
    except ValidationError as exc:
        logger.error("Malformed settlement request", errors=exc.messages)
        raise

    add_context(order_id=request.order_id)
    try:
        logger.info("Settlement request received", customer_id=request.customer_id, lines=len(request.items))
        outcome = get_settlement_stage().settle(request)
    except InfrastructureError:
        logger.exception("Settlement failed, leaving the request for redelivery")
        raise
    finally:
        clear_context()

    logger.info("Settlement complete", order_id=outcome.order_id, status=outcome.status, duplicate=outcome.duplicate)
    return outcome.to_dict()
