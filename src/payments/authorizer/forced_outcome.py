"""Test-override authorizer.

Post-deploy verification runs attach ``_testForceOutcome`` to a purchase so
the end-to-end result is deterministic. The override is honoured only when
``enabled``; otherwise, and whenever no override is present, the decision is
left to ``delegate``.
"""

import structlog

from payments.authorizer.port import AuthorizationResult, PaymentAuthorizer
from shared.envelopes import SettlementRequest

logger = structlog.get_logger(__name__)


class ForcedOutcomeAuthorizer(PaymentAuthorizer):
    def __init__(self, delegate: PaymentAuthorizer, enabled: bool = False) -> None:
        self.delegate = delegate
        self.enabled = enabled

    def authorize(self, request: SettlementRequest) -> AuthorizationResult:
        if request.force_outcome is None:
            return self.delegate.authorize(request)
        if not self.enabled:
            logger.warning("Ignoring forced outcome", order_id=request.order_id, forced=request.force_outcome)
            return self.delegate.authorize(request)
        return AuthorizationResult(outcome=request.force_outcome, reason="Forced by test override")
