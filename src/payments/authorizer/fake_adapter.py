"""Configurable fake payment authorizer for development and testing.

Answers every request with the configured outcome and records the requests
it was asked about, so tests can assert how often authorization happened.
"""

from payments.authorizer.port import FAILURE, SUCCESS, AuthorizationResult, PaymentAuthorizer
from shared.envelopes import SettlementRequest


class FakeAuthorizer(PaymentAuthorizer):
    """Configurable fake payment authorizer."""

    def __init__(self, should_succeed: bool = True, failure_reason: str = "Card declined") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined") -> None:
        """Configure authorizer behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def authorize(self, request: SettlementRequest) -> AuthorizationResult:
        self.calls.append(
            {
                "order_id": request.order_id,
                "customer_id": request.customer_id,
                "items": request.quantities_by_sku(),
            }
        )
        if self.should_succeed:
            return AuthorizationResult(outcome=SUCCESS)
        return AuthorizationResult(outcome=FAILURE, reason=self.failure_reason)
