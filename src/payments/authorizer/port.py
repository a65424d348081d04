"""Payment authorizer port (abstract interface).

Decides whether a settlement request is paid for. The settlement stage is
written against this interface only, so the coin-flip stand-in can be
replaced by a real gateway adapter without touching the saga.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from shared.envelopes import Outcome, SettlementRequest

SUCCESS: Outcome = "SUCCESS"
FAILURE: Outcome = "FAILURE"


@dataclass(frozen=True)
class AuthorizationResult:
    """Outcome of one authorization attempt."""

    outcome: Outcome
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == SUCCESS


class PaymentAuthorizer(ABC):
    """Abstract payment authorizer interface."""

    @abstractmethod
    def authorize(self, request: SettlementRequest) -> AuthorizationResult:
        """Decide the settlement outcome for ``request``."""
        ...
