"""Payment authorizer factory.

Provides get_authorizer() / set_authorizer() to swap implementations:
- CoinFlipAuthorizer behind ForcedOutcomeAuthorizer by default
- FakeAuthorizer for tests that need a fixed outcome
"""

from payments.authorizer.coin_flip_adapter import CoinFlipAuthorizer
from payments.authorizer.fake_adapter import FakeAuthorizer
from payments.authorizer.forced_outcome import ForcedOutcomeAuthorizer
from payments.authorizer.port import FAILURE, SUCCESS, AuthorizationResult, PaymentAuthorizer
from shared.config import SagaConfig

__all__ = [
    "FAILURE",
    "SUCCESS",
    "AuthorizationResult",
    "CoinFlipAuthorizer",
    "FakeAuthorizer",
    "ForcedOutcomeAuthorizer",
    "PaymentAuthorizer",
    "build_authorizer",
    "get_authorizer",
    "reset_authorizer",
    "set_authorizer",
]

_current_authorizer: PaymentAuthorizer | None = None


def build_authorizer(config: SagaConfig) -> PaymentAuthorizer:
    return ForcedOutcomeAuthorizer(CoinFlipAuthorizer(), enabled=config.allow_forced_outcome)


def get_authorizer(config: SagaConfig | None = None) -> PaymentAuthorizer:
    """Return the current payment authorizer, building the default on first use."""
    global _current_authorizer
    if _current_authorizer is None:
        _current_authorizer = build_authorizer(config or SagaConfig.from_env())
    return _current_authorizer


def set_authorizer(authorizer: PaymentAuthorizer) -> None:
    """Override the active payment authorizer (useful for tests)."""
    global _current_authorizer
    _current_authorizer = authorizer


def reset_authorizer() -> None:
    """Reset to the default authorizer."""
    global _current_authorizer
    _current_authorizer = None
