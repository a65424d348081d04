"""Unweighted coin flip standing in for a payment gateway."""

import random

from payments.authorizer.port import FAILURE, SUCCESS, AuthorizationResult, PaymentAuthorizer
from shared.envelopes import SettlementRequest


class CoinFlipAuthorizer(PaymentAuthorizer):
    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    def authorize(self, request: SettlementRequest) -> AuthorizationResult:
        if self.rng.random() < 0.5:
            return AuthorizationResult(outcome=SUCCESS, reason="Coin flip")
        return AuthorizationResult(outcome=FAILURE, reason="Coin flip")
