"""Fixtures for end-to-end saga tests.

Both processing units run in this process, wired to the same inventory store
and connected through the in-memory event bus, the way the local CLI runs
them.
"""

import pytest


@pytest.fixture
def saga(config, store, bus, ordering_ctx):
    from ordering.purchase import ReservationStage, set_reservation_stage
    from payments.authorizer import CoinFlipAuthorizer, ForcedOutcomeAuthorizer
    from payments.settlement import SettlementStage, set_settlement_stage

    set_reservation_stage(ReservationStage(config, store, bus))
    set_settlement_stage(
        SettlementStage(config, store, ForcedOutcomeAuthorizer(CoinFlipAuthorizer(), enabled=True))
    )
    return store, bus
