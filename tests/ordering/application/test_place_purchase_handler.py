"""Application tests for PlacePurchaseHandler."""

import json

import pytest
from ordering.purchase import ReservationStage, ReservationStatus, set_reservation_stage
from ordering.purchase.placement import PlacePurchase
from ordering.purchase.purchase import Purchase, PurchaseStatus
from protean import current_domain
from shared.exceptions import InfrastructureError


@pytest.fixture(autouse=True)
def stage(config, store, bus):
    stage = ReservationStage(config, store, bus)
    set_reservation_stage(stage)
    return stage


def _place(order_id="ord-1", items=(("SKU-1", 2),), force_outcome=None):
    return current_domain.process(
        PlacePurchase(
            order_id=order_id,
            customer_id="cust-1",
            items=json.dumps([{"sku": sku, "quantity": quantity} for sku, quantity in items]),
            force_outcome=force_outcome,
        ),
        asynchronous=False,
    )


class TestPlacePurchase:
    def test_accepted_purchase_is_recorded(self, store):
        store.seed("SKU-1", 100)
        result = _place()
        assert result.status == ReservationStatus.ACCEPTED

        purchase = current_domain.repository_for(Purchase).get("ord-1")
        assert purchase.status == PurchaseStatus.ACCEPTED.value
        assert [(line.sku, line.quantity) for line in purchase.lines] == [("SKU-1", 2)]

    def test_rejected_purchase_is_recorded(self, store):
        store.seed("SKU-1", 1)
        result = _place()
        assert result.status == ReservationStatus.REJECTED

        purchase = current_domain.repository_for(Purchase).get("ord-1")
        assert purchase.status == PurchaseStatus.REJECTED.value
        assert purchase.rejected_sku == "SKU-1"

    def test_force_outcome_forwarded(self, store, bus):
        store.seed("SKU-1", 100)
        _place(force_outcome="FAILURE")
        assert bus.published[0].detail["_testForceOutcome"] == "FAILURE"

    def test_retried_purchase_does_not_reserve_again(self, store, bus):
        store.seed("SKU-1", 100)
        first = _place()
        second = _place()
        assert first.status == second.status == ReservationStatus.ACCEPTED
        assert store.get("SKU-1").reserved == 2
        assert len(bus.published) == 1

    def test_retried_rejection_replays_decision(self, store):
        store.seed("SKU-1", 1)
        _place()
        store.seed("SKU-1", 100)
        result = _place()
        assert result.status == ReservationStatus.REJECTED
        assert result.sku == "SKU-1"
        assert store.get("SKU-1").reserved == 0

    def test_infrastructure_failure_records_nothing(self, store, bus):
        from protean.exceptions import ObjectNotFoundError

        store.seed("SKU-1", 100)
        bus.fail_next_publish()
        with pytest.raises(InfrastructureError):
            _place()
        with pytest.raises(ObjectNotFoundError):
            current_domain.repository_for(Purchase).get("ord-1")
        assert store.get("SKU-1").reserved == 0

    def test_invalid_lines_fail_before_any_stock_is_held(self, store, bus):
        from shared.exceptions import ValidationError

        sku = "S" * 120
        store.seed(sku, 100)
        with pytest.raises(ValidationError):
            _place(items=((sku, 2),))
        assert store.get(sku).reserved == 0
        assert bus.published == []
