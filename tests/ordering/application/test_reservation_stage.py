"""Tests for the reservation stage against in-memory collaborators."""

import dataclasses

import pytest
from inventory.store.port import InventoryRecord
from ordering.purchase.reservation import ReservationResult, ReservationStage, ReservationStatus
from shared.envelopes import parse_purchase_request
from shared.exceptions import InfrastructureError


def _request(*items, **overrides):
    payload = {
        "orderId": "ord-1",
        "customerId": "cust-1",
        "items": [{"sku": sku, "quantity": quantity} for sku, quantity in items],
    }
    payload.update(overrides)
    return parse_purchase_request(payload)


@pytest.fixture
def stage(config, store, bus):
    return ReservationStage(config, store, bus)


class TestAccepted:
    def test_reserves_every_line(self, stage, store):
        store.seed("SKU-1", 100)
        store.seed("SKU-2", 100)
        result = stage.reserve(_request(("SKU-1", 2), ("SKU-2", 5)))
        assert result.status == ReservationStatus.ACCEPTED
        assert store.get("SKU-1") == InventoryRecord(sku="SKU-1", stock=100, reserved=2)
        assert store.get("SKU-2") == InventoryRecord(sku="SKU-2", stock=100, reserved=5)

    def test_publishes_settlement_request(self, stage, store, bus):
        store.seed("SKU-1", 100)
        result = stage.reserve(_request(("SKU-1", 2)))
        [message] = bus.published
        assert result.message_id == message.id
        assert message.detail_type == "PaymentRequested"
        assert message.detail["orderId"] == "ord-1"
        assert message.detail["customerId"] == "cust-1"
        assert message.detail["items"] == [{"sku": "SKU-1", "quantity": 2}]
        assert "_testForceOutcome" not in message.detail

    def test_forwards_force_outcome(self, stage, store, bus):
        store.seed("SKU-1", 100)
        stage.reserve(_request(("SKU-1", 2), _testForceOutcome="SUCCESS"))
        assert bus.published[0].detail["_testForceOutcome"] == "SUCCESS"

    def test_unseeded_sku_is_reserved(self, stage, store):
        result = stage.reserve(_request(("NEW", 3)))
        assert result.status == ReservationStatus.ACCEPTED
        assert store.get("NEW") == InventoryRecord(sku="NEW", stock=0, reserved=3)


class TestRejected:
    def test_insufficient_stock(self, stage, store, bus):
        store.seed("SKU-1", 1)
        result = stage.reserve(_request(("SKU-1", 2)))
        assert result.status == ReservationStatus.REJECTED
        assert result.sku == "SKU-1"
        assert result.status_code == 409
        assert store.get("SKU-1") == InventoryRecord(sku="SKU-1", stock=1, reserved=0)
        assert bus.published == []

    def test_partial_reservation_rolled_back(self, stage, store, bus):
        store.seed("SKU-1", 10)
        store.seed("SKU-2", 10)
        store.seed("SKU-3", 0)
        result = stage.reserve(_request(("SKU-1", 2), ("SKU-2", 3), ("SKU-3", 1)))
        assert result.sku == "SKU-3"
        assert store.get("SKU-1").reserved == 0
        assert store.get("SKU-2").reserved == 0
        assert bus.published == []

    def test_partial_reservation_kept_when_rollback_disabled(self, config, store, bus):
        stage = ReservationStage(dataclasses.replace(config, rollback_partial_reservations=False), store, bus)
        store.seed("SKU-1", 10)
        store.seed("SKU-2", 0)
        result = stage.reserve(_request(("SKU-1", 2), ("SKU-2", 1)))
        assert result.status == ReservationStatus.REJECTED
        assert store.get("SKU-1").reserved == 2
        assert bus.published == []

    def test_unseeded_sku_rejected_when_disallowed(self, config, store, bus):
        stage = ReservationStage(dataclasses.replace(config, allow_unseeded_skus=False), store, bus)
        result = stage.reserve(_request(("NEW", 1)))
        assert result.status == ReservationStatus.REJECTED
        assert store.get("NEW") is None

    def test_first_failing_line_aborts(self, stage, store):
        store.seed("SKU-1", 0)
        store.seed("SKU-2", 10)
        result = stage.reserve(_request(("SKU-1", 1), ("SKU-2", 1)))
        assert result.sku == "SKU-1"
        assert store.get("SKU-2").reserved == 0


class TestInfrastructureFailures:
    def test_publish_failure_releases_and_raises(self, stage, store, bus):
        store.seed("SKU-1", 10)
        store.seed("SKU-2", 10)
        bus.fail_next_publish()
        with pytest.raises(InfrastructureError):
            stage.reserve(_request(("SKU-1", 2), ("SKU-2", 3)))
        assert store.get("SKU-1").reserved == 0
        assert store.get("SKU-2").reserved == 0

    def test_store_failure_releases_held_lines_and_raises(self, stage, store, monkeypatch):
        store.seed("SKU-1", 10)
        original = store.reserve

        def _reserve(sku, quantity, allow_unseeded=True):
            if sku == "SKU-2":
                raise InfrastructureError("store down")
            return original(sku, quantity, allow_unseeded)

        monkeypatch.setattr(store, "reserve", _reserve)
        with pytest.raises(InfrastructureError):
            stage.reserve(_request(("SKU-1", 2), ("SKU-2", 1)))
        assert store.get("SKU-1").reserved == 0


class TestReservationResult:
    def test_accepted_response(self):
        response = ReservationResult.accepted("ord-1").to_response()
        assert response["statusCode"] == 200
        assert response["body"]["orderId"] == "ord-1"
        assert response["body"]["status"] == "ACCEPTED"

    def test_rejected_response_names_sku(self):
        response = ReservationResult.rejected("ord-1", "SKU-1", "Insufficient stock").to_response()
        assert response["statusCode"] == 409
        assert response["body"]["sku"] == "SKU-1"

    def test_invalid_response_carries_errors(self):
        response = ReservationResult.invalid({"items": ["Field required"]}).to_response()
        assert response["statusCode"] == 400
        assert response["body"]["errors"] == {"items": ["Field required"]}
