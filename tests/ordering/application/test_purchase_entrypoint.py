"""Tests for the purchase-request processing unit."""

import json

import pytest
from ordering.handler import handle_purchase_request
from ordering.purchase import ReservationStage, set_reservation_stage


@pytest.fixture(autouse=True)
def stage(config, store, bus):
    stage = ReservationStage(config, store, bus)
    set_reservation_stage(stage)
    return stage


def _event(**overrides):
    payload = {"orderId": "ord-1", "customerId": "cust-1", "items": [{"sku": "SKU-1", "quantity": 2}]}
    payload.update(overrides)
    return payload


class TestHandlePurchaseRequest:
    def test_accepted(self, store, bus):
        store.seed("SKU-1", 100)
        response = handle_purchase_request(_event())
        assert response["statusCode"] == 200
        assert response["body"]["orderId"] == "ord-1"
        assert len(bus.published) == 1

    def test_order_id_assigned_when_absent(self, store):
        store.seed("SKU-1", 100)
        event = _event()
        del event["orderId"]
        response = handle_purchase_request(event)
        assert response["statusCode"] == 200
        assert response["body"]["orderId"]

    def test_insufficient_stock_is_409(self, store, bus):
        store.seed("SKU-1", 1)
        response = handle_purchase_request(_event())
        assert response["statusCode"] == 409
        assert response["body"]["sku"] == "SKU-1"
        assert bus.published == []

    def test_invalid_request_is_400(self, store, bus):
        response = handle_purchase_request({"customerId": "cust-1"})
        assert response["statusCode"] == 400
        assert "items" in response["body"]["errors"]
        assert store.records() == []
        assert bus.published == []

    def test_wrapped_request_is_unwrapped(self, store):
        store.seed("SKU-1", 100)
        response = handle_purchase_request({"detail": json.dumps(_event())})
        assert response["statusCode"] == 200

    def test_infrastructure_failure_is_500(self, store, bus):
        store.seed("SKU-1", 100)
        bus.fail_next_publish()
        response = handle_purchase_request(_event())
        assert response["statusCode"] == 500
        assert response["body"]["status"] == "ERROR"
        assert "Traceback" not in response["body"]["message"]
        assert store.get("SKU-1").reserved == 0

    def test_overlong_sku_is_400_and_touches_nothing(self, store, bus):
        sku = "S" * 120
        store.seed(sku, 100)
        response = handle_purchase_request(_event(items=[{"sku": sku, "quantity": 2}]))
        assert response["statusCode"] == 400
        assert "items.0.sku" in response["body"]["errors"]
        assert store.get(sku).reserved == 0
        assert bus.published == []

    def test_overlong_customer_id_is_400(self, store, bus):
        store.seed("SKU-1", 100)
        response = handle_purchase_request(_event(customerId="c" * 300))
        assert response["statusCode"] == 400
        assert "customerId" in response["body"]["errors"]
        assert store.get("SKU-1").reserved == 0
        assert bus.published == []

    def test_domain_rule_failure_is_structured_400(self, store, bus, monkeypatch):
        from ordering.purchase.purchase import Purchase
        from protean.exceptions import ValidationError

        def _reject(**kwargs):
            raise ValidationError(ValidationError({"sku": ["too long"]}))

        store.seed("SKU-1", 100)
        monkeypatch.setattr(Purchase, "place", staticmethod(_reject))
        response = handle_purchase_request(_event())
        assert response["statusCode"] == 400
        assert response["body"]["errors"]
        assert store.get("SKU-1").reserved == 0
        assert bus.published == []
