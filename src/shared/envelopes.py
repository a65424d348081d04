"""Wire contracts between the ingestion layer and the two stages.

These are external contracts (anti-corruption layer), separate from the
Protean elements inside each bounded context. Every inbound payload goes
through exactly one parse call here; nothing downstream re-inspects the wire
shape.

Settlement-request envelope::

    {
      "orderId": "...",
      "customerId": "...",
      "items": [{"sku": "...", "quantity": 2}],
      "timestamp": "2026-01-01T00:00:00+00:00",
      "_testForceOutcome": "SUCCESS"        # optional, test-only
    }
"""

import json
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Literal
from uuid import uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    field_validator,
)
from pydantic import ValidationError as SchemaError

from shared.exceptions import ValidationError

Outcome = Literal["SUCCESS", "FAILURE"]

_FORCE_OUTCOME_ALIASES = AliasChoices("_testForceOutcome", "_postDeployTestForceResult", "force_outcome")


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="ignore")

    sku: StrictStr = Field(min_length=1, max_length=100)
    quantity: StrictInt = Field(gt=0)


class PurchaseRequest(BaseModel):
    """A validated purchase intent."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    order_id: StrictStr = Field(default_factory=lambda: str(uuid4()), alias="orderId", min_length=1, max_length=100)
    customer_id: StrictStr = Field(alias="customerId", min_length=1, max_length=255)
    items: list[LineItem] = Field(min_length=1)
    force_outcome: Outcome | None = Field(default=None, validation_alias=_FORCE_OUTCOME_ALIASES)

    @field_validator("order_id", mode="before")
    @classmethod
    def _assign_missing_order_id(cls, value: Any) -> Any:
        return str(uuid4()) if value is None else value


class SettlementRequest(BaseModel):
    """The event published after a successful reservation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    order_id: StrictStr = Field(alias="orderId", min_length=1, max_length=100)
    customer_id: StrictStr = Field(default="", alias="customerId")
    items: list[LineItem]
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    force_outcome: Outcome | None = Field(default=None, validation_alias=_FORCE_OUTCOME_ALIASES)

    @classmethod
    def from_purchase(cls, request: PurchaseRequest) -> "SettlementRequest":
        return cls(
            order_id=request.order_id,
            customer_id=request.customer_id,
            items=list(request.items),
            force_outcome=request.force_outcome,
        )

    def quantities_by_sku(self) -> dict[str, int]:
        """Total quantity per SKU, in first-seen order.

        Settlement is idempotent per ``(order_id, sku)``, so repeated lines for
        one SKU are settled as a single unit.
        """
        totals: dict[str, int] = {}
        for item in self.items:
            totals[item.sku] = totals.get(item.sku, 0) + item.quantity
        return totals

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {
            "orderId": self.order_id,
            "customerId": self.customer_id,
            "items": [{"sku": item.sku, "quantity": item.quantity} for item in self.items],
            "timestamp": self.timestamp.isoformat(),
        }
        if self.force_outcome is not None:
            wire["_testForceOutcome"] = self.force_outcome
        return wire


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------
def _as_validation_error(exc: SchemaError) -> ValidationError:
    messages: dict[str, list[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "payload"
        messages.setdefault(field, []).append(error["msg"])
    return ValidationError(messages)


def _load_json(raw: str | bytes, field: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ValidationError({field: ["Malformed JSON"]}) from exc


def unwrap_envelope(event: Any) -> Mapping[str, Any]:
    """Return the bare payload whether or not the bus wrapped it in ``detail``."""
    if isinstance(event, str | bytes):
        event = _load_json(event, "payload")
    if not isinstance(event, Mapping):
        raise ValidationError({"payload": ["Event must be a JSON object"]})

    detail = event.get("detail")
    if isinstance(detail, str | bytes):
        detail = _load_json(detail, "detail")
    if isinstance(detail, Mapping):
        return detail
    return event


def parse_purchase_request(payload: Any) -> PurchaseRequest:
    if not isinstance(payload, Mapping):
        raise ValidationError({"payload": ["Purchase request must be a JSON object"]})
    try:
        return PurchaseRequest.model_validate(dict(payload))
    except SchemaError as exc:
        raise _as_validation_error(exc) from exc


def parse_settlement_request(payload: Any) -> SettlementRequest:
    if not isinstance(payload, Mapping):
        raise ValidationError({"payload": ["Settlement request must be a JSON object"]})
    if not isinstance(payload.get("items"), list | tuple):
        raise ValidationError({"items": ["Settlement request is missing an items array"]})
    try:
        return SettlementRequest.model_validate(dict(payload))
    except SchemaError as exc:
        raise _as_validation_error(exc) from exc
