"""Settlement stage factory.

Provides get_settlement_stage() / set_settlement_stage() so the processing
unit and tests share one way of wiring the stage:
- the default stage is built once from SagaConfig.from_env()
- tests install a stage wired to an in-memory store and a fake authorizer
"""

from inventory.store import build_inventory_store
from payments.authorizer import get_authorizer
from payments.settlement.settlement import SettlementOutcome, SettlementStage
from shared.config import SagaConfig

__all__ = [
    "SettlementOutcome",
    "SettlementStage",
    "get_settlement_stage",
    "reset_settlement_stage",
    "set_settlement_stage",
]

_current_stage: SettlementStage | None = None


def get_settlement_stage() -> SettlementStage:
    """Return the active settlement stage, building it from the environment on first use."""
    global _current_stage
    if _current_stage is None:
        config = SagaConfig.from_env()
        _current_stage = SettlementStage(config, build_inventory_store(config), get_authorizer(config))
    return _current_stage


def set_settlement_stage(stage: SettlementStage) -> None:
    """Override the active settlement stage (useful for tests)."""
    global _current_stage
    _current_stage = stage


def reset_settlement_stage() -> None:
    """Reset to the default stage."""
    global _current_stage
    _current_stage = None
