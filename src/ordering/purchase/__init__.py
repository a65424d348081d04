"""Reservation stage factory.

Provides get_reservation_stage() / set_reservation_stage() to swap the
collaborators the PlacePurchase handler works against:
- the default stage is built once from SagaConfig.from_env()
- tests install a stage wired to in-memory store and bus
"""

from inventory.store import build_inventory_store
from ordering.purchase.reservation import ReservationResult, ReservationStage, ReservationStatus
from shared.bus import build_event_bus
from shared.config import SagaConfig

__all__ = [
    "ReservationResult",
    "ReservationStage",
    "ReservationStatus",
    "get_reservation_stage",
    "reset_reservation_stage",
    "set_reservation_stage",
]

_current_stage: ReservationStage | None = None


def get_reservation_stage() -> ReservationStage:
    """Return the active reservation stage, building it from the environment on first use."""
    global _current_stage
    if _current_stage is None:
        config = SagaConfig.from_env()
        _current_stage = ReservationStage(config, build_inventory_store(config), build_event_bus(config))
    return _current_stage


def set_reservation_stage(stage: ReservationStage) -> None:
    """Override the active reservation stage (useful for tests)."""
    global _current_stage
    _current_stage = stage


def reset_reservation_stage() -> None:
    """Reset to the default stage."""
    global _current_stage
    _current_stage = None
