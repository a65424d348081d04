"""Event bus port (abstract interface).

The transport between the reservation and settlement stages. Adapters must
provide at-least-once delivery: a message may arrive more than once, never
zero times. Consumers are expected to be idempotent.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class BusMessage:
    """One published event, shaped like an EventBridge envelope on delivery."""

    id: str
    source: str
    detail_type: str
    detail: dict[str, Any] = field(default_factory=dict)
    time: str | None = None

    def as_envelope(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "detail-type": self.detail_type,
            "detail": self.detail,
            "time": self.time,
        }


class EventBus(ABC):
    """Abstract publish side of the bus."""

    @abstractmethod
    def publish(self, detail_type: str, detail: dict[str, Any]) -> str:
        """Publish ``detail`` and return the transport's message id.

        Raises ``InfrastructureError`` when the transport is unavailable.
        """
        ...
