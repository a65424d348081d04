"""In-process event bus for development, tests and the local CLI runner.

Keeps every published message, hands pending ones out in publish order, and
can redeliver or refuse a publish on demand so consumers can be exercised
against the failure modes of a real at-least-once transport.
"""

from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import structlog

from shared.bus.port import BusMessage, EventBus
from shared.exceptions import InfrastructureError, ValidationError

logger = structlog.get_logger(__name__)


class InMemoryEventBus(EventBus):
    def __init__(self, bus_name: str = "memory-bus", source: str = "order.service") -> None:
        self.bus_name = bus_name
        self.source = source
        self.published: list[BusMessage] = []
        self._pending: deque[BusMessage] = deque()
        self._publish_failure: str | None = None
        self.dead_letters: list[BusMessage] = []

    def fail_next_publish(self, reason: str = "Event bus unavailable") -> None:
        self._publish_failure = reason

    def publish(self, detail_type: str, detail: dict[str, Any]) -> str:
        if self._publish_failure is not None:
            reason, self._publish_failure = self._publish_failure, None
            raise InfrastructureError(reason)

        message = BusMessage(
            id=str(uuid4()),
            source=self.source,
            detail_type=detail_type,
            detail=dict(detail),
            time=datetime.now(UTC).isoformat(),
        )
        self.published.append(message)
        self._pending.append(message)
        return message.id

    def pending(self) -> list[BusMessage]:
        return list(self._pending)

    def drain(self) -> list[BusMessage]:
        """Hand out every pending message, clearing the queue."""
        messages = list(self._pending)
        self._pending.clear()
        return messages

    def redeliver(self, message_id: str) -> None:
        """Queue an already published message again, as a duplicate delivery."""
        message = next((m for m in self.published if m.id == message_id), None)
        if message is None:
            raise KeyError(message_id)
        self._pending.append(message)

    def deliver(self, handler: Callable[[dict[str, Any]], Any]) -> list[Any]:
        """Feed pending messages to ``handler`` as envelopes.

        A message the handler rejects with ``ValidationError`` can never succeed;
        it moves to ``dead_letters`` and delivery continues. Any other error puts
        the message back at the head of the queue and propagates, so the next
        ``deliver`` retries it.
        """
        results = []
        while self._pending:
            message = self._pending.popleft()
            try:
                results.append(handler(message.as_envelope()))
            except ValidationError as exc:
                logger.error("Dead-lettering malformed message", message_id=message.id, errors=exc.messages)
                self.dead_letters.append(message)
            except Exception:
                self._pending.appendleft(message)
                raise
        return results
