"""Redis Streams event bus adapter.

Publishes with ``XADD`` onto a stream named after the bus. Consumers read
through a consumer group and acknowledge only after their handler returns,
so a crash or exception leaves the entry pending and it is read again on the
next ``consume`` call (at-least-once). Entries rejected with
``ValidationError`` will never succeed: they are copied to
``<bus>.dead-letter`` and acknowledged so the rest of the stream keeps moving.
"""

import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import redis
import structlog

from shared.bus.port import BusMessage, EventBus
from shared.exceptions import InfrastructureError, ValidationError

logger = structlog.get_logger(__name__)


class RedisStreamEventBus(EventBus):
    def __init__(
        self,
        client: redis.Redis,
        bus_name: str,
        source: str = "order.service",
        block_ms: int = 1000,
    ) -> None:
        self.client = client
        self.bus_name = bus_name
        self.source = source
        self.block_ms = block_ms
        self.dead_letter_stream = f"{bus_name}.dead-letter"

    @classmethod
    def from_url(cls, url: str, bus_name: str, source: str = "order.service") -> "RedisStreamEventBus":
        return cls(redis.Redis.from_url(url, decode_responses=True), bus_name, source)

    def publish(self, detail_type: str, detail: dict[str, Any]) -> str:
        fields = {
            "source": self.source,
            "detail-type": detail_type,
            "detail": json.dumps(detail, default=str),
            "time": datetime.now(UTC).isoformat(),
        }
        try:
            message_id = self.client.xadd(self.bus_name, fields)
        except redis.RedisError as exc:
            raise InfrastructureError(f"Failed to publish to {self.bus_name}") from exc
        return str(message_id)

    def ensure_group(self, group: str) -> None:
        try:
            self.client.xgroup_create(self.bus_name, group, id="0", mkstream=True)
        except redis.ResponseError as exc:
            if "BUSYGROUP" not in str(exc):
                raise InfrastructureError(f"Cannot create consumer group {group}") from exc
        except redis.RedisError as exc:
            raise InfrastructureError(f"Cannot create consumer group {group}") from exc

    def consume(
        self,
        group: str,
        consumer: str,
        handler: Callable[[dict[str, Any]], Any],
        count: int = 10,
    ) -> int:
        """Process one batch: this consumer's unacknowledged entries first, then new ones."""
        self.ensure_group(group)
        try:
            response = self.client.xreadgroup(group, consumer, {self.bus_name: "0"}, count=count)
            if not self._has_entries(response):
                response = self.client.xreadgroup(
                    group, consumer, {self.bus_name: ">"}, count=count, block=self.block_ms
                )
        except redis.RedisError as exc:
            raise InfrastructureError(f"Failed to read from {self.bus_name}") from exc

        handled = 0
        for _stream, entries in response or []:
            for message_id, fields in entries:
                if not fields:
                    continue
                try:
                    handler(self._to_message(message_id, fields).as_envelope())
                except ValidationError as exc:
                    self._dead_letter(group, message_id, fields, exc)
                    continue
                self.client.xack(self.bus_name, group, message_id)
                handled += 1
        logger.debug("Consumed batch", stream=self.bus_name, group=group, handled=handled)
        return handled

    def _dead_letter(self, group: str, message_id: str, fields: dict[str, str], exc: ValidationError) -> None:
        """Park a message that can never be handled and acknowledge it."""
        logger.error("Dead-lettering malformed message", stream=self.bus_name, message_id=message_id, errors=exc.messages)
        try:
            self.client.xadd(
                self.dead_letter_stream,
                {**fields, "original-id": str(message_id), "errors": json.dumps(exc.messages, default=str)},
            )
            self.client.xack(self.bus_name, group, message_id)
        except redis.RedisError as err:
            raise InfrastructureError(f"Failed to dead-letter {message_id}") from err

    @staticmethod
    def _has_entries(response) -> bool:
        return any(entries for _stream, entries in response or [])

    def _to_message(self, message_id: str, fields: dict[str, str]) -> BusMessage:
        try:
            detail = json.loads(fields.get("detail", "{}"))
        except ValueError as exc:
            raise ValidationError({"detail": ["Malformed JSON"]}) from exc
        return BusMessage(
            id=str(message_id),
            source=fields.get("source", self.source),
            detail_type=fields.get("detail-type", ""),
            detail=detail,
            time=fields.get("time"),
        )
