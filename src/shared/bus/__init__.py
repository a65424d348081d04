"""Event bus factory.

Provides build_event_bus() to choose an adapter from configuration:
- RedisStreamEventBus when REDIS_URL is configured
- InMemoryEventBus otherwise (development, tests, local runner)
"""

from shared.bus.memory_adapter import InMemoryEventBus
from shared.bus.port import BusMessage, EventBus
from shared.config import SagaConfig

__all__ = ["BusMessage", "EventBus", "InMemoryEventBus", "build_event_bus"]


def build_event_bus(config: SagaConfig) -> EventBus:
    if config.redis_url:
        from shared.bus.redis_adapter import RedisStreamEventBus

        return RedisStreamEventBus.from_url(
            config.redis_url,
            bus_name=config.settlement_bus_name,
            source=config.settlement_source,
        )
    return InMemoryEventBus(bus_name=config.settlement_bus_name, source=config.settlement_source)
