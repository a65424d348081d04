import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Pins the environment the logging and config layers read, and initializes
    the ordering domain once for the whole session.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ["ENVIRONMENT"] = session.config.option.env

    from ordering.handler import ensure_domain

    ensure_domain()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
@pytest.fixture
def config():
    from shared.config import SagaConfig

    return SagaConfig(environment="test", allow_forced_outcome=True)


@pytest.fixture
def store():
    from inventory.store.memory_adapter import MemoryInventoryStore

    return MemoryInventoryStore()


@pytest.fixture
def sql_store(tmp_path):
    """SQL store on a throwaway SQLite file, or on INVENTORY_TEST_DATABASE_URI when set."""
    from inventory.store.sqlalchemy_adapter import SqlInventoryStore

    uri = os.getenv("INVENTORY_TEST_DATABASE_URI") or f"sqlite:///{tmp_path / 'inventory.db'}"
    store = SqlInventoryStore.from_uri(uri, table_name="test_inventory")
    store.setup_schema()

    yield store

    store.drop_schema()
    store.engine.dispose()


@pytest.fixture
def bus():
    from shared.bus.memory_adapter import InMemoryEventBus

    return InMemoryEventBus(bus_name="test-payment-bus")


@pytest.fixture
def authorizer():
    from payments.authorizer.fake_adapter import FakeAuthorizer

    return FakeAuthorizer()


@pytest.fixture
def ordering_ctx():
    """Push the ordering domain context for a test, with cleanup."""
    from ordering.domain import ordering

    ctx = ordering.domain_context()
    ctx.push()

    yield ordering

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()


@pytest.fixture(autouse=True)
def reset_factories():
    """Drop any stage or authorizer a test installed."""
    yield

    from ordering.purchase import reset_reservation_stage
    from payments.authorizer import reset_authorizer
    from payments.settlement import reset_settlement_stage

    reset_reservation_stage()
    reset_settlement_stage()
    reset_authorizer()
