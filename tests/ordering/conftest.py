import pytest


@pytest.fixture(autouse=True)
def _ctx(ordering_ctx):
    yield
