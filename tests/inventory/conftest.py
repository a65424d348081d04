import pytest


@pytest.fixture(params=["memory", "sql"])
def any_store(request):
    """Each test using this fixture runs against both store adapters."""
    if request.param == "memory":
        return request.getfixturevalue("store")
    return request.getfixturevalue("sql_store")
