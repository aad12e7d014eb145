"""Integration test configuration.

Builds the FastAPI application with a small pool so the first-fit
scenario can be driven over HTTP. The TestClient is used as a context
manager so the lifespan handler creates the pool.
"""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from poolsim.adapters.config.settings import reload_settings
from poolsim.entrypoints.api_server import create_app


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.setenv("POOLSIM_POOL_CAPACITY", "100")
    monkeypatch.setenv("POOLSIM_SERVER_JSON_LOGS", "false")
    reload_settings()

    with TestClient(create_app(), raise_server_exceptions=False) as test_client:
        yield test_client

    monkeypatch.delenv("POOLSIM_POOL_CAPACITY")
    monkeypatch.delenv("POOLSIM_SERVER_JSON_LOGS")
    reload_settings()
