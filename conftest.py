"""
Pytest configuration and shared fixtures.

Provides:
- Environment setup (fast readiness backoff, tracing off)
- MongoDB client singleton reset between tests
- FastAPI app and test clients with the database connection mocked
"""

import os
from collections.abc import Generator
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient


# ============ Environment Setup ============


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up test environment variables."""
    os.environ["OTLP_ENDPOINT"] = ""
    os.environ.setdefault("READINESS_BASE_DELAY", "0.01")
    os.environ.setdefault("READINESS_MAX_DELAY", "0.05")
    os.environ.setdefault("MONGO_TIMEOUT_MS", "500")
    yield


@pytest.fixture(autouse=True)
def reset_mongo_client():
    """Every test starts without a cached MongoDB client."""
    from compose_stack.services.mongodb.driver import reset_client

    reset_client()
    yield
    reset_client()


# ============ Database Connection Mocks ============


@pytest.fixture
def mock_connect():
    """Web Service startup connection succeeds without a database."""
    with (
        patch("compose_stack.api.state.establish_connection", new_callable=AsyncMock) as connect,
        patch("compose_stack.api.state.close_client", new_callable=AsyncMock),
    ):
        connect.return_value = {"ok": 1.0}
        yield connect


# ============ FastAPI Test Client ============


@pytest.fixture
def app():
    """FastAPI app instance for testing."""
    from compose_stack.api.main import app

    return app


@pytest.fixture
def client(app, mock_connect) -> Generator[TestClient, None, None]:
    """Synchronous test client for FastAPI (lifespan runs)."""
    with TestClient(app) as c:
        yield c

