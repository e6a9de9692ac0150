"""Fixtures for integration tests.

Database tests need a reachable MongoDB (MONGO_URL, or the MONGO_* parts)
and skip otherwise. Compose tests drive the docker compose CLI and only run
with STACK_DOCKER_TESTS=1.
"""

import os
import shutil
import subprocess
import uuid
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from compose_stack.services.mongodb import close_client, drop_collection, ping
from compose_stack.services.mongodb.errors import DatabaseError

REPO_ROOT = Path(__file__).resolve().parents[3]


# Mark all tests in this directory as integration tests
def pytest_collection_modifyitems(items):
    """Auto-mark all tests in integration/ as integration tests."""
    for item in items:
        if "/integration/" in str(item.fspath) or "\\integration\\" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest_asyncio.fixture
async def mongo() -> AsyncGenerator[None, None]:
    """A reachable database, or skip. The client is closed afterwards."""
    try:
        await ping()
    except DatabaseError as e:
        await close_client()
        pytest.skip(f"MongoDB not reachable: {e}")

    yield

    await close_client()


@pytest_asyncio.fixture
async def scratch_collection(mongo) -> AsyncGenerator[str, None]:
    """A collection name unique to this test, dropped afterwards."""
    name = f"test_{uuid.uuid4().hex[:8]}"
    yield name
    await drop_collection(name)


# ============ docker compose ============


@pytest.fixture(scope="session")
def compose():
    """Run `docker compose <args>` from the repository root."""
    if os.getenv("STACK_DOCKER_TESTS") != "1":
        pytest.skip("Set STACK_DOCKER_TESTS=1 to run docker compose tests")
    if shutil.which("docker") is None:
        pytest.skip("docker CLI not available")

    def run(*args: str, check: bool = True) -> subprocess.CompletedProcess:
        return subprocess.run(
            ["docker", "compose", *args],
            cwd=REPO_ROOT,
            capture_output=True,
            text=True,
            check=check,
            timeout=300,
        )

    yield run

    run("down", "-v", check=False)
