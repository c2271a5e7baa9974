"""
JSONWire — Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mux: Empty Starlette application handlers are registered on
    ├── client: HTTPX AsyncClient talking to `mux` through ASGITransport
    ├── sql_engine: In-memory SQLite engine with the sessions table
    └── frozen_clock: Manually advanced clock for TTL tests
"""

import os

# Override settings for testing BEFORE any jsonwire imports
# Why: Prevents tests from touching a real database
os.environ["JSONWIRE_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JSONWIRE_LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from starlette.applications import Starlette  # noqa: E402

from jsonwire.sessions.sql_store import create_table  # noqa: E402


class FrozenClock:
    """Callable clock returning a value tests move by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mux():
    """
    Provides an empty Starlette application.

    Usage:
        async def test_x(mux, client):
            register(mux, [API("/api/x", handler)])
            resp = await client.post("/api/x", json={...})
    """
    return Starlette()


@pytest_asyncio.fixture
async def client(mux):
    """HTTPX AsyncClient routing requests straight to `mux`."""
    transport = ASGITransport(app=mux)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def sql_engine():
    """
    Provides an in-memory SQLite engine with the sessions table created.

    Why StaticPool: every connection must see the same in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_table(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def frozen_clock():
    return FrozenClock()
