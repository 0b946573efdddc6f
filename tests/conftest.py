"""Shared fixtures for dobi_fleet tests."""

from __future__ import annotations

import httpx
import pytest
from pytest_metadata.plugin import metadata_key

from dobi_fleet.api.app import create_app
from dobi_fleet.daemon import FleetDaemon
from dobi_fleet.models.config import FleetConfig, ScheduleConfig
from dobi_fleet.storage.sqlite import SQLiteLedgerStore

from tests.mocks import FakeClock, MockChain, ScriptedRandom

# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add run settings to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Chain"] = "mock gateway (no RPC)"
    meta["Ledger"] = "in-memory SQLite"
    meta["Clock"] = "virtual (FakeClock)"


def make_test_config(**overrides) -> FleetConfig:
    """Build a FleetConfig suitable for testing."""
    defaults = dict(
        rpc_url="http://127.0.0.1:8545",
        send_onchain=False,
        db_path=":memory:",
        seed_path="",
        schedule=ScheduleConfig(status_sweep_enabled=False),
    )
    defaults.update(overrides)
    return FleetConfig(**defaults)


@pytest.fixture
def test_config():
    """Default FleetConfig for tests."""
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteLedgerStore."""
    s = SQLiteLedgerStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def fake_clock():
    """Virtual clock starting at midnight, so the whole window lies ahead."""
    return FakeClock()


@pytest.fixture
def rng():
    return ScriptedRandom(count=2, hours=[10, 12])


@pytest.fixture
def mock_chain():
    return MockChain(balance_wei=0)


@pytest.fixture
async def daemon(test_config, store, mock_chain, fake_clock, rng):
    """Fully wired FleetDaemon with mocked chain, clock and randomness."""
    d = FleetDaemon(test_config, store=store, chain=mock_chain, clock=fake_clock, rng=rng)
    await d.prepare()
    return d


@pytest.fixture
def scheduler(daemon):
    return daemon.scheduler


@pytest.fixture
def executor(daemon):
    return daemon.executor


@pytest.fixture
async def client(daemon):
    """HTTP client talking to the app in-process. Lifespan is not run."""
    app = create_app(daemon)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
