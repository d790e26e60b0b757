"""Shared fixtures: storage backends and a service with a deterministic clock."""

import itertools
import random

import pytest

from cazino.service import CazinoService, CreateMarketParams
from cazino.storage.duckdb_store import DuckDBStorage
from cazino.storage.memory import MemoryStorage

T0 = 1_700_000_000_000


@pytest.fixture(params=["memory", "duckdb"])
def storage(request, tmp_path):
    if request.param == "memory":
        store = MemoryStorage()
    else:
        store = DuckDBStorage(tmp_path / "test.duckdb")
    yield store
    store.close()


@pytest.fixture
def service(storage):
    ticks = itertools.count(T0, 1000)
    return CazinoService(storage, clock=lambda: next(ticks), rng=random.Random(7))


@pytest.fixture
def family(service):
    """Open market with an admin and two players, all at 1000 coins."""
    market, admin = service.create_market(
        CreateMarketParams(name="Thanksgiving", admin_device_id="dev-admin", admin_name="Mom")
    )
    _, alice = service.join_market(market.invite_code, "dev-alice", "Alice", "🦊")
    _, bob = service.join_market(market.invite_code, "dev-bob", "Bob", "🐻")
    market = service.open_market(market.id, admin.id)
    return market, admin, alice, bob
