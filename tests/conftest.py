"""
Shared fixtures: a seeded aiosqlite database per test and the wired
order core (hub, cache, transaction manager, status service).

Seed data:
    branch B1: tables T1, T2          branch B2: table T9
    P1 Phở Bò 45000, P2 Bún Chả 65000 (every branch)
    P3 Cơm Tấm 50000 (B2 only), P4 Bún Bò Huế (out of stock)
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy.pool import NullPool

from orderhub.core.config import Settings
from orderhub.database import build_engine, build_session_maker, init_db
from orderhub.models import DiningTable, Product, ProductStatus, TableStatus
from orderhub.services.cache import MockCacheService
from orderhub.services.orders import OrderStatusService, OrderTransactionManager
from orderhub.services.realtime import Connection, ConnectionRegistry, DispatchHub


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "env_mode": "development",
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'orderhub.db'}",
        "order_transaction_timeout_seconds": 5,
        "cors_origins": "http://testserver",
    }
    values.update(overrides)
    return Settings(**values)


async def seed_database(engine) -> None:
    await init_db(engine)
    session_maker = build_session_maker(engine)
    async with session_maker() as session:
        async with session.begin():
            session.add_all([
                DiningTable(id="T1", branch_id="B1", table_number="1", status=TableStatus.AVAILABLE),
                DiningTable(id="T2", branch_id="B1", table_number="2", status=TableStatus.AVAILABLE),
                DiningTable(id="T9", branch_id="B2", table_number="9", status=TableStatus.AVAILABLE),
                Product(id="P1", name="Phở Bò", price=Decimal("45000"), status=ProductStatus.AVAILABLE),
                Product(id="P2", name="Bún Chả", price=Decimal("65000"), status=ProductStatus.AVAILABLE),
                Product(
                    id="P3",
                    branch_id="B2",
                    name="Cơm Tấm",
                    price=Decimal("50000"),
                    status=ProductStatus.AVAILABLE,
                ),
                Product(
                    id="P4",
                    name="Bún Bò Huế",
                    price=Decimal("60000"),
                    status=ProductStatus.OUT_OF_STOCK,
                ),
            ])


def queued(connection: Connection) -> list[dict]:
    """Drain and return the frames waiting on a connection, oldest first."""
    frames = []
    while connection.pending:
        frames.append(connection._queue.get_nowait())
    return frames


async def noop_send(message: dict) -> None:
    return None


class BrokenHub(DispatchHub):
    def publish_order_created(self, order):
        raise RuntimeError("socket layer down")

    def publish_status_changed(self, order, previous, item=None, timestamp=None):
        raise RuntimeError("socket layer down")


class BrokenCache(MockCacheService):
    async def invalidate(self, *keys):
        raise ConnectionError("redis unreachable")


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
async def engine(settings):
    engine = build_engine(settings, poolclass=NullPool)
    await seed_database(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def hub(registry) -> DispatchHub:
    return DispatchHub(registry)


@pytest.fixture
def cache() -> MockCacheService:
    return MockCacheService()


@pytest.fixture
def manager(session_maker, hub, cache, settings) -> OrderTransactionManager:
    return OrderTransactionManager(session_maker, hub, cache, settings)


@pytest.fixture
def status_service(session_maker, hub, cache, settings) -> OrderStatusService:
    return OrderStatusService(session_maker, hub, cache, settings)


@pytest.fixture
def listener(registry):
    """Factory: a connection joined to the given rooms."""
    def _listen(*rooms: str) -> Connection:
        connection = Connection(noop_send)
        registry.register(connection)
        for room in rooms:
            registry.join(connection, room)
        return connection
    return _listen


@pytest.fixture
def sync_engine(tmp_path):
    """Seeded engine for tests driven through the synchronous TestClient."""
    settings = make_settings(tmp_path)
    engine = build_engine(settings, poolclass=NullPool)
    asyncio.run(seed_database(engine))
    return settings, engine
