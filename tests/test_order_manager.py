"""
Atomic order creation against a seeded aiosqlite database.
"""

import asyncio
import re
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderhub.core.exceptions import (
    InvalidTableError,
    NotFoundError,
    ProductUnavailableError,
    TransactionError,
    ValidationError,
)
from orderhub.models import DiningTable, Order, OrderItem, OrderStatus, TableStatus, utcnow
from orderhub.schemas import KitchenOrder, OrderItemCreate
from orderhub.services.catalog import DatabaseCatalogService
from orderhub.services.orders import (
    OrderStore,
    OrderTransactionManager,
    generate_order_number,
    money,
)
from orderhub.services.promotions import BasePromotionService
from tests.conftest import BrokenCache, BrokenHub, make_settings, queued


async def count_rows(session_maker, model) -> int:
    async with session_maker() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar()


async def table_status(session_maker, table_id: str) -> TableStatus:
    async with session_maker() as session:
        table = await session.get(DiningTable, table_id)
        return table.status


class FixedPromotion(BasePromotionService):
    def __init__(self, amount):
        self.amount = Decimal(amount)

    async def discount_for(self, subtotal, lines, branch_id, customer_id=None):
        return self.amount


class SlowCatalog(DatabaseCatalogService):
    async def get_product(self, product_id):
        await asyncio.sleep(1)
        return await super().get_product(product_id)


class SlowCloseSession(AsyncSession):
    async def close(self):
        await asyncio.sleep(0.6)
        await super().close()


class TestCreateOrder:

    async def test_scenario_totals_and_snapshot(self, manager, session_maker):
        snapshot = await manager.create_order(
            "T1",
            [{"product_id": "P1", "quantity": 2}, {"productId": "P2", "quantity": 1}],
        )

        assert snapshot.subtotal == Decimal("155000.00")
        assert snapshot.discount == Decimal("0.00")
        assert snapshot.tax == Decimal("15500.00")
        assert snapshot.total == Decimal("170500.00")
        assert snapshot.status == OrderStatus.PENDING
        assert snapshot.branch_id == "B1"
        assert snapshot.table_number == "1"
        assert [i.product_name for i in snapshot.items] == ["Phở Bò", "Bún Chả"]
        assert [i.subtotal for i in snapshot.items] == [Decimal("90000.00"), Decimal("65000.00")]
        assert snapshot.items_ready is False

        assert await table_status(session_maker, "T1") == TableStatus.OCCUPIED
        assert await count_rows(session_maker, Order) == 1
        assert await count_rows(session_maker, OrderItem) == 2

    async def test_order_created_event_and_cache(self, manager, cache, listener):
        kitchen = listener("kitchen:B1")
        branch = listener("branch:B1")
        table = listener("table:T1")

        snapshot = await manager.create_order("T1", [OrderItemCreate(product_id="P1", quantity=1)])

        [frame] = queued(kitchen)
        assert frame["event"] == "order.created"
        assert frame["data"]["id"] == snapshot.id
        assert len(queued(branch)) == 1
        assert queued(table) == []

        assert cache.invalidated == [
            "table:T1",
            f"order:{snapshot.id}",
            "active_orders:B1",
        ]

    async def test_client_prices_are_ignored(self, manager):
        snapshot = await manager.create_order(
            "T1", [{"product_id": "P1", "quantity": 1, "unit_price": 1}]
        )
        assert snapshot.items[0].unit_price == Decimal("45000.00")

    async def test_order_numbers_are_unique(self, manager):
        numbers = set()
        for _ in range(5):
            snapshot = await manager.create_order("T1", [{"product_id": "P1", "quantity": 1}])
            numbers.add(snapshot.order_number)
        assert len(numbers) == 5

    async def test_discount_is_clamped_to_subtotal(self, session_maker, hub, cache, settings):
        manager = OrderTransactionManager(
            session_maker, hub, cache, settings, promotions=FixedPromotion("999999")
        )
        snapshot = await manager.create_order("T1", [{"product_id": "P1", "quantity": 1}])

        assert snapshot.discount == Decimal("45000.00")
        assert snapshot.total == Decimal("4500.00")


class TestCreateOrderRejections:

    async def test_unavailable_product_rolls_back_everything(
        self, manager, session_maker, cache, listener
    ):
        kitchen = listener("kitchen:B1")

        with pytest.raises(ProductUnavailableError) as exc:
            await manager.create_order(
                "T1",
                [{"product_id": "P1", "quantity": 2}, {"product_id": "P4", "quantity": 1}],
            )
        assert "Bún Bò Huế" in exc.value.message

        assert await count_rows(session_maker, Order) == 0
        assert await count_rows(session_maker, OrderItem) == 0
        assert await table_status(session_maker, "T1") == TableStatus.AVAILABLE
        assert queued(kitchen) == []
        assert cache.invalidated == []

    async def test_missing_product(self, manager):
        with pytest.raises(ProductUnavailableError) as exc:
            await manager.create_order("T1", [{"product_id": "NOPE", "quantity": 1}])
        assert "NOPE" in exc.value.message

    async def test_product_from_another_branch(self, manager):
        with pytest.raises(ProductUnavailableError):
            await manager.create_order("T1", [{"product_id": "P3", "quantity": 1}])

    @pytest.mark.parametrize("table_id", ["TABLE_UUID", "table-uuid", "Demo-Table"])
    async def test_placeholder_table_ids(self, manager, session_maker, table_id):
        with pytest.raises(InvalidTableError) as exc:
            await manager.create_order(table_id, [{"product_id": "P1", "quantity": 1}])
        assert table_id in exc.value.message
        assert await count_rows(session_maker, Order) == 0

    async def test_unknown_table(self, manager):
        with pytest.raises(NotFoundError) as exc:
            await manager.create_order("T404", [{"product_id": "P1", "quantity": 1}])
        assert exc.value.message == "Table with ID T404 not found"

    async def test_branch_mismatch(self, manager):
        with pytest.raises(InvalidTableError):
            await manager.create_order(
                "T1", [{"product_id": "P1", "quantity": 1}], branch_id="B2"
            )

    async def test_empty_items(self, manager):
        with pytest.raises(ValidationError):
            await manager.create_order("T1", [])

    async def test_zero_quantity(self, manager):
        with pytest.raises(ValidationError) as exc:
            await manager.create_order("T1", [{"product_id": "P1", "quantity": 0}])
        assert "quantity" in exc.value.message

    async def test_timeout_rolls_back(self, session_maker, hub, cache, tmp_path):
        settings = make_settings(tmp_path, order_transaction_timeout_seconds=0.2)
        manager = OrderTransactionManager(
            session_maker, hub, cache, settings, catalog_factory=SlowCatalog
        )

        with pytest.raises(TransactionError):
            await manager.create_order("T1", [{"product_id": "P1", "quantity": 1}])

        assert await count_rows(session_maker, Order) == 0
        assert await table_status(session_maker, "T1") == TableStatus.AVAILABLE


class TestAfterCommit:

    async def test_slow_session_close_does_not_fail_a_committed_order(
        self, engine, session_maker, hub, cache, listener, tmp_path
    ):
        settings = make_settings(tmp_path, order_transaction_timeout_seconds=0.5)
        slow_sessions = async_sessionmaker(
            bind=engine, class_=SlowCloseSession, expire_on_commit=False
        )
        manager = OrderTransactionManager(slow_sessions, hub, cache, settings)
        kitchen = listener("kitchen:B1")

        snapshot = await manager.create_order("T1", [{"product_id": "P1", "quantity": 1}])

        assert snapshot.status == OrderStatus.PENDING
        assert await count_rows(session_maker, Order) == 1
        assert await table_status(session_maker, "T1") == TableStatus.OCCUPIED
        [frame] = queued(kitchen)
        assert frame["data"]["id"] == snapshot.id

    async def test_publish_failure_keeps_the_order(
        self, session_maker, registry, cache, settings
    ):
        manager = OrderTransactionManager(session_maker, BrokenHub(registry), cache, settings)

        snapshot = await manager.create_order("T1", [{"product_id": "P1", "quantity": 2}])

        assert snapshot.total == Decimal("99000.00")
        assert await count_rows(session_maker, Order) == 1
        assert await table_status(session_maker, "T1") == TableStatus.OCCUPIED
        assert cache.invalidated == ["table:T1", f"order:{snapshot.id}", "active_orders:B1"]

    async def test_cache_failure_keeps_the_order(self, session_maker, hub, settings, listener):
        manager = OrderTransactionManager(session_maker, hub, BrokenCache(), settings)
        kitchen = listener("kitchen:B1")

        snapshot = await manager.create_order("T1", [{"product_id": "P1", "quantity": 1}])

        assert await count_rows(session_maker, Order) == 1
        assert await count_rows(session_maker, OrderItem) == 1
        assert len(queued(kitchen)) == 1
        assert snapshot.items[0].product_name == "Phở Bò"


class TestHelpers:

    def test_money_rounds_half_up(self):
        assert money(Decimal("0.005")) == Decimal("0.01")
        assert money(Decimal("10.234")) == Decimal("10.23")

    def test_order_number_format(self):
        number = generate_order_number(utcnow())
        assert re.fullmatch(r"ORD-\d{8}-\d{9}-[0-9A-F]{6}", number)

    async def test_compute_totals(self, manager):
        totals = manager.compute_totals(Decimal("155000"), Decimal("-5"))
        assert totals == {
            "subtotal": Decimal("155000.00"),
            "discount": Decimal("0.00"),
            "tax": Decimal("15500.00"),
            "total": Decimal("170500.00"),
        }

    async def test_kitchen_order_elapsed_minutes(self, manager, session_maker):
        snapshot = await manager.create_order("T1", [{"product_id": "P1", "quantity": 1}])
        async with session_maker() as session:
            order = await OrderStore(session).get_order(snapshot.id)

            later = snapshot.created_at + timedelta(minutes=12, seconds=30)
            kitchen = KitchenOrder.from_order(order, now=later)
            assert kitchen.elapsed_minutes == 12
            assert kitchen.table_number == "1"
            assert kitchen.id == snapshot.id

            assert KitchenOrder.from_order(order, now=snapshot.created_at).elapsed_minutes == 0
