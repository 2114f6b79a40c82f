"""
Order Transaction Manager

Creates orders as a single atomic unit:

    1. Reject placeholder table ids
    2. Lock the table row and resolve its branch
    3. Price every line from the live catalog
    4. Compute subtotal, discount, tax and total
    5. Insert the order and all of its items
    6. Mark the table occupied
    7. Commit

Either every write lands or none does. Only after the commit is the
`order.created` event published and the affected cache keys invalidated;
neither of those can undo the order.

Version: 1.0.0
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderhub.core.config import Settings, get_settings
from orderhub.core.exceptions import (
    InvalidTableError,
    NotFoundError,
    OrderHubError,
    ProductUnavailableError,
    TransactionError,
    ValidationError,
)
from orderhub.models import (
    Order,
    OrderItem,
    OrderItemStatus,
    OrderStatus,
    PaymentStatus,
    TableStatus,
    new_id,
    utcnow,
)
from orderhub.schemas import OrderItemCreate, OrderSnapshot
from orderhub.services.cache.base import BaseCacheService
from orderhub.services.catalog.base import (
    BaseCatalogService,
    BaseTableDirectory,
    ProductInfo,
)
from orderhub.services.catalog.database import (
    DatabaseCatalogService,
    DatabaseTableDirectory,
)
from orderhub.services.orders.effects import invalidate_quietly, order_cache_keys
from orderhub.services.orders.store import OrderStore, generate_order_number, money
from orderhub.services.promotions import BasePromotionService, NoPromotionService
from orderhub.services.realtime.hub import DispatchHub

logger = logging.getLogger(__name__)

ItemInput = Union[OrderItemCreate, dict[str, Any]]


class OrderTransactionManager:
    """
    Sole writer of new orders.

    Collaborators are bound per transaction: the catalog and table
    directory factories receive the transaction's session so prices and
    the table lock are read inside the same transaction that writes.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        hub: DispatchHub,
        cache: BaseCacheService,
        settings: Optional[Settings] = None,
        promotions: Optional[BasePromotionService] = None,
        catalog_factory: Callable[[AsyncSession], BaseCatalogService] = DatabaseCatalogService,
        table_directory_factory: Callable[[AsyncSession], BaseTableDirectory] = DatabaseTableDirectory,
    ):
        self.session_maker = session_maker
        self.hub = hub
        self.cache = cache
        self.settings = settings or get_settings()
        self.promotions = promotions or NoPromotionService()
        self.catalog_factory = catalog_factory
        self.table_directory_factory = table_directory_factory

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def create_order(
        self,
        table_id: str,
        items: Iterable[ItemInput],
        branch_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> OrderSnapshot:
        """
        Create an order with all its items in one transaction.

        Args:
            table_id: Table the order is placed at
            items: Lines as OrderItemCreate or {"product_id", "quantity", "notes"}
            branch_id: Optional branch, must match the table's branch
            customer_id: Optional customer reference
            notes: Free-text order notes

        Returns:
            OrderSnapshot of the committed order

        Raises:
            ValidationError: Empty item list or malformed line
            InvalidTableError: Placeholder table id or branch mismatch
            NotFoundError: Table does not exist
            ProductUnavailableError: A product is missing or unavailable
            TransactionError: Store failure or timeout; nothing was written
        """
        table_id = self._check_table_id(table_id)
        lines = self._parse_items(items)
        timeout = self.settings.order_transaction_timeout_seconds

        try:
            snapshot = await self._create_in_transaction(
                table_id, lines, branch_id, customer_id, notes, timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"❌ Order creation for table {table_id} exceeded {timeout}s, rolled back")
            raise TransactionError("Order creation timed out. Please try again.")
        except OrderHubError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"❌ Order transaction failed for table {table_id}: {e}")
            raise TransactionError() from e

        logger.info(
            f"✅ Order created: {snapshot.order_number} | table {snapshot.table_number} "
            f"| {len(snapshot.items)} items | total {snapshot.total} {self.settings.currency}"
        )

        await self._after_commit(snapshot)
        return snapshot

    def compute_totals(self, subtotal: Decimal, discount: Decimal) -> dict[str, Decimal]:
        """
        Order totals from a subtotal and a requested discount.

        The discount is clamped to [0, subtotal]; tax is charged on the
        subtotal at the configured rate.
        """
        subtotal = money(subtotal)
        discount = money(min(max(discount, Decimal("0")), subtotal))
        tax = money(subtotal * self.settings.tax_rate)
        total = money(subtotal - discount + tax)
        return {"subtotal": subtotal, "discount": discount, "tax": tax, "total": total}

    # =========================================================================
    # INPUT CHECKS
    # =========================================================================

    def _check_table_id(self, table_id: str) -> str:
        table_id = (table_id or "").strip()
        if not table_id:
            raise ValidationError("table_id is required")

        if table_id.lower() in self.settings.invalid_table_ids_list:
            logger.warning(f"Rejected placeholder table id: {table_id}")
            raise InvalidTableError(table_id)

        return table_id

    @staticmethod
    def _parse_items(items: Iterable[ItemInput]) -> list[OrderItemCreate]:
        lines = []
        for raw in items or []:
            if isinstance(raw, OrderItemCreate):
                lines.append(raw)
                continue
            try:
                lines.append(OrderItemCreate.model_validate(raw))
            except PydanticValidationError as e:
                first = e.errors()[0]
                field = ".".join(str(p) for p in first["loc"])
                raise ValidationError(f"Invalid item {field}: {first['msg']}")

        if not lines:
            raise ValidationError("Order must have at least one item")
        return lines

    # =========================================================================
    # TRANSACTION
    # =========================================================================

    async def _create_in_transaction(
        self,
        table_id: str,
        lines: list[OrderItemCreate],
        branch_id: Optional[str],
        customer_id: Optional[str],
        notes: Optional[str],
        timeout: float,
    ) -> OrderSnapshot:
        """
        Run the writes under the deadline, then commit outside it.

        The deadline only covers lock, pricing and insert. A timeout there
        rolls the transaction back; the commit and session close are never
        cut short, so a durable order is always reported as created.
        """
        async with self.session_maker() as session:
            async with session.begin():
                order, table_number = await asyncio.wait_for(
                    self._write_order(session, table_id, lines, branch_id, customer_id, notes),
                    timeout=timeout,
                )

            return OrderSnapshot.from_order(order, table_number=table_number)

    async def _write_order(
        self,
        session: AsyncSession,
        table_id: str,
        lines: list[OrderItemCreate],
        branch_id: Optional[str],
        customer_id: Optional[str],
        notes: Optional[str],
    ) -> tuple[Order, str]:
        directory = self.table_directory_factory(session)
        table = await directory.get_table(table_id, lock=True)
        if table is None:
            raise NotFoundError("Table", table_id)

        if branch_id and branch_id != table.branch_id:
            raise InvalidTableError(
                table_id,
                f"Table {table_id} does not belong to branch {branch_id}",
            )

        priced = await self._price_lines(self.catalog_factory(session), lines, table.branch_id)

        subtotal = sum((line_subtotal for _, _, line_subtotal in priced), Decimal("0"))
        discount = await self.promotions.discount_for(
            subtotal,
            [(product, line.quantity) for product, line, _ in priced],
            table.branch_id,
            customer_id,
        )
        totals = self.compute_totals(subtotal, discount)

        now = utcnow()
        order = Order(
            id=new_id(),
            order_number=generate_order_number(now),
            table_id=table.id,
            branch_id=table.branch_id,
            customer_id=customer_id,
            notes=notes,
            payment_status=PaymentStatus.PENDING,
            status=OrderStatus.PENDING,
            created_at=now,
            updated_at=now,
            items=[
                OrderItem(
                    id=new_id(),
                    position=position,
                    product_id=product.id,
                    product_name=product.name,
                    quantity=line.quantity,
                    unit_price=money(product.price),
                    subtotal=line_subtotal,
                    notes=line.notes,
                    status=OrderItemStatus.PENDING,
                    created_at=now,
                    updated_at=now,
                )
                for position, (product, line, line_subtotal) in enumerate(priced)
            ],
            **totals,
        )

        store = OrderStore(session)
        store.add(order)
        await store.set_table_status(table.id, TableStatus.OCCUPIED)
        await session.flush()
        return order, table.table_number

    @staticmethod
    async def _price_lines(
        catalog: BaseCatalogService,
        lines: list[OrderItemCreate],
        branch_id: str,
    ) -> list[tuple[ProductInfo, OrderItemCreate, Decimal]]:
        priced = []
        for line in lines:
            product = await catalog.get_product(line.product_id)
            if product is None:
                raise ProductUnavailableError(line.product_id, "does not exist")
            if not product.available:
                raise ProductUnavailableError(product.name)
            if not product.sold_at(branch_id):
                raise ProductUnavailableError(product.name, "is not sold at this branch")

            priced.append((product, line, money(product.price * line.quantity)))
        return priced

    # =========================================================================
    # POST-COMMIT
    # =========================================================================

    async def _after_commit(self, snapshot: OrderSnapshot) -> None:
        try:
            self.hub.publish_order_created(snapshot)
        except Exception:
            logger.exception(f"⚠️ Failed to publish order.created for {snapshot.order_number}")

        await invalidate_quietly(
            self.cache,
            *order_cache_keys(snapshot.id, snapshot.table_id, snapshot.branch_id),
        )
