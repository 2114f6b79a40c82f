"""
Seed Script

Creates the schema and seeds one branch with tables and a small menu so
the API and the simulation script can run locally.
Run from project root: python scripts/seed.py

Re-running is safe: rows are merged by primary key.

Version: 1.0.0
"""

import argparse
import asyncio
import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from orderhub.core.config import get_settings, setup_logging
from orderhub.database import build_engine, build_session_maker, init_db
from orderhub.models import DiningTable, Product, ProductStatus, TableStatus

DEFAULT_BRANCH = "B1"

MENU = [
    ("prod-pho-bo", "Phở Bò", "45000"),
    ("prod-bun-cha", "Bún Chả", "55000"),
    ("prod-com-tam", "Cơm Tấm", "50000"),
    ("prod-banh-mi", "Bánh Mì", "25000"),
    ("prod-goi-cuon", "Gỏi Cuốn", "35000"),
    ("prod-ca-phe", "Cà Phê Sữa Đá", "20000"),
    ("prod-tra-da", "Trà Đá", "5000"),
]

# Seeded as unavailable so the rejection path can be exercised by hand
SOLD_OUT = [("prod-bun-bo-hue", "Bún Bò Huế", "60000")]


async def seed(branch_id: str, num_tables: int) -> None:
    settings = get_settings()
    engine = build_engine(settings)
    session_maker = build_session_maker(engine)

    await init_db(engine)

    async with session_maker() as session:
        async with session.begin():
            for n in range(1, num_tables + 1):
                await session.merge(DiningTable(
                    id=f"{branch_id}-T{n}",
                    branch_id=branch_id,
                    table_number=str(n),
                    capacity=4,
                    status=TableStatus.AVAILABLE,
                ))

            for product_id, name, price in MENU:
                await session.merge(Product(
                    id=product_id,
                    name=name,
                    price=Decimal(price),
                    status=ProductStatus.AVAILABLE,
                ))

            for product_id, name, price in SOLD_OUT:
                await session.merge(Product(
                    id=product_id,
                    name=name,
                    price=Decimal(price),
                    status=ProductStatus.OUT_OF_STOCK,
                ))

    await engine.dispose()

    print("=" * 70)
    print(f"✅ Seeded branch {branch_id}")
    print(f"   Tables: {branch_id}-T1 .. {branch_id}-T{num_tables}")
    print(f"   Products: {len(MENU)} available, {len(SOLD_OUT)} sold out")
    print("=" * 70)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed tables and products")
    parser.add_argument("--branch", default=DEFAULT_BRANCH, help="Branch id")
    parser.add_argument("--tables", type=int, default=10, help="Number of tables")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(seed(args.branch, args.tables))
