"""
Rush Hour Simulation Script

Fires concurrent orders at a running server to exercise the atomic order
write and table locking under load.
Run from project root after scripts/seed.py: python scripts/simulate.py

Version: 1.0.0
"""

import argparse
import asyncio
import os
import random
import sys
import time
from datetime import datetime
from decimal import Decimal
from typing import Any

import httpx
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from scripts.seed import DEFAULT_BRANCH, MENU, SOLD_OUT

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50
NUM_TABLES = 10

ORDER_NOTES = [None, "No spicy", "Extra herbs", "Less ice", "Birthday table"]


def generate_random_items() -> list[dict]:
    """Generate random order lines from the seeded menu."""
    products = random.sample(MENU, k=random.randint(1, 4))
    return [
        {
            "productId": product_id,
            "quantity": random.randint(1, 3),
            "notes": random.choice([None, "No onions", "Well done"]),
        }
        for product_id, _, _ in products
    ]


def generate_order_payload(branch_id: str) -> dict[str, Any]:
    """Generate payload for /api/orders."""
    return {
        "tableId": f"{branch_id}-T{random.randint(1, NUM_TABLES)}",
        "branchId": branch_id,
        "items": generate_random_items(),
        "notes": random.choice(ORDER_NOTES),
    }


async def send_order(
    client: httpx.AsyncClient,
    order_num: int,
    branch_id: str,
) -> dict[str, Any]:
    """Send one order."""
    payload = generate_order_payload(branch_id)
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json=payload,
            timeout=30.0
        )
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "order_number": data.get("order_number"),
                "total": Decimal(str(data.get("total", "0"))),
                "time": elapsed,
            }
        else:
            return {
                "order_num": order_num,
                "success": False,
                "error": response.text[:100],
                "time": elapsed,
            }
    except httpx.HTTPError as e:
        elapsed = round(time.time() - start_time, 3)
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": elapsed,
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(
    branch_id: str = DEFAULT_BRANCH,
    num_orders: int = TOTAL_ORDERS
) -> dict[str, Any]:
    """
    Run the rush hour simulation.

    Args:
        branch_id: Seeded branch to order at
        num_orders: Number of concurrent orders
    """
    print("=" * 70)
    print("🔥 RUSH HOUR SIMULATION - CONCURRENT ORDER CREATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"🏠 Branch: {branch_id} ({NUM_TABLES} tables)")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        print("\n🚀 Firing orders...\n")
        tasks = [send_order(client, i + 1, branch_id) for i in range(num_orders)]
        results = await asyncio.gather(*tasks)

        kitchen = await client.get(f"{API_BASE_URL}/api/kitchen/{branch_id}/orders")
        kitchen_count = len(kitchen.json()) if kitchen.status_code == 200 else None

    total_time = round(time.time() - start_time, 2)

    # Analyze results
    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)

    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        min_time = min(r["time"] for r in successful)
        max_time = max(r["time"] for r in successful)
        total_revenue = sum((r["total"] for r in successful), Decimal("0"))
        unique_numbers = len({r["order_number"] for r in successful})

        print("\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min_time}s")
        print(f"   Slowest: {max_time}s")
        print(f"   💰 Total Revenue: {total_revenue:,.2f}")
        print(f"   🔢 Unique order numbers: {unique_numbers}/{len(successful)}")

    if kitchen_count is not None:
        print(f"   🍳 Kitchen queue: {kitchen_count} open orders")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results
    }


async def test_single_flows(branch_id: str = DEFAULT_BRANCH) -> bool:
    """Test individual flows before the rush."""
    print("\n" + "=" * 70)
    print("🧪 TESTING INDIVIDUAL FLOWS")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        # Test 1: Health check
        print("\n1️⃣ Health Check...")
        response = await client.get(f"{API_BASE_URL}/health")
        if response.status_code == 200:
            data = response.json()
            print(f"   ✅ Status: {data.get('status')}")
            print(f"   Database: {data.get('database')}")
            print(f"   Cache: {data.get('cache_service')}")
        else:
            print(f"   ❌ Failed: {response.text}")
            return False

        # Test 2: Placeholder table id is rejected
        print("\n2️⃣ Placeholder Table Rejection...")
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json={"tableId": "TABLE_UUID", "items": [{"productId": MENU[0][0], "quantity": 1}]},
        )
        if response.status_code == 400:
            print(f"   ✅ Rejected: {response.json().get('detail')}")
        else:
            print(f"   ❌ Unexpected {response.status_code}: {response.text[:100]}")

        # Test 3: Sold-out product is rejected
        print("\n3️⃣ Sold-out Product Rejection...")
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json={
                "tableId": f"{branch_id}-T1",
                "items": [{"productId": SOLD_OUT[0][0], "quantity": 1}],
            },
        )
        if response.status_code == 409:
            print(f"   ✅ Rejected: {response.json().get('detail')}")
        else:
            print(f"   ❌ Unexpected {response.status_code}: {response.text[:100]}")

        # Test 4: One order through the kitchen workflow
        print("\n4️⃣ Single Order Through The Kitchen...")
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json=generate_order_payload(branch_id),
        )
        if response.status_code != 201:
            print(f"   ❌ Failed: {response.text[:100]}")
            return False

        order = response.json()
        print(f"   ✅ Order {order['order_number']} created, total {order['total']}")

        for status in ("confirmed", "preparing"):
            await client.patch(
                f"{API_BASE_URL}/api/orders/{order['id']}/status", json={"status": status}
            )
        for item in order["items"]:
            for status in ("preparing", "ready"):
                await client.patch(
                    f"{API_BASE_URL}/api/orders/{order['id']}/items/{item['id']}/status",
                    json={"status": status},
                )
        for status in ("ready", "served", "completed"):
            response = await client.patch(
                f"{API_BASE_URL}/api/orders/{order['id']}/status", json={"status": status}
            )
            if response.status_code != 200:
                print(f"   ⚠️ {status}: {response.text[:100]}")
                break
        else:
            print(f"   ✅ Order {order['order_number']} completed")

    print("\n" + "=" * 70)
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rush Hour Simulation Script")
    parser.add_argument("--branch", default=DEFAULT_BRANCH, help="Seeded branch id")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--skip-tests", action="store_true", help="Skip individual tests")
    args = parser.parse_args()

    # Run tests first
    if not args.skip_tests:
        success = asyncio.run(test_single_flows(args.branch))
        if not success:
            print("\n❌ Pre-flight tests failed. Fix issues before running simulation.")
            sys.exit(1)

        print("\n✅ Pre-flight tests passed!")
        input("\nPress Enter to start the rush...")

    # Run simulation
    asyncio.run(run_simulation(branch_id=args.branch, num_orders=args.orders))
