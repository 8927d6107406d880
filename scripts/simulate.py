"""
Rush Hour Simulation Script

Fires many concurrent orders from every active table at a running server
and checks that every accepted order received a distinct order number.
Run from project root (after scripts/seed.py): python scripts/simulate.py
"""

import argparse
import asyncio
import random
import sys
import time
from collections import Counter
from datetime import datetime
from typing import Any

import httpx

API_BASE_URL = "http://localhost:5000"
TOTAL_ORDERS = 50

NOTES = [None, "No onions", "Extra spicy", "Sauce on the side", "Allergic to nuts"]


async def load_menu(client: httpx.AsyncClient, slug: str) -> dict[str, Any]:
    """Resolve a table slug the way a scanned QR code does."""
    response = await client.get(f"{API_BASE_URL}/api/menu/by-table/{slug}")
    response.raise_for_status()
    return response.json()["data"]


def generate_order_payload(table_id: int, items: list[dict]) -> dict[str, Any]:
    picks = random.sample(items, k=min(len(items), random.randint(1, 4)))
    return {
        "table_id": table_id,
        "items": [
            {
                "menu_item_id": item["id"],
                "quantity": random.randint(1, 3),
                "note": random.choice(NOTES),
            }
            for item in picks
        ],
        "special_instructions": random.choice([None, "Birthday table", "We are in a hurry"]),
        "payment_method": random.choice(["cash", "card", "digital"]),
    }


async def send_order(
    client: httpx.AsyncClient,
    order_num: int,
    payload: dict[str, Any],
) -> dict[str, Any]:
    start_time = time.time()
    try:
        response = await client.post(f"{API_BASE_URL}/api/orders", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            data = response.json()["data"]
            return {
                "order_num": order_num,
                "success": True,
                "order_number": data["order_number"],
                "total": data["total"],
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


async def run_simulation(slugs: list[str], num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    print("=" * 70)
    print("RUSH HOUR SIMULATION - CONCURRENT ORDER PLACEMENT")
    print("=" * 70)
    print(f"Total Orders: {num_orders}")
    print(f"Target: {API_BASE_URL}")
    print(f"Tables: {', '.join(slugs)}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        menus = await asyncio.gather(*(load_menu(client, slug) for slug in slugs))
        payloads = []
        for i in range(num_orders):
            menu = menus[i % len(menus)]
            payloads.append(generate_order_payload(menu["table"]["id"], menu["items"]))

        start_time = time.time()
        results = await asyncio.gather(
            *(send_order(client, i + 1, payload) for i, payload in enumerate(payloads))
        )
        total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    counts = Counter(r["order_number"] for r in successful)
    duplicates = sorted(n for n, c in counts.items() if c > 1)

    print("\n" + "=" * 70)
    print("SIMULATION RESULTS")
    print("=" * 70)
    print(f"\nSuccessful Orders: {len(successful)}/{num_orders}")
    print(f"Failed Orders: {len(failed)}/{num_orders}")
    print(f"Total Time: {total_time}s")

    if successful:
        times = [r["time"] for r in successful]
        print("\nPerformance Metrics:")
        print(f"   Average Response: {round(sum(times) / len(times), 3)}s")
        print(f"   Fastest: {min(times)}s")
        print(f"   Slowest: {max(times)}s")
        print(f"   Total Revenue: ${sum(r['total'] for r in successful):.2f}")

    if duplicates:
        print(f"\nDUPLICATE ORDER NUMBERS: {duplicates}")
    else:
        print("\nAll order numbers are unique")

    if failed:
        print("\nFailed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("NEXT: python scripts/verify.py (after the Celery worker drains)")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "duplicates": duplicates,
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrent order placement simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument(
        "--tables",
        default="table-t1,table-t2,table-t3",
        help="Comma-separated table slugs to order from",
    )
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")
    summary = asyncio.run(run_simulation(args.tables.split(","), args.orders))
    sys.exit(1 if summary["duplicates"] else 0)
