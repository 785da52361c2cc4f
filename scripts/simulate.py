"""
Order Load Simulation Script

Fires concurrent carts at a running server to exercise checkout under load.
Card orders are settled by posting the mock ``checkout.session.completed``
webhook, so run the server in development mode.

Run from project root: python scripts/simulate.py --orders 50 --mode mixed
"""

import argparse
import asyncio
import random
import sys
import time
import uuid
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50

FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis", "Wilson", "Taylor"]
STREETS = ["Main St", "Broadway", "5th Avenue", "Park Ave", "Madison Ave", "Lexington Ave"]


def generate_random_customer() -> dict[str, str]:
    first = random.choice(FIRST_NAMES)
    last = random.choice(LAST_NAMES)
    return {
        "name": f"{first} {last}",
        "email": f"{first}.{last}.{random.randint(1, 9999)}@example.com".lower(),
        "phone": f"+1 555-{random.randint(100, 999)}-{random.randint(1000, 9999)}",
    }


def generate_cart(menu: list[dict], payment_method: str) -> dict[str, Any]:
    picks = random.sample(menu, k=min(len(menu), random.randint(1, 4)))
    payload = {
        "items": [{"menu_item_id": item["id"], "quantity": random.randint(1, 3)} for item in picks],
        "customer_info": generate_random_customer(),
        "payment_method": payment_method,
        "tip": random.choice([0, 0, 2, 5]),
        "special_instructions": random.choice([None, "Extra napkins", "No onions", "Call on arrival"]),
    }
    if random.random() < 0.5:
        payload["delivery_address"] = {
            "street": f"{random.randint(1, 999)} {random.choice(STREETS)}",
            "city": "Springfield",
            "state": "IL",
            "zip_code": "62701",
        }
    return payload


def completed_event(session_id: str) -> dict[str, Any]:
    """Shape of the provider event the mock webhook accepts."""
    return {
        "id": f"evt_sim_{uuid.uuid4().hex[:16]}",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "payment_intent": f"pi_sim_{uuid.uuid4().hex[:16]}",
                "payment_status": "paid",
            }
        },
    }


async def fetch_menu(client: httpx.AsyncClient) -> list[dict]:
    response = await client.get(f"{API_BASE_URL}/api/menu", params={"limit": 100})
    response.raise_for_status()
    return response.json()["data"]


async def send_order(
    client: httpx.AsyncClient,
    menu: list[dict],
    order_num: int,
    payment_method: str,
) -> dict[str, Any]:
    """Place one order; card orders are followed by a completion webhook."""
    payload = generate_cart(menu, payment_method)
    start_time = time.time()

    try:
        response = await client.post(f"{API_BASE_URL}/api/checkout", json=payload, timeout=30.0)
        if response.status_code != 201:
            return {
                "order_num": order_num,
                "success": False,
                "error": response.text[:100],
                "time": round(time.time() - start_time, 3),
                "mode": payment_method,
            }

        data = response.json()
        if data.get("session_id"):
            webhook = await client.post(
                f"{API_BASE_URL}/api/checkout/webhook",
                json=completed_event(data["session_id"]),
                timeout=30.0,
            )
            webhook.raise_for_status()

        return {
            "order_num": order_num,
            "success": True,
            "order_id": data.get("order_id"),
            "total": data.get("total", 0),
            "time": round(time.time() - start_time, 3),
            "mode": payment_method,
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
            "mode": payment_method,
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(mode: str = "mixed", num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    """
    Run the load simulation.

    Args:
        mode: "card", "cash", or "mixed"
        num_orders: Number of orders to place
    """
    print("=" * 70)
    print("🔥 ORDER LOAD SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"🔧 Mode: {mode}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        menu = await fetch_menu(client)
        if not menu:
            print("❌ Menu is empty - run scripts/seed.py first")
            return {"total": num_orders, "successful": 0, "failed": num_orders, "results": []}

        methods = []
        for i in range(num_orders):
            if mode == "mixed":
                methods.append("card" if i % 2 == 0 else "cash")
            else:
                methods.append(mode)

        results = await asyncio.gather(
            *[send_order(client, menu, i + 1, method) for i, method in enumerate(methods)]
        )

    total_time = round(time.time() - start_time, 2)
    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    for method in sorted(set(methods)):
        subset = [r for r in results if r["mode"] == method]
        ok = len([r for r in subset if r["success"]])
        print(f"   {method}: {ok}/{len(subset)} successful")

    if successful:
        times = [r["time"] for r in successful]
        print("\n📈 Performance Metrics:")
        print(f"   Average Response: {round(sum(times) / len(times), 3)}s")
        print(f"   Fastest: {min(times)}s")
        print(f"   Slowest: {max(times)}s")
        print(f"   💰 Total Revenue: ${sum(r['total'] for r in successful):.2f}")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']} [{f['mode']}]: {f.get('error', 'Unknown error')}")

    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


def main() -> None:
    global API_BASE_URL

    parser = argparse.ArgumentParser(description="Order load simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--mode", choices=["card", "cash", "mixed"], default="mixed")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")
    asyncio.run(run_simulation(args.mode, args.orders))


if __name__ == "__main__":
    main()
