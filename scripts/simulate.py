"""
Delivery Rush Simulation Script

Fires concurrent delivery submissions at a running server, then approves
them from two competing "staff sessions" at once. Every record must end up
promoted exactly once: one approval succeeds, the duplicate gets 409.

Run from project root:
    python scripts/simulate.py --user admin --password secret --orders 30

Author: POS Backend Team
Version: 1.0.0
"""

import argparse
import asyncio
import os
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

API_BASE_URL = os.getenv("POS_API_URL", "http://localhost:4000")
TOTAL_ORDERS = 30

FIRST_NAMES = ["Ana", "Luis", "Camila", "Jorge", "Valentina", "Andrés", "Sofía", "Mateo"]
STREETS = ["Calle 10", "Carrera 7", "Avenida 68", "Calle 45", "Transversal 3"]


def generate_random_items(products: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Pick 1-4 catalog products with random quantities."""
    items = []
    for product in random.sample(products, k=min(len(products), random.randint(1, 4))):
        items.append({
            "id": product["id"],
            "name": product["name"],
            "price": product["price"],
            "quantity": random.randint(1, 3),
        })
    return items


def generate_payload(products: list[dict[str, Any]]) -> dict[str, Any]:
    items = generate_random_items(products)
    return {
        "nombre_cliente": random.choice(FIRST_NAMES),
        "direccion_cliente": f"{random.choice(STREETS)} # {random.randint(1, 99)}-{random.randint(1, 99)}",
        "telefono_cliente": f"300{random.randint(1000000, 9999999)}",
        "detalles_pedido": items,
        "total": sum(i["price"] * i["quantity"] for i in items),
    }


async def submit_order(
    client: httpx.AsyncClient,
    products: list[dict[str, Any]],
    order_num: int,
) -> dict[str, Any]:
    """Submit one delivery order on the public endpoint."""
    start_time = time.time()
    try:
        response = await client.post("/pedidos-temp", json=generate_payload(products), timeout=30.0)
        elapsed = round(time.time() - start_time, 3)
        if response.status_code == 200:
            return {"order_num": order_num, "success": True, "id": response.json()["id"], "time": elapsed}
        return {"order_num": order_num, "success": False, "error": response.text[:100], "time": elapsed}
    except httpx.HTTPError as e:
        elapsed = round(time.time() - start_time, 3)
        return {"order_num": order_num, "success": False, "error": str(e)[:100], "time": elapsed}


async def approve(client: httpx.AsyncClient, headers: dict[str, str], pedido_id: int) -> int:
    response = await client.post(f"/pedidos-temp/{pedido_id}/aprobar", headers=headers, timeout=30.0)
    return response.status_code


async def run_simulation(username: str, password: str, num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    print("=" * 70)
    print("🛵 DELIVERY RUSH SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient(base_url=API_BASE_URL) as client:
        login = await client.post("/login", json={"username": username, "password": password})
        if login.status_code != 200:
            print(f"❌ Login failed: {login.text}")
            sys.exit(1)
        headers = {"Authorization": f"Bearer {login.json()['token']}"}

        products = (await client.get("/products/public")).json()
        if not products:
            print("❌ The catalog is empty. Create some products first.")
            sys.exit(1)

        start_time = time.time()
        print("\n🚀 Submitting delivery orders...\n")
        results = await asyncio.gather(*[submit_order(client, products, i + 1) for i in range(num_orders)])
        submitted = [r for r in results if r["success"]]

        print("⚔️  Approving every order from two sessions at once...\n")
        outcomes = await asyncio.gather(*[
            asyncio.gather(approve(client, headers, r["id"]), approve(client, headers, r["id"]))
            for r in submitted
        ])
        total_time = round(time.time() - start_time, 2)

    promoted_once = sum(1 for pair in outcomes if sorted(pair) == [200, 409])
    anomalies = [(r["id"], pair) for r, pair in zip(submitted, outcomes) if sorted(pair) != [200, 409]]

    print("=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Submitted: {len(submitted)}/{num_orders}")
    print(f"✅ Promoted exactly once: {promoted_once}/{len(submitted)}")
    print(f"⏱️  Total Time: {total_time}s")

    if submitted:
        avg_time = round(sum(r["time"] for r in submitted) / len(submitted), 3)
        print(f"   Average submit response: {avg_time}s")

    if anomalies:
        print("\n⚠️  Unexpected approval outcomes (showing first 5):")
        for pedido_id, pair in anomalies[:5]:
            print(f"   Pedido #{pedido_id}: {pair}")

    print("\n" + "=" * 70)

    return {
        "total": num_orders,
        "submitted": len(submitted),
        "promoted_once": promoted_once,
        "anomalies": anomalies,
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Delivery Rush Simulation")
    parser.add_argument("--user", required=True, help="Staff username")
    parser.add_argument("--password", required=True, help="Staff password")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    args = parser.parse_args()

    summary = asyncio.run(run_simulation(args.user, args.password, args.orders))
    sys.exit(1 if summary["anomalies"] else 0)
