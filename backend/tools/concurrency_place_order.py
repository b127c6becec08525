"""
Fire concurrent place-order requests for one user against a running server.

The user's cart is filled once, then every worker submits the same order.
Exactly one request should succeed; the rest find an empty cart (400) or a
checkout already in progress (409).

    python tools/concurrency_place_order.py --user 1 --product 1 --workers 8
"""
import argparse
import concurrent.futures
import os
import sys

import requests

BASE = os.environ.get("STOREFRONT_BASE", "http://127.0.0.1:8000")

ADDRESS = {
    "full_name": "Load Test",
    "street": "1 Test Street",
    "city": "Testville",
    "state": "TS",
    "zip_code": "00000",
    "country": "US",
}


def fill_cart(user_id, product_id, qty):
    r = requests.post(
        f"{BASE}/api/cart/items",
        json={"product_id": product_id, "qty": qty},
        headers={"X-User-Id": str(user_id)},
        timeout=10,
    )
    r.raise_for_status()
    return r.json()["cart"]


def order_task(i, user_id):
    payload = {"shipping_address": ADDRESS, "payment_method": "cashOnDelivery"}
    try:
        r = requests.post(
            f"{BASE}/api/orders", json=payload, headers={"X-User-Id": str(user_id)}, timeout=20
        )
        return (i, r.status_code, r.json())
    except requests.RequestException as e:
        return (i, "ERR", str(e))


def run(workers, user_id, product_id, qty):
    cart = fill_cart(user_id, product_id, qty)
    print(f"cart total={cart['totalPrice']} items={[(it['slug'], it['qty']) for it in cart['items']]}")
    print(f"submitting {workers} concurrent orders for user {user_id}")

    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(order_task, i, user_id) for i in range(workers)]
        results = [f.result() for f in concurrent.futures.as_completed(futures)]

    for r in sorted(results, key=lambda r: r[0]):
        print(r)
    order_ids = [r[2]["orderId"] for r in results if r[1] == 200]
    print("orders placed:", order_ids)
    return len(order_ids) == 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrent order placement check.")
    parser.add_argument("--user", type=int, required=True, help="user id sent as X-User-Id")
    parser.add_argument("--product", type=int, required=True)
    parser.add_argument("--qty", type=int, default=1)
    parser.add_argument("--workers", type=int, default=8)
    args = parser.parse_args()

    ok = run(args.workers, args.user, args.product, args.qty)
    sys.exit(0 if ok else 1)
