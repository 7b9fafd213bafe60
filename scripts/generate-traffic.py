#!/usr/bin/env python3
"""
Traffic generator for the storefront orders service
Simulates shoppers browsing products and placing orders, plus bursts of
concurrent orders against a single product to exercise stock reservation
"""

import requests
import random
import time
import threading
from datetime import datetime

API_URL = "http://localhost:8000"
USER_IDS = [1, 2, 3]

# Weight for actions
ACTION_WEIGHTS = {
    "browse": 0.5,
    "place_order": 0.35,
    "view_order": 0.1,
    "bad_order": 0.05,
}


def log(message):
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"[{timestamp}] {message}")


class Shopper:
    def __init__(self, name, user_id):
        self.name = name
        self.user_id = user_id
        self.products = []
        self.order_ids = []

    def fetch_products(self):
        try:
            response = requests.get(
                f"{API_URL}/products",
                params={"page": random.randint(1, 2), "limit": 10},
                timeout=5
            )
            if response.status_code == 200:
                self.products = response.json()["products"]
                log(f"{self.name}: Fetched {len(self.products)} products")
                return True
        except requests.RequestException as e:
            log(f"{self.name}: Failed to fetch products - {e}")
        return False

    def place_order(self):
        if not self.products:
            self.fetch_products()
        if not self.products:
            return False

        chosen = random.sample(self.products, k=min(len(self.products), random.randint(1, 3)))
        items = [
            {"product_id": product["id"], "quantity": random.randint(1, 3)}
            for product in chosen
        ]
        return self._submit(items)

    def place_bad_order(self):
        """Reference a product that does not exist; expect 404 and no stock change."""
        return self._submit([{"product_id": 999999, "quantity": 1}])

    def _submit(self, items):
        try:
            response = requests.post(
                f"{API_URL}/orders",
                json={"user_id": self.user_id, "items": items},
                timeout=10
            )
            if response.status_code == 201:
                order = response.json()
                self.order_ids.append(order["order_id"])
                log(f"{self.name}: Order {order['order_id']} created - total {order['total_amount']}")
                return True
            log(f"{self.name}: Order rejected - {response.status_code} {response.json().get('detail')}")
        except requests.RequestException as e:
            log(f"{self.name}: Order failed - {e}")
        return False

    def view_order(self):
        if not self.order_ids:
            return False
        order_id = random.choice(self.order_ids)
        try:
            response = requests.get(f"{API_URL}/orders/{order_id}", timeout=5)
            if response.status_code == 200:
                log(f"{self.name}: Viewing order {order_id} with {len(response.json()['items'])} items")
                return True
        except requests.RequestException as e:
            log(f"{self.name}: Failed to view order - {e}")
        return False

    def random_action(self):
        action = random.choices(
            list(ACTION_WEIGHTS.keys()),
            weights=list(ACTION_WEIGHTS.values())
        )[0]

        if action == "browse":
            return self.fetch_products()
        elif action == "place_order":
            return self.place_order()
        elif action == "view_order":
            return self.view_order()
        elif action == "bad_order":
            return self.place_bad_order()


def shopper_session(name, user_id, duration_seconds):
    """Simulate one shopper for duration_seconds"""
    shopper = Shopper(name, user_id)
    end_time = time.time() + duration_seconds

    shopper.fetch_products()
    while time.time() < end_time:
        shopper.random_action()
        time.sleep(random.uniform(0.3, 1.0))


def order_burst(product_id, quantity, burst_size):
    """
    Fire burst_size orders for the same product at once.

    With stock S the number of 201 responses must not exceed S // quantity.
    """
    barrier = threading.Barrier(burst_size)
    results = []
    lock = threading.Lock()

    def submit(user_id):
        barrier.wait()
        try:
            response = requests.post(
                f"{API_URL}/orders",
                json={"user_id": user_id, "items": [{"product_id": product_id, "quantity": quantity}]},
                timeout=10
            )
            status = response.status_code
        except requests.RequestException:
            status = None
        with lock:
            results.append(status)

    threads = [
        threading.Thread(target=submit, args=(random.choice(USER_IDS),))
        for _ in range(burst_size)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    log(f"Burst on product {product_id}: "
        f"{results.count(201)} created, {results.count(400)} insufficient stock, "
        f"{len([s for s in results if s not in (201, 400)])} other")


def generate_traffic(num_concurrent_users=5, session_duration=60, burst_size=0):
    """Generate traffic with multiple concurrent shoppers"""
    log(f"Starting traffic generation with {num_concurrent_users} concurrent shoppers")
    log(f"Session duration: {session_duration} seconds")

    threads = []
    shopper_index = 0

    try:
        while True:
            while len([t for t in threads if t.is_alive()]) < num_concurrent_users:
                shopper_index += 1
                thread = threading.Thread(
                    target=shopper_session,
                    args=(f"shopper_{shopper_index}", random.choice(USER_IDS), session_duration)
                )
                thread.start()
                threads.append(thread)

                time.sleep(random.uniform(1, 3))

            if burst_size:
                order_burst(random.randint(1, 8), 1, burst_size)

            threads = [t for t in threads if t.is_alive()]
            time.sleep(5)

    except KeyboardInterrupt:
        log("\nStopping traffic generation...")
        log("Waiting for active sessions to complete...")
        for thread in threads:
            thread.join(timeout=10)
        log("Traffic generation stopped")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Generate traffic for the storefront orders service")
    parser.add_argument(
        "--users",
        type=int,
        default=5,
        help="Number of concurrent shoppers (default: 5)"
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=60,
        help="Session duration in seconds (default: 60)"
    )
    parser.add_argument(
        "--burst",
        type=int,
        default=0,
        help="Concurrent orders fired at one product every cycle (default: 0, off)"
    )
    parser.add_argument(
        "--url",
        type=str,
        default="http://localhost:8000",
        help="API URL (default: http://localhost:8000)"
    )

    args = parser.parse_args()
    API_URL = args.url

    log("=" * 60)
    log("Storefront Orders Traffic Generator")
    log("=" * 60)
    log(f"API URL: {API_URL}")
    log(f"Concurrent Shoppers: {args.users}")
    log(f"Session Duration: {args.duration}s")
    log("=" * 60)

    generate_traffic(args.users, args.duration, args.burst)
