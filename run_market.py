from __future__ import annotations

import argparse
from concurrent.futures import ThreadPoolExecutor, as_completed

from surplus_market.config import configure_logging, load_settings
from surplus_market.errors import MarketError
from surplus_market.market import Marketplace
from surplus_market.models import UserRole
from surplus_market.store import Store


def seed(store: Store, stock: int, price: int, buyers: int) -> None:
    store.add_user("owner-1", name="Bistro Owner", role=UserRole.RESTAURANT)
    for i in range(1, buyers + 1):
        store.add_user(f"user-{i}")

    store.add_restaurant("rest-1", owner_id="owner-1", name="Bistro", address="1 Main St", lat=52.52, lng=13.40)
    store.add_listing("box-1", restaurant_id="rest-1", price=price, stock=stock)


def main() -> None:
    settings = load_settings()

    p = argparse.ArgumentParser(description="Race N buyers for one surplus-food listing and print the outcome.")
    p.add_argument("--stock", type=int, default=3)
    p.add_argument("--price", type=int, default=300, help="Цена в минимальных единицах валюты")
    p.add_argument("--buyers", type=int, default=5)
    p.add_argument("--qty", type=int, default=1)
    p.add_argument("--lock-timeout", type=float, default=settings.lock_timeout)
    p.add_argument("--log-level", type=str, default=settings.log_level)
    p.add_argument("--fail-on", type=str, default=None, help="Имя шага записи для искусственного падения (например insert_order)")
    args = p.parse_args()

    settings.lock_timeout = args.lock_timeout
    settings.log_level = args.log_level.upper()
    configure_logging(settings)

    market = Marketplace.from_settings(settings)
    seed(market.store, stock=args.stock, price=args.price, buyers=args.buyers)
    market.store.fail_on_write = args.fail_on

    outcomes = {}
    with ThreadPoolExecutor(max_workers=args.buyers) as executor:
        futures = {
            executor.submit(market.create_order, f"user-{i}", "box-1", args.qty): f"user-{i}"
            for i in range(1, args.buyers + 1)
        }
        for future in as_completed(futures):
            user_id = futures[future]
            try:
                order = future.result()
                outcomes[user_id] = f"ok order={order.id} total={order.total_price}"
            except MarketError as e:
                outcomes[user_id] = f"{e.kind.value}: {e}"

    print("\n=== RESULT ===")
    for user_id in sorted(outcomes):
        print(f"{user_id}: {outcomes[user_id]}")
    print("stock left:", market.get_listing("box-1").stock)
    print("orders:", len(market.orders_for_restaurant("rest-1")))


if __name__ == "__main__":
    main()
