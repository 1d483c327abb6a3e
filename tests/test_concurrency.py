"""Concurrent order placement against limited stock."""
import threading
from concurrent.futures import ThreadPoolExecutor

from surplus_market.errors import InsufficientStockError
from surplus_market.orders import OrderFactory


def _race(factory, buyers, listing_id, qty):
    barrier = threading.Barrier(len(buyers))

    def buy(user_id):
        barrier.wait(timeout=5)
        try:
            return factory.create_order(user_id, listing_id, qty)
        except InsufficientStockError as e:
            return e

    with ThreadPoolExecutor(max_workers=len(buyers)) as executor:
        return list(executor.map(buy, buyers))


def test_two_buyers_for_last_unit(store):
    """stock=1, two concurrent qty=1 orders: exactly one wins."""
    results = _race(OrderFactory(store), ["alice", "bob"], "box-last", 1)

    wins = [r for r in results if not isinstance(r, Exception)]
    losses = [r for r in results if isinstance(r, InsufficientStockError)]
    assert len(wins) == 1
    assert len(losses) == 1
    assert store.get_listing("box-last").stock == 0
    assert list(store.orders) == [wins[0].id]


def test_many_buyers_never_oversell(store):
    store.add_listing("hot", restaurant_id="rest-1", price=200, stock=7)
    buyers = [f"user-{i}" for i in range(20)]

    results = _race(OrderFactory(store), buyers, "hot", 2)

    wins = [r for r in results if not isinstance(r, Exception)]
    assert len(wins) == 3  # 7 // 2
    assert store.get_listing("hot").stock == 1
    assert sum(o.qty for o in store.orders.values()) == 6
    assert all(o.total_price == 400 for o in wins)


def test_orders_on_distinct_listings_do_not_contend(store):
    store.add_listing("a", restaurant_id="rest-1", price=100, stock=50)
    store.add_listing("b", restaurant_id="rest-2", price=100, stock=50)
    factory = OrderFactory(store)

    def buy(i):
        return factory.create_order(f"user-{i}", "a" if i % 2 else "b", 1)

    with ThreadPoolExecutor(max_workers=8) as executor:
        orders = list(executor.map(buy, range(40)))

    assert len(orders) == 40
    assert store.get_listing("a").stock == 30
    assert store.get_listing("b").stock == 30
