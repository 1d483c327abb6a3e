"""Pytest fixtures for the marketplace core (in-memory store)."""

import pytest

from surplus_market.market import Marketplace
from surplus_market.models import UserRole
from surplus_market.store import Store


@pytest.fixture
def store() -> Store:
    store = Store(lock_timeout=2.0)

    store.add_user("owner-1", name="Bistro Owner", role=UserRole.RESTAURANT)
    store.add_user("owner-2", name="Bakery Owner", role=UserRole.RESTAURANT)
    store.add_user("alice")
    store.add_user("bob")

    store.add_restaurant("rest-1", owner_id="owner-1", name="Bistro")
    store.add_restaurant("rest-2", owner_id="owner-2", name="Bakery")

    store.add_listing("box-1", restaurant_id="rest-1", price=300, stock=5)
    store.add_listing("box-last", restaurant_id="rest-1", price=450, stock=1)
    store.add_listing("box-off", restaurant_id="rest-1", price=300, stock=10, is_active=False)
    store.add_listing("bread-1", restaurant_id="rest-2", price=150, stock=0)

    return store


@pytest.fixture
def market(store) -> Marketplace:
    return Marketplace(store)
