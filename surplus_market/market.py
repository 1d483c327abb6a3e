from __future__ import annotations

from typing import List, Optional

from surplus_market.config import Settings
from surplus_market.ledger import StockLedger
from surplus_market.listings import ListingService
from surplus_market.models import Listing, Order, OrderStatus, Restaurant
from surplus_market.orders import OrderFactory, OrderQueries, OrderStatusMachine
from surplus_market.ownership import OwnershipGuard
from surplus_market.restaurants import RestaurantService
from surplus_market.store import Store


class Marketplace:
    """
    Точка входа для слоя обработки запросов.

    Три операции ядра: create_order, update_order_status, adjust_stock.
    Остальное — выборки и операции владельца над листингами/ресторанами.
    Все ошибки — подклассы MarketError.
    """

    def __init__(self, store: Store):
        self.store = store
        self.ledger = StockLedger(store)
        self.guard = OwnershipGuard(store)
        self.orders = OrderFactory(store, self.ledger)
        self.status_machine = OrderStatusMachine(store, self.guard)
        self.order_queries = OrderQueries(store)
        self.listings = ListingService(store, self.ledger, self.guard)
        self.restaurants = RestaurantService(store)

    @classmethod
    def from_settings(cls, settings: Settings, store: Optional[Store] = None) -> Marketplace:
        if store is None:
            store = Store(lock_timeout=settings.lock_timeout)
        else:
            store.lock_timeout = settings.lock_timeout
        return cls(store)

    # -------------------- core --------------------

    def create_order(self, user_id: str, listing_id: str, qty: int) -> Order:
        return self.orders.create_order(user_id, listing_id, qty)

    def update_order_status(self, order_id: str, new_status: OrderStatus | str, requester_id: str) -> None:
        self.status_machine.update_status(order_id, new_status, requester_id)

    def adjust_stock(self, listing_id: str, delta: int, acting_owner_id: str) -> int:
        return self.listings.update_stock(listing_id, delta, acting_owner_id)

    # -------------------- owner operations --------------------

    def create_restaurant(self, restaurant: Restaurant, owner_id: str) -> Restaurant:
        return self.restaurants.create_restaurant(restaurant, owner_id)

    def create_listing(self, listing: Listing, owner_id: str) -> Listing:
        return self.listings.create_listing(listing, owner_id)

    def set_listing_active(self, listing_id: str, active: bool, owner_id: str) -> None:
        self.listings.set_active(listing_id, active, owner_id)

    # -------------------- queries --------------------

    def get_listing(self, listing_id: str) -> Listing:
        return self.listings.get_listing(listing_id)

    def list_listings(self, active_only: bool = False) -> List[Listing]:
        return self.listings.list_listings(active_only)

    def listings_for_restaurant(self, restaurant_id: str) -> List[Listing]:
        return self.listings.listings_for_restaurant(restaurant_id)

    def get_order(self, order_id: str) -> Order:
        return self.order_queries.get_order(order_id)

    def orders_for_user(self, user_id: str) -> List[Order]:
        return self.order_queries.orders_for_user(user_id)

    def orders_for_restaurant(self, restaurant_id: str) -> List[Order]:
        return self.order_queries.orders_for_restaurant(restaurant_id)
