from __future__ import annotations

from surplus_market.errors import NotFoundError, UnauthorizedError
from surplus_market.models import Listing, Order, Restaurant
from surplus_market.store import Store


class OwnershipGuard:
    """
    Проверка владения: listing/order -> restaurant -> owner_id.

    Владельца всегда выводим из сохранённого состояния в момент вызова,
    никаких restaurant_id от клиента.
    """

    def __init__(self, store: Store):
        self.store = store

    def assert_owns_restaurant(self, restaurant_id: str, user_id: str) -> Restaurant:
        restaurant = self.store.get_restaurant(restaurant_id)
        if not restaurant:
            raise NotFoundError(f"Restaurant {restaurant_id} not found")
        if restaurant.owner_id != user_id:
            raise UnauthorizedError(f"User {user_id} does not own restaurant {restaurant_id}")
        return restaurant

    def assert_owns_listing(self, listing_id: str, user_id: str) -> Listing:
        listing = self.store.get_listing(listing_id)
        if not listing:
            raise NotFoundError(f"Listing {listing_id} not found")
        self.assert_owns_restaurant(listing.restaurant_id, user_id)
        return listing

    def assert_owns_order(self, order_id: str, user_id: str) -> Order:
        order = self.store.get_order(order_id)
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        self.assert_owns_listing(order.listing_id, user_id)
        return order
