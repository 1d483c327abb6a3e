from __future__ import annotations

from dataclasses import replace

from surplus_market.errors import DuplicateEntryError, NotFoundError, UnauthorizedError
from surplus_market.models import Restaurant, new_id
from surplus_market.store import Store


class RestaurantService:
    def __init__(self, store: Store):
        self.store = store

    def create_restaurant(self, restaurant: Restaurant, owner_id: str) -> Restaurant:
        """Регистрация ресторана: владельцем может быть только пользователь с ролью restaurant."""
        owner = self.store.get_user(owner_id)
        if not owner:
            raise NotFoundError(f"User {owner_id} not found")
        if not owner.is_restaurant:
            raise UnauthorizedError(f"User {owner_id} cannot own a restaurant")

        record = replace(restaurant, id=restaurant.id or new_id(), owner_id=owner_id)
        with self.store.transaction() as uow:
            if record.id in self.store.restaurants:
                raise DuplicateEntryError(f"Restaurant {record.id} already exists")
            self.store.restaurants[record.id] = record
            uow.on_rollback(f"insert_restaurant restaurant={record.id}", lambda: self.store.restaurants.pop(record.id, None))
            self.store.log(f"[restaurant={record.id}] created owner={owner_id}")
        return replace(record)

    def get_restaurant(self, restaurant_id: str) -> Restaurant:
        restaurant = self.store.get_restaurant(restaurant_id)
        if not restaurant:
            raise NotFoundError(f"Restaurant {restaurant_id} not found")
        return restaurant
