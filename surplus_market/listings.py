from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

from surplus_market.errors import DuplicateEntryError, InvalidInputError, NegativeStockError, NotFoundError
from surplus_market.ledger import StockLedger
from surplus_market.models import Listing, ListingType, new_id
from surplus_market.ownership import OwnershipGuard
from surplus_market.store import Store


class ListingService:
    """Операции владельца ресторана над листингами и выборки для покупателей."""

    def __init__(self, store: Store, ledger: Optional[StockLedger] = None, guard: Optional[OwnershipGuard] = None):
        self.store = store
        self.ledger = ledger or StockLedger(store)
        self.guard = guard or OwnershipGuard(store)

    def create_listing(self, listing: Listing, owner_id: str) -> Listing:
        self.guard.assert_owns_restaurant(listing.restaurant_id, owner_id)

        try:
            listing_type = ListingType(listing.type)
        except ValueError:
            raise InvalidInputError(f"Unknown listing type: {listing.type!r}") from None
        for field_name in ("stock", "price"):
            value = getattr(listing, field_name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise InvalidInputError(f"Listing {field_name} must be an integer, got {value!r}")
        if listing.stock < 0:
            raise NegativeStockError(f"Initial stock cannot be negative: {listing.stock}")
        if listing.price < 0:
            raise InvalidInputError(f"Price cannot be negative: {listing.price}")

        record = replace(listing, id=listing.id or new_id(), type=listing_type)
        with self.store.transaction() as uow:
            if record.id in self.store.listings:
                raise DuplicateEntryError(f"Listing {record.id} already exists")
            self.store.ensure_writable("insert_listing")
            self.store.listings[record.id] = record
            uow.on_rollback(f"insert_listing listing={record.id}", lambda: self.store.listings.pop(record.id, None))
            self.store.log(f"[listing={record.id}] created restaurant={record.restaurant_id} stock={record.stock} price={record.price}")
        return replace(record)

    def update_stock(self, listing_id: str, delta: int, owner_id: str) -> int:
        """Пополнение или корректировка стока владельцем. Возвращает новый stock."""
        if not isinstance(delta, int) or isinstance(delta, bool):
            raise InvalidInputError(f"Stock delta must be an integer, got {delta!r}")
        if listing_id not in self.store.listings:
            raise NotFoundError(f"Listing {listing_id} not found")

        with self.store.transaction() as uow:
            uow.lock_listing(listing_id)
            self.guard.assert_owns_listing(listing_id, owner_id)
            return self.ledger.adjust_stock(listing_id, delta, uow)

    def set_active(self, listing_id: str, active: bool, owner_id: str) -> None:
        if listing_id not in self.store.listings:
            raise NotFoundError(f"Listing {listing_id} not found")

        with self.store.transaction() as uow:
            uow.lock_listing(listing_id)
            self.guard.assert_owns_listing(listing_id, owner_id)

            listing = self.store.listings[listing_id]
            self.store.ensure_writable("set_active")
            previous = listing.is_active
            listing.is_active = bool(active)
            uow.on_rollback(
                f"set_active listing={listing_id}",
                lambda: setattr(listing, "is_active", previous),
            )
            self.store.log(f"[listing={listing_id}] is_active {previous} -> {listing.is_active}")

    def get_listing(self, listing_id: str) -> Listing:
        listing = self.store.get_listing(listing_id)
        if not listing:
            raise NotFoundError(f"Listing {listing_id} not found")
        return listing

    def list_listings(self, active_only: bool = False) -> List[Listing]:
        listings = self.store.all_listings()
        if active_only:
            listings = [l for l in listings if l.is_active and l.has_stock(1)]
        return sorted(listings, key=lambda l: l.created_at, reverse=True)

    def listings_for_restaurant(self, restaurant_id: str) -> List[Listing]:
        listings = [l for l in self.store.all_listings() if l.restaurant_id == restaurant_id]
        return sorted(listings, key=lambda l: l.created_at, reverse=True)
