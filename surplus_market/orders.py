from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

from surplus_market.errors import (
    InsufficientStockError,
    InvalidInputError,
    InvalidQuantityError,
    InvalidStatusTransitionError,
    NegativeStockError,
    NotFoundError,
    StorageError,
)
from surplus_market.ledger import StockLedger
from surplus_market.models import Order, OrderStatus, new_id
from surplus_market.ownership import OwnershipGuard
from surplus_market.store import Store, UnitOfWork


def parse_status(value: OrderStatus | str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidInputError(f"Unknown order status: {value!r}") from None


class OrderFactory:
    """
    Создание заказа одной транзакцией:

    lock listing -> проверка active -> списание stock через StockLedger ->
    расчёт total_price -> вставка заказа.

    Любая ошибка откатывает всё: ни потерянного стока, ни фантомных заказов.
    """

    def __init__(self, store: Store, ledger: Optional[StockLedger] = None):
        self.store = store
        self.ledger = ledger or StockLedger(store)

    def create_order(self, user_id: str, listing_id: str, qty: int) -> Order:
        # bool — подкласс int, его тоже отсекаем
        if not isinstance(qty, int) or isinstance(qty, bool) or qty <= 0:
            raise InvalidQuantityError(f"Quantity must be a positive integer, got {qty!r}")

        order_id = new_id()
        self.store.log(f"[order={order_id}] CREATE user={user_id} listing={listing_id} qty={qty}")

        if listing_id not in self.store.listings:
            raise NotFoundError(f"Listing {listing_id} not found")

        with self.store.transaction() as uow:
            uow.lock_listing(listing_id)
            listing = self.store.get_listing(listing_id)
            if not listing:
                raise NotFoundError(f"Listing {listing_id} not found")
            if not listing.is_active:
                raise InvalidInputError(f"Listing {listing_id} is not active")

            try:
                self.ledger.adjust_stock(listing_id, -qty, uow)
            except NegativeStockError as e:
                self.store.log(f"[order={order_id}] insufficient stock: have={listing.stock}, need={qty}")
                raise InsufficientStockError(f"Insufficient stock for listing {listing_id}: have={listing.stock}, need={qty}") from e

            order = Order(
                id=order_id,
                user_id=user_id,
                listing_id=listing_id,
                qty=qty,
                total_price=qty * listing.price,
            )
            self._insert(uow, order)

        self.store.log(f"[order={order_id}] CREATED total_price={order.total_price} status={order.status.value}")
        return replace(order)

    def _insert(self, uow: UnitOfWork, order: Order) -> None:
        self.store.ensure_writable("insert_order")
        if order.id in self.store.orders:
            raise StorageError(f"Duplicate order id {order.id}")
        self.store.orders[order.id] = order
        uow.on_rollback(f"insert_order order={order.id}", lambda: self.store.orders.pop(order.id, None))


class OrderStatusMachine:
    """
    pending -> ready -> completed, pending|ready -> cancelled.

    completed и cancelled терминальны. Из pending/ready разрешён переход в
    любой статус: других ограничений не вводим.
    """

    def __init__(self, store: Store, guard: Optional[OwnershipGuard] = None):
        self.store = store
        self.guard = guard or OwnershipGuard(store)

    def update_status(self, order_id: str, new_status: OrderStatus | str, requester_id: str) -> None:
        status = parse_status(new_status)

        if order_id not in self.store.orders:
            raise NotFoundError(f"Order {order_id} not found")

        with self.store.transaction() as uow:
            uow.lock_order(order_id)
            self.guard.assert_owns_order(order_id, requester_id)

            order = self.store.orders[order_id]
            if not order.can_transition_to(status):
                raise InvalidStatusTransitionError(
                    f"Order {order_id} is {order.status.value}; cannot move to {status.value}"
                )

            self.store.ensure_writable("update_status")
            previous = order.status
            order.status = status
            uow.on_rollback(
                f"update_status order={order_id} {previous.value}->{status.value}",
                lambda: setattr(order, "status", previous),
            )
            self.store.log(f"[order={order_id}] status {previous.value} -> {status.value} by={requester_id}")


class OrderQueries:
    def __init__(self, store: Store):
        self.store = store

    def get_order(self, order_id: str) -> Order:
        order = self.store.get_order(order_id)
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def orders_for_user(self, user_id: str) -> List[Order]:
        orders = [o for o in self.store.all_orders() if o.user_id == user_id]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def orders_for_restaurant(self, restaurant_id: str) -> List[Order]:
        listing_ids = {l.id for l in self.store.all_listings() if l.restaurant_id == restaurant_id}
        orders = [o for o in self.store.all_orders() if o.listing_id in listing_ids]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)
