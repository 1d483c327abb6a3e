from __future__ import annotations

import itertools
import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import time
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from surplus_market.errors import MarketError, StorageError
from surplus_market.models import Listing, ListingType, Order, Restaurant, User, UserRole

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    Одна транзакция над Store.

    Держит row-локи до commit/rollback и журнал компенсаций: каждая запись
    в Store регистрирует обратное действие через on_rollback(). При откате
    журнал проигрывается в обратном порядке, как компенсации в саге.
    """

    def __init__(self, store: Store, tx_id: int):
        self.store = store
        self.tx_id = tx_id
        self._held: List[Tuple[str, str, threading.RLock]] = []
        self._undo: List[Tuple[str, Callable[[], None]]] = []

    def log(self, message: str) -> None:
        self.store.log(f"[tx={self.tx_id}] {message}")

    def lock_row(self, table: str, row_id: str) -> None:
        if any(t == table and r == row_id for t, r, _ in self._held):
            return
        lock = self.store.row_lock(table, row_id)
        if not lock.acquire(timeout=self.store.lock_timeout):
            raise StorageError(f"timed out waiting for lock on {table}/{row_id}")
        self._held.append((table, row_id, lock))
        self.log(f"LOCK {table}/{row_id}")

    def lock_listing(self, listing_id: str) -> None:
        self.lock_row("listings", listing_id)

    def lock_order(self, order_id: str) -> None:
        self.lock_row("orders", order_id)

    def on_rollback(self, description: str, undo: Callable[[], None]) -> None:
        self._undo.append((description, undo))

    def commit(self) -> None:
        self._undo.clear()
        self.log("COMMIT")
        self._release()

    def rollback(self, reason: BaseException) -> None:
        self.log(f"ROLLBACK: {reason}")
        try:
            for description, undo in reversed(self._undo):
                self.log(f"COMPENSATE {description}")
                try:
                    undo()
                except Exception as comp_exc:
                    self.log(f"COMPENSATION FAILED at {description}: {comp_exc}")
            self._undo.clear()
        finally:
            self._release()

    def _release(self) -> None:
        while self._held:
            table, row_id, lock = self._held.pop()
            lock.release()


class Store:
    """
    Хранилище в памяти с семантикой одной согласованной БД.

    - users / restaurants / listings / orders: текущее состояние
    - row-локи: по одному RLock на строку, создаются лениво
    - logs: журнал операций (для демонстрации и тестов)

    Чтения отдают копии записей: изменение возвращённого объекта не
    меняет состояние хранилища.
    """

    def __init__(self, lock_timeout: float = 5.0) -> None:
        self.users: Dict[str, User] = {}
        self.restaurants: Dict[str, Restaurant] = {}
        self.listings: Dict[str, Listing] = {}
        self.orders: Dict[str, Order] = {}

        self.logs: List[str] = []

        self.lock_timeout = lock_timeout
        # имя шага записи, который должен упасть (fault injection)
        self.fail_on_write: Optional[str] = None

        self._row_locks: Dict[Tuple[str, str], threading.RLock] = {}
        self._registry_lock = threading.Lock()
        self._tx_ids = itertools.count(1)

    def log(self, message: str) -> None:
        self.logs.append(message)
        logger.info(message)

    # -------------------- locking / transactions --------------------

    def row_lock(self, table: str, row_id: str) -> threading.RLock:
        key = (table, row_id)
        with self._registry_lock:
            lock = self._row_locks.get(key)
            if lock is None:
                lock = self._row_locks[key] = threading.RLock()
            return lock

    def listing_lock(self, listing_id: str) -> threading.RLock:
        return self.row_lock("listings", listing_id)

    @contextmanager
    def transaction(self) -> Iterator[UnitOfWork]:
        with self._registry_lock:
            tx_id = next(self._tx_ids)
        uow = UnitOfWork(self, tx_id)
        uow.log("BEGIN")
        try:
            yield uow
        except MarketError as e:
            uow.rollback(e)
            raise
        except Exception as e:
            uow.rollback(e)
            raise StorageError(f"transaction {tx_id} aborted: {e}") from e
        except BaseException as e:
            # KeyboardInterrupt/SystemExit: откатываем и отпускаем локи, не оборачиваем
            uow.rollback(e)
            raise
        else:
            uow.commit()

    def ensure_writable(self, step: str) -> None:
        if self.fail_on_write == step:
            raise StorageError(f"write failed at step {step}")

    # -------------------- reads --------------------

    def get_user(self, user_id: str) -> Optional[User]:
        user = self.users.get(user_id)
        return replace(user) if user else None

    def get_restaurant(self, restaurant_id: str) -> Optional[Restaurant]:
        restaurant = self.restaurants.get(restaurant_id)
        return replace(restaurant) if restaurant else None

    def get_listing(self, listing_id: str) -> Optional[Listing]:
        """Чтение закоммиченного листинга: ждёт транзакцию, держащую его row-лок."""
        if listing_id not in self.listings:
            return None
        lock = self.listing_lock(listing_id)
        if not lock.acquire(timeout=self.lock_timeout):
            raise StorageError(f"timed out reading listing {listing_id}")
        try:
            listing = self.listings.get(listing_id)
            return replace(listing) if listing else None
        finally:
            lock.release()

    def get_order(self, order_id: str) -> Optional[Order]:
        order = self.orders.get(order_id)
        return replace(order) if order else None

    def all_listings(self) -> List[Listing]:
        listings = (self.get_listing(listing_id) for listing_id in list(self.listings))
        return [l for l in listings if l is not None]

    def all_orders(self) -> List[Order]:
        return [replace(o) for o in list(self.orders.values())]

    # Seed helpers (удобно для тестов/демо)
    def add_user(self, user_id: str, name: str = "", email: str = "", role: UserRole = UserRole.USER) -> None:
        self.users[user_id] = User(id=user_id, name=name or user_id, email=email or f"{user_id}@example.com", role=role)

    def add_restaurant(
        self,
        restaurant_id: str,
        owner_id: str,
        name: str = "",
        address: str = "",
        lat: float = 0.0,
        lng: float = 0.0,
        closing_time: Optional[time] = None,
    ) -> None:
        self.restaurants[restaurant_id] = Restaurant(
            id=restaurant_id,
            owner_id=owner_id,
            name=name or restaurant_id,
            address=address,
            lat=lat,
            lng=lng,
            closing_time=closing_time,
        )

    def add_listing(
        self,
        listing_id: str,
        restaurant_id: str,
        price: int,
        stock: int,
        is_active: bool = True,
        type: ListingType = ListingType.MYSTERY_BOX,
        description: str = "",
    ) -> None:
        self.listings[listing_id] = Listing(
            id=listing_id,
            restaurant_id=restaurant_id,
            type=type,
            description=description or f"{type.value} from {restaurant_id}",
            price=price,
            stock=stock,
            is_active=is_active,
        )
