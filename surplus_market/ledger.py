from __future__ import annotations

from typing import Optional

from surplus_market.errors import NegativeStockError, NotFoundError
from surplus_market.store import Store, UnitOfWork


class StockLedger:
    """
    Единственная точка изменения stock у листинга.

    Чтение и запись идут под row-локом листинга, который держится до конца
    транзакции: параллельные вызовы по одному листингу выстраиваются в
    очередь, по разным листингам не конкурируют.
    """

    def __init__(self, store: Store):
        self.store = store

    def adjust_stock(self, listing_id: str, delta: int, uow: Optional[UnitOfWork] = None) -> int:
        """
        Применяет delta к stock листинга и возвращает новое значение.

        С uow — участвует в чужой транзакции, без него — открывает свою.
        NotFoundError для неизвестного листинга, NegativeStockError (stock
        не меняется), если результат ушёл бы ниже нуля.
        """
        if uow is None:
            with self.store.transaction() as tx:
                return self.adjust_stock(listing_id, delta, tx)

        if listing_id not in self.store.listings:
            raise NotFoundError(f"Listing {listing_id} not found")

        uow.lock_listing(listing_id)
        listing = self.store.listings[listing_id]

        previous = listing.stock
        new_stock = previous + delta
        if new_stock < 0:
            raise NegativeStockError(f"Stock for listing {listing_id} cannot go negative: have={previous}, delta={delta}")

        self.store.ensure_writable("adjust_stock")
        listing.stock = new_stock
        uow.on_rollback(
            f"adjust_stock listing={listing_id} delta={delta}",
            lambda: setattr(listing, "stock", previous),
        )
        self.store.log(f"[listing={listing_id}] stock {previous} -> {new_stock} (delta={delta})")
        return new_stock
