"""Tests for the in-memory store and its unit of work."""
import threading

import pytest

from surplus_market.errors import InsufficientStockError, InvalidInputError, StorageError
from surplus_market.ledger import StockLedger
from surplus_market.orders import OrderFactory


def test_reads_return_copies(store):
    listing = store.get_listing("box-1")
    listing.stock = 999

    # состояние хранилища не изменилось
    assert store.get_listing("box-1").stock == 5


def test_missing_records_read_as_none(store):
    assert store.get_listing("nope") is None
    assert store.get_order("nope") is None
    assert store.get_restaurant("nope") is None
    assert store.get_user("nope") is None


def test_commit_keeps_writes_and_logs(store):
    undone = []
    with store.transaction() as uow:
        uow.on_rollback("noop", lambda: undone.append(True))

    assert undone == []
    assert any(l.endswith("BEGIN") for l in store.logs)
    assert any(l.endswith("COMMIT") for l in store.logs)


def test_market_error_rolls_back_in_reverse_order(store):
    undone = []
    with pytest.raises(InvalidInputError):
        with store.transaction() as uow:
            uow.on_rollback("first", lambda: undone.append("first"))
            uow.on_rollback("second", lambda: undone.append("second"))
            raise InvalidInputError("bad request")

    assert undone == ["second", "first"]
    assert any("COMPENSATE second" in l for l in store.logs)


def test_unexpected_error_is_wrapped_as_storage_error(store):
    undone = []
    with pytest.raises(StorageError) as exc_info:
        with store.transaction() as uow:
            uow.on_rollback("write", lambda: undone.append(True))
            raise RuntimeError("disk on fire")

    assert undone == [True]
    assert exc_info.value.retryable is True
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_failed_compensation_does_not_stop_the_rest(store):
    undone = []

    def broken():
        raise RuntimeError("cannot undo")

    with pytest.raises(InvalidInputError):
        with store.transaction() as uow:
            uow.on_rollback("ok", lambda: undone.append("ok"))
            uow.on_rollback("broken", broken)
            raise InvalidInputError()

    assert undone == ["ok"]
    assert any("COMPENSATION FAILED at broken" in l for l in store.logs)


def test_row_lock_released_after_transaction(store):
    with store.transaction() as uow:
        uow.lock_listing("box-1")

    acquired = []

    def other_thread():
        lock = store.listing_lock("box-1")
        ok = lock.acquire(timeout=1)
        acquired.append(ok)
        if ok:
            lock.release()

    t = threading.Thread(target=other_thread)
    t.start()
    t.join()
    assert acquired == [True]


def test_lock_timeout_raises_storage_error(store):
    store.lock_timeout = 0.05
    holding = threading.Event()
    release = threading.Event()

    def holder():
        with store.transaction() as uow:
            uow.lock_listing("box-1")
            holding.set()
            release.wait(timeout=5)

    t = threading.Thread(target=holder)
    t.start()
    holding.wait(timeout=5)
    try:
        with pytest.raises(StorageError, match="timed out"):
            with store.transaction() as uow:
                uow.lock_listing("box-1")
    finally:
        release.set()
        t.join()


def test_interrupted_transaction_rolls_back_and_releases_lock(store):
    """KeyboardInterrupt inside a unit of work undoes the write and frees the row."""
    with pytest.raises(KeyboardInterrupt):
        with store.transaction() as uow:
            StockLedger(store).adjust_stock("box-1", -2, uow)
            raise KeyboardInterrupt()

    assert store.get_listing("box-1").stock == 5  # restored
    assert any("COMPENSATE adjust_stock listing=box-1 delta=-2" in l for l in store.logs)

    store.lock_timeout = 0.5
    results = []

    def buy():
        try:
            results.append(OrderFactory(store).create_order("bob", "box-1", 5))
        except (StorageError, InsufficientStockError) as e:
            results.append(e)

    t = threading.Thread(target=buy)
    t.start()
    t.join()

    assert results[0].total_price == 1500
    assert store.get_listing("box-1").stock == 0
