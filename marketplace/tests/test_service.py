"""Scenario tests for MarketplaceService.

These tests go through the public operations with an in-memory store and
real bcrypt hashing (minimum cost), checking the stock invariants end to end
and that rejected operations leave the stored snapshot untouched.
"""

import random
import threading
from datetime import date
from decimal import Decimal

import pytest

from marketplace.domain import OrderStatus
from marketplace.exceptions import (
    AlreadyCanceled,
    AuthenticationFailed,
    InsufficientStock,
    InvalidInput,
    ItemNotFound,
    NotAuthorized,
    OrderNotFound,
)
from marketplace.orders import generate_cancel_token


def test_guest_order_then_cancel_with_token(service, widget, stock_of):
    """Widget scenario: guest buys 2 of 5, cancels with the token, stock back to 5."""
    order = service.place_order("guest", widget.id, 2, "Ann Lee")
    assert order.item_id == 1
    assert order.quantity == 2
    assert order.amount == Decimal("20.00")
    assert order.status == OrderStatus.PROCESSING
    assert order.username == "guest"
    assert len(order.cancel_token) == 24
    assert stock_of(widget.id) == 3

    canceled = service.cancel_order(order.id, token=order.cancel_token)
    assert canceled.status == OrderStatus.CANCELED
    assert stock_of(widget.id) == 5


def test_second_order_exceeding_stock_fails(service, widget, stock_of):
    """Two sequential orders of 3 against 5: the second fails, stock ends at 2."""
    service.place_order("guest", widget.id, 3, "Ann Lee")
    with pytest.raises(InsufficientStock):
        service.place_order("guest", widget.id, 3, "Ann Lee")
    assert stock_of(widget.id) == 2
    assert len(service.list_orders()) == 1


def test_wrong_token_leaves_order_and_stock(service, widget, stock_of):
    order = service.place_order(None, widget.id, 2, "Ann Lee")
    with pytest.raises(NotAuthorized):
        service.cancel_order(order.id, token=generate_cancel_token())
    assert service.list_orders()[0].status == OrderStatus.PROCESSING
    assert stock_of(widget.id) == 3


def test_owner_cancels_with_password(service, widget, alice, stock_of):
    order = service.place_order("alice", widget.id, 4)
    assert order.cancel_token is None
    with pytest.raises(NotAuthorized):
        service.cancel_order(order.id, principal="alice")
    service.cancel_order(order.id, *alice)
    assert stock_of(widget.id) == 5


def test_admin_cancels_any_order_once(service, widget, admin, alice, stock_of):
    order = service.place_order("alice", widget.id, 1)
    service.cancel_order(order.id, *admin)
    with pytest.raises(AlreadyCanceled):
        service.cancel_order(order.id, *admin)
    assert stock_of(widget.id) == 5


def test_cancel_unknown_order(service, admin):
    with pytest.raises(OrderNotFound):
        service.cancel_order(12, *admin)


def test_admin_operations_require_admin_credentials(service, widget, alice, stock_of):
    with pytest.raises(AuthenticationFailed):
        service.admin_update_stock("admin", "guess", widget.id, 100)
    with pytest.raises(AuthenticationFailed):
        service.admin_update_stock(*alice, widget.id, 100)
    with pytest.raises(AuthenticationFailed):
        service.admin_create_item("admin", "", "Free stuff")
    assert stock_of(widget.id) == 5
    assert len(service.list_active_items()) == 1


def test_admin_update_stock_and_arrival(service, widget, admin, stock_of):
    assert service.admin_update_stock(*admin, widget.id, "12").stock == 12
    order = service.place_order(None, widget.id, 1, "Ann Lee")
    scheduled = service.admin_set_arrival(*admin, order.id, "2026-11-02")
    assert scheduled.status == OrderStatus.SCHEDULED
    assert scheduled.arrival_date == date(2026, 11, 2)
    back = service.admin_set_arrival(*admin, order.id, "")
    assert back.status == OrderStatus.PROCESSING
    assert stock_of(widget.id) == 11


def test_admin_set_arrival_on_canceled_order(service, widget, admin):
    order = service.place_order(None, widget.id, 1, "Ann Lee")
    service.cancel_order(order.id, token=order.cancel_token)
    with pytest.raises(AlreadyCanceled):
        service.admin_set_arrival(*admin, order.id, date(2026, 11, 2))


def test_admin_set_arrival_rejects_bad_date(service, widget, admin):
    order = service.place_order(None, widget.id, 1, "Ann Lee")
    with pytest.raises(InvalidInput):
        service.admin_set_arrival(*admin, order.id, "next tuesday")


@pytest.mark.parametrize("value", ["2026-11-02garbage", "2026-11-02 junk", "2026-13-01", 20261102])
def test_admin_set_arrival_rejects_trailing_garbage(service, widget, admin, value):
    order = service.place_order(None, widget.id, 1, "Ann Lee")
    with pytest.raises(InvalidInput):
        service.admin_set_arrival(*admin, order.id, value)
    assert service.list_orders()[0].arrival_date is None


@pytest.mark.parametrize("value", ["2026-11-02", " 2026-11-02 ", "2026-11-02T15:30:00Z", "2026-11-02T15:30:00.000+02:00"])
def test_admin_set_arrival_accepts_dates_and_timestamps(service, widget, admin, value):
    order = service.place_order(None, widget.id, 1, "Ann Lee")
    scheduled = service.admin_set_arrival(*admin, order.id, value)
    assert scheduled.arrival_date == date(2026, 11, 2)
    assert scheduled.status == OrderStatus.SCHEDULED


def test_takedown_cascades(service, widget, admin, alice, stock_of):
    service.place_order("alice", widget.id, 2)
    service.place_order(None, widget.id, 1, "Ann Lee")
    result = service.admin_takedown_item(*admin, widget.id)
    assert result.canceled_count == 2
    assert stock_of(widget.id) == 5
    assert service.list_active_items() == []
    assert all(o.status == OrderStatus.CANCELED for o in service.list_orders())
    with pytest.raises(ItemNotFound):
        service.place_order("alice", widget.id, 1)


@pytest.mark.parametrize("item_id", [None, "", "abc", True])
def test_place_order_needs_item_id(service, widget, item_id):
    with pytest.raises(InvalidInput):
        service.place_order("alice", item_id, 1)


def test_failed_operation_is_not_persisted(service, widget, stock_of, monkeypatch):
    """An error after reserving discards the whole snapshot."""

    def boom(self):
        raise RuntimeError("token source down")

    monkeypatch.setattr("marketplace.orders.OrderLifecycleManager._mint_token", boom)
    with pytest.raises(RuntimeError):
        service.place_order(None, widget.id, 2, "Ann Lee")
    assert stock_of(widget.id) == 5
    assert service.list_orders() == []


def test_random_reserve_cancel_sequence_keeps_invariants(service, widget, admin, stock_of):
    """Stock never goes negative and live quantities + stock stays 5."""
    rng = random.Random(7)
    live = []
    for _ in range(60):
        if live and rng.random() < 0.4:
            order = live.pop(rng.randrange(len(live)))
            service.cancel_order(order.id, *admin)
        else:
            try:
                live.append(service.place_order(None, widget.id, rng.randint(1, 3), "Ann Lee"))
            except InsufficientStock:
                pass
        stock = stock_of(widget.id)
        assert stock >= 0
        assert stock + sum(o.quantity for o in live) == 5


def test_concurrent_orders_never_oversell(service, admin, stock_of):
    """Many threads race for 10 units; exactly 10 succeed."""
    item = service.admin_create_item(*admin, name="Hot item", price="1", stock=10)
    results = []
    barrier = threading.Barrier(25)

    def buy():
        barrier.wait()
        try:
            service.place_order(None, item.id, 1, "Racer")
            results.append("ok")
        except InsufficientStock:
            results.append("sold out")

    threads = [threading.Thread(target=buy) for _ in range(25)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("ok") == 10
    assert results.count("sold out") == 15
    assert stock_of(item.id) == 0
    assert len(service.list_orders()) == 10


def test_wishlist_roundtrip(service, alice):
    assert service.set_wishlist(*alice, [2, 2, 1]) == [2, 1]
    assert service.get_wishlist(*alice) == [2, 1]
    assert service.get_wishlist("guest", None) == []
