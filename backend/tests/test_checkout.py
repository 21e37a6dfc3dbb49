import threading
from decimal import Decimal
from types import SimpleNamespace

import pytest

from storefront.repositories.cart_repo import CartStorageError, InMemoryCartStorage, JsonFileCartStorage
from storefront.services.cart_service import CartEngine, ProductRef
from storefront.services.order_service import (
    CheckoutGate,
    CheckoutInProgress,
    CheckoutService,
    EmptyCart,
    LineItemPersistFailure,
    NotAuthenticated,
    OrderPersistFailure,
)

PRODUCT_A = ProductRef(id="a", name="Cusco", code="PKG-A", price=Decimal("100"))
PRODUCT_B = ProductRef(id="b", name="Cancún", code="PKG-B", price=Decimal("50"))

USER = SimpleNamespace(id="u1", email="ana@example.com", full_name="Ana")


class FakeOrderRepo:
    def __init__(self, fail_order=False, fail_items=False):
        self.fail_order = fail_order
        self.fail_items = fail_items
        self.orders = []
        self.items = []
        self.item_calls = 0

    def create_order(self, order_number, user_id, total_amount):
        if self.fail_order:
            raise RuntimeError("insert into orders failed")
        order = SimpleNamespace(
            id=f"o{len(self.orders) + 1}",
            order_number=order_number,
            user_id=user_id,
            total_amount=total_amount,
            status="pending",
        )
        self.orders.append(order)
        return order

    def add_items(self, order_id, items):
        self.item_calls += 1
        if self.fail_items:
            raise RuntimeError("insert into order_items failed")
        for it in items:
            self.items.append(dict(it, order_id=order_id))
        return items


class FakeDispatcher:
    def __init__(self, result=None, error=None):
        self.result = {"success": True} if result is None else result
        self.error = error
        self.calls = []

    def send_order_notification(self, payload):
        self.calls.append(payload)
        if self.error:
            raise self.error
        return self.result


def _cart(*entries):
    cart = CartEngine.load(InMemoryCartStorage())
    for product, qty in entries:
        cart.add_to_cart(product, qty)
    return cart


def test_checkout_success_writes_order_and_items():
    repo, dispatcher = FakeOrderRepo(), FakeDispatcher()
    cart = _cart((PRODUCT_A, 2), (PRODUCT_B, 1))

    result = CheckoutService(repo, dispatcher, gate=CheckoutGate()).checkout(USER, cart)

    assert len(repo.orders) == 1
    order = repo.orders[0]
    assert order.user_id == "u1"
    assert order.total_amount == Decimal("250")
    assert result.order_number == order.order_number
    assert result.order_number.startswith("ORD-")
    assert result.status == "pending"
    assert result.notified is True

    assert repo.item_calls == 1
    assert len(repo.items) == 2
    for it in repo.items:
        assert it["order_id"] == order.id
        assert it["total_price"] == it["unit_price"] * it["quantity"]
    assert sum(it["total_price"] for it in repo.items) == order.total_amount

    assert cart.is_empty()
    assert len(dispatcher.calls) == 1
    payload = dispatcher.calls[0]
    assert payload["order_number"] == order.order_number
    assert payload["user_email"] == "ana@example.com"
    assert payload["user_name"] == "Ana"
    assert payload["items"] == [
        {"name": "Cusco", "quantity": 2, "price": Decimal("100")},
        {"name": "Cancún", "quantity": 1, "price": Decimal("50")},
    ]


def test_user_name_falls_back_to_email():
    dispatcher = FakeDispatcher()
    user = SimpleNamespace(id="u2", email="bob@example.com", full_name=None)
    CheckoutService(FakeOrderRepo(), dispatcher, gate=CheckoutGate()).checkout(user, _cart((PRODUCT_A, 1)))
    assert dispatcher.calls[0]["user_name"] == "bob@example.com"


def test_empty_cart_fails_without_writes():
    repo, dispatcher = FakeOrderRepo(), FakeDispatcher()
    with pytest.raises(EmptyCart):
        CheckoutService(repo, dispatcher).checkout(USER, _cart())
    assert repo.orders == [] and repo.item_calls == 0
    assert dispatcher.calls == []


def test_anonymous_checkout_fails_without_writes():
    repo = FakeOrderRepo()
    cart = _cart((PRODUCT_A, 1))
    with pytest.raises(NotAuthenticated):
        CheckoutService(repo, FakeDispatcher()).checkout(None, cart)
    assert repo.orders == []
    assert cart.get_total_items() == 1


def test_order_failure_leaves_cart_untouched():
    repo, dispatcher = FakeOrderRepo(fail_order=True), FakeDispatcher()
    cart = _cart((PRODUCT_A, 2))
    with pytest.raises(OrderPersistFailure):
        CheckoutService(repo, dispatcher, gate=CheckoutGate()).checkout(USER, cart)
    assert repo.item_calls == 0
    assert dispatcher.calls == []
    assert cart.get_total_items() == 2


def test_item_failure_keeps_order_and_cart():
    repo, dispatcher = FakeOrderRepo(fail_items=True), FakeDispatcher()
    cart = _cart((PRODUCT_A, 2), (PRODUCT_B, 1))
    with pytest.raises(LineItemPersistFailure) as exc:
        CheckoutService(repo, dispatcher, gate=CheckoutGate()).checkout(USER, cart)
    # no compensating delete
    assert len(repo.orders) == 1
    assert exc.value.order_number == repo.orders[0].order_number
    assert exc.value.order_id == repo.orders[0].id
    assert dispatcher.calls == []
    assert cart.get_total_items() == 3


@pytest.mark.parametrize(
    "dispatcher",
    [FakeDispatcher(error=ConnectionError("smtp down")), FakeDispatcher(result={"success": False})],
)
def test_notification_failure_does_not_fail_checkout(dispatcher):
    repo = FakeOrderRepo()
    cart = _cart((PRODUCT_A, 1))
    result = CheckoutService(repo, dispatcher, gate=CheckoutGate()).checkout(USER, cart)
    assert result.notified is False
    assert len(dispatcher.calls) == 1
    assert len(repo.orders) == 1
    assert cart.is_empty()


def test_second_checkout_for_same_session_is_rejected():
    gate = CheckoutGate()
    entered = threading.Event()
    release = threading.Event()

    class SlowRepo(FakeOrderRepo):
        def create_order(self, order_number, user_id, total_amount):
            entered.set()
            release.wait(timeout=5)
            return super().create_order(order_number, user_id, total_amount)

    repo = SlowRepo()
    svc = CheckoutService(repo, FakeDispatcher(), gate=gate)
    first_cart = _cart((PRODUCT_A, 1))
    worker = threading.Thread(target=svc.checkout, args=(USER, first_cart, "sess-1"))
    worker.start()
    try:
        assert entered.wait(timeout=5)
        assert gate.is_busy("sess-1")
        with pytest.raises(CheckoutInProgress):
            svc.checkout(USER, _cart((PRODUCT_A, 1)), session_key="sess-1")
        # other sessions are not blocked
        svc.checkout(USER, _cart((PRODUCT_B, 1)), session_key="sess-2")
    finally:
        release.set()
        worker.join(timeout=5)

    assert len(repo.orders) == 2
    assert not gate.is_busy("sess-1")


def test_gate_is_released_after_failure():
    gate = CheckoutGate()
    svc = CheckoutService(FakeOrderRepo(fail_order=True), FakeDispatcher(), gate=gate)
    with pytest.raises(OrderPersistFailure):
        svc.checkout(USER, _cart((PRODUCT_A, 1)), session_key="s")
    assert not gate.is_busy("s")


def test_order_numbers_are_unique():
    numbers = {CheckoutService._gen_order_number() for _ in range(200)}
    assert len(numbers) == 200


def test_stale_cart_copy_cannot_check_out_twice(tmp_path):
    # two requests for one session, both loaded before either checked out
    first = CartEngine.load(JsonFileCartStorage(str(tmp_path), "s1"))
    first.add_to_cart(PRODUCT_A, 2)
    second = CartEngine.load(JsonFileCartStorage(str(tmp_path), "s1"))
    assert second.get_total_items() == 2

    repo = FakeOrderRepo()
    svc = CheckoutService(repo, FakeDispatcher(), gate=CheckoutGate())
    svc.checkout(USER, first, session_key="s1")
    with pytest.raises(EmptyCart):
        svc.checkout(USER, second, session_key="s1")

    assert len(repo.orders) == 1
    assert repo.item_calls == 1


def test_checkout_uses_stored_lines():
    storage = InMemoryCartStorage()
    stale = CartEngine.load(storage)
    fresh = CartEngine.load(storage)
    stale.add_to_cart(PRODUCT_A, 1)
    fresh.add_to_cart(PRODUCT_B, 3)

    repo = FakeOrderRepo()
    result = CheckoutService(repo, FakeDispatcher(), gate=CheckoutGate()).checkout(USER, stale)

    assert result.total_amount == Decimal("150")
    assert [it["product_id"] for it in repo.items] == ["b"]


def test_cart_clear_failure_still_returns_order():
    class ReadOnlyAfterCheckout(InMemoryCartStorage):
        def save(self, rows):
            if not rows:
                raise CartStorageError("Timed out waiting for cart lock")
            super().save(rows)

    repo = FakeOrderRepo()
    cart = CartEngine.load(ReadOnlyAfterCheckout())
    cart.add_to_cart(PRODUCT_A, 1)
    cart.add_to_cart(PRODUCT_B, 1)

    result = CheckoutService(repo, FakeDispatcher(), gate=CheckoutGate()).checkout(USER, cart)

    assert result.order_number == repo.orders[0].order_number
    assert result.order_id == repo.orders[0].id
    assert len(repo.orders) == 1
    assert len(repo.items) == 2


def test_item_failure_reports_id_captured_at_insert():
    class ExpiringOrder:
        """Mimics an ORM row whose attributes expire after a rollback."""

        def __init__(self, order_id):
            self._id = order_id
            self.expired = False

        @property
        def id(self):
            if self.expired:
                raise RuntimeError("instance expired; refresh needed")
            return self._id

    class RollbackRepo(FakeOrderRepo):
        def create_order(self, order_number, user_id, total_amount):
            order = ExpiringOrder("o-42")
            self.orders.append(order)
            return order

        def add_items(self, order_id, items):
            self.item_calls += 1
            self.orders[-1].expired = True
            raise RuntimeError("insert into order_items failed")

    repo = RollbackRepo()
    svc = CheckoutService(repo, FakeDispatcher(), gate=CheckoutGate())
    with pytest.raises(LineItemPersistFailure) as exc:
        svc.checkout(USER, _cart((PRODUCT_A, 1)))

    assert exc.value.order_id == "o-42"
    assert exc.value.order_number.startswith("ORD-")
    assert repo.item_calls == 1
