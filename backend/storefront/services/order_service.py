import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterator, List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from storefront.models.order import Order, OrderStatus, can_transition
from storefront.repositories.cart_repo import CartStorageError
from storefront.repositories.order_repo import OrderRepository
from storefront.services.cart_service import CartEngine

log = logging.getLogger(__name__)


class OrderServiceException(Exception):
    pass


class NotAuthenticated(OrderServiceException):
    pass


class EmptyCart(OrderServiceException):
    pass


class CheckoutInProgress(OrderServiceException):
    pass


class OrderPersistFailure(OrderServiceException):
    pass


class LineItemPersistFailure(OrderServiceException):
    """The order row exists but its line items could not be written."""

    def __init__(self, message: str, order_id: str, order_number: str):
        super().__init__(message)
        self.order_id = order_id
        self.order_number = order_number


class OrderNotFound(OrderServiceException):
    pass


class InvalidStatusTransition(OrderServiceException):
    pass


class CheckoutGate:
    """Allows one checkout in flight per cart session."""

    def __init__(self):
        self._lock = threading.Lock()
        self._busy = set()

    def is_busy(self, key: str) -> bool:
        with self._lock:
            return key in self._busy

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._lock:
            if key in self._busy:
                raise CheckoutInProgress("A checkout is already in progress for this cart")
            self._busy.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._busy.discard(key)


checkout_gate = CheckoutGate()


@dataclass(frozen=True)
class CheckoutResult:
    order_id: str
    order_number: str
    total_amount: Decimal
    status: str = OrderStatus.PENDING.value
    notified: bool = False


class CheckoutService:
    """
    Converts a cart into an order plus its line items.

    The two writes are not atomic. If the line items fail after the order
    was committed, the order is left without items and
    LineItemPersistFailure is raised; nothing is deleted to compensate.
    The cart is cleared only after both writes succeed.
    """

    def __init__(self, order_repo, dispatcher, gate: Optional[CheckoutGate] = None):
        self.order_repo = order_repo
        self.dispatcher = dispatcher
        self.gate = gate or checkout_gate

    @staticmethod
    def _gen_order_number() -> str:
        return f"ORD-{int(time.time() * 1000)}-{uuid4().hex[:8].upper()}"

    def checkout(self, user, cart: CartEngine, session_key: str = "default") -> CheckoutResult:
        if user is None:
            raise NotAuthenticated("You must be signed in to place an order")
        if cart.is_empty():
            raise EmptyCart("The cart is empty")

        with self.gate.hold(session_key):
            # an earlier request for this session may have checked out and
            # cleared the stored cart since this copy was loaded
            cart.reload()
            if cart.is_empty():
                raise EmptyCart("The cart is empty")
            lines = cart.snapshot()
            order_number = self._gen_order_number()
            total_amount = cart.get_total_price()

            try:
                order = self.order_repo.create_order(
                    order_number=order_number, user_id=user.id, total_amount=total_amount
                )
            except Exception as e:
                log.error("Failed to create order %s: %s", order_number, e)
                raise OrderPersistFailure(f"Failed to create order: {e}") from e
            order_id = order.id
            log.info("Order %s created for user %s total=%s", order_number, user.id, total_amount)

            items = [
                {
                    "product_id": l.product.id,
                    "quantity": l.quantity,
                    "unit_price": l.product.price,
                    "total_price": l.line_total,
                }
                for l in lines
            ]
            try:
                self.order_repo.add_items(order_id, items)
            except Exception as e:
                log.error(
                    "Order %s has no line items; item insert failed: %s", order_number, e
                )
                raise LineItemPersistFailure(
                    f"Order {order_number} was created but its items could not be saved: {e}",
                    order_id=order_id,
                    order_number=order_number,
                ) from e

            notified = self._notify(user, order_number, total_amount, lines)

            try:
                cart.clear_cart()
            except CartStorageError as e:
                log.error("Order %s placed but the cart could not be cleared: %s", order_number, e)
            return CheckoutResult(
                order_id=order_id,
                order_number=order_number,
                total_amount=total_amount,
                notified=notified,
            )

    def _notify(self, user, order_number: str, total_amount: Decimal, lines) -> bool:
        payload = {
            "order_number": order_number,
            "user_email": user.email,
            "user_name": getattr(user, "full_name", None) or user.email,
            "total_amount": total_amount,
            "items": [
                {"name": l.product.name, "quantity": l.quantity, "price": l.product.price}
                for l in lines
            ],
        }
        try:
            resp = self.dispatcher.send_order_notification(payload)
        except Exception as e:
            log.error("Error sending notification for order %s: %s", order_number, e)
            return False
        if not resp or not resp.get("success"):
            log.error("Failed to send notification for order %s: %s", order_number, resp)
            return False
        return True


class OrderService:
    """Order history for customers and order management for staff."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepository(db)

    def list_for_user(self, user_id: str) -> List[Order]:
        return self.repo.list_for_user(user_id)

    def list_all(self) -> List[Order]:
        return self.repo.list_all()

    def get_for_user(self, user_id: str, order_id: str) -> Order:
        # other users' orders are reported as missing
        order = self.repo.get(order_id)
        if not order or order.user_id != user_id:
            raise OrderNotFound("Order not found")
        return order

    def get(self, order_id: str) -> Order:
        order = self.repo.get(order_id)
        if not order:
            raise OrderNotFound("Order not found")
        return order

    def cancel_for_user(self, user_id: str, order_id: str) -> Order:
        """Customers may cancel their own orders while still pending."""
        order = self.get_for_user(user_id, order_id)
        if OrderStatus(order.status) != OrderStatus.PENDING:
            raise InvalidStatusTransition(
                f"Only pending orders can be cancelled (order is {OrderStatus(order.status).value})"
            )
        log.info("Order %s cancelled by customer %s", order.order_number, user_id)
        return self.repo.set_status(order, OrderStatus.CANCELLED)

    def update_status(self, order_id: str, status: OrderStatus) -> Order:
        order = self.get(order_id)
        current = OrderStatus(order.status)
        target = OrderStatus(status)
        if not can_transition(current, target):
            raise InvalidStatusTransition(
                f"Cannot change order status from {current.value} to {target.value}"
            )
        log.info("Order %s status %s -> %s", order.order_number, current.value, target.value)
        return self.repo.set_status(order, target)

    @staticmethod
    def to_dict(order: Order, with_items: bool = False) -> Dict:
        data = {
            "id": order.id,
            "order_number": order.order_number,
            "user_id": order.user_id,
            "status": OrderStatus(order.status).value,
            "total_amount": order.total_amount,
            "created_at": order.created_at,
            "updated_at": order.updated_at,
        }
        if with_items:
            data["items"] = [
                {
                    "id": it.id,
                    "order_id": it.order_id,
                    "product_id": it.product_id,
                    "quantity": it.quantity,
                    "unit_price": it.unit_price,
                    "total_price": it.total_price,
                    "product": (
                        {
                            "id": it.product.id,
                            "code": it.product.code,
                            "name": it.product.name,
                            "image_url": it.product.image_url,
                        }
                        if it.product is not None
                        else None
                    ),
                }
                for it in order.items
            ]
        return data
