from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from storefront.models.order import Order, OrderItem, OrderStatus


class OrderRepository:
    """
    Order and order-item writes commit separately: an order is visible
    before its items are. Callers must not assume the pair is atomic.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order_number: str, user_id: str, total_amount: Decimal) -> Order:
        order = Order(
            order_number=order_number,
            user_id=user_id,
            status=OrderStatus.PENDING,
            total_amount=total_amount,
        )
        self.db.add(order)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(order)
        return order

    def add_items(self, order_id: str, items: List[Dict]) -> List[OrderItem]:
        """items: list of {product_id, quantity, unit_price, total_price}"""
        rows = [OrderItem(order_id=order_id, **it) for it in items]
        self.db.add_all(rows)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return rows

    def get(self, order_id: str) -> Optional[Order]:
        return (
            self.db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.id == order_id)
            .first()
        )

    def get_by_number(self, order_number: str) -> Optional[Order]:
        return self.db.query(Order).filter(Order.order_number == order_number).first()

    def list_for_user(self, user_id: str) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.order_number.desc())
            .all()
        )

    def list_all(self) -> List[Order]:
        return (
            self.db.query(Order)
            .order_by(Order.created_at.desc(), Order.order_number.desc())
            .all()
        )

    def set_status(self, order: Order, status: OrderStatus) -> Order:
        order.status = status
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(order)
        return order
