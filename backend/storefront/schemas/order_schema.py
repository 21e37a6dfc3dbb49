from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from storefront.models.order import OrderStatus


class OrderItemProductOut(BaseModel):
    id: str
    code: str
    name: str
    image_url: str = ""


class OrderItemOut(BaseModel):
    id: int
    order_id: str
    product_id: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    product: Optional[OrderItemProductOut] = None


class OrderOut(BaseModel):
    id: str
    order_number: str
    user_id: str
    status: OrderStatus
    total_amount: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AdminOrderOut(OrderOut):
    buyer_name: Optional[str] = None
    buyer_email: Optional[str] = None


class OrderDetailOut(OrderOut):
    items: List[OrderItemOut] = []


class CheckoutOut(BaseModel):
    order_id: str
    order_number: str
    total_amount: Decimal
    status: OrderStatus
    notified: bool


class StatusUpdateIn(BaseModel):
    status: OrderStatus
