from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field


class AddItemIn(BaseModel):
    product_id: str
    quantity: int = Field(1, gt=0)


class UpdateQuantityIn(BaseModel):
    # zero or negative removes the line
    quantity: int


class CartProductOut(BaseModel):
    id: str
    code: str
    name: str
    price: Decimal
    image_url: str = ""


class CartLineOut(BaseModel):
    product: CartProductOut
    quantity: int
    line_total: Decimal


class CartOut(BaseModel):
    items: List[CartLineOut]
    total_items: int
    total_price: Decimal


class AddItemOut(BaseModel):
    message: str
    created: bool
    cart: CartOut
