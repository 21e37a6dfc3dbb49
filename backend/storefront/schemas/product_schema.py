from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    code: str
    name: str
    description: str = ""
    price: Decimal
    image_url: str = ""
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductPage(BaseModel):
    items: List[ProductOut]
    total: int


class ProductIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=256)
    description: str = ""
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    image_url: str = ""
    active: bool = True
