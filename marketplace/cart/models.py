from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator


class Cart(BaseModel):
    id: str
    user_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _as_str(cls, v):
        return str(v)


class CartItem(BaseModel):
    id: str
    cart_id: str
    course_id: str
    created_at: Optional[datetime] = None

    @field_validator("id", "cart_id", "course_id", mode="before")
    @classmethod
    def _as_str(cls, v):
        return str(v)


class CartLine(BaseModel):
    item_id: str
    course_id: str
    title: str = ""
    normal_price: float
    price: float
    early_bird: bool = False


class CartSnapshot(BaseModel):
    cart_id: str
    items: List[CartLine] = []
    total: float = 0.0
    item_count: int = 0


class AddCartItemBody(BaseModel):
    course_id: str
