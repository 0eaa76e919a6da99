from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, field_validator


class OrderStatus(str, Enum):
    PENDING = "pending"
    SUCCESSFUL = "successful"
    FAILED = "failed"


# Transitions autorisées; les statuts terminaux n'ont aucune sortie
ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.SUCCESSFUL, OrderStatus.FAILED}),
    OrderStatus.SUCCESSFUL: frozenset(),
    OrderStatus.FAILED: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS[OrderStatus(current)]


def is_terminal(status: OrderStatus) -> bool:
    return not ORDER_TRANSITIONS[OrderStatus(status)]


class Order(BaseModel):
    id: str
    user_id: str
    subtotal_amount: float
    total_amount: float
    coupon_id: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING
    payment_attempt_id: Optional[str] = None
    payment_attempt_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _as_str(cls, v):
        return str(v)

    @field_validator("coupon_id", "payment_attempt_id", mode="before")
    @classmethod
    def _optional_str(cls, v):
        return str(v) if v is not None else None


class OrderItem(BaseModel):
    id: str
    order_id: str
    course_id: str
    unit_price: float
    created_at: Optional[datetime] = None

    @field_validator("id", "order_id", "course_id", mode="before")
    @classmethod
    def _as_str(cls, v):
        return str(v)


class OrderDetail(BaseModel):
    order: Order
    items: List[OrderItem] = []


class CreateOrderBody(BaseModel):
    course_ids: List[str]
    coupon_id: Optional[str] = None


class CheckoutCartBody(BaseModel):
    coupon_id: Optional[str] = None
