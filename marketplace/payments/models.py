from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, field_validator

from marketplace.orders.models import Order, OrderItem


class PaymentType(str, Enum):
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCESSFUL = "successful"
    FAILED = "failed"


PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.SUCCESSFUL, PaymentStatus.FAILED}),
    PaymentStatus.SUCCESSFUL: frozenset(),
    PaymentStatus.FAILED: frozenset(),
}


def can_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in PAYMENT_TRANSITIONS[PaymentStatus(current)]


class Payment(BaseModel):
    id: str
    order_id: str
    payment_type: PaymentType
    status: PaymentStatus
    amount: float = 0.0
    currency: str = ""
    gateway_charge_id: Optional[str] = None
    failure_code: Optional[str] = None
    slip_image: Optional[str] = None
    slip_path: Optional[str] = None
    reviewed_by: Optional[str] = None
    review_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", "order_id", mode="before")
    @classmethod
    def _as_str(cls, v):
        return str(v)


class ValidatedOrder(BaseModel):
    """Commande éligible au paiement, réservée pour la tentative `attempt_id`."""

    order: Order
    items: List[OrderItem]
    amount: float
    attempt_id: str


class PaymentResult(BaseModel):
    payment: Payment
    order_status: str
    enrollment_ids: List[str] = []


class ChargeResult(BaseModel):
    """Réponse normalisée de la passerelle (charge créée ou relue)."""

    id: str
    paid: bool = False
    failure_code: Optional[str] = None
    failure_message: Optional[str] = None
    amount: int = 0
    currency: str = ""


class SlipFile(BaseModel):
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class CardPaymentBody(BaseModel):
    order_id: str
    card_token: str
    description: Optional[str] = None


class ReviewPaymentBody(BaseModel):
    approved: bool
    reason: Optional[str] = None
