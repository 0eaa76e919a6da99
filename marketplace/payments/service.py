"""
Cas d'usage 'payments': enchaîne validation -> exécution (carte | virement) -> règlement.

Chaque tentative reçoit un identifiant (attempt_id) qui réserve la commande le
temps de la tentative et sert de clé d'idempotence côté Stripe.
"""
from typing import List, Optional
from uuid import uuid4
import logging

from marketplace.errors import ErrorCode
from marketplace.orders import repository as orders_repository
from marketplace.outcome import Outcome
from . import bank_transfer
from . import card
from . import repository
from . import validation
from .models import Payment, PaymentResult, PaymentStatus, PaymentType, SlipFile

logger = logging.getLogger(__name__)


def new_attempt_id() -> str:
    return str(uuid4())


def pay_by_card(user_id: str, order_id: str, card_token: str, description: Optional[str] = None) -> Outcome:
    attempt_id = new_attempt_id()
    validated = validation.validate_order_for_payment(user_id, order_id, attempt_id)
    if not validated.success:
        return validated

    try:
        charged = card.charge(validated.data, card_token, description)
    except Exception:
        logger.exception("payments.pay_by_card unexpected error order_id=%s attempt_id=%s", order_id, attempt_id)
        raise
    if not charged.success:
        # Tentative terminée sans débit: la commande redevient payable
        validation.release_order(order_id, attempt_id)
        return charged
    return card.apply_charge_outcome(validated.data.order, charged.data)


def pay_by_bank_transfer(user_id: str, order_id: str, slip: SlipFile) -> Outcome:
    attempt_id = new_attempt_id()
    validated = validation.validate_order_for_payment(user_id, order_id, attempt_id)
    if not validated.success:
        return validated

    try:
        submitted = bank_transfer.submit(validated.data, slip)
    except Exception:
        validation.release_order(order_id, attempt_id)
        raise
    if not submitted.success:
        validation.release_order(order_id, attempt_id)
    return submitted


def refresh_card_payment(user_id: str, payment_id: str) -> Outcome:
    """Relit une charge carte en attente et applique son résultat (propriétaire uniquement)."""
    payment = repository.get_payment(payment_id)
    if not payment:
        return Outcome.fail(ErrorCode.PAYMENT_NOT_FOUND, payment_id=payment_id)
    order = orders_repository.get_order(payment.order_id)
    if not order or order.user_id != str(user_id):
        return Outcome.fail(ErrorCode.ACCESS_DENIED, payment_id=payment_id)
    refreshed = card.refresh_charge(payment)
    if not refreshed.success:
        return refreshed
    if not refreshed.context.get("transitioned"):
        # Rien n'a changé: la commande garde son statut
        return Outcome.ok(PaymentResult(payment=refreshed.data, order_status=order.status.value),
                          order_id=order.id, payment_id=payment_id)
    return card.apply_charge_outcome(order, refreshed.data)


def review_bank_transfer(payment_id: str, approved: bool, reason: Optional[str], reviewer_id: str) -> Outcome:
    return bank_transfer.review(payment_id, approved, reason, reviewer_id)


def list_my_payments(user_id: str) -> List[Payment]:
    return repository.list_payments_for_user(user_id)


def list_payments(payment_type: Optional[PaymentType] = None, status: Optional[PaymentStatus] = None) -> List[Payment]:
    return repository.list_payments(payment_type=payment_type, status=status)
