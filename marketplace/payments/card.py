"""
Paiement par carte: débit synchrone via Stripe puis application du résultat.

Correspondance du résultat de la passerelle:
  paid                      -> successful (règlement immédiat)
  non payé + failure_code   -> failed (commande 'failed')
  non payé sans code        -> pending (la passerelle traite encore; réservation conservée)
La ligne de paiement est enregistrée avant de rendre la main.
"""
from typing import Optional
import logging

from marketplace import config
from marketplace.catalog.pricing import to_minor_units
from marketplace.enrollments import settlement
from marketplace.errors import ErrorCode
from marketplace.orders import repository as orders_repository
from marketplace.orders.models import Order, OrderStatus
from marketplace.outcome import Outcome
from . import repository
from . import stripe_client
from .models import ChargeResult, Payment, PaymentResult, PaymentStatus, PaymentType, ValidatedOrder

logger = logging.getLogger(__name__)


def map_charge_status(result: ChargeResult) -> PaymentStatus:
    if result.paid:
        return PaymentStatus.SUCCESSFUL
    if result.failure_code:
        return PaymentStatus.FAILED
    return PaymentStatus.PENDING


def charge(validated: ValidatedOrder, card_token: str, description: Optional[str] = None) -> Outcome:
    """
    Débite le montant validé (jamais un montant fourni par le client) et
    enregistre la tentative. Outcome.ok(Payment) ou la catégorie d'erreur carte.
    """
    order = validated.order
    currency = config.PAYMENT_CURRENCY
    try:
        result = stripe_client.create_charge(
            amount_minor=to_minor_units(validated.amount),
            currency=currency,
            token=card_token,
            description=description or f"Order {order.id}",
            metadata={"order_id": order.id, "user_id": order.user_id, "attempt_id": validated.attempt_id},
            idempotency_key=validated.attempt_id,
        )
    except stripe_client.GatewayError as e:
        logger.warning("payments.card gateway error order_id=%s category=%s code=%s",
                       order.id, e.category.value, e.gateway_code)
        context = {"order_id": order.id, "gateway_code": e.gateway_code}
        if e.charge_id:
            # Refus carte avec charge créée: trace d'audit
            failed = repository.insert_payment(
                order_id=order.id,
                payment_type=PaymentType.CARD,
                status=PaymentStatus.FAILED,
                amount=validated.amount,
                currency=currency,
                gateway_charge_id=e.charge_id,
                failure_code=e.gateway_code,
            )
            if failed:
                context["payment_id"] = failed.id
        return Outcome.fail(e.category, **context)

    status = map_charge_status(result)
    payment = repository.insert_payment(
        order_id=order.id,
        payment_type=PaymentType.CARD,
        status=status,
        amount=validated.amount,
        currency=currency,
        gateway_charge_id=result.id,
        failure_code=result.failure_code,
    )
    if not payment:
        # Débit effectué sans trace locale: la réservation reste posée pour bloquer un second débit
        logger.error("payments.card charge not recorded order_id=%s charge_id=%s status=%s", order.id, result.id, status.value)
        raise RuntimeError(f"Paiement {result.id} non enregistré pour la commande {order.id}")

    logger.info("payments.card recorded order_id=%s payment_id=%s charge_id=%s status=%s",
                order.id, payment.id, result.id, status.value)
    return Outcome.ok(payment, order_id=order.id, payment_id=payment.id)


def apply_charge_outcome(order: Order, payment: Payment) -> Outcome:
    """Fait avancer la commande selon le statut du paiement carte."""
    context = {"order_id": order.id, "payment_id": payment.id}
    if payment.status == PaymentStatus.SUCCESSFUL:
        settled = settlement.settle(order, payment)
        if not settled.success:
            return settled
        return Outcome.ok(
            PaymentResult(payment=payment, order_status=OrderStatus.SUCCESSFUL.value,
                          enrollment_ids=[e.id for e in settled.data]),
            **context,
        )
    if payment.status == PaymentStatus.FAILED:
        orders_repository.update_order_status(order.id, OrderStatus.FAILED, expected=OrderStatus.PENDING)
        logger.info("payments.card failed order_id=%s payment_id=%s failure_code=%s", order.id, payment.id, payment.failure_code)
        return Outcome.fail(stripe_client.category_for(payment.failure_code), payment_status=payment.status.value, **context)
    if payment.status == PaymentStatus.PENDING:
        return Outcome.ok(PaymentResult(payment=payment, order_status=OrderStatus.PENDING.value), **context)
    raise ValueError(f"Statut de paiement inattendu: {payment.status!r}")


def refresh_charge(payment: Payment) -> Outcome:
    """
    Relit une charge 'pending' chez Stripe et enregistre son statut définitif.
    Outcome.ok(Payment); context["transitioned"] est vrai seulement si cet appel
    a fait sortir le paiement de 'pending'. Un paiement déjà tranché est rendu tel quel.
    """
    if payment.payment_type != PaymentType.CARD:
        return Outcome.fail(ErrorCode.INVALID_PAYMENT_TYPE, payment_id=payment.id)
    if payment.status != PaymentStatus.PENDING or not payment.gateway_charge_id:
        return Outcome.ok(payment, payment_id=payment.id, transitioned=False)
    try:
        result = stripe_client.retrieve_charge(payment.gateway_charge_id)
    except stripe_client.GatewayError as e:
        return Outcome.fail(e.category, payment_id=payment.id, order_id=payment.order_id)

    status = map_charge_status(result)
    if status == PaymentStatus.PENDING:
        return Outcome.ok(payment, payment_id=payment.id, transitioned=False)
    updated = repository.update_payment_status(payment.id, status, expected=PaymentStatus.PENDING,
                                               failure_code=result.failure_code)
    if not updated:
        # Déjà tranché par un autre appel, qui applique lui-même le résultat
        current = repository.get_payment(payment.id) or payment
        return Outcome.ok(current, payment_id=payment.id, order_id=payment.order_id, transitioned=False)
    logger.info("payments.card refreshed payment_id=%s status=%s", payment.id, updated.status.value)
    return Outcome.ok(updated, payment_id=payment.id, order_id=payment.order_id, transitioned=True)
