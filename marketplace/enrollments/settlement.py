"""
Règlement: transforme un paiement réussi en inscriptions puis finalise la commande.

Idempotent et ré-entrant: une inscription existante pour (utilisateur, cours)
est réutilisée, jamais dupliquée. Si une inscription manque, la commande reste
'pending' (payée mais non réglée) et la réconciliation rejouera le règlement.
"""
import logging

from marketplace import config
from marketplace.cart import service as cart_service
from marketplace.coupons import repository as coupon_repository
from marketplace.errors import ErrorCode
from marketplace.infra import notifier
from marketplace.orders import repository as orders_repository
from marketplace.orders.models import Order, OrderStatus
from marketplace.outcome import Outcome
from marketplace.payments.models import Payment, PaymentStatus
from . import repository

logger = logging.getLogger(__name__)


def settle(order: Order, payment: Payment) -> Outcome:
    if payment.status != PaymentStatus.SUCCESSFUL:
        raise ValueError(f"Règlement impossible: paiement {payment.id} au statut {payment.status.value}")
    if payment.order_id != order.id:
        raise ValueError(f"Le paiement {payment.id} ne concerne pas la commande {order.id}")

    items = orders_repository.list_order_items(order.id)
    enrollments = []
    missing = []
    for item in items:
        existing = repository.find_enrollment(order.user_id, item.course_id)
        if existing:
            enrollments.append(existing)
            continue
        created = repository.insert_enrollment(user_id=order.user_id, course_id=item.course_id, payment_id=payment.id)
        if created:
            enrollments.append(created)
        else:
            missing.append(item.course_id)

    if missing:
        logger.error("settlement.incomplete order_id=%s payment_id=%s missing=%s", order.id, payment.id, missing)
        return Outcome.fail(ErrorCode.SETTLEMENT_INCOMPLETE, order_id=order.id, payment_id=payment.id, course_ids=missing)

    transitioned = orders_repository.update_order_status(order.id, OrderStatus.SUCCESSFUL, expected=OrderStatus.PENDING)
    if transitioned:
        # Seul l'appel qui a fait la transition consomme le coupon
        if order.coupon_id and config.APPLY_COUPON_DISCOUNTS:
            coupon_repository.increment_usage(order.coupon_id)
        _after_settlement(order, payment, [e.course_id for e in enrollments])
        logger.info("settlement.done order_id=%s payment_id=%s enrollments=%s", order.id, payment.id, len(enrollments))
    else:
        current = orders_repository.get_order(order.id)
        if not current or current.status != OrderStatus.SUCCESSFUL:
            logger.error("settlement.order_not_pending order_id=%s payment_id=%s status=%s",
                         order.id, payment.id, current.status.value if current else None)
            return Outcome.fail(ErrorCode.ALREADY_PROCESSED, order_id=order.id, payment_id=payment.id)

    return Outcome.ok(enrollments, order_id=order.id, payment_id=payment.id)


def _after_settlement(order: Order, payment: Payment, course_ids: list) -> None:
    """Effets secondaires best-effort: ne remettent jamais en cause le règlement."""
    try:
        cart_service.remove_courses(order.user_id, course_ids)
    except Exception:
        logger.exception("settlement.cart_cleanup failed order_id=%s", order.id)
    notifier.send("order.settled", {
        "orderId": order.id,
        "paymentId": payment.id,
        "userId": order.user_id,
        "amount": order.total_amount,
        "courseIds": course_ids,
    })
