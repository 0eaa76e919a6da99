"""
Paiement par virement: dépôt du justificatif puis validation manuelle par un admin.

Le paiement reste 'pending' (et la commande réservée) jusqu'à la revue:
approbation -> paiement 'successful' puis règlement; refus -> paiement et commande 'failed'.
"""
from typing import Optional
import logging

from marketplace import config
from marketplace.catalog import repository as catalog_repository
from marketplace.enrollments import settlement
from marketplace.errors import ErrorCode
from marketplace.infra import notifier, storage
from marketplace.orders import repository as orders_repository
from marketplace.orders.models import OrderStatus
from marketplace.outcome import Outcome
from . import repository
from . import slip as slip_rules
from .models import Payment, PaymentResult, PaymentStatus, PaymentType, SlipFile, ValidatedOrder

logger = logging.getLogger(__name__)


def submit(validated: ValidatedOrder, slip: SlipFile) -> Outcome:
    order = validated.order
    checked = slip_rules.validate_slip(slip)
    if not checked.success:
        logger.info("payments.bank_transfer slip rejected order_id=%s reason=%s", order.id, checked.error.value)
        return Outcome.fail(checked.error, order_id=order.id, **checked.context)

    path = storage.build_slip_path(order.id, slip.filename)
    try:
        stored = storage.upload(slip.data, path, slip_rules.normalize_content_type(slip.content_type))
    except Exception:
        logger.exception("payments.bank_transfer upload failed order_id=%s path=%s", order.id, path)
        return Outcome.fail(ErrorCode.UPLOAD_FAILED, order_id=order.id)

    payment = repository.insert_payment(
        order_id=order.id,
        payment_type=PaymentType.BANK_TRANSFER,
        status=PaymentStatus.PENDING,
        amount=validated.amount,
        currency=config.PAYMENT_CURRENCY,
        slip_image=stored["url"],
        slip_path=stored["path"],
    )
    if not payment:
        storage.delete(stored["path"])
        return Outcome.fail(ErrorCode.PAYMENT_RECORD_FAILED, order_id=order.id)

    logger.info("payments.bank_transfer submitted order_id=%s payment_id=%s", order.id, payment.id)
    _notify_submitted(validated, payment)
    return Outcome.ok(
        PaymentResult(payment=payment, order_status=OrderStatus.PENDING.value),
        order_id=order.id,
        payment_id=payment.id,
    )


def _notify_submitted(validated: ValidatedOrder, payment: Payment) -> None:
    course_ids = [i.course_id for i in validated.items]
    try:
        titles = {c.id: c.title for c in catalog_repository.get_courses(course_ids)}
    except Exception:
        logger.warning("payments.bank_transfer course titles unavailable order_id=%s", validated.order.id)
        titles = {}
    notifier.send("payment.bank_transfer.created", {
        "paymentId": payment.id,
        "orderId": validated.order.id,
        "userId": validated.order.user_id,
        "amount": validated.amount,
        "slipUrl": payment.slip_image,
        "courses": [{"courseId": cid, "title": titles.get(cid, "")} for cid in course_ids],
    })


def review(payment_id: str, approved: bool, reason: Optional[str], reviewer_id: str) -> Outcome:
    """
    Décision admin sur un virement en attente.
    - payment_not_found / payment_already_processed / invalid_payment_type
    - approval_reason_required si refus sans motif
    - already_processed si la commande n'est plus en attente (paiement laissé intact)
    """
    payment = repository.get_payment(payment_id)
    if not payment:
        return Outcome.fail(ErrorCode.PAYMENT_NOT_FOUND, payment_id=payment_id)
    if payment.status != PaymentStatus.PENDING:
        return Outcome.fail(ErrorCode.PAYMENT_ALREADY_PROCESSED, payment_id=payment_id, payment_status=payment.status.value)
    if payment.payment_type != PaymentType.BANK_TRANSFER:
        return Outcome.fail(ErrorCode.INVALID_PAYMENT_TYPE, payment_id=payment_id)
    motif = (reason or "").strip()
    if not approved and not motif:
        return Outcome.fail(ErrorCode.APPROVAL_REASON_REQUIRED, payment_id=payment_id)

    order = orders_repository.get_order(payment.order_id)
    if not order:
        return Outcome.fail(ErrorCode.ORDER_NOT_FOUND, order_id=payment.order_id, payment_id=payment_id)
    context = {"order_id": order.id, "payment_id": payment.id}
    if order.status != OrderStatus.PENDING:
        return Outcome.fail(ErrorCode.ALREADY_PROCESSED, order_status=order.status.value, **context)

    target = PaymentStatus.SUCCESSFUL if approved else PaymentStatus.FAILED
    updated = repository.update_payment_status(
        payment.id, target, expected=PaymentStatus.PENDING,
        reviewed_by=reviewer_id, review_reason=motif or None,
    )
    if not updated:
        return Outcome.fail(ErrorCode.PAYMENT_ALREADY_PROCESSED, **context)
    logger.info("payments.bank_transfer reviewed payment_id=%s approved=%s reviewer=%s", payment.id, approved, reviewer_id)

    if not approved:
        orders_repository.update_order_status(order.id, OrderStatus.FAILED, expected=OrderStatus.PENDING)
        notifier.send("payment.bank_transfer.rejected", {
            "paymentId": payment.id, "orderId": order.id, "userId": order.user_id, "reason": motif,
        })
        return Outcome.ok(PaymentResult(payment=updated, order_status=OrderStatus.FAILED.value), **context)

    notifier.send("payment.bank_transfer.approved", {
        "paymentId": payment.id, "orderId": order.id, "userId": order.user_id, "amount": payment.amount,
    })
    settled = settlement.settle(order, updated)
    if not settled.success:
        return settled
    return Outcome.ok(
        PaymentResult(payment=updated, order_status=OrderStatus.SUCCESSFUL.value,
                      enrollment_ids=[e.id for e in settled.data]),
        **context,
    )
