"""
Réconciliation hors ligne (à lancer périodiquement ou depuis l'admin).

1. Rejoue le règlement des paiements réussis dont la commande est encore 'pending'.
2. Relit chez Stripe les paiements carte 'pending' et applique leur statut.
3. Libère les réservations de paiement orphelines (aucun paiement en cours ni réussi).
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
import logging

from marketplace import config
from marketplace.enrollments import settlement
from marketplace.orders import repository as orders_repository
from . import card
from . import repository
from .models import PaymentStatus

logger = logging.getLogger(__name__)


def resettle_paid_orders() -> Dict[str, int]:
    stats = {"settled": 0, "incomplete": 0}
    for payment in repository.list_unsettled_payments():
        order = orders_repository.get_order(payment.order_id)
        if not order:
            logger.error("reconciliation.resettle order missing payment_id=%s order_id=%s", payment.id, payment.order_id)
            continue
        outcome = settlement.settle(order, payment)
        stats["settled" if outcome.success else "incomplete"] += 1
    return stats


def refresh_pending_card_payments() -> Dict[str, int]:
    stats = {"refreshed": 0, "still_pending": 0, "errors": 0}
    for payment in repository.list_pending_card_payments():
        refreshed = card.refresh_charge(payment)
        if not refreshed.success:
            stats["errors"] += 1
            continue
        if refreshed.data.status == PaymentStatus.PENDING:
            stats["still_pending"] += 1
            continue
        if not refreshed.context.get("transitioned"):
            continue
        order = orders_repository.get_order(payment.order_id)
        if order:
            card.apply_charge_outcome(order, refreshed.data)
        stats["refreshed"] += 1
    return stats


def release_stale_claims(now: Optional[datetime] = None) -> int:
    current = now or datetime.now(timezone.utc)
    cutoff = current - timedelta(seconds=config.PAYMENT_CLAIM_TTL_SECONDS)
    released = 0
    for order in orders_repository.list_stale_claims(cutoff):
        payments = repository.list_payments_for_order(order.id)
        if any(p.status in (PaymentStatus.PENDING, PaymentStatus.SUCCESSFUL) for p in payments):
            continue
        if orders_repository.release_order(order.id, order.payment_attempt_id):
            released += 1
            logger.info("reconciliation.claim_released order_id=%s attempt_id=%s", order.id, order.payment_attempt_id)
    return released


def reconcile(now: Optional[datetime] = None) -> Dict[str, object]:
    result = {
        "settlement": resettle_paid_orders(),
        "card": refresh_pending_card_payments(),
        "claims_released": release_stale_claims(now),
    }
    logger.info("reconciliation.done result=%s", result)
    return result
