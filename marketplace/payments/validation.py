"""
Garde d'éligibilité au paiement (machine à états de la commande).

Contrôles ordonnés, le premier échec l'emporte:
  1. commande existante           -> order_not_found
  2. appartient à l'appelant      -> access_denied
  3. statut 'pending'             -> already_processed
  4. au moins une ligne           -> empty_order
  5. total >= minimum passerelle  -> below_minimum_amount
puis réservation atomique de la commande pour la tentative. Le perdant d'une
course concurrente reçoit already_processed et n'atteint jamais la passerelle.
"""
import logging

from marketplace import config
from marketplace.errors import ErrorCode
from marketplace.orders import repository as orders_repository
from marketplace.orders.models import is_terminal
from marketplace.outcome import Outcome
from .models import ValidatedOrder

logger = logging.getLogger(__name__)


def validate_order_for_payment(user_id: str, order_id: str, attempt_id: str) -> Outcome:
    order = orders_repository.get_order(order_id)
    if not order:
        return Outcome.fail(ErrorCode.ORDER_NOT_FOUND, order_id=order_id)
    if order.user_id != str(user_id):
        # Pas d'autre information pour un non-propriétaire
        return Outcome.fail(ErrorCode.ACCESS_DENIED, order_id=order_id)
    if is_terminal(order.status):
        return Outcome.fail(ErrorCode.ALREADY_PROCESSED, order_id=order_id, order_status=order.status.value)

    items = orders_repository.list_order_items(order.id)
    if not items:
        return Outcome.fail(ErrorCode.EMPTY_ORDER, order_id=order_id)
    if order.total_amount < config.GATEWAY_MINIMUM_CHARGE_AMOUNT:
        return Outcome.fail(
            ErrorCode.BELOW_MINIMUM_AMOUNT,
            order_id=order_id,
            minimum_amount=config.GATEWAY_MINIMUM_CHARGE_AMOUNT,
        )

    if not orders_repository.claim_order(order.id, attempt_id):
        logger.info("payments.validation claim lost order_id=%s attempt_id=%s", order.id, attempt_id)
        return Outcome.fail(ErrorCode.ALREADY_PROCESSED, order_id=order_id)

    logger.info("payments.validation claimed order_id=%s attempt_id=%s amount=%s", order.id, attempt_id, order.total_amount)
    return Outcome.ok(
        ValidatedOrder(order=order, items=items, amount=order.total_amount, attempt_id=attempt_id),
        order_id=order.id,
    )


def release_order(order_id: str, attempt_id: str) -> bool:
    """Rend la commande à nouveau payable (tentative terminée sans paiement en cours)."""
    released = orders_repository.release_order(order_id, attempt_id)
    if released:
        logger.info("payments.validation released order_id=%s attempt_id=%s", order_id, attempt_id)
    return released
