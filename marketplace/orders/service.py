"""
Cas d'usage 'orders': transforme une liste de cours (ou le panier) en commande
tarifée et persistée.

Le prix unitaire de chaque ligne est figé au moment de la création: une
modification ultérieure du catalogue ne touche pas les commandes passées.
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional
import logging

from marketplace import config
from marketplace.catalog import pricing
from marketplace.catalog import repository as catalog_repository
from marketplace.cart import repository as cart_repository
from marketplace.coupons import calculator as coupon_calculator
from marketplace.coupons import repository as coupon_repository
from marketplace.errors import ErrorCode
from marketplace.outcome import Outcome
from . import repository
from .models import Order, OrderDetail, OrderStatus

logger = logging.getLogger(__name__)


def _price_with_coupon(coupon_id: str, subtotal: float, now: datetime) -> Outcome:
    """
    Montant total après coupon.
    Tant que APPLY_COUPON_DISCOUNTS est désactivé, le coupon est seulement
    enregistré sur la commande: total == sous-total.
    """
    if not config.APPLY_COUPON_DISCOUNTS:
        return Outcome.ok(subtotal)
    coupon = coupon_repository.get_coupon(coupon_id)
    if not coupon:
        return Outcome.fail(ErrorCode.COUPON_NOT_FOUND, coupon_id=coupon_id)
    reason = coupon_calculator.check_validity(coupon, now)
    if reason:
        return Outcome.fail(reason, coupon_id=coupon_id)
    if not coupon_calculator.meets_minimum(coupon, subtotal):
        return Outcome.fail(ErrorCode.COUPON_MINIMUM_NOT_MET, coupon_id=coupon_id)
    remise = coupon_calculator.discount(coupon, subtotal)
    return Outcome.ok(pricing.round_amount(max(subtotal - remise, 0.0)))


def create_order(
    user_id: str,
    course_ids: Iterable[str],
    coupon_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Outcome:
    requested: List[str] = list(dict.fromkeys(str(c) for c in course_ids if c))
    if not requested:
        return Outcome.fail(ErrorCode.EMPTY_ORDER)

    courses = catalog_repository.get_courses_map(requested)
    missing = [cid for cid in requested if cid not in courses]
    if missing:
        logger.warning("orders.create_order courses not found user_id=%s missing=%s", user_id, missing)
        return Outcome.fail(ErrorCode.COURSE_NOT_FOUND, course_ids=missing)

    current = now or datetime.now(timezone.utc)
    unit_prices = {cid: pricing.round_amount(pricing.effective_price(courses[cid], current)) for cid in requested}
    subtotal = pricing.round_amount(sum(unit_prices.values()))

    total = subtotal
    if coupon_id:
        priced = _price_with_coupon(coupon_id, subtotal, current)
        if not priced.success:
            return priced
        total = priced.data

    order = repository.insert_order(user_id=user_id, subtotal_amount=subtotal, total_amount=total, coupon_id=coupon_id)
    if not order:
        return Outcome.fail(ErrorCode.ORDER_CREATION_FAILED)

    items = []
    for cid in requested:
        item = repository.insert_order_item(order_id=order.id, course_id=cid, unit_price=unit_prices[cid])
        if not item:
            # Commande incomplète: jamais payable
            repository.update_order_status(order.id, OrderStatus.FAILED, expected=OrderStatus.PENDING)
            logger.error("orders.create_order item insert failed, order marked failed order_id=%s course_id=%s", order.id, cid)
            return Outcome.fail(ErrorCode.ORDER_CREATION_FAILED, order_id=order.id)
        items.append(item)

    logger.info("orders.created order_id=%s user_id=%s items=%s subtotal=%s total=%s coupon_id=%s",
                order.id, user_id, len(items), subtotal, total, coupon_id)
    return Outcome.ok(OrderDetail(order=order, items=items), order_id=order.id)


def create_order_from_cart(user_id: str, coupon_id: Optional[str] = None, now: Optional[datetime] = None) -> Outcome:
    """Commande à partir du contenu actuel du panier (le panier n'est pas vidé ici)."""
    cart = cart_repository.get_cart_by_user(user_id)
    items = cart_repository.list_cart_items(cart.id) if cart else []
    if not items:
        return Outcome.fail(ErrorCode.EMPTY_ORDER)
    return create_order(user_id, [i.course_id for i in items], coupon_id=coupon_id, now=now)


def get_order_detail(user_id: str, order_id: str) -> Outcome:
    order = repository.get_order(order_id)
    if not order:
        return Outcome.fail(ErrorCode.ORDER_NOT_FOUND, order_id=order_id)
    if order.user_id != str(user_id):
        return Outcome.fail(ErrorCode.ACCESS_DENIED, order_id=order_id)
    return Outcome.ok(OrderDetail(order=order, items=repository.list_order_items(order.id)), order_id=order.id)


def list_orders(user_id: str) -> List[Order]:
    return repository.list_orders_for_user(user_id)
