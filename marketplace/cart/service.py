"""
Cas d'usage 'cart': panier unique par utilisateur, ajout/retrait de cours et
vue tarifée (prix effectifs via le moteur de prix).
"""
from datetime import datetime
from typing import Iterable, Optional
import logging

from marketplace.catalog import pricing
from marketplace.catalog import repository as catalog_repository
from marketplace.errors import ErrorCode
from marketplace.outcome import Outcome
from . import repository
from .models import Cart, CartLine, CartSnapshot

logger = logging.getLogger(__name__)


def get_or_create_cart(user_id: str) -> Cart:
    cart = repository.get_cart_by_user(user_id)
    if cart:
        return cart
    cart = repository.insert_cart(user_id)
    logger.info("cart.created cart_id=%s user_id=%s", cart.id, user_id)
    return cart


def snapshot(cart: Cart, now: Optional[datetime] = None) -> CartSnapshot:
    """
    Joint chaque article au catalogue et calcule le prix effectif.
    Lecture seule: le panier n'est pas modifié.
    """
    items = repository.list_cart_items(cart.id)
    courses = catalog_repository.get_courses_map([i.course_id for i in items])
    lines = []
    for item in items:
        course = courses.get(item.course_id)
        if not course:
            logger.warning("cart.snapshot course missing cart_id=%s course_id=%s", cart.id, item.course_id)
            continue
        lines.append(CartLine(
            item_id=item.id,
            course_id=item.course_id,
            title=course.title,
            normal_price=float(course.normal_price),
            price=pricing.effective_price(course, now),
            early_bird=pricing.is_in_early_bird_period(course, now),
        ))
    total = pricing.round_amount(sum(line.price for line in lines))
    return CartSnapshot(cart_id=cart.id, items=lines, total=total, item_count=len(lines))


def get_cart_snapshot(user_id: str, now: Optional[datetime] = None) -> CartSnapshot:
    return snapshot(get_or_create_cart(user_id), now)


def add_item(user_id: str, course_id: str) -> Outcome:
    course = catalog_repository.get_course(course_id)
    if not course:
        return Outcome.fail(ErrorCode.COURSE_NOT_FOUND, course_ids=[str(course_id)])

    cart = get_or_create_cart(user_id)
    if repository.find_cart_item(cart.id, course.id):
        return Outcome.fail(ErrorCode.DUPLICATE_ITEM, cart_id=cart.id, course_id=course.id)
    try:
        item = repository.insert_cart_item(cart.id, course.id)
    except repository.DuplicateCartItemError:
        # Course perdue contre un ajout concurrent: la contrainte fait foi
        return Outcome.fail(ErrorCode.DUPLICATE_ITEM, cart_id=cart.id, course_id=course.id)
    logger.info("cart.item_added cart_id=%s course_id=%s", cart.id, course.id)
    return Outcome.ok(item, cart_id=cart.id)


def remove_item(user_id: str, item_id: str) -> Outcome:
    """Retire un article après avoir revérifié qu'il appartient au panier de l'appelant."""
    item = repository.get_cart_item(item_id)
    if not item:
        return Outcome.fail(ErrorCode.CART_ITEM_NOT_FOUND, item_id=str(item_id))
    cart = repository.get_cart_by_user(user_id)
    if not cart or cart.id != item.cart_id:
        logger.warning("cart.remove_item forbidden user_id=%s item_id=%s", user_id, item_id)
        return Outcome.fail(ErrorCode.FORBIDDEN, item_id=str(item_id))
    if not repository.delete_cart_item(item.id):
        raise RuntimeError(f"Suppression impossible de l'article {item.id}")
    return Outcome.ok(item, cart_id=cart.id)


def remove_courses(user_id: str, course_ids: Iterable[str]) -> bool:
    """Retire du panier les cours achetés (best-effort, après règlement)."""
    cart = repository.get_cart_by_user(user_id)
    if not cart:
        return True
    return repository.delete_cart_items_for_courses(cart.id, course_ids)
