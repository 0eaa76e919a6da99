from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from marketplace.utils.http import dump, get_locale, raise_for_outcome
from marketplace.utils.rate_limit import optional_rate_limit
from marketplace.utils.security import require_user
from . import service
from .models import CheckoutCartBody, CreateOrderBody

router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])


@router.post("", status_code=201, dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_order(body: CreateOrderBody, request: Request, user: Dict[str, Any] = Depends(require_user)):
    """
    Crée une commande 'pending' à partir d'une liste de cours.
    - Tous les IDs doivent exister (404 course_not_found sinon, avec les IDs manquants)
    - Prix effectifs figés à la création
    """
    outcome = service.create_order(user["id"], body.course_ids, coupon_id=body.coupon_id)
    if not outcome.success:
        raise_for_outcome(outcome, get_locale(request))
    return dump(outcome.data)


@router.post("/checkout", status_code=201, dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def checkout_cart(body: CheckoutCartBody, request: Request, user: Dict[str, Any] = Depends(require_user)):
    outcome = service.create_order_from_cart(user["id"], coupon_id=body.coupon_id)
    if not outcome.success:
        raise_for_outcome(outcome, get_locale(request))
    return dump(outcome.data)


@router.get("")
def list_my_orders(user: Dict[str, Any] = Depends(require_user)):
    return {"orders": dump(service.list_orders(user["id"]))}


@router.get("/{order_id}")
def get_my_order(order_id: str, request: Request, user: Dict[str, Any] = Depends(require_user)):
    outcome = service.get_order_detail(user["id"], order_id)
    if not outcome.success:
        raise_for_outcome(outcome, get_locale(request))
    return dump(outcome.data)
