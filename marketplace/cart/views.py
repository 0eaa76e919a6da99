from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from marketplace.utils.http import dump, get_locale, raise_for_outcome
from marketplace.utils.security import require_user
from . import service
from .models import AddCartItemBody

router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])


@router.get("")
def get_my_cart(user: Dict[str, Any] = Depends(require_user)):
    """Panier de l'utilisateur (créé à la première consultation) avec prix effectifs et total."""
    return dump(service.get_cart_snapshot(user["id"]))


@router.post("/items", status_code=201)
def add_cart_item(body: AddCartItemBody, request: Request, user: Dict[str, Any] = Depends(require_user)):
    outcome = service.add_item(user["id"], body.course_id)
    if not outcome.success:
        raise_for_outcome(outcome, get_locale(request))
    return {"item": dump(outcome.data), "cart": dump(service.get_cart_snapshot(user["id"]))}


@router.delete("/items/{item_id}")
def remove_cart_item(item_id: str, request: Request, user: Dict[str, Any] = Depends(require_user)):
    outcome = service.remove_item(user["id"], item_id)
    if not outcome.success:
        raise_for_outcome(outcome, get_locale(request))
    return {"removed": item_id, "cart": dump(service.get_cart_snapshot(user["id"]))}
