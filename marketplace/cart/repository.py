"""
Accès aux données pour la feature 'cart' (tables 'carts' et 'cart_items').
"""
from typing import Iterable, List, Optional
import logging

from postgrest.exceptions import APIError

import marketplace.infra.supabase_client as supabase_client
from .models import Cart, CartItem

logger = logging.getLogger(__name__)


class DuplicateCartItemError(Exception):
    """La contrainte unique (cart_id, course_id) a refusé l'insertion."""


def get_cart_by_user(user_id: str) -> Optional[Cart]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("carts")
            .select("*")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("cart.repository.get_cart_by_user failed user_id=%s", user_id)
        raise
    row = supabase_client.first_row(res)
    return Cart.model_validate(row) if row else None


def insert_cart(user_id: str) -> Cart:
    """
    Crée le panier de l'utilisateur. Si un appel concurrent l'a créé entre-temps
    (23505 sur carts.user_id), relit le panier existant.
    """
    try:
        res = supabase_client.get_service_supabase().table("carts").insert({"user_id": str(user_id)}).execute()
    except APIError as e:
        if supabase_client.is_unique_violation(e):
            existing = get_cart_by_user(user_id)
            if existing:
                return existing
        logger.exception("cart.repository.insert_cart failed user_id=%s", user_id)
        raise
    row = supabase_client.first_row(res)
    if not row:
        raise RuntimeError(f"Insertion du panier sans retour pour user_id={user_id}")
    return Cart.model_validate(row)


def list_cart_items(cart_id: str) -> List[CartItem]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .select("*")
            .eq("cart_id", str(cart_id))
            .order("created_at")
            .execute()
        )
    except Exception:
        logger.exception("cart.repository.list_cart_items failed cart_id=%s", cart_id)
        raise
    return [CartItem.model_validate(r) for r in (res.data or [])]


def get_cart_item(item_id: str) -> Optional[CartItem]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .select("*")
            .eq("id", str(item_id))
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("cart.repository.get_cart_item failed item_id=%s", item_id)
        raise
    row = supabase_client.first_row(res)
    return CartItem.model_validate(row) if row else None


def find_cart_item(cart_id: str, course_id: str) -> Optional[CartItem]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .select("*")
            .eq("cart_id", str(cart_id))
            .eq("course_id", str(course_id))
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("cart.repository.find_cart_item failed cart_id=%s course_id=%s", cart_id, course_id)
        raise
    row = supabase_client.first_row(res)
    return CartItem.model_validate(row) if row else None


def insert_cart_item(cart_id: str, course_id: str) -> CartItem:
    """Lève DuplicateCartItemError si la contrainte unique refuse la ligne."""
    payload = {"cart_id": str(cart_id), "course_id": str(course_id)}
    try:
        res = supabase_client.get_service_supabase().table("cart_items").insert(payload).execute()
    except APIError as e:
        if supabase_client.is_unique_violation(e):
            raise DuplicateCartItemError(course_id) from e
        logger.exception("cart.repository.insert_cart_item failed cart_id=%s course_id=%s", cart_id, course_id)
        raise
    row = supabase_client.first_row(res)
    if not row:
        raise RuntimeError(f"Insertion cart_item sans retour cart_id={cart_id}")
    return CartItem.model_validate(row)


def delete_cart_item(item_id: str) -> bool:
    try:
        supabase_client.get_service_supabase().table("cart_items").delete().eq("id", str(item_id)).execute()
        return True
    except Exception:
        logger.exception("cart.repository.delete_cart_item failed item_id=%s", item_id)
        return False


def delete_cart_items_for_courses(cart_id: str, course_ids: Iterable[str]) -> bool:
    ids = [str(c) for c in course_ids if c]
    if not ids:
        return True
    try:
        (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .delete()
            .eq("cart_id", str(cart_id))
            .in_("course_id", ids)
            .execute()
        )
        return True
    except Exception:
        logger.exception("cart.repository.delete_cart_items_for_courses failed cart_id=%s", cart_id)
        return False
