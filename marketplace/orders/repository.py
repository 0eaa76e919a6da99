"""
Accès aux données pour la feature 'orders' (tables 'orders' et 'order_items').

- Les lectures propagent les erreurs de stockage.
- Les insertions journalisent et renvoient None en cas d'échec.
- Les changements de statut et la réservation de paiement sont des UPDATE
  conditionnels: la base arbitre les appels concurrents.
"""
from datetime import datetime, timezone
from typing import List, Optional
import logging

import marketplace.infra.supabase_client as supabase_client
from .models import Order, OrderItem, OrderStatus, can_transition

logger = logging.getLogger(__name__)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def insert_order(*, user_id: str, subtotal_amount: float, total_amount: float, coupon_id: Optional[str]) -> Optional[Order]:
    payload = {
        "user_id": str(user_id),
        "subtotal_amount": subtotal_amount,
        "total_amount": total_amount,
        "coupon_id": coupon_id,
        "status": OrderStatus.PENDING.value,
    }
    try:
        res = supabase_client.get_service_supabase().table("orders").insert(payload).execute()
        row = supabase_client.first_row(res)
        return Order.model_validate(row) if row else None
    except Exception:
        logger.exception("orders.repository.insert_order failed user_id=%s", user_id)
        return None


def insert_order_item(*, order_id: str, course_id: str, unit_price: float) -> Optional[OrderItem]:
    payload = {"order_id": str(order_id), "course_id": str(course_id), "unit_price": unit_price}
    try:
        res = supabase_client.get_service_supabase().table("order_items").insert(payload).execute()
        row = supabase_client.first_row(res)
        return OrderItem.model_validate(row) if row else None
    except Exception:
        logger.exception("orders.repository.insert_order_item failed order_id=%s course_id=%s", order_id, course_id)
        return None


def get_order(order_id: str) -> Optional[Order]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select("*")
            .eq("id", str(order_id))
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("orders.repository.get_order failed order_id=%s", order_id)
        raise
    row = supabase_client.first_row(res)
    return Order.model_validate(row) if row else None


def list_order_items(order_id: str) -> List[OrderItem]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("order_items")
            .select("*")
            .eq("order_id", str(order_id))
            .execute()
        )
    except Exception:
        logger.exception("orders.repository.list_order_items failed order_id=%s", order_id)
        raise
    return [OrderItem.model_validate(r) for r in (res.data or [])]


def list_orders_for_user(user_id: str, limit: int = 50) -> List[Order]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select("*")
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
    except Exception:
        logger.exception("orders.repository.list_orders_for_user failed user_id=%s", user_id)
        raise
    return [Order.model_validate(r) for r in (res.data or [])]


def claim_order(order_id: str, attempt_id: str) -> bool:
    """
    Réserve la commande pour une tentative de paiement.
    Réussit uniquement si elle est 'pending' et non réservée: un seul appelant gagne.
    """
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .update({"payment_attempt_id": attempt_id, "payment_attempt_at": _utcnow_iso()})
        .eq("id", str(order_id))
        .eq("status", OrderStatus.PENDING.value)
        .is_("payment_attempt_id", "null")
        .execute()
    )
    return bool(res.data)


def release_order(order_id: str, attempt_id: str) -> bool:
    """Libère la réservation, seulement si elle appartient encore à cette tentative."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .update({"payment_attempt_id": None, "payment_attempt_at": None})
            .eq("id", str(order_id))
            .eq("payment_attempt_id", attempt_id)
            .execute()
        )
        return bool(res.data)
    except Exception:
        logger.exception("orders.repository.release_order failed order_id=%s attempt_id=%s", order_id, attempt_id)
        return False


def update_order_status(order_id: str, status: OrderStatus, expected: OrderStatus = OrderStatus.PENDING) -> Optional[Order]:
    """
    UPDATE conditionnel du statut. Retourne la commande modifiée, ou None si
    elle n'était plus dans le statut attendu.
    """
    if not can_transition(expected, status):
        raise ValueError(f"Transition de commande interdite: {expected} -> {status}")
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .update({"status": OrderStatus(status).value, "updated_at": _utcnow_iso()})
        .eq("id", str(order_id))
        .eq("status", OrderStatus(expected).value)
        .execute()
    )
    row = supabase_client.first_row(res)
    return Order.model_validate(row) if row else None


def list_stale_claims(claimed_before: datetime, limit: int = 100) -> List[Order]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select("*")
            .eq("status", OrderStatus.PENDING.value)
            .not_.is_("payment_attempt_id", "null")
            .lt("payment_attempt_at", claimed_before.isoformat())
            .limit(limit)
            .execute()
        )
    except Exception:
        logger.exception("orders.repository.list_stale_claims failed")
        raise
    return [Order.model_validate(r) for r in (res.data or [])]
