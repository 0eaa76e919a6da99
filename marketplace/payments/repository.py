"""
Accès aux données pour la feature 'payments' (table 'payments').
Une ligne par tentative: une nouvelle tentative crée une nouvelle ligne.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

import marketplace.infra.supabase_client as supabase_client
from .models import Payment, PaymentStatus, PaymentType, can_transition

logger = logging.getLogger(__name__)


def insert_payment(
    *,
    order_id: str,
    payment_type: PaymentType,
    status: PaymentStatus,
    amount: float,
    currency: str,
    gateway_charge_id: Optional[str] = None,
    failure_code: Optional[str] = None,
    slip_image: Optional[str] = None,
    slip_path: Optional[str] = None,
) -> Optional[Payment]:
    payload = {
        "order_id": str(order_id),
        "payment_type": PaymentType(payment_type).value,
        "status": PaymentStatus(status).value,
        "amount": amount,
        "currency": currency,
        "gateway_charge_id": gateway_charge_id,
        "failure_code": failure_code,
        "slip_image": slip_image,
        "slip_path": slip_path,
    }
    try:
        res = supabase_client.get_service_supabase().table("payments").insert(payload).execute()
        row = supabase_client.first_row(res)
        return Payment.model_validate(row) if row else None
    except Exception:
        logger.exception("payments.repository.insert_payment failed order_id=%s type=%s", order_id, payment_type)
        return None


def get_payment(payment_id: str) -> Optional[Payment]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payments")
            .select("*")
            .eq("id", str(payment_id))
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("payments.repository.get_payment failed payment_id=%s", payment_id)
        raise
    row = supabase_client.first_row(res)
    return Payment.model_validate(row) if row else None


def update_payment_status(
    payment_id: str,
    status: PaymentStatus,
    expected: PaymentStatus = PaymentStatus.PENDING,
    **fields: Any,
) -> Optional[Payment]:
    """
    UPDATE conditionnel (statut attendu). None si un autre appel a déjà fait la transition.
    `fields`: colonnes additionnelles (failure_code, reviewed_by, review_reason, ...).
    """
    if not can_transition(expected, status):
        raise ValueError(f"Transition de paiement interdite: {expected} -> {status}")
    values: Dict[str, Any] = dict(fields)
    values["status"] = PaymentStatus(status).value
    values["updated_at"] = datetime.now(timezone.utc).isoformat()
    res = (
        supabase_client.get_service_supabase()
        .table("payments")
        .update(values)
        .eq("id", str(payment_id))
        .eq("status", PaymentStatus(expected).value)
        .execute()
    )
    row = supabase_client.first_row(res)
    return Payment.model_validate(row) if row else None


def list_payments(
    payment_type: Optional[PaymentType] = None,
    status: Optional[PaymentStatus] = None,
    limit: int = 100,
) -> List[Payment]:
    try:
        query = supabase_client.get_service_supabase().table("payments").select("*")
        if payment_type:
            query = query.eq("payment_type", PaymentType(payment_type).value)
        if status:
            query = query.eq("status", PaymentStatus(status).value)
        res = query.order("created_at", desc=True).limit(limit).execute()
    except Exception:
        logger.exception("payments.repository.list_payments failed type=%s status=%s", payment_type, status)
        raise
    return [Payment.model_validate(r) for r in (res.data or [])]


def list_payments_for_user(user_id: str, limit: int = 50) -> List[Payment]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payments")
            .select("*, orders!inner(user_id)")
            .eq("orders.user_id", str(user_id))
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
    except Exception:
        logger.exception("payments.repository.list_payments_for_user failed user_id=%s", user_id)
        raise
    return [Payment.model_validate(r) for r in (res.data or [])]


def list_payments_for_order(order_id: str) -> List[Payment]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payments")
            .select("*")
            .eq("order_id", str(order_id))
            .execute()
        )
    except Exception:
        logger.exception("payments.repository.list_payments_for_order failed order_id=%s", order_id)
        raise
    return [Payment.model_validate(r) for r in (res.data or [])]


def list_pending_card_payments(limit: int = 100) -> List[Payment]:
    return list_payments(payment_type=PaymentType.CARD, status=PaymentStatus.PENDING, limit=limit)


def list_unsettled_payments(limit: int = 100) -> List[Payment]:
    """Paiements réussis dont la commande est encore 'pending' (règlement à reprendre)."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payments")
            .select("*, orders!inner(status)")
            .eq("status", PaymentStatus.SUCCESSFUL.value)
            .eq("orders.status", "pending")
            .limit(limit)
            .execute()
        )
    except Exception:
        logger.exception("payments.repository.list_unsettled_payments failed")
        raise
    return [Payment.model_validate(r) for r in (res.data or [])]
