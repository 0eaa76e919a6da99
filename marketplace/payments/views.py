import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from marketplace.utils.http import dump, get_locale, raise_for_outcome
from marketplace.utils.rate_limit import optional_rate_limit
from marketplace.utils.security import require_admin, require_user
from . import reconciliation
from . import service as payments_service
from .models import CardPaymentBody, PaymentStatus, PaymentType, ReviewPaymentBody, SlipFile

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])
admin_router = APIRouter(prefix="/api/v1/admin/payments", tags=["Admin Payments API"])


@router.post("/card", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def pay_with_card(body: CardPaymentBody, request: Request, user: Dict[str, Any] = Depends(require_user)):
    """
    Paiement par carte d'une commande 'pending' de l'utilisateur.
    - Entrée JSON: {"order_id": "...", "card_token": "tok_..."}
    - Montant: celui de la commande validée (jamais fourni par le client)
    - Réponse: paiement + statut de commande (successful | pending)
    - Erreurs: 404/403/409/422 (validation), 402 (carte), 503 (passerelle indisponible)
    """
    outcome = payments_service.pay_by_card(user["id"], body.order_id, body.card_token, body.description)
    if not outcome.success:
        raise_for_outcome(outcome, get_locale(request))
    return dump(outcome.data)


@router.post("/bank-transfer", status_code=201, dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
async def pay_with_bank_transfer(
    request: Request,
    order_id: str = Form(...),
    slip: UploadFile = File(...),
    user: Dict[str, Any] = Depends(require_user),
):
    """
    Dépôt d'un justificatif de virement (JPEG/PNG). Le paiement reste 'pending'
    jusqu'à la revue admin.
    """
    data = await slip.read()
    slip_file = SlipFile(filename=slip.filename or "", content_type=slip.content_type or "", data=data)
    outcome = payments_service.pay_by_bank_transfer(user["id"], order_id, slip_file)
    if not outcome.success:
        raise_for_outcome(outcome, get_locale(request))
    return dump(outcome.data)


@router.get("")
def list_my_payments(user: Dict[str, Any] = Depends(require_user)):
    return {"payments": dump(payments_service.list_my_payments(user["id"]))}


@router.post("/{payment_id}/refresh")
def refresh_payment(payment_id: str, request: Request, user: Dict[str, Any] = Depends(require_user)):
    """Relit une charge carte 'pending' chez Stripe et finalise la commande si elle est tranchée."""
    outcome = payments_service.refresh_card_payment(user["id"], payment_id)
    if not outcome.success:
        raise_for_outcome(outcome, get_locale(request))
    return dump(outcome.data)


@admin_router.get("")
def admin_list_payments(
    payment_type: Optional[PaymentType] = None,
    status: Optional[PaymentStatus] = None,
    admin: Dict[str, Any] = Depends(require_admin),
):
    return {"payments": dump(payments_service.list_payments(payment_type=payment_type, status=status))}


@admin_router.post("/{payment_id}/review")
def admin_review_payment(
    payment_id: str,
    body: ReviewPaymentBody,
    request: Request,
    admin: Dict[str, Any] = Depends(require_admin),
):
    """Approuve (règlement) ou refuse (motif obligatoire) un virement en attente."""
    outcome = payments_service.review_bank_transfer(payment_id, body.approved, body.reason, admin["id"])
    if not outcome.success:
        raise_for_outcome(outcome, get_locale(request))
    return dump(outcome.data)


@admin_router.post("/reconcile")
def admin_reconcile(admin: Dict[str, Any] = Depends(require_admin)):
    logger.info("payments.reconcile triggered by admin_id=%s", admin.get("id"))
    return reconciliation.reconcile()
