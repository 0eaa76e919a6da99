"""
Adaptateur Stripe (API Charges): centralise configuration, appels et
traduction des erreurs de la passerelle en catégories métier.
"""
from typing import Any, Dict, Optional
import logging

import stripe

from marketplace.errors import ErrorCode
from .models import ChargeResult

logger = logging.getLogger(__name__)

INVALID_CARD_CODES = frozenset({
    "invalid_number",
    "incorrect_number",
    "invalid_cvc",
    "incorrect_cvc",
    "invalid_expiry_month",
    "invalid_expiry_year",
    "incorrect_zip",
})


class GatewayError(Exception):
    """Erreur passerelle déjà classée (invalid_card, declined, gateway_unavailable, ...)."""

    def __init__(self, category: ErrorCode, message: str = "", *, gateway_code: Optional[str] = None, charge_id: Optional[str] = None):
        super().__init__(message or category.value)
        self.category = category
        self.gateway_code = gateway_code
        self.charge_id = charge_id


def require_stripe():
    """Configure stripe.api_key depuis STRIPE_SECRET_KEY et retourne le module."""
    from marketplace.config import STRIPE_SECRET_KEY
    if STRIPE_SECRET_KEY:
        stripe.api_key = STRIPE_SECRET_KEY
    return stripe


def category_for(code: Optional[str], decline_code: Optional[str] = None) -> ErrorCode:
    code = (code or "").lower()
    decline_code = (decline_code or "").lower()
    if code in INVALID_CARD_CODES:
        return ErrorCode.INVALID_CARD
    if code == "expired_card" or decline_code == "expired_card":
        return ErrorCode.EXPIRED_CARD
    if decline_code == "insufficient_funds" or code == "insufficient_funds":
        return ErrorCode.INSUFFICIENT_FUNDS
    return ErrorCode.DECLINED


def translate_error(exc: Exception) -> GatewayError:
    """
    Traduit une exception Stripe en GatewayError.
    Les erreurs non liées à la carte ni à la disponibilité (clé API invalide,
    requête mal formée) sont relancées telles quelles.
    """
    if isinstance(exc, stripe.CardError):
        err = getattr(exc, "error", None)
        decline_code = getattr(err, "decline_code", None)
        charge_id = getattr(err, "charge", None)
        return GatewayError(
            category_for(getattr(exc, "code", None), decline_code),
            getattr(exc, "user_message", None) or str(exc),
            gateway_code=decline_code or getattr(exc, "code", None),
            charge_id=charge_id,
        )
    if isinstance(exc, (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)):
        return GatewayError(ErrorCode.GATEWAY_UNAVAILABLE, str(exc), gateway_code=type(exc).__name__)
    if isinstance(exc, stripe.InvalidRequestError) and getattr(exc, "param", None) == "source":
        # Jeton de carte inconnu ou déjà consommé
        return GatewayError(ErrorCode.INVALID_CARD, str(exc), gateway_code=getattr(exc, "code", None))
    raise exc


def to_charge_result(charge: Any) -> ChargeResult:
    charge_id = getattr(charge, "id", None)
    if not charge_id:
        raise RuntimeError("Réponse Stripe inattendue: charge sans identifiant")
    return ChargeResult(
        id=charge_id,
        paid=bool(getattr(charge, "paid", False)),
        failure_code=getattr(charge, "failure_code", None) or None,
        failure_message=getattr(charge, "failure_message", None) or None,
        amount=int(getattr(charge, "amount", 0) or 0),
        currency=str(getattr(charge, "currency", "") or ""),
    )


def create_charge(
    *,
    amount_minor: int,
    currency: str,
    token: str,
    description: str,
    metadata: Dict[str, str],
    idempotency_key: str,
) -> ChargeResult:
    """
    Débit synchrone d'une carte tokenisée.
    L'idempotency_key (id de tentative) évite un double débit si l'appel est rejoué.
    Lève GatewayError pour les erreurs carte / indisponibilité.
    """
    require_stripe()
    try:
        charge = stripe.Charge.create(
            amount=amount_minor,
            currency=currency,
            source=token,
            description=description,
            metadata=metadata,
            idempotency_key=idempotency_key,
        )
    except stripe.StripeError as e:
        raise translate_error(e) from e
    return to_charge_result(charge)


def retrieve_charge(charge_id: str) -> ChargeResult:
    require_stripe()
    try:
        charge = stripe.Charge.retrieve(charge_id)
    except stripe.StripeError as e:
        raise translate_error(e) from e
    return to_charge_result(charge)
