"""
Taxonomie des issues métier du tunnel de paiement.

Chaque code porte un statut HTTP et un message utilisateur (fr/en). Les services
ne lèvent pas d'exception pour ces cas: ils renvoient un `Outcome` (voir outcome.py).
"""
from enum import Enum
from typing import Dict, Optional

from marketplace.config import DEFAULT_LOCALE


class ErrorCode(str, Enum):
    # Catalogue / panier
    COURSE_NOT_FOUND = "course_not_found"
    DUPLICATE_ITEM = "duplicate_item"
    CART_ITEM_NOT_FOUND = "cart_item_not_found"
    FORBIDDEN = "forbidden"
    # Commandes
    ORDER_CREATION_FAILED = "order_creation_failed"
    ORDER_NOT_FOUND = "order_not_found"
    ACCESS_DENIED = "access_denied"
    ALREADY_PROCESSED = "already_processed"
    EMPTY_ORDER = "empty_order"
    BELOW_MINIMUM_AMOUNT = "below_minimum_amount"
    # Coupons
    COUPON_NOT_FOUND = "coupon_not_found"
    COUPON_INACTIVE = "coupon_inactive"
    COUPON_NOT_STARTED = "coupon_not_started"
    COUPON_EXPIRED = "coupon_expired"
    COUPON_USAGE_LIMIT_REACHED = "coupon_usage_limit_reached"
    COUPON_MINIMUM_NOT_MET = "coupon_minimum_not_met"
    # Passerelle carte
    INVALID_CARD = "invalid_card"
    EXPIRED_CARD = "expired_card"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    DECLINED = "declined"
    GATEWAY_UNAVAILABLE = "gateway_unavailable"
    # Justificatif de virement
    FILE_TOO_LARGE = "file_too_large"
    UNSUPPORTED_TYPE = "unsupported_type"
    SIGNATURE_MISMATCH = "signature_mismatch"
    DIMENSION_OUT_OF_RANGE = "dimension_out_of_range"
    UNREADABLE_IMAGE = "unreadable_image"
    UPLOAD_FAILED = "upload_failed"
    # Paiements
    PAYMENT_RECORD_FAILED = "payment_record_failed"
    PAYMENT_NOT_FOUND = "payment_not_found"
    PAYMENT_ALREADY_PROCESSED = "payment_already_processed"
    INVALID_PAYMENT_TYPE = "invalid_payment_type"
    APPROVAL_REASON_REQUIRED = "approval_reason_required"
    # Règlement
    SETTLEMENT_INCOMPLETE = "settlement_incomplete"
    ENROLLMENT_NOT_FOUND = "enrollment_not_found"


# Seules ces issues justifient un nouvel essai côté appelant ou réconciliation
RETRYABLE = frozenset({ErrorCode.GATEWAY_UNAVAILABLE, ErrorCode.SETTLEMENT_INCOMPLETE})

HTTP_STATUS: Dict[ErrorCode, int] = {
    ErrorCode.COURSE_NOT_FOUND: 404,
    ErrorCode.DUPLICATE_ITEM: 409,
    ErrorCode.CART_ITEM_NOT_FOUND: 404,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.ORDER_CREATION_FAILED: 500,
    ErrorCode.ORDER_NOT_FOUND: 404,
    ErrorCode.ACCESS_DENIED: 403,
    ErrorCode.ALREADY_PROCESSED: 409,
    ErrorCode.EMPTY_ORDER: 422,
    ErrorCode.BELOW_MINIMUM_AMOUNT: 422,
    ErrorCode.COUPON_NOT_FOUND: 404,
    ErrorCode.COUPON_INACTIVE: 422,
    ErrorCode.COUPON_NOT_STARTED: 422,
    ErrorCode.COUPON_EXPIRED: 422,
    ErrorCode.COUPON_USAGE_LIMIT_REACHED: 422,
    ErrorCode.COUPON_MINIMUM_NOT_MET: 422,
    ErrorCode.INVALID_CARD: 402,
    ErrorCode.EXPIRED_CARD: 402,
    ErrorCode.INSUFFICIENT_FUNDS: 402,
    ErrorCode.DECLINED: 402,
    ErrorCode.GATEWAY_UNAVAILABLE: 503,
    ErrorCode.FILE_TOO_LARGE: 413,
    ErrorCode.UNSUPPORTED_TYPE: 415,
    ErrorCode.SIGNATURE_MISMATCH: 422,
    ErrorCode.DIMENSION_OUT_OF_RANGE: 422,
    ErrorCode.UNREADABLE_IMAGE: 422,
    ErrorCode.UPLOAD_FAILED: 502,
    ErrorCode.PAYMENT_RECORD_FAILED: 500,
    ErrorCode.PAYMENT_NOT_FOUND: 404,
    ErrorCode.PAYMENT_ALREADY_PROCESSED: 409,
    ErrorCode.INVALID_PAYMENT_TYPE: 422,
    ErrorCode.APPROVAL_REASON_REQUIRED: 422,
    ErrorCode.SETTLEMENT_INCOMPLETE: 202,
    ErrorCode.ENROLLMENT_NOT_FOUND: 404,
}

MESSAGES: Dict[ErrorCode, Dict[str, str]] = {
    ErrorCode.COURSE_NOT_FOUND: {"fr": "Cours introuvable", "en": "Course not found"},
    ErrorCode.DUPLICATE_ITEM: {"fr": "Ce cours est déjà dans le panier", "en": "Course already in cart"},
    ErrorCode.CART_ITEM_NOT_FOUND: {"fr": "Article du panier introuvable", "en": "Cart item not found"},
    ErrorCode.FORBIDDEN: {"fr": "Cet article n'appartient pas à votre panier", "en": "This item does not belong to your cart"},
    ErrorCode.ORDER_CREATION_FAILED: {"fr": "La commande n'a pas pu être créée", "en": "Order could not be created"},
    ErrorCode.ORDER_NOT_FOUND: {"fr": "Commande introuvable", "en": "Order not found"},
    ErrorCode.ACCESS_DENIED: {"fr": "Accès refusé", "en": "Access denied"},
    ErrorCode.ALREADY_PROCESSED: {"fr": "Commande déjà traitée ou paiement en cours", "en": "Order already processed or payment in progress"},
    ErrorCode.EMPTY_ORDER: {"fr": "La commande ne contient aucun cours", "en": "Order has no items"},
    ErrorCode.BELOW_MINIMUM_AMOUNT: {"fr": "Montant inférieur au minimum autorisé", "en": "Amount below the minimum chargeable amount"},
    ErrorCode.COUPON_NOT_FOUND: {"fr": "Coupon introuvable", "en": "Coupon not found"},
    ErrorCode.COUPON_INACTIVE: {"fr": "Coupon inactif", "en": "Coupon is not active"},
    ErrorCode.COUPON_NOT_STARTED: {"fr": "Coupon pas encore valable", "en": "Coupon is not yet valid"},
    ErrorCode.COUPON_EXPIRED: {"fr": "Coupon expiré", "en": "Coupon has expired"},
    ErrorCode.COUPON_USAGE_LIMIT_REACHED: {"fr": "Limite d'utilisation du coupon atteinte", "en": "Coupon usage limit reached"},
    ErrorCode.COUPON_MINIMUM_NOT_MET: {"fr": "Montant minimum du coupon non atteint", "en": "Order amount below coupon minimum"},
    ErrorCode.INVALID_CARD: {"fr": "Carte invalide", "en": "Invalid card"},
    ErrorCode.EXPIRED_CARD: {"fr": "Carte expirée", "en": "Card has expired"},
    ErrorCode.INSUFFICIENT_FUNDS: {"fr": "Fonds insuffisants", "en": "Insufficient funds"},
    ErrorCode.DECLINED: {"fr": "Paiement refusé par la banque", "en": "Payment declined"},
    ErrorCode.GATEWAY_UNAVAILABLE: {"fr": "Service de paiement indisponible, réessayez plus tard", "en": "Payment service unavailable, please retry later"},
    ErrorCode.FILE_TOO_LARGE: {"fr": "Fichier trop volumineux", "en": "File too large"},
    ErrorCode.UNSUPPORTED_TYPE: {"fr": "Type de fichier non supporté (JPEG ou PNG)", "en": "Unsupported file type (JPEG or PNG)"},
    ErrorCode.SIGNATURE_MISMATCH: {"fr": "Le contenu du fichier ne correspond pas à son type", "en": "File content does not match its type"},
    ErrorCode.DIMENSION_OUT_OF_RANGE: {"fr": "Dimensions de l'image hors limites", "en": "Image dimensions out of range"},
    ErrorCode.UNREADABLE_IMAGE: {"fr": "Image illisible ou corrompue", "en": "Image is unreadable or corrupt"},
    ErrorCode.UPLOAD_FAILED: {"fr": "Échec de l'envoi du justificatif", "en": "Slip upload failed"},
    ErrorCode.PAYMENT_RECORD_FAILED: {"fr": "Le paiement n'a pas pu être enregistré", "en": "Payment could not be recorded"},
    ErrorCode.PAYMENT_NOT_FOUND: {"fr": "Paiement introuvable", "en": "Payment not found"},
    ErrorCode.PAYMENT_ALREADY_PROCESSED: {"fr": "Paiement déjà traité", "en": "Payment already processed"},
    ErrorCode.INVALID_PAYMENT_TYPE: {"fr": "Type de paiement invalide pour cette action", "en": "Invalid payment type for this action"},
    ErrorCode.APPROVAL_REASON_REQUIRED: {"fr": "Un motif est requis pour refuser", "en": "A reason is required to reject"},
    ErrorCode.SETTLEMENT_INCOMPLETE: {"fr": "Paiement reçu, inscription en cours de finalisation", "en": "Payment received, enrollment is being finalised"},
    ErrorCode.ENROLLMENT_NOT_FOUND: {"fr": "Inscription introuvable", "en": "Enrollment not found"},
}

SUPPORTED_LOCALES = ("fr", "en")


def resolve_locale(accept_language: Optional[str]) -> str:
    """Premier langage supporté de l'en-tête Accept-Language, sinon DEFAULT_LOCALE."""
    for part in (accept_language or "").split(","):
        lang = part.split(";")[0].strip().lower()[:2]
        if lang in SUPPORTED_LOCALES:
            return lang
    return DEFAULT_LOCALE if DEFAULT_LOCALE in SUPPORTED_LOCALES else "fr"


def message_for(code: ErrorCode, locale: str = "fr") -> str:
    table = MESSAGES.get(code) or {}
    return table.get(locale) or table.get("fr") or code.value


def http_status_for(code: ErrorCode) -> int:
    return HTTP_STATUS.get(code, 400)
