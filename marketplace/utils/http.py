"""
Traduction des Outcome en réponses HTTP (couche collaboratrice des vues).
"""
from typing import Any, Dict, NoReturn

from fastapi import HTTPException, Request

from marketplace.errors import http_status_for, message_for, resolve_locale
from marketplace.outcome import Outcome


def get_locale(request: Request) -> str:
    return resolve_locale(request.headers.get("accept-language"))


def error_detail(outcome: Outcome, locale: str) -> Dict[str, Any]:
    detail: Dict[str, Any] = {
        "code": outcome.error.value,
        "message": message_for(outcome.error, locale),
        "retryable": outcome.retryable,
    }
    detail.update(outcome.context)
    return detail


def raise_for_outcome(outcome: Outcome, locale: str = "fr") -> NoReturn:
    raise HTTPException(status_code=http_status_for(outcome.error), detail=error_detail(outcome, locale))


def dump(value: Any) -> Any:
    """Sérialise modèles pydantic (ou listes de modèles) pour JSONResponse."""
    if isinstance(value, list):
        return [dump(v) for v in value]
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return value
