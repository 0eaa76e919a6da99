from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from marketplace.errors import ErrorCode
from marketplace.outcome import Outcome
from marketplace.utils.http import dump, get_locale, raise_for_outcome
from marketplace.utils.security import require_user
from . import repository

router = APIRouter(prefix="/api/v1/enrollments", tags=["Enrollments API"])


@router.get("")
def list_my_enrollments(user: Dict[str, Any] = Depends(require_user)):
    """Cours auxquels l'utilisateur est inscrit (résultat final d'un achat réglé)."""
    return {"enrollments": dump(repository.list_enrollments_for_user(user["id"]))}


@router.get("/{enrollment_id}")
def get_my_enrollment(enrollment_id: str, request: Request, user: Dict[str, Any] = Depends(require_user)):
    """
    Détail d'une inscription.
    - 404 enrollment_not_found si l'ID est inconnu
    - 403 access_denied si elle appartient à un autre utilisateur
    """
    enrollment = repository.get_enrollment(enrollment_id)
    if not enrollment:
        raise_for_outcome(Outcome.fail(ErrorCode.ENROLLMENT_NOT_FOUND, enrollment_id=enrollment_id), get_locale(request))
    if enrollment.user_id != str(user["id"]):
        raise_for_outcome(Outcome.fail(ErrorCode.ACCESS_DENIED, enrollment_id=enrollment_id), get_locale(request))
    return {"enrollment": dump(enrollment)}
