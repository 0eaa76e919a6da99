"""
Dépendances d'authentification (déléguée à Supabase Auth).
Le tunnel de paiement ne reçoit que des valeurs simples: id utilisateur et rôle.
"""
from typing import Any, Dict, Optional
import logging

from fastapi import Depends, HTTPException, Request

import marketplace.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

COOKIE_NAME = "sb_access"


def determine_role(metadata: Dict[str, Any] | None, app_metadata: Dict[str, Any] | None = None) -> str:
    role = str((app_metadata or {}).get("role") or (metadata or {}).get("role") or "").lower()
    return "admin" if role == "admin" else "user"


def _token_from_request(request: Request) -> Optional[str]:
    # Priorité au Bearer, repli sur le cookie de session
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_NAME)


def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise supabase.auth.get_user(access_token) en {id, email, role}."""
    res = supabase_client.get_supabase().auth.get_user(access_token)
    user = getattr(res, "user", None)
    if not user:
        return {}
    metadata = getattr(user, "user_metadata", None) or {}
    app_metadata = getattr(user, "app_metadata", None) or {}
    return {
        "id": getattr(user, "id", None),
        "email": getattr(user, "email", None),
        "role": determine_role(metadata, app_metadata),
    }


def get_current_user(request: Request) -> Dict[str, Any]:
    token = _token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")
    try:
        user = get_user_from_token(token)
    except Exception:
        logger.warning("security.get_current_user token rejected")
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
    if not user.get("id"):
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
    return user


def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user


def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Accès interdit")
    return user
