from typing import Optional
from supabase import create_client, Client
from marketplace.config import SUPABASE_URL, SUPABASE_ANON, SUPABASE_SERVICE_KEY

_supabase: Optional[Client] = None
_service_supabase: Optional[Client] = None

def get_supabase() -> Client:
    """Client 'anon' partagé (auth utilisateurs)."""
    global _supabase
    if _supabase is None:
        _supabase = create_client(SUPABASE_URL, SUPABASE_ANON)
    return _supabase

def get_service_supabase() -> Client:
    """
    Client service-role partagé.
    Toutes les écritures du tunnel de paiement passent par lui: les contrôles
    de propriété sont faits dans les services, pas par RLS.
    """
    global _service_supabase
    if not SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour get_service_supabase()")
    if _service_supabase is None:
        _service_supabase = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    return _service_supabase

def is_unique_violation(exc: Exception) -> bool:
    """Vrai si l'APIError PostgREST correspond à une violation d'unicité (23505)."""
    code = getattr(exc, "code", None)
    if not code and exc.args and isinstance(exc.args[0], dict):
        code = exc.args[0].get("code")
    return str(code or "") == "23505"

def first_row(res) -> Optional[dict]:
    data = getattr(res, "data", None) or []
    if isinstance(data, list):
        return data[0] if data else None
    if isinstance(data, dict):
        return data
    return None
