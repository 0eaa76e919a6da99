from typing import List, Optional
import logging

from postgrest.exceptions import APIError

import marketplace.infra.supabase_client as supabase_client
from .models import Enrollment

logger = logging.getLogger(__name__)


def find_enrollment(user_id: str, course_id: str) -> Optional[Enrollment]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("enrollments")
            .select("*")
            .eq("user_id", str(user_id))
            .eq("course_id", str(course_id))
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("enrollments.repository.find_enrollment failed user_id=%s course_id=%s", user_id, course_id)
        raise
    row = supabase_client.first_row(res)
    return Enrollment.model_validate(row) if row else None


def insert_enrollment(*, user_id: str, course_id: str, payment_id: Optional[str]) -> Optional[Enrollment]:
    """
    Crée l'inscription. Un doublon (23505, règlement concurrent) renvoie
    l'inscription existante; tout autre échec renvoie None.
    """
    payload = {"user_id": str(user_id), "course_id": str(course_id), "payment_id": payment_id}
    try:
        res = supabase_client.get_service_supabase().table("enrollments").insert(payload).execute()
        row = supabase_client.first_row(res)
        return Enrollment.model_validate(row) if row else None
    except APIError as e:
        if supabase_client.is_unique_violation(e):
            return find_enrollment(user_id, course_id)
        logger.exception("enrollments.repository.insert_enrollment failed user_id=%s course_id=%s", user_id, course_id)
        return None
    except Exception:
        logger.exception("enrollments.repository.insert_enrollment failed user_id=%s course_id=%s", user_id, course_id)
        return None


def list_enrollments_for_user(user_id: str) -> List[Enrollment]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("enrollments")
            .select("*")
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .execute()
        )
    except Exception:
        logger.exception("enrollments.repository.list_enrollments_for_user failed user_id=%s", user_id)
        raise
    return [Enrollment.model_validate(r) for r in (res.data or [])]


def get_enrollment(enrollment_id: str) -> Optional[Enrollment]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("enrollments")
            .select("*")
            .eq("id", str(enrollment_id))
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("enrollments.repository.get_enrollment failed enrollment_id=%s", enrollment_id)
        raise
    row = supabase_client.first_row(res)
    return Enrollment.model_validate(row) if row else None
