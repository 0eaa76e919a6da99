"""
Accès lecture au catalogue (table 'courses') sous forme de CourseSnapshot.
Les erreurs de stockage sont journalisées puis propagées: une panne ne doit
jamais passer pour un cours introuvable.
"""
from typing import Dict, Iterable, List, Optional
import logging

import marketplace.infra.supabase_client as supabase_client
from .models import CourseSnapshot

logger = logging.getLogger(__name__)

COURSE_COLUMNS = "id, title, normal_price, early_bird_price, early_bird_start, early_bird_end"


def get_course(course_id: str) -> Optional[CourseSnapshot]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("courses")
            .select(COURSE_COLUMNS)
            .eq("id", str(course_id))
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("catalog.repository.get_course failed course_id=%s", course_id)
        raise
    rows = res.data or []
    return CourseSnapshot.model_validate(rows[0]) if rows else None


def get_courses(course_ids: Iterable[str]) -> List[CourseSnapshot]:
    ids = [str(i) for i in course_ids if i]
    if not ids:
        return []
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("courses")
            .select(COURSE_COLUMNS)
            .in_("id", ids)
            .execute()
        )
    except Exception:
        logger.exception("catalog.repository.get_courses failed ids=%s", ids)
        raise
    return [CourseSnapshot.model_validate(row) for row in (res.data or [])]


def get_courses_map(course_ids: Iterable[str]) -> Dict[str, CourseSnapshot]:
    """Retourne {id: CourseSnapshot} à partir d'une liste d'IDs."""
    return {c.id: c for c in get_courses(course_ids)}
