"""
Prix effectif d'un cours (règles early-bird).

Fonctions pures: aucune lecture de stockage, l'horloge est passée en paramètre
(ou lue une seule fois si absente).
"""
from datetime import datetime, timezone
from typing import Optional

from .models import CourseSnapshot


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def is_in_early_bird_period(course: CourseSnapshot, now: Optional[datetime] = None) -> bool:
    """
    Vrai si `now` est dans la fenêtre early-bird [start, end] (bornes incluses).
    N'examine pas les prix: sert à l'affichage ("offre de lancement jusqu'au ...").
    """
    if course.early_bird_price is None:
        return False
    if course.early_bird_start is None or course.early_bird_end is None:
        return False
    current = _now(now)
    return course.early_bird_start <= current <= course.early_bird_end


def effective_price(course: CourseSnapshot, now: Optional[datetime] = None) -> float:
    """
    Prix réellement facturé à l'instant `now`.
    Toute promotion mal configurée (prix manquant, fenêtre incomplète, prix
    early-bird >= prix normal) retombe silencieusement sur le prix normal.
    """
    if not is_in_early_bird_period(course, now):
        return float(course.normal_price)
    if course.early_bird_price >= course.normal_price:
        return float(course.normal_price)
    return float(course.early_bird_price)


def round_amount(amount: float) -> float:
    return round(float(amount), 2)


def to_minor_units(amount: float) -> int:
    """Montant en unités mineures (ex: satang, centimes) pour la passerelle."""
    return int(round(float(amount) * 100))
