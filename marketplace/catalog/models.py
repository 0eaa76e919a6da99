from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator


class CourseSnapshot(BaseModel):
    """Vue figée du prix d'un cours au moment du calcul (non persistée par le tunnel)."""

    id: str
    title: str = ""
    normal_price: float
    early_bird_price: Optional[float] = None
    early_bird_start: Optional[datetime] = None
    early_bird_end: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return str(v)

    @field_validator("early_bird_start", "early_bird_end")
    @classmethod
    def _assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # Colonnes 'timestamp' sans fuseau: interprétées en UTC
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v
