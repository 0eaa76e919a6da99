from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator


class Enrollment(BaseModel):
    id: str
    user_id: str
    course_id: str
    payment_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("id", "user_id", "course_id", mode="before")
    @classmethod
    def _as_str(cls, v):
        return str(v)

    @field_validator("payment_id", mode="before")
    @classmethod
    def _optional_str(cls, v):
        return str(v) if v is not None else None
