from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator


class CouponType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CouponStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Coupon(BaseModel):
    id: str
    code: str
    type: CouponType
    discount: float
    min_order_amount: Optional[float] = None
    max_discount: Optional[float] = None
    usage_limit: Optional[int] = None
    usage_count: int = 0
    status: CouponStatus = CouponStatus.ACTIVE
    start_date: Optional[datetime] = None
    expire_date: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return str(v)

    @field_validator("start_date", "expire_date")
    @classmethod
    def _assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v
