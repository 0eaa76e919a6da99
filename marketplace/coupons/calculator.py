"""
Calcul de remise et éligibilité d'un coupon.
Pur: aucune écriture. L'incrément d'usage est fait par le règlement (repository.increment_usage).
"""
from datetime import datetime, timezone
from typing import Optional

from marketplace.errors import ErrorCode
from .models import Coupon, CouponStatus, CouponType


def discount(coupon: Coupon, order_amount: float) -> float:
    """
    - percentage: order_amount * discount / 100, plafonné par max_discount si présent
    - fixed: discount, sans plafond
    """
    if coupon.type == CouponType.PERCENTAGE:
        amount = float(order_amount) * float(coupon.discount) / 100
        if coupon.max_discount is not None:
            amount = min(amount, float(coupon.max_discount))
        return round(amount, 2)
    if coupon.type == CouponType.FIXED:
        return round(float(coupon.discount), 2)
    raise ValueError(f"Type de coupon inconnu: {coupon.type!r}")


def meets_minimum(coupon: Coupon, order_amount: float) -> bool:
    if coupon.min_order_amount is None:
        return True
    return float(order_amount) >= float(coupon.min_order_amount)


def check_validity(coupon: Coupon, now: Optional[datetime] = None) -> Optional[ErrorCode]:
    """
    Retourne None si le coupon est utilisable, sinon la raison:
    coupon_inactive, coupon_not_started, coupon_expired, coupon_usage_limit_reached.
    """
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    if coupon.status != CouponStatus.ACTIVE:
        return ErrorCode.COUPON_INACTIVE
    if coupon.start_date is not None and current < coupon.start_date:
        return ErrorCode.COUPON_NOT_STARTED
    if coupon.expire_date is not None and current > coupon.expire_date:
        return ErrorCode.COUPON_EXPIRED
    if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
        return ErrorCode.COUPON_USAGE_LIMIT_REACHED
    return None


def is_valid(coupon: Coupon, now: Optional[datetime] = None) -> bool:
    return check_validity(coupon, now) is None
