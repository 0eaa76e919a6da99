from datetime import datetime, timedelta, timezone

from marketplace.coupons.calculator import check_validity, discount, is_valid, meets_minimum
from marketplace.coupons.models import Coupon
from marketplace.errors import ErrorCode

NOW = datetime(2026, 5, 1, tzinfo=timezone.utc)


def _coupon(**overrides):
    data = {"id": "cp1", "code": "WELCOME", "type": "percentage", "discount": 10}
    data.update(overrides)
    return Coupon.model_validate(data)


def test_percentage_discount():
    assert discount(_coupon(discount=10), 1500) == 150


def test_percentage_discount_is_capped_by_max_discount():
    coupon = _coupon(discount=50, max_discount=300)
    assert discount(coupon, 2000) == 300
    assert discount(coupon, 400) == 200


def test_fixed_discount_ignores_order_amount_and_cap():
    coupon = _coupon(type="fixed", discount=250, max_discount=100)
    assert discount(coupon, 100) == 250
    assert discount(coupon, 10000) == 250


def test_meets_minimum():
    assert meets_minimum(_coupon(), 1) is True
    coupon = _coupon(min_order_amount=1000)
    assert meets_minimum(coupon, 999.99) is False
    assert meets_minimum(coupon, 1000) is True


def test_valid_coupon():
    assert check_validity(_coupon(usage_limit=5, usage_count=4), NOW) is None
    assert is_valid(_coupon(), NOW) is True


def test_each_failure_reason_is_distinct():
    assert check_validity(_coupon(status="inactive"), NOW) == ErrorCode.COUPON_INACTIVE
    assert check_validity(_coupon(expire_date=NOW - timedelta(seconds=1)), NOW) == ErrorCode.COUPON_EXPIRED
    assert check_validity(_coupon(usage_limit=3, usage_count=3), NOW) == ErrorCode.COUPON_USAGE_LIMIT_REACHED
    assert check_validity(_coupon(start_date=NOW + timedelta(days=1)), NOW) == ErrorCode.COUPON_NOT_STARTED


def test_inactive_wins_over_expired():
    coupon = _coupon(status="inactive", expire_date=NOW - timedelta(days=1))
    assert check_validity(coupon, NOW) == ErrorCode.COUPON_INACTIVE


def test_expire_date_itself_is_still_valid():
    assert check_validity(_coupon(expire_date=NOW), NOW) is None
