import pytest

from marketplace.cart import service as cart_service
from marketplace.enrollments import settlement
from marketplace.errors import ErrorCode
from marketplace.orders.models import OrderStatus
from marketplace.payments.models import PaymentStatus, PaymentType


def _paid(store, order, status=PaymentStatus.SUCCESSFUL):
    return store.insert_payment(order_id=order.id, payment_type=PaymentType.CARD, status=status,
                                amount=order.total_amount, currency="thb", gateway_charge_id="ch_1")


@pytest.fixture
def order(store):
    store.add_course("c1", 500)
    store.add_course("c2", 700)
    return store.add_order(total=1200, course_ids=("c1", "c2"))


def test_settle_creates_one_enrollment_per_course(store, order, notifications):
    payment = _paid(store, order)

    out = settlement.settle(order, payment)

    assert out.success is True
    assert sorted(e.course_id for e in out.data) == ["c1", "c2"]
    assert all(e.payment_id == payment.id for e in out.data)
    assert store.orders[order.id].status == OrderStatus.SUCCESSFUL
    [(event, data)] = notifications
    assert event == "order.settled"
    assert sorted(data["courseIds"]) == ["c1", "c2"]


def test_settle_twice_is_idempotent(store, order, notifications):
    payment = _paid(store, order)
    first = settlement.settle(order, payment)

    second = settlement.settle(order, payment)

    assert second.success is True
    assert len(store.enrollments) == 2
    assert {e.id for e in second.data} == {e.id for e in first.data}
    # Un seul effet de bord pour la transition
    assert len(notifications) == 1


def test_existing_enrollment_is_reused(store, order, notifications):
    previous = store.insert_enrollment(user_id="user-1", course_id="c1", payment_id="older")
    payment = _paid(store, order)

    out = settlement.settle(order, payment)

    assert out.success is True
    assert previous.id in {e.id for e in out.data}
    assert len(store.enrollments) == 2


def test_missing_enrollment_leaves_order_pending(store, order, notifications):
    store.fail_enrollment_for.add("c2")
    payment = _paid(store, order)

    out = settlement.settle(order, payment)

    assert out.error == ErrorCode.SETTLEMENT_INCOMPLETE
    assert out.retryable is True
    assert out.context["course_ids"] == ["c2"]
    assert store.orders[order.id].status == OrderStatus.PENDING
    assert notifications == []

    # Rejeu après correction
    store.fail_enrollment_for.clear()
    assert settlement.settle(order, payment).success is True
    assert store.orders[order.id].status == OrderStatus.SUCCESSFUL
    assert len(store.enrollments) == 2


def test_settle_rejects_unsuccessful_payment(store, order):
    with pytest.raises(ValueError):
        settlement.settle(order, _paid(store, order, status=PaymentStatus.PENDING))


def test_settle_rejects_payment_of_other_order(store, order):
    other = store.add_order(total=50)
    with pytest.raises(ValueError):
        settlement.settle(order, _paid(store, other))


def test_settle_on_failed_order(store, order, notifications):
    payment = _paid(store, order)
    store.update_order_status(order.id, OrderStatus.FAILED)

    out = settlement.settle(order, payment)

    assert out.error == ErrorCode.ALREADY_PROCESSED
    assert store.orders[order.id].status == OrderStatus.FAILED


def test_coupon_consumed_once_when_discounts_enabled(store, monkeypatch, notifications):
    monkeypatch.setattr("marketplace.config.APPLY_COUPON_DISCOUNTS", True)
    store.add_coupon("coupon-1")
    store.add_course("c1", 500)
    order = store.insert_order(user_id="user-1", subtotal_amount=500, total_amount=450, coupon_id="coupon-1")
    store.insert_order_item(order_id=order.id, course_id="c1", unit_price=500)
    payment = _paid(store, order)

    settlement.settle(order, payment)
    settlement.settle(order, payment)

    assert store.coupon_increments == ["coupon-1"]
    assert store.coupons["coupon-1"].usage_count == 1


def test_coupon_untouched_when_discounts_disabled(store, notifications):
    store.add_coupon("coupon-1")
    store.add_course("c1", 500)
    order = store.insert_order(user_id="user-1", subtotal_amount=500, total_amount=500, coupon_id="coupon-1")
    store.insert_order_item(order_id=order.id, course_id="c1", unit_price=500)

    assert settlement.settle(order, _paid(store, order)).success is True
    assert store.coupon_increments == []


def test_settlement_clears_purchased_courses_from_cart(store, order, notifications):
    store.add_course("c3", 300)
    for cid in ("c1", "c3"):
        cart_service.add_item("user-1", cid)

    settlement.settle(order, _paid(store, order))

    assert [i.course_id for i in store.cart_items.values()] == ["c3"]


def test_cart_cleanup_failure_does_not_undo_settlement(store, order, notifications, monkeypatch):
    def boom(user_id, course_ids):
        raise RuntimeError("cart unavailable")

    monkeypatch.setattr("marketplace.cart.service.remove_courses", boom)

    out = settlement.settle(order, _paid(store, order))

    assert out.success is True
    assert store.orders[order.id].status == OrderStatus.SUCCESSFUL
    assert len(notifications) == 1
