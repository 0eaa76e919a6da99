from datetime import datetime, timedelta, timezone

import pytest

from marketplace.cart import service as cart_service
from marketplace.errors import ErrorCode
from marketplace.orders import service as orders_service
from marketplace.orders.models import OrderStatus

NOW = datetime(2026, 6, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def catalog(store):
    store.add_course("c1", 2000, early_bird_price=1500, start=NOW - timedelta(days=1), end=NOW + timedelta(days=1))
    store.add_course("c2", 1000)
    return store


def test_create_order_prices_each_line(catalog):
    # Act
    out = orders_service.create_order("user-1", ["c1", "c2"], now=NOW)
    # Assert
    assert out.success is True
    detail = out.data
    assert detail.order.status == OrderStatus.PENDING
    assert detail.order.subtotal_amount == 2500
    assert detail.order.total_amount == 2500
    assert {i.course_id: i.unit_price for i in detail.items} == {"c1": 1500, "c2": 1000}
    assert sum(i.unit_price for i in detail.items) == detail.order.subtotal_amount


def test_create_order_deduplicates_courses(catalog):
    out = orders_service.create_order("user-1", ["c2", "c2"], now=NOW)
    assert len(out.data.items) == 1
    assert out.data.order.total_amount == 1000


def test_create_order_empty(catalog):
    out = orders_service.create_order("user-1", [], now=NOW)
    assert out.error == ErrorCode.EMPTY_ORDER
    assert catalog.orders == {}


def test_create_order_reports_every_missing_course(catalog):
    out = orders_service.create_order("user-1", ["c1", "x1", "x2"], now=NOW)
    assert out.error == ErrorCode.COURSE_NOT_FOUND
    assert out.context["course_ids"] == ["x1", "x2"]
    assert catalog.orders == {}


def test_unit_price_is_frozen_after_catalog_change(catalog):
    detail = orders_service.create_order("user-1", ["c2"], now=NOW).data
    catalog.add_course("c2", 4000)

    again = orders_service.get_order_detail("user-1", detail.order.id).data
    assert again.items[0].unit_price == 1000
    assert again.order.total_amount == 1000


def test_failed_item_insert_marks_order_failed(catalog):
    catalog.fail_order_item_for.add("c2")

    out = orders_service.create_order("user-1", ["c1", "c2"], now=NOW)

    assert out.error == ErrorCode.ORDER_CREATION_FAILED
    order = catalog.orders[out.context["order_id"]]
    assert order.status == OrderStatus.FAILED


def test_coupon_is_recorded_without_discount_by_default(catalog):
    catalog.add_coupon("coupon-1", discount=50)
    out = orders_service.create_order("user-1", ["c2"], coupon_id="coupon-1", now=NOW)
    assert out.data.order.coupon_id == "coupon-1"
    assert out.data.order.total_amount == out.data.order.subtotal_amount == 1000


def test_coupon_discount_when_enabled(catalog, monkeypatch):
    monkeypatch.setattr("marketplace.config.APPLY_COUPON_DISCOUNTS", True)
    catalog.add_coupon("coupon-1", type="fixed", discount=300)

    out = orders_service.create_order("user-1", ["c2"], coupon_id="coupon-1", now=NOW)

    assert out.data.order.subtotal_amount == 1000
    assert out.data.order.total_amount == 700


def test_coupon_discount_never_goes_negative(catalog, monkeypatch):
    monkeypatch.setattr("marketplace.config.APPLY_COUPON_DISCOUNTS", True)
    catalog.add_coupon("coupon-1", type="fixed", discount=5000)

    out = orders_service.create_order("user-1", ["c2"], coupon_id="coupon-1", now=NOW)
    assert out.data.order.total_amount == 0


@pytest.mark.parametrize("fields, expected", [
    ({"status": "inactive"}, ErrorCode.COUPON_INACTIVE),
    ({"min_order_amount": 5000}, ErrorCode.COUPON_MINIMUM_NOT_MET),
])
def test_invalid_coupon_blocks_order_when_enabled(catalog, monkeypatch, fields, expected):
    monkeypatch.setattr("marketplace.config.APPLY_COUPON_DISCOUNTS", True)
    catalog.add_coupon("coupon-1", **fields)

    out = orders_service.create_order("user-1", ["c2"], coupon_id="coupon-1", now=NOW)
    assert out.error == expected
    assert catalog.orders == {}


def test_unknown_coupon_when_enabled(catalog, monkeypatch):
    monkeypatch.setattr("marketplace.config.APPLY_COUPON_DISCOUNTS", True)
    out = orders_service.create_order("user-1", ["c2"], coupon_id="ghost", now=NOW)
    assert out.error == ErrorCode.COUPON_NOT_FOUND


def test_create_order_from_cart(catalog):
    cart_service.add_item("user-1", "c1")
    cart_service.add_item("user-1", "c2")

    out = orders_service.create_order_from_cart("user-1", now=NOW)

    assert out.success is True
    assert out.data.order.total_amount == 2500
    # le panier n'est vidé qu'au règlement
    assert len(catalog.cart_items) == 2


def test_create_order_from_empty_cart(catalog):
    assert orders_service.create_order_from_cart("user-1", now=NOW).error == ErrorCode.EMPTY_ORDER


def test_order_detail_of_another_user(catalog):
    order = catalog.add_order(user_id="user-2")
    assert orders_service.get_order_detail("user-1", order.id).error == ErrorCode.ACCESS_DENIED
    assert orders_service.get_order_detail("user-1", "missing").error == ErrorCode.ORDER_NOT_FOUND


def test_order_status_transitions_are_one_way(catalog):
    from marketplace.orders import repository as orders_repository

    order = catalog.add_order(status=OrderStatus.SUCCESSFUL)
    with pytest.raises(ValueError):
        orders_repository.update_order_status(order.id, OrderStatus.PENDING, expected=OrderStatus.SUCCESSFUL)
    assert orders_repository.update_order_status(order.id, OrderStatus.FAILED, expected=OrderStatus.PENDING) is None
    assert catalog.orders[order.id].status == OrderStatus.SUCCESSFUL
