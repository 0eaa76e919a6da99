from io import BytesIO

import pytest
from PIL import Image

from marketplace.errors import ErrorCode
from marketplace.orders.models import OrderStatus
from marketplace.payments import service as payments_service
from marketplace.payments.models import PaymentStatus, PaymentType, SlipFile


def _png(size=(400, 600)):
    buf = BytesIO()
    Image.new("RGB", size, color=(255, 255, 255)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def order(store):
    store.add_course("c1", 1200, title="Data Science")
    return store.add_order(total=1200, course_ids=("c1",))


@pytest.fixture
def slip():
    return SlipFile(filename="virement.png", content_type="image/png", data=_png())


def _submit(store, order, slip):
    out = payments_service.pay_by_bank_transfer("user-1", order.id, slip)
    assert out.success is True
    return out.data.payment


def test_submit_stores_slip_and_pending_payment(store, order, slip, notifications):
    # Act
    out = payments_service.pay_by_bank_transfer("user-1", order.id, slip)
    # Assert
    assert out.success is True
    payment = out.data.payment
    assert payment.payment_type == PaymentType.BANK_TRANSFER
    assert payment.status == PaymentStatus.PENDING
    assert payment.amount == 1200
    assert payment.slip_path.startswith(f"{order.id}/{order.id}_")
    assert payment.slip_image.endswith(payment.slip_path)
    assert list(store.uploads) == [payment.slip_path]
    assert store.orders[order.id].status == OrderStatus.PENDING
    assert store.orders[order.id].payment_attempt_id is not None

    [(event, data)] = notifications
    assert event == "payment.bank_transfer.created"
    assert data["orderId"] == order.id
    assert data["courses"] == [{"courseId": "c1", "title": "Data Science"}]


def test_mismatched_slip_is_rejected_before_upload(store, order, notifications):
    slip = SlipFile(filename="virement.jpg", content_type="image/jpeg", data=_png())

    out = payments_service.pay_by_bank_transfer("user-1", order.id, slip)

    assert out.error == ErrorCode.SIGNATURE_MISMATCH
    assert store.uploads == {}
    assert store.payments == {}
    assert notifications == []
    # Commande toujours payable
    assert store.orders[order.id].payment_attempt_id is None


def test_upload_failure(store, order, slip, monkeypatch):
    def broken_upload(data, path, content_type):
        raise RuntimeError("storage down")

    monkeypatch.setattr("marketplace.infra.storage.upload", broken_upload)

    out = payments_service.pay_by_bank_transfer("user-1", order.id, slip)

    assert out.error == ErrorCode.UPLOAD_FAILED
    assert store.orders[order.id].payment_attempt_id is None


def test_record_failure_removes_uploaded_slip(store, order, slip, notifications):
    store.fail_payment_insert = True

    out = payments_service.pay_by_bank_transfer("user-1", order.id, slip)

    assert out.error == ErrorCode.PAYMENT_RECORD_FAILED
    assert store.uploads == {}
    assert len(store.deleted_uploads) == 1
    assert notifications == []


def test_second_submission_while_pending(store, order, slip, notifications):
    _submit(store, order, slip)
    out = payments_service.pay_by_bank_transfer("user-1", order.id, slip)
    assert out.error == ErrorCode.ALREADY_PROCESSED
    assert len(store.payments) == 1


def test_approve_settles_order(store, order, slip, notifications):
    payment = _submit(store, order, slip)
    notifications.clear()

    out = payments_service.review_bank_transfer(payment.id, True, None, "admin-1")

    assert out.success is True
    assert out.data.order_status == "successful"
    stored = store.payments[payment.id]
    assert stored.status == PaymentStatus.SUCCESSFUL
    assert stored.reviewed_by == "admin-1"
    assert store.orders[order.id].status == OrderStatus.SUCCESSFUL
    assert [e.course_id for e in store.enrollments.values()] == ["c1"]
    assert [event for event, _ in notifications] == ["payment.bank_transfer.approved", "order.settled"]


def test_reject_requires_reason(store, order, slip, notifications):
    payment = _submit(store, order, slip)

    out = payments_service.review_bank_transfer(payment.id, False, "   ", "admin-1")

    assert out.error == ErrorCode.APPROVAL_REASON_REQUIRED
    assert store.payments[payment.id].status == PaymentStatus.PENDING


def test_reject_fails_payment_and_order(store, order, slip, notifications):
    payment = _submit(store, order, slip)
    notifications.clear()

    out = payments_service.review_bank_transfer(payment.id, False, "Montant illisible", "admin-1")

    assert out.success is True
    assert out.data.order_status == "failed"
    assert store.payments[payment.id].review_reason == "Montant illisible"
    assert store.orders[order.id].status == OrderStatus.FAILED
    assert store.enrollments == {}
    [(event, data)] = notifications
    assert event == "payment.bank_transfer.rejected"
    assert data["reason"] == "Montant illisible"


def test_review_twice_is_rejected(store, order, slip, notifications):
    payment = _submit(store, order, slip)
    payments_service.review_bank_transfer(payment.id, True, None, "admin-1")

    out = payments_service.review_bank_transfer(payment.id, False, "trop tard", "admin-2")

    assert out.error == ErrorCode.PAYMENT_ALREADY_PROCESSED
    assert store.orders[order.id].status == OrderStatus.SUCCESSFUL


def test_review_unknown_or_card_payment(store, order):
    card_payment = store.insert_payment(order_id=order.id, payment_type=PaymentType.CARD,
                                        status=PaymentStatus.PENDING, amount=1200, currency="thb")
    assert payments_service.review_bank_transfer("pay-404", True, None, "admin-1").error == ErrorCode.PAYMENT_NOT_FOUND
    assert payments_service.review_bank_transfer(card_payment.id, True, None, "admin-1").error == ErrorCode.INVALID_PAYMENT_TYPE


@pytest.mark.parametrize("order_status", [OrderStatus.FAILED, OrderStatus.SUCCESSFUL])
@pytest.mark.parametrize("approved, reason", [(True, None), (False, "Montant illisible")])
def test_review_on_closed_order_leaves_payment_pending(store, notifications, order_status, approved, reason):
    closed = store.add_order(total=1200, status=order_status)
    payment = store.insert_payment(order_id=closed.id, payment_type=PaymentType.BANK_TRANSFER,
                                   status=PaymentStatus.PENDING, amount=1200, currency="thb")

    out = payments_service.review_bank_transfer(payment.id, approved, reason, "admin-1")

    assert out.error == ErrorCode.ALREADY_PROCESSED
    assert out.context["order_status"] == order_status.value
    stored = store.payments[payment.id]
    assert stored.status == PaymentStatus.PENDING
    assert stored.reviewed_by is None
    assert store.orders[closed.id].status == order_status
    assert store.enrollments == {}
    assert notifications == []
