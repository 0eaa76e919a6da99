from datetime import datetime, timedelta, timezone

from marketplace.orders.models import OrderStatus
from marketplace.payments import reconciliation
from marketplace.payments.models import ChargeResult, PaymentStatus, PaymentType


def _payment(store, order, status, payment_type=PaymentType.CARD, charge_id="ch_1"):
    return store.insert_payment(order_id=order.id, payment_type=payment_type, status=status,
                                amount=order.total_amount, currency="thb", gateway_charge_id=charge_id)


def test_resettle_paid_but_pending_orders(store, notifications):
    store.add_course("c1", 1000)
    order = store.add_order(course_ids=("c1",))
    _payment(store, order, PaymentStatus.SUCCESSFUL)

    stats = reconciliation.resettle_paid_orders()

    assert stats == {"settled": 1, "incomplete": 0}
    assert store.orders[order.id].status == OrderStatus.SUCCESSFUL
    assert len(store.enrollments) == 1
    # Plus rien à rejouer
    assert reconciliation.resettle_paid_orders() == {"settled": 0, "incomplete": 0}


def test_resettle_counts_incomplete(store, notifications):
    store.fail_enrollment_for.add("c1")
    order = store.add_order(course_ids=("c1",))
    _payment(store, order, PaymentStatus.SUCCESSFUL)

    assert reconciliation.resettle_paid_orders() == {"settled": 0, "incomplete": 1}
    assert store.orders[order.id].status == OrderStatus.PENDING


def test_refresh_pending_card_payments(store, notifications, monkeypatch):
    paid_order = store.add_order(course_ids=("c1",))
    failed_order = store.add_order(course_ids=("c2",))
    waiting_order = store.add_order(course_ids=("c3",))
    _payment(store, paid_order, PaymentStatus.PENDING, charge_id="ch_paid")
    _payment(store, failed_order, PaymentStatus.PENDING, charge_id="ch_failed")
    _payment(store, waiting_order, PaymentStatus.PENDING, charge_id="ch_wait")
    charges = {
        "ch_paid": ChargeResult(id="ch_paid", paid=True),
        "ch_failed": ChargeResult(id="ch_failed", paid=False, failure_code="card_declined"),
        "ch_wait": ChargeResult(id="ch_wait", paid=False),
    }
    monkeypatch.setattr("marketplace.payments.stripe_client.retrieve_charge", lambda cid: charges[cid])

    stats = reconciliation.refresh_pending_card_payments()

    assert stats == {"refreshed": 2, "still_pending": 1, "errors": 0}
    assert store.orders[paid_order.id].status == OrderStatus.SUCCESSFUL
    assert store.orders[failed_order.id].status == OrderStatus.FAILED
    assert store.orders[waiting_order.id].status == OrderStatus.PENDING


def test_bank_transfers_are_not_polled(store, monkeypatch):
    order = store.add_order()
    _payment(store, order, PaymentStatus.PENDING, payment_type=PaymentType.BANK_TRANSFER, charge_id=None)

    def unexpected(cid):
        raise AssertionError("retrieve_charge ne doit pas être appelé")

    monkeypatch.setattr("marketplace.payments.stripe_client.retrieve_charge", unexpected)
    assert reconciliation.refresh_pending_card_payments() == {"refreshed": 0, "still_pending": 0, "errors": 0}


def test_release_stale_claims(store, monkeypatch):
    monkeypatch.setattr("marketplace.config.PAYMENT_CLAIM_TTL_SECONDS", 900)
    orphan = store.add_order()
    with_pending = store.add_order()
    fresh = store.add_order()
    for o in (orphan, with_pending, fresh):
        store.claim_order(o.id, f"attempt-{o.id}")
    _payment(store, with_pending, PaymentStatus.PENDING)
    later = datetime.now(timezone.utc) + timedelta(hours=1)
    # `fresh` vient d'être réservé par rapport à `later`
    store.orders[fresh.id] = store.orders[fresh.id].model_copy(update={"payment_attempt_at": later})

    released = reconciliation.release_stale_claims(later)

    assert released == 1
    assert store.orders[orphan.id].payment_attempt_id is None
    assert store.orders[with_pending.id].payment_attempt_id is not None
    assert store.orders[fresh.id].payment_attempt_id is not None


def test_reconcile_aggregates(store, notifications, monkeypatch):
    monkeypatch.setattr("marketplace.payments.stripe_client.retrieve_charge", lambda cid: ChargeResult(id=cid))
    result = reconciliation.reconcile(datetime.now(timezone.utc))
    assert set(result) == {"settlement", "card", "claims_released"}
    assert result["claims_released"] == 0
