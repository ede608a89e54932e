"""Billing schedule engine behaviour against a real record store"""

import pytest
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from studio_core.domain.exceptions import RecordNotFoundError, StorageError, ValidationError
from studio_core.domain.models import PaymentEntry, PaymentStatus
from studio_core.domain.storage import PAYMENTS

ENROLLED_ON = date(2025, 1, 15)


@pytest.fixture
def schedule(studio, alice):
    """
    Snapshot of Alice's enrollment dues: paid 2025-01-15, then the 10th of Feb 2025 .. Jan 2026.

    Copies, so later edits to the projection do not move the dates tests look up.
    """
    payments = studio.billing.create_enrollment_payments(alice, today=ENROLLED_ON)
    return [replace(p) for p in sorted(payments, key=lambda p: p.due_date)]


def _stored(store, student):
    return store.select_all(PAYMENTS, {"student_id": student.id}, order_by="due_date")


def _by_due(payments, due):
    return next(p for p in payments if p.due_date == due)


def test_enrollment_dues_are_stored(store, alice, schedule):
    stored = _stored(store, alice)

    assert len(stored) == 13
    assert stored[0].status == PaymentStatus.PAID
    assert stored[0].due_date == ENROLLED_ON
    assert stored[0].paid_at is not None
    assert [p.status for p in stored[1:]] == [PaymentStatus.PENDING] * 12
    assert stored[1].due_date == date(2025, 2, 10)
    assert stored[-1].due_date == date(2026, 1, 10)
    assert all(p.amount == Decimal("150.00") for p in stored)


def test_create_payments_failure_stores_nothing(studio, store, alice):
    store.fail_calls.add(("insert_many", PAYMENTS))

    with pytest.raises(StorageError):
        studio.billing.create_enrollment_payments(alice, today=ENROLLED_ON)

    assert studio.state.payments == []
    assert _stored(store, alice) == []


def test_create_payments_rejects_inconsistent_month_ref(studio, alice):
    entry = PaymentEntry(student_id=alice.id, due_date=date(2025, 4, 10), month_ref="2025-05")

    with pytest.raises(ValidationError):
        studio.billing.create_payments([entry])


def test_repeating_payments_until_december(studio, store, alice):
    created = studio.billing.create_repeating_payments(
        alice.id, date(2025, 8, 31), Decimal("90"), repeat_until_end_of_year=True
    )

    assert [p.due_date for p in created] == [
        date(2025, 8, 31),
        date(2025, 9, 30),
        date(2025, 10, 31),
        date(2025, 11, 30),
        date(2025, 12, 31),
    ]
    assert len(_stored(store, alice)) == 5


def test_update_future_payments_reclamps_within_own_month(studio, store, alice, schedule):
    result = studio.billing.update_future_payments(alice.id, date(2025, 1, 31), 31, Decimal("175"))

    assert result.matched == 12
    assert result.ok
    stored = _stored(store, alice)
    assert stored[1].due_date == date(2025, 2, 28)
    assert stored[2].due_date == date(2025, 3, 31)
    assert stored[3].due_date == date(2025, 4, 30)
    assert all(p.month_ref == f"{p.due_date.year:04d}-{p.due_date.month:02d}" for p in stored)
    assert all(p.amount == Decimal("175") for p in stored[1:])
    assert stored[0].amount == Decimal("150.00")  # upfront paid record untouched


def test_update_future_payments_only_touches_pending_after_from_date(studio, store, alice, schedule):
    feb = _by_due(schedule, date(2025, 2, 10))
    apr = _by_due(schedule, date(2025, 4, 10))
    studio.billing.mark_as_paid(apr.id)

    result = studio.billing.update_future_payments(alice.id, feb.due_date, 20)

    assert result.matched == 10  # March, then May 2025 .. Jan 2026
    stored = {p.id: p for p in _stored(store, alice)}
    assert stored[feb.id].due_date == date(2025, 2, 10)  # not strictly after from_date
    assert stored[apr.id].due_date == date(2025, 4, 10)  # paid
    assert stored[_by_due(schedule, date(2025, 3, 10)).id].due_date == date(2025, 3, 20)


def test_update_future_payments_nothing_to_amend(studio, alice, schedule):
    result = studio.billing.update_future_payments(alice.id, date(2026, 6, 1), 5)

    assert result.matched == 0
    assert result.succeeded == []


def test_update_future_payments_reports_partial_failure(studio, store, alice, schedule):
    stuck = _by_due(schedule, date(2025, 6, 10))
    store.fail_ids.add(stuck.id)

    result = studio.billing.update_future_payments(alice.id, ENROLLED_ON, 25)

    assert result.failed == [stuck.id]
    assert len(result.succeeded) == 11
    assert result.partial
    stored = {p.id: p for p in _stored(store, alice)}
    assert stored[stuck.id].due_date == date(2025, 6, 10)
    assert stored[_by_due(schedule, date(2025, 7, 10)).id].due_date == date(2025, 7, 25)
    assert studio.state.payment(stuck.id).due_date == date(2025, 6, 10)


def test_update_future_payments_rejects_invalid_day(studio, alice):
    with pytest.raises(ValidationError):
        studio.billing.update_future_payments(alice.id, ENROLLED_ON, 32)


def test_delete_single_payment(studio, store, alice, schedule):
    target = _by_due(schedule, date(2025, 5, 10))

    result = studio.billing.delete_payment(target.id)

    assert result.succeeded == [target.id]
    assert len(_stored(store, alice)) == 12
    assert studio.state.payment(target.id) is None


def test_delete_cascade_keeps_paid_and_earlier(studio, store, alice, schedule):
    target = _by_due(schedule, date(2025, 5, 10))
    paid_later = _by_due(schedule, date(2025, 8, 10))
    studio.billing.mark_as_paid(paid_later.id)

    result = studio.billing.delete_payment(target.id, delete_future=True)

    assert result.ok
    assert len(result.succeeded) == 8  # May, June, July, Sep .. Jan
    remaining = [p.due_date for p in _stored(store, alice)]
    assert remaining == [
        ENROLLED_ON,
        date(2025, 2, 10),
        date(2025, 3, 10),
        date(2025, 4, 10),
        date(2025, 8, 10),
    ]
    assert sorted(p.due_date for p in studio.state.payments) == remaining


def test_delete_cascade_reports_failures(studio, store, alice, schedule):
    target = _by_due(schedule, date(2025, 11, 10))
    stuck = _by_due(schedule, date(2025, 12, 10))
    store.fail_ids.add(stuck.id)

    result = studio.billing.delete_payment(target.id, delete_future=True)

    assert result.failed == [stuck.id]
    assert set(result.succeeded) == {target.id, _by_due(schedule, date(2026, 1, 10)).id}
    assert studio.state.payment(stuck.id) is not None


def test_delete_unknown_payment(studio, schedule):
    with pytest.raises(RecordNotFoundError):
        studio.billing.delete_payment(schedule[0].student_id)


def test_mark_as_paid(studio, store, alice, schedule):
    target = _by_due(schedule, date(2025, 3, 10))
    now = datetime(2025, 3, 8, 10, 30)

    payment = studio.billing.mark_as_paid(target.id, now=now)

    assert payment.status == PaymentStatus.PAID
    assert payment.paid_at == now
    stored = _by_due(_stored(store, alice), date(2025, 3, 10))
    assert stored.status == PaymentStatus.PAID
    assert stored.paid_at == now


def test_mark_as_paid_rolls_back_on_failure(studio, store, alice, schedule):
    target = _by_due(schedule, date(2025, 3, 10))
    store.fail_ids.add(target.id)

    with pytest.raises(StorageError):
        studio.billing.mark_as_paid(target.id)

    local = studio.state.payment(target.id)
    assert local.status == PaymentStatus.PENDING
    assert local.paid_at is None


def test_mark_as_paid_twice_is_rejected(studio, schedule):
    with pytest.raises(ValidationError):
        studio.billing.mark_as_paid(schedule[0].id)


def test_update_payment_keeps_month_ref_consistent(studio, store, alice, schedule):
    target = _by_due(schedule, date(2025, 3, 10))

    studio.billing.update_payment(target.id, due_date=date(2025, 4, 2), amount=Decimal("99"))

    stored = next(p for p in _stored(store, alice) if p.id == target.id)
    assert stored.due_date == date(2025, 4, 2)
    assert stored.month_ref == "2025-04"
    assert stored.amount == Decimal("99")


def test_amend_payment_with_future_cascade(studio, store, alice, schedule):
    target = _by_due(schedule, date(2025, 3, 10))

    result = studio.billing.amend_payment(target.id, date(2025, 3, 31), update_future=True)

    assert result.matched == 10
    stored = _stored(store, alice)
    assert _by_due(stored, date(2025, 3, 31)).id == target.id
    assert date(2025, 4, 30) in [p.due_date for p in stored]
    assert date(2025, 2, 10) in [p.due_date for p in stored]


def test_views(studio, alice, bea, schedule):
    assert [p.due_date for p in studio.billing.payments_for_month("2025-03")] == [date(2025, 3, 10)]
    assert [p.due_date for p in studio.billing.next_due()] == [date(2025, 2, 10)]
    assert studio.billing.has_future_pending(schedule[0].id)
    assert not studio.billing.has_future_pending(schedule[-1].id)
    assert [s.id for s in studio.billing.students_without_payment("2025-03")] == [bea.id]


def test_missing_dates_are_rejected_before_storage(studio, store, alice, schedule):
    store.fail_calls.update({("insert_many", PAYMENTS), ("update", PAYMENTS)})

    with pytest.raises(ValidationError):
        studio.billing.update_future_payments(alice.id, None, 5)
    with pytest.raises(ValidationError):
        studio.billing.create_repeating_payments(alice.id, None)
    with pytest.raises(ValidationError):
        studio.billing.amend_payment(schedule[1].id, None)

    assert len(_stored(store, alice)) == 13


def test_generated_dues_never_start_before_existing_ones(studio, store, alice, schedule):
    with pytest.raises(ValidationError):
        studio.billing.create_repeating_payments(alice.id, date(2025, 6, 1), Decimal("90"))
    with pytest.raises(ValidationError):
        studio.billing.create_enrollment_payments(alice, today=date(2025, 12, 1))
    assert len(_stored(store, alice)) == 13

    created = studio.billing.create_repeating_payments(alice.id, date(2026, 2, 10), Decimal("90"))

    assert [p.due_date for p in created] == [date(2026, 2, 10)]
    assert len(_stored(store, alice)) == 14
