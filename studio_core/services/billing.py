"""Billing schedule engine: generates, amends and retires monthly dues"""

import logging
import uuid
from dataclasses import asdict
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from studio_core.config import Settings, settings as default_settings
from studio_core.domain.exceptions import RecordNotFoundError, StorageError, ValidationError
from studio_core.domain.models import BatchResult, Payment, PaymentEntry, PaymentStatus, Student
from studio_core.domain.schedule import (
    generate_enrollment_schedule,
    generate_repeating_schedule,
    reclamp_due_date,
)
from studio_core.domain.state import StudioState
from studio_core.domain.storage import PAYMENTS, RecordStorage
from studio_core.infrastructure.observability.logging import log_batch_outcome
from studio_core.infrastructure.observability.metrics import (
    batch_failure_counter,
    payments_created_counter,
    payments_paid_counter,
)
from studio_core.utils.date_utils import month_ref

logger = logging.getLogger(__name__)


def _validate_day(day: int) -> None:
    if not 1 <= day <= 31:
        raise ValidationError(f"Due day must be between 1 and 31, got {day}")


class BillingScheduleEngine:
    """Maintains each student's sequence of monthly dues"""

    def __init__(self, state: StudioState, store: RecordStorage, config: Settings | None = None):
        self.state = state
        self.store = store
        self.config = config or default_settings

    def _require_payment(self, payment_id: uuid.UUID) -> Payment:
        payment = self.state.payment(payment_id)
        if payment is None:
            raise RecordNotFoundError(f"Payment not found: {payment_id}")
        return payment

    def _check_after_latest_due(self, student_id: uuid.UUID, first_due: date) -> None:
        """A generated batch may not start on or before the student's latest existing due date"""
        latest = max((p.due_date for p in self.state.payments if p.student_id == student_id), default=None)
        if latest is not None and first_due <= latest:
            raise ValidationError(
                f"New dues must start after {latest.isoformat()}, the latest existing due date"
            )

    def create_payments(self, entries: List[PaymentEntry], source: str = "manual") -> List[Payment]:
        """
        Bulk-insert payment entries in a single storage call.

        Raises:
            ValidationError: An entry has no due date or a month_ref that does not match it
            StorageError: The batch was rejected; nothing was stored
        """
        for entry in entries:
            if entry.due_date is None:
                raise ValidationError("Payment due date is required")
            if entry.month_ref != month_ref(entry.due_date):
                raise ValidationError(
                    f"month_ref {entry.month_ref} does not match due date {entry.due_date.isoformat()}"
                )
        if not entries:
            return []

        created = self.store.insert_many(PAYMENTS, [asdict(entry) for entry in entries])
        self.state.payments.extend(created)

        payments_created_counter.labels(source=source).inc(len(created))
        logger.info(
            "Payments created",
            extra={"student_id": str(entries[0].student_id), "count": len(created), "source": source},
        )
        return created

    def create_enrollment_payments(self, student: Student, today: date | None = None) -> List[Payment]:
        """Upfront paid record for this month plus the following months' pending dues"""
        entries = generate_enrollment_schedule(
            student.id,
            student.due_day,
            student.monthly_fee,
            today=today,
            months=self.config.schedule_months,
        )
        self._check_after_latest_due(student.id, entries[0].due_date)
        return self.create_payments(entries, source="enrollment")

    def create_repeating_payments(
        self,
        student_id: uuid.UUID,
        start: date,
        amount: Optional[Decimal] = None,
        repeat_until_end_of_year: bool = False,
    ) -> List[Payment]:
        """Dues for start's month, or for every month from start's through December"""
        if self.state.student(student_id) is None:
            raise ValidationError(f"Unknown student: {student_id}")
        if not start:
            raise ValidationError("Start date is required")
        self._check_after_latest_due(student_id, start)
        entries = generate_repeating_schedule(student_id, start, amount, repeat_until_end_of_year)
        return self.create_payments(entries)

    def update_future_payments(
        self,
        student_id: uuid.UUID,
        from_date: date,
        new_day: int,
        new_amount: Optional[Decimal] = None,
    ) -> BatchResult:
        """
        Move every pending due strictly after from_date to new_day of its own month.

        Updates are applied one record at a time and are not rolled back: the
        result lists which ids succeeded and which failed. result.matched == 0
        means there was nothing to amend.
        """
        if not from_date:
            raise ValidationError("from_date is required")
        _validate_day(new_day)

        candidates = self.store.select_all(
            PAYMENTS,
            {"student_id": student_id, "status": PaymentStatus.PENDING, "due_date__gt": from_date},
            order_by="due_date",
        )
        result = BatchResult(matched=len(candidates))

        for candidate in candidates:
            due = reclamp_due_date(candidate.due_date, new_day)
            fields = {"due_date": due, "month_ref": month_ref(due)}
            if new_amount is not None:
                fields["amount"] = new_amount

            try:
                self.store.update(PAYMENTS, candidate.id, fields)
            except StorageError:
                result.failed.append(candidate.id)
                batch_failure_counter.labels(operation="update_future").inc()
                continue

            result.succeeded.append(candidate.id)
            payment = self.state.payment(candidate.id)
            if payment is not None:
                payment.due_date = due
                payment.month_ref = fields["month_ref"]
                if new_amount is not None:
                    payment.amount = new_amount

        log_batch_outcome("update_future", str(student_id), result.matched, len(result.succeeded), len(result.failed))
        return result

    def update_payment(
        self,
        payment_id: uuid.UUID,
        due_date: Optional[date] = None,
        amount: Optional[Decimal] = None,
    ) -> Payment:
        """Edit one payment; fields left as None are unchanged"""
        payment = self._require_payment(payment_id)

        fields = {}
        if due_date is not None:
            fields["due_date"] = due_date
            fields["month_ref"] = month_ref(due_date)
        if amount is not None:
            fields["amount"] = amount
        if not fields:
            return payment

        self.store.update(PAYMENTS, payment_id, fields)
        for key, value in fields.items():
            setattr(payment, key, value)
        return payment

    def amend_payment(
        self,
        payment_id: uuid.UUID,
        due_date: date,
        amount: Optional[Decimal] = None,
        update_future: bool = False,
    ) -> Optional[BatchResult]:
        """
        Edit a payment and optionally carry the new day and amount to later dues.

        The future cascade runs first, keyed on the payment's current due date,
        so the edited record itself is not part of the batch.
        """
        if not due_date:
            raise ValidationError("Payment due date is required")
        payment = self._require_payment(payment_id)

        result = None
        if update_future:
            result = self.update_future_payments(payment.student_id, payment.due_date, due_date.day, amount)
        self.update_payment(payment_id, due_date=due_date, amount=amount)
        return result

    def delete_payment(self, payment_id: uuid.UUID, delete_future: bool = False) -> BatchResult:
        """
        Delete a payment, optionally with every later pending due of the same student.

        The cascade covers pending payments with due_date on or after the
        target's; paid payments are never swept. A failure deleting the target
        raises StorageError; failures in the cascade are reported in the result.
        """
        target = self._require_payment(payment_id)

        self.store.delete(PAYMENTS, target.id)
        self.state.payments = [p for p in self.state.payments if p.id != target.id]
        result = BatchResult(matched=1, succeeded=[target.id])

        if not delete_future:
            return result

        cascade = self.store.select_all(
            PAYMENTS,
            {"student_id": target.student_id, "status": PaymentStatus.PENDING, "due_date__gte": target.due_date},
        )
        result.matched += len(cascade)

        for payment in cascade:
            try:
                self.store.delete(PAYMENTS, payment.id)
            except StorageError:
                result.failed.append(payment.id)
                batch_failure_counter.labels(operation="delete_future").inc()
                continue
            result.succeeded.append(payment.id)

        removed = set(result.succeeded)
        self.state.payments = [p for p in self.state.payments if p.id not in removed]

        log_batch_outcome("delete_future", str(target.student_id), result.matched, len(result.succeeded), len(result.failed))
        return result

    def mark_as_paid(self, payment_id: uuid.UUID, now: datetime | None = None) -> Payment:
        """
        Transition a pending payment to paid.

        The projection is updated before the storage call and rolled back to
        pending if the store rejects it.
        """
        payment = self._require_payment(payment_id)
        if payment.status == PaymentStatus.PAID:
            raise ValidationError(f"Payment {payment_id} is already paid")
        if now is None:
            now = datetime.now()

        # Optimistic update
        payment.status = PaymentStatus.PAID
        payment.paid_at = now

        try:
            self.store.update(PAYMENTS, payment_id, {"status": PaymentStatus.PAID, "paid_at": now})
        except StorageError:
            payment.status = PaymentStatus.PENDING
            payment.paid_at = None
            raise

        payments_paid_counter.inc()
        return payment

    # Views

    def payments_for_month(self, month: str) -> List[Payment]:
        return sorted((p for p in self.state.payments if p.month_ref == month), key=lambda p: p.due_date)

    def next_due(self) -> List[Payment]:
        """Earliest pending payment of each active student, soonest first"""
        earliest = {}
        active = {s.id for s in self.state.students if s.active}
        for payment in self.state.payments:
            if payment.student_id not in active or payment.status != PaymentStatus.PENDING:
                continue
            current = earliest.get(payment.student_id)
            if current is None or payment.due_date < current.due_date:
                earliest[payment.student_id] = payment
        return sorted(earliest.values(), key=lambda p: p.due_date)

    def has_future_pending(self, payment_id: uuid.UUID) -> bool:
        """Whether deleting this payment could cascade to later pending dues"""
        target = self._require_payment(payment_id)
        return any(
            p.student_id == target.student_id
            and p.status == PaymentStatus.PENDING
            and p.due_date > target.due_date
            for p in self.state.payments
        )

    def students_without_payment(self, month: str) -> List[Student]:
        billed = {p.student_id for p in self.state.payments if p.month_ref == month}
        return [s for s in self.state.students if s.active and s.id not in billed]
