"""Monthly billing schedule generation"""

import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import List, Optional

from studio_core.domain.models import Payment, PaymentEntry, PaymentStatus
from studio_core.utils.date_utils import add_months, clamped_date, iter_months, month_ref

STATUS_PAID = "Paid"
STATUS_OVERDUE = "Overdue"
STATUS_DUE_TODAY = "Due today"
STATUS_DUE_TOMORROW = "Due tomorrow"
STATUS_PENDING = "Pending"


def generate_enrollment_schedule(
    student_id: uuid.UUID,
    due_day: int,
    amount: Optional[Decimal],
    today: date | None = None,
    months: int = 12,
) -> List[PaymentEntry]:
    """
    Generate the dues created when a student enrolls.

    - One upfront payment for the current month, dated today and already paid
    - One pending payment per following month (12 by default), due on
      due_day clamped to the length of that month

    Example:
        today=2025-01-15, due_day=31 →
        2025-01-15 (paid), 2025-02-28, 2025-03-31, 2025-04-30, ... 2026-01-31
    """
    if today is None:
        today = date.today()

    entries = [
        PaymentEntry(
            student_id=student_id,
            due_date=today,
            month_ref=month_ref(today),
            amount=amount,
            status=PaymentStatus.PAID,
            paid_at=datetime.combine(today, time.min),
        )
    ]

    first_year, first_month = add_months(today.year, today.month - 1, 1)
    for year, month in iter_months(first_year, first_month, months):
        due = clamped_date(year, month, due_day)
        entries.append(
            PaymentEntry(student_id=student_id, due_date=due, month_ref=month_ref(due), amount=amount)
        )

    return entries


def generate_repeating_schedule(
    student_id: uuid.UUID,
    start: date,
    amount: Optional[Decimal],
    repeat_until_end_of_year: bool = False,
) -> List[PaymentEntry]:
    """
    Generate pending dues from a single input date.

    The day of start is the desired due day. Without repeat only start's month
    is produced; with repeat every month through December of start's year is,
    each clamped to that month's length.
    """
    first_month = start.month - 1
    last_month = 11 if repeat_until_end_of_year else first_month

    entries = []
    for month in range(first_month, last_month + 1):
        due = clamped_date(start.year, month, start.day)
        entries.append(
            PaymentEntry(student_id=student_id, due_date=due, month_ref=month_ref(due), amount=amount)
        )
    return entries


def reclamp_due_date(due_date: date, new_day: int) -> date:
    """Move a due date to new_day within its own month"""
    return clamped_date(due_date.year, due_date.month - 1, new_day)


def is_overdue(payment: Payment, today: date) -> bool:
    return payment.status == PaymentStatus.PENDING and payment.due_date < today


def display_status(payment: Payment, today: date | None = None) -> str:
    """Label shown next to a payment; never persisted"""
    if today is None:
        today = date.today()

    if payment.status == PaymentStatus.PAID:
        return STATUS_PAID
    if payment.due_date < today:
        return STATUS_OVERDUE
    if payment.due_date == today:
        return STATUS_DUE_TODAY
    if payment.due_date == today + timedelta(days=1):
        return STATUS_DUE_TOMORROW
    return STATUS_PENDING
