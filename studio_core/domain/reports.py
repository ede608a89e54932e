"""Dashboard and payment statistics derived from the projection"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List

from studio_core.domain.models import AttendanceStatus, Payment, PaymentStatus
from studio_core.domain.schedule import is_overdue
from studio_core.domain.state import StudioState
from studio_core.utils.date_utils import last_n_months, month_ref, week_day


@dataclass
class DashboardSummary:
    active_students: int
    classes_today: int
    expected_students_today: int
    confirmed_attendance_today: int
    pending_makeups: int
    monthly_presences: Dict[str, int] = field(default_factory=dict)  # YYYY-MM -> count


@dataclass
class PaymentBucket:
    count: int = 0
    amount: Decimal = Decimal("0")

    def add(self, payment: Payment) -> None:
        self.count += 1
        self.amount += payment.amount or Decimal("0")


@dataclass
class PaymentYearStats:
    year: int
    total: PaymentBucket = field(default_factory=PaymentBucket)
    paid: PaymentBucket = field(default_factory=PaymentBucket)
    pending: PaymentBucket = field(default_factory=PaymentBucket)
    overdue: PaymentBucket = field(default_factory=PaymentBucket)  # subset of pending


def dashboard_summary(state: StudioState, today: date | None = None, history_months: int = 6) -> DashboardSummary:
    """
    Headline numbers for the studio's front page.

    Expected students counts active members whose first home class meets
    today. Monthly presences cover the last history_months months including
    the current one, oldest first.
    """
    if today is None:
        today = date.today()

    classes_today = [c for c in state.classes if c.day_of_week == week_day(today)]
    class_ids_today = {c.id for c in classes_today}

    presences: Dict[str, int] = {key: 0 for key in last_n_months(today, history_months)}
    confirmed_today = 0
    for record in state.attendance:
        if record.status != AttendanceStatus.PRESENT:
            continue
        if record.date == today:
            confirmed_today += 1
        key = month_ref(record.date)
        if key in presences:
            presences[key] += 1

    return DashboardSummary(
        active_students=sum(1 for s in state.students if s.active),
        classes_today=len(classes_today),
        expected_students_today=sum(1 for s in state.students if s.active and s.class_id in class_ids_today),
        confirmed_attendance_today=confirmed_today,
        pending_makeups=sum(1 for c in state.credits if not c.is_used),
        monthly_presences=presences,
    )


def payment_year_stats(payments: List[Payment], year: int, today: date | None = None) -> PaymentYearStats:
    """Counts and amounts of a calendar year's dues by status"""
    if today is None:
        today = date.today()

    stats = PaymentYearStats(year=year)
    for payment in payments:
        if payment.due_date.year != year:
            continue
        stats.total.add(payment)
        if payment.status == PaymentStatus.PAID:
            stats.paid.add(payment)
        else:
            stats.pending.add(payment)
            if is_overdue(payment, today):
                stats.overdue.add(payment)
    return stats
