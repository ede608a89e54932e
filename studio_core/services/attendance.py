"""Attendance ledger: daily marks and the makeup-credit bank they imply"""

import logging
import uuid
from datetime import date
from typing import List, Optional

from studio_core.config import Settings, settings as default_settings
from studio_core.domain import credits
from studio_core.domain.credits import CreditEffect
from studio_core.domain.exceptions import ValidationError
from studio_core.domain.models import (
    AttendanceRecord,
    AttendanceStatus,
    ClassGroup,
    ClassRoster,
    MakeupCredit,
    PlanType,
    Student,
)
from studio_core.domain.state import StudioState
from studio_core.domain.storage import ATTENDANCE, MAKEUP_CREDITS, RecordStorage
from studio_core.infrastructure.observability.logging import log_attendance_mark
from studio_core.infrastructure.observability.metrics import attendance_mark_counter, record_credit_effect
from studio_core.utils.date_utils import is_within, parse_date, week_day

logger = logging.getLogger(__name__)


def is_paused(student: Student, on_date: date) -> bool:
    """True when on_date falls inside the student's pause period (inclusive)"""
    if not student.pause_period:
        return False
    return is_within(on_date, student.pause_period.start_date, student.pause_period.end_date)


class AttendanceLedger:
    """Single source of truth for who attended what, and the credits that follow"""

    def __init__(self, state: StudioState, store: RecordStorage, config: Settings | None = None):
        self.state = state
        self.store = store
        self.config = config or default_settings

    def _require_student(self, student_id: uuid.UUID) -> Student:
        student = self.state.student(student_id)
        if student is None:
            raise ValidationError(f"Unknown student: {student_id}")
        return student

    def _require_class(self, class_id: uuid.UUID) -> ClassGroup:
        class_group = self.state.class_group(class_id)
        if class_group is None:
            raise ValidationError(f"Unknown class: {class_id}")
        return class_group

    def _check_preconditions(self, student: Student, class_group: ClassGroup, on_date: date) -> None:
        if self.config.enforce_pause_period and is_paused(student, on_date):
            raise ValidationError(f"{student.name} is paused on {on_date.isoformat()}")
        if self.config.enforce_class_weekday and class_group.day_of_week != week_day(on_date):
            raise ValidationError(f"{class_group.name} does not meet on {on_date.isoformat()}")

    def _existing_record(self, on_date: date, student_id: uuid.UUID, class_id: uuid.UUID) -> Optional[AttendanceRecord]:
        records = self.store.select_all(
            ATTENDANCE,
            {"date": on_date, "student_id": student_id, "class_id": class_id},
        )
        return records[0] if records else None

    def mark_attendance(
        self,
        on_date: date | str,
        student_id: uuid.UUID,
        status: AttendanceStatus | str,
        class_id: uuid.UUID,
    ) -> AttendanceRecord:
        """
        Record a presence/absence verdict for a student in a class on a date.

        Any previous mark for the same (date, student, class) is replaced, and
        the credit bank is adjusted according to credits.transition():
        an absence in a home class emits one credit, correcting that absence
        retracts the credit if unused, and a presence in a non-home class
        consumes the oldest unused credit when one exists.

        All storage calls run in one atomic block. On StorageError nothing in
        the projection changes.

        Raises:
            ValidationError: Unknown student, class or status, or a missing date
            StorageError: The store rejected one of the writes
        """
        if not on_date:
            raise ValidationError("Attendance date is required")
        try:
            on_date = parse_date(on_date)
            status = AttendanceStatus(status)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        student = self._require_student(student_id)
        class_group = self._require_class(class_id)
        self._check_preconditions(student, class_group, on_date)

        is_makeup_class = class_id not in student.home_class_ids
        existing = self._existing_record(on_date, student_id, class_id)
        effect = credits.transition(existing.status if existing else None, status, is_makeup_class)

        emitted: Optional[MakeupCredit] = None
        consumed: Optional[MakeupCredit] = None
        retracted = False

        with self.store.atomic():
            if existing:
                self.store.delete(ATTENDANCE, existing.id)

            record = self.store.insert(
                ATTENDANCE,
                {"date": on_date, "student_id": student_id, "class_id": class_id, "status": status},
            )

            if effect == CreditEffect.EMIT:
                already_issued = self.store.select_all(
                    MAKEUP_CREDITS, {"student_id": student_id, "generated_from_date": on_date}
                )
                if already_issued:
                    effect = CreditEffect.NONE
                else:
                    emitted = self.store.insert(
                        MAKEUP_CREDITS,
                        {"student_id": student_id, "generated_from_date": on_date, "origin_class_id": class_id},
                    )

            elif effect == CreditEffect.RETRACT:
                # The day's credit stays while another home-class absence still backs it
                other_absences = [
                    r
                    for r in self.store.select_all(
                        ATTENDANCE,
                        {"student_id": student_id, "date": on_date, "status": AttendanceStatus.ABSENT},
                    )
                    if r.class_id != class_id and r.class_id in student.home_class_ids
                ]
                if not other_absences:
                    retracted = bool(
                        self.store.delete_where(
                            MAKEUP_CREDITS,
                            {"student_id": student_id, "generated_from_date": on_date, "used_at_date__isnull": True},
                        )
                    )
                if not retracted:
                    effect = CreditEffect.NONE

            elif effect == CreditEffect.CONSUME:
                available = self.store.select_all(
                    MAKEUP_CREDITS,
                    {"student_id": student_id, "used_at_date__isnull": True},
                    order_by="generated_from_date",
                )
                consumed = credits.oldest_unused(available)
                if consumed is None:
                    effect = CreditEffect.NONE
                else:
                    self.store.update(MAKEUP_CREDITS, consumed.id, {"used_at_date": on_date})

        # Storage succeeded; publish to the projection
        self.state.attendance = [
            r
            for r in self.state.attendance
            if not (r.date == on_date and r.student_id == student_id and r.class_id == class_id)
        ]
        self.state.attendance.append(record)

        if emitted:
            self.state.credits.append(emitted)
        elif retracted:
            self.state.credits = [
                c
                for c in self.state.credits
                if c.is_used or not (c.student_id == student_id and c.generated_from_date == on_date)
            ]
        elif consumed:
            for credit in self.state.credits:
                if credit.id == consumed.id:
                    credit.used_at_date = on_date

        attendance_mark_counter.labels(status=status.value).inc()
        record_credit_effect(effect.value)
        log_attendance_mark(str(student_id), str(class_id), on_date.isoformat(), status.value, effect.value)

        return record

    def add_makeup_student(
        self,
        on_date: date | str,
        student_id: uuid.UUID,
        target_class_id: uuid.UUID,
    ) -> AttendanceRecord:
        """
        Seat a student in a class they do not normally attend.

        Inserts a record with status makeup; no credit is consumed until a
        presence is marked. If the student already has a record in that
        class on that date it is returned unchanged.
        """
        if not on_date:
            raise ValidationError("Attendance date is required")
        try:
            on_date = parse_date(on_date)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        student = self._require_student(student_id)
        class_group = self._require_class(target_class_id)
        self._check_preconditions(student, class_group, on_date)

        existing = self._existing_record(on_date, student_id, target_class_id)
        if existing:
            return existing

        record = self.store.insert(
            ATTENDANCE,
            {
                "date": on_date,
                "student_id": student_id,
                "class_id": target_class_id,
                "status": AttendanceStatus.MAKEUP,
            },
        )
        self.state.attendance.append(record)
        attendance_mark_counter.labels(status=AttendanceStatus.MAKEUP.value).inc()
        logger.info(
            "Makeup student seated",
            extra={"student_id": str(student_id), "class_id": str(target_class_id), "date": on_date.isoformat()},
        )
        return record

    # Derived views

    def classes_on(self, on_date: date) -> List[ClassGroup]:
        """Classes meeting on on_date's weekday"""
        weekday = week_day(on_date)
        return [c for c in self.state.classes if c.day_of_week == weekday]

    def class_roster(self, class_id: uuid.UUID, on_date: date) -> ClassRoster:
        regular = [
            s
            for s in self.state.students
            if s.active and class_id in s.home_class_ids and not is_paused(s, on_date)
        ]
        regular_ids = {s.id for s in regular}

        by_id = self.state.students_by_id()
        makeup: List[Student] = []
        seen = set()
        for record in self.state.attendance:
            if record.date != on_date or record.class_id != class_id:
                continue
            student = by_id.get(record.student_id)
            if student is None or student.id in regular_ids or student.id in seen:
                continue
            if class_id in student.home_class_ids:
                continue  # home member filtered out above (paused or inactive)
            seen.add(student.id)
            makeup.append(student)

        return ClassRoster(regular=regular, makeup=makeup)

    def status_for(self, student_id: uuid.UUID, class_id: uuid.UUID, on_date: date) -> Optional[AttendanceStatus]:
        for record in self.state.attendance:
            if record.date == on_date and record.student_id == student_id and record.class_id == class_id:
                return record.status
        return None

    def available_credits(self, student_id: uuid.UUID) -> List[MakeupCredit]:
        """Unused credits, oldest first"""
        return sorted(
            (c for c in self.state.credits if c.student_id == student_id and not c.is_used),
            key=lambda c: c.generated_from_date,
        )

    def credit_balance(self, student_id: uuid.UUID) -> int:
        return len(self.available_credits(student_id))

    def students_with_credits(self, class_id: uuid.UUID, on_date: date) -> List[Student]:
        """Candidates for a makeup seat: unused credit, not a home member, not already seated"""
        holders = {c.student_id for c in self.state.credits if not c.is_used}
        roster = self.class_roster(class_id, on_date)
        seated = {s.id for s in roster.regular + roster.makeup}
        return [
            s
            for s in self.state.students
            if s.id in holders and class_id not in s.home_class_ids and s.id not in seated
        ]

    def monthly_present_count(self, student_id: uuid.UUID, year: int, month: int) -> int:
        """Presences in a calendar month (month is 1-12)"""
        return sum(
            1
            for r in self.state.attendance
            if r.student_id == student_id
            and r.status == AttendanceStatus.PRESENT
            and r.date.year == year
            and r.date.month == month
        )

    def plan_limit(self, plan: PlanType) -> int:
        per_week = 2 if plan == PlanType.TWICE_A_WEEK else 1
        return self.config.sessions_per_week_limit * per_week

    def plan_limit_reached(self, student_id: uuid.UUID, on_date: date) -> bool:
        """Advisory flag: on_date's month already holds as many presences as the plan covers"""
        student = self._require_student(student_id)
        count = self.monthly_present_count(student_id, on_date.year, on_date.month)
        return count >= self.plan_limit(student.plan)
