"""Students and class groups: reference data for attendance and billing"""

import logging
import uuid
from dataclasses import dataclass, field, fields as dataclass_fields
from datetime import date
from typing import Any, Dict, List, Optional

from studio_core.config import Settings, settings as default_settings
from studio_core.domain.exceptions import RecordNotFoundError, StorageError, ValidationError
from studio_core.domain.models import ClassGroup, Payment, PausePeriod, PlanType, Student
from studio_core.domain.state import StudioState
from studio_core.domain.storage import (
    ATTENDANCE,
    CLASSES,
    MAKEUP_CREDITS,
    PAYMENTS,
    STUDENTS,
    RecordStorage,
)
from studio_core.services.billing import BillingScheduleEngine
from studio_core.utils.date_utils import calculate_age

logger = logging.getLogger(__name__)

_STUDENT_FIELDS = {f.name for f in dataclass_fields(Student)} - {"id", "created_at"}
_CLASS_FIELDS = {f.name for f in dataclass_fields(ClassGroup)} - {"id"}


@dataclass
class EnrollmentResult:
    """A stored student plus the outcome of generating their dues"""

    student: Student
    payments: List[Payment] = field(default_factory=list)
    billing_error: Optional[str] = None

    @property
    def billing_ok(self) -> bool:
        return self.billing_error is None


def _clean_student_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(data) - _STUDENT_FIELDS
    if unknown:
        raise ValidationError(f"Unknown student fields: {', '.join(sorted(unknown))}")

    cleaned = dict(data)
    if "name" in cleaned and not (cleaned["name"] or "").strip():
        raise ValidationError("Student name is required")
    if "due_day" in cleaned:
        try:
            cleaned["due_day"] = int(cleaned["due_day"])
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Due day must be a whole number: {cleaned['due_day']!r}") from e
        if not 1 <= cleaned["due_day"] <= 31:
            raise ValidationError("Due day must be between 1 and 31")
    if "plan" in cleaned:
        try:
            cleaned["plan"] = PlanType(cleaned["plan"])
        except ValueError as e:
            raise ValidationError(str(e)) from e
    for key in ("class_id", "class_id_2"):
        # Empty selections from a form mean "no class"
        if key in cleaned and not cleaned[key]:
            cleaned[key] = None

    pause = cleaned.get("pause_period")
    if isinstance(pause, dict):
        pause = PausePeriod(**pause) if pause.get("start_date") and pause.get("end_date") else None
        cleaned["pause_period"] = pause
    if pause and pause.start_date > pause.end_date:
        raise ValidationError("Pause period ends before it starts")
    return cleaned


class StudentRoster:
    """CRUD over students and classes, plus enrollment with its initial dues"""

    def __init__(
        self,
        state: StudioState,
        store: RecordStorage,
        billing: BillingScheduleEngine,
        config: Settings | None = None,
    ):
        self.state = state
        self.store = store
        self.billing = billing
        self.config = config or default_settings

    def load(self) -> StudioState:
        """Replace the projection with the current contents of storage"""
        self.state.students = self.store.select_all(STUDENTS, order_by="name")
        self.state.classes = self.store.select_all(CLASSES, order_by="name")
        self.state.attendance = self.store.select_all(ATTENDANCE)
        self.state.credits = self.store.select_all(MAKEUP_CREDITS)
        self.state.payments = self.store.select_all(PAYMENTS, order_by="due_date")
        return self.state

    def _require_student(self, student_id: uuid.UUID) -> Student:
        student = self.state.student(student_id)
        if student is None:
            raise RecordNotFoundError(f"Student not found: {student_id}")
        return student

    def _require_class(self, class_id: uuid.UUID) -> ClassGroup:
        class_group = self.state.class_group(class_id)
        if class_group is None:
            raise RecordNotFoundError(f"Class not found: {class_id}")
        return class_group

    def enroll_student(
        self,
        data: Dict[str, Any],
        today: date | None = None,
        generate_payments: bool = True,
    ) -> EnrollmentResult:
        """
        Store a new student and generate their enrollment dues.

        A failure to generate the dues does not undo the enrollment: the
        student stays stored and the failure is reported in billing_error.

        Raises:
            ValidationError: Missing name or invalid field values
            StorageError: The student itself could not be stored
        """
        cleaned = _clean_student_fields(data)
        if "name" not in cleaned:
            raise ValidationError("Student name is required")
        cleaned.setdefault("due_day", self.config.default_due_day)
        cleaned.setdefault("active", True)

        student = self.store.insert(STUDENTS, cleaned)
        self.state.students.append(student)
        logger.info("Student enrolled", extra={"student_id": str(student.id)})

        result = EnrollmentResult(student=student)
        if not generate_payments:
            return result

        try:
            result.payments = self.billing.create_enrollment_payments(student, today=today)
        except StorageError as e:
            result.billing_error = str(e)
            logger.warning(
                "Enrollment dues not generated",
                extra={"student_id": str(student.id), "error": str(e)},
            )
        return result

    def update_student(self, student_id: uuid.UUID, data: Dict[str, Any]) -> Student:
        student = self._require_student(student_id)
        cleaned = _clean_student_fields(data)
        if not cleaned:
            return student

        self.store.update(STUDENTS, student_id, cleaned)
        for key, value in cleaned.items():
            setattr(student, key, value)
        return student

    def delete_student(self, student_id: uuid.UUID) -> None:
        self._require_student(student_id)
        self.store.delete(STUDENTS, student_id)
        self.state.students = [s for s in self.state.students if s.id != student_id]

    def add_class(self, data: Dict[str, Any]) -> ClassGroup:
        unknown = set(data) - _CLASS_FIELDS
        if unknown:
            raise ValidationError(f"Unknown class fields: {', '.join(sorted(unknown))}")
        if not (data.get("name") or "").strip():
            raise ValidationError("Class name is required")
        if not 0 <= int(data.get("day_of_week", -1)) <= 6:
            raise ValidationError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")

        class_group = self.store.insert(CLASSES, data)
        self.state.classes.append(class_group)
        return class_group

    def update_class(self, class_id: uuid.UUID, data: Dict[str, Any]) -> ClassGroup:
        class_group = self._require_class(class_id)
        unknown = set(data) - _CLASS_FIELDS
        if unknown:
            raise ValidationError(f"Unknown class fields: {', '.join(sorted(unknown))}")
        if "day_of_week" in data and not 0 <= int(data["day_of_week"]) <= 6:
            raise ValidationError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
        if not data:
            return class_group

        self.store.update(CLASSES, class_id, data)
        for key, value in data.items():
            setattr(class_group, key, value)
        return class_group

    def delete_class(self, class_id: uuid.UUID) -> None:
        self._require_class(class_id)
        self.store.delete(CLASSES, class_id)
        self.state.classes = [c for c in self.state.classes if c.id != class_id]

    def age_of(self, student: Student, today: date | None = None) -> Optional[int]:
        if student.birth_date is None:
            return None
        return calculate_age(student.birth_date, today or date.today())
