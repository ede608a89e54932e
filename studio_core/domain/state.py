"""In-memory projection of the persisted record set"""

import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from studio_core.domain.models import AttendanceRecord, ClassGroup, MakeupCredit, Payment, Student


@dataclass
class StudioState:
    """
    Owned mirror of storage read by the UI layer.

    Only AttendanceLedger, BillingScheduleEngine and StudentRoster mutate it,
    and only after the matching storage call has succeeded.
    """

    students: List[Student] = field(default_factory=list)
    classes: List[ClassGroup] = field(default_factory=list)
    attendance: List[AttendanceRecord] = field(default_factory=list)
    credits: List[MakeupCredit] = field(default_factory=list)
    payments: List[Payment] = field(default_factory=list)

    def student(self, student_id: uuid.UUID) -> Optional[Student]:
        return next((s for s in self.students if s.id == student_id), None)

    def class_group(self, class_id: uuid.UUID) -> Optional[ClassGroup]:
        return next((c for c in self.classes if c.id == class_id), None)

    def payment(self, payment_id: uuid.UUID) -> Optional[Payment]:
        return next((p for p in self.payments if p.id == payment_id), None)

    def students_by_id(self) -> Dict[uuid.UUID, Student]:
        return {s.id: s for s in self.students}
