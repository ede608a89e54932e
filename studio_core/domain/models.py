"""Domain models - pure Python dataclasses representing studio records"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class PlanType(str, Enum):
    ONCE_A_WEEK = "1x"
    TWICE_A_WEEK = "2x"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    MAKEUP = "makeup"  # seated in a non-home class, verdict not entered yet


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


@dataclass
class PausePeriod:
    """Inclusive date range during which a student is excluded from attendance"""

    start_date: date
    end_date: date


@dataclass
class Student:
    id: uuid.UUID
    name: str
    active: bool = True
    birth_date: Optional[date] = None
    parent_name: Optional[str] = None
    phone: Optional[str] = None
    class_id: Optional[uuid.UUID] = None
    class_id_2: Optional[uuid.UUID] = None
    plan: PlanType = PlanType.ONCE_A_WEEK
    monthly_fee: Optional[Decimal] = None
    due_day: int = 10
    pause_period: Optional[PausePeriod] = None
    created_at: Optional[datetime] = None

    @property
    def home_class_ids(self) -> List[uuid.UUID]:
        """class_id, plus class_id_2 when the student is on the twice-a-week plan"""
        ids = [self.class_id] if self.class_id else []
        if self.plan == PlanType.TWICE_A_WEEK and self.class_id_2:
            ids.append(self.class_id_2)
        return ids


@dataclass
class ClassGroup:
    id: uuid.UUID
    name: str
    day_of_week: int  # 0=Sunday .. 6=Saturday
    time: str  # "14:00"
    activities: List[str] = field(default_factory=list)


@dataclass
class AttendanceRecord:
    id: uuid.UUID
    date: date
    student_id: uuid.UUID
    class_id: uuid.UUID
    status: AttendanceStatus
    notes: Optional[str] = None


@dataclass
class MakeupCredit:
    """Entitlement to one session outside the home class, earned by an absence"""

    id: uuid.UUID
    student_id: uuid.UUID
    generated_from_date: date
    origin_class_id: Optional[uuid.UUID] = None
    used_at_date: Optional[date] = None
    expires_at: Optional[date] = None  # reserved, not enforced

    @property
    def is_used(self) -> bool:
        return self.used_at_date is not None


@dataclass
class Payment:
    id: uuid.UUID
    student_id: uuid.UUID
    due_date: date
    month_ref: str  # YYYY-MM of due_date
    status: PaymentStatus = PaymentStatus.PENDING
    amount: Optional[Decimal] = None
    paid_at: Optional[datetime] = None


@dataclass
class PaymentEntry:
    """Payment to be created; has no id until stored"""

    student_id: uuid.UUID
    due_date: date
    month_ref: str
    amount: Optional[Decimal] = None
    status: PaymentStatus = PaymentStatus.PENDING
    paid_at: Optional[datetime] = None


@dataclass
class BatchResult:
    """Outcome of a non-transactional multi-record operation"""

    matched: int = 0
    succeeded: List[uuid.UUID] = field(default_factory=list)
    failed: List[uuid.UUID] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failed)


@dataclass
class ClassRoster:
    """Students to be called for a class on a date"""

    regular: List[Student] = field(default_factory=list)
    makeup: List[Student] = field(default_factory=list)
