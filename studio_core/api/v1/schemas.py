"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PausePeriodSchema(BaseModel):
    start_date: date
    end_date: date


class StudentCreate(BaseModel):
    """Request body for POST /v1/students"""

    name: str = Field(..., min_length=1)
    birth_date: Optional[date] = None
    parent_name: Optional[str] = None
    phone: Optional[str] = None
    class_id: Optional[uuid.UUID] = None
    class_id_2: Optional[uuid.UUID] = None
    plan: str = Field("1x", pattern="^(1x|2x)$")
    monthly_fee: Optional[Decimal] = Field(None, ge=0)
    due_day: Optional[int] = Field(None, ge=1, le=31)
    pause_period: Optional[PausePeriodSchema] = None
    active: bool = True


class StudentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    active: bool
    birth_date: Optional[date] = None
    parent_name: Optional[str] = None
    phone: Optional[str] = None
    class_id: Optional[uuid.UUID] = None
    class_id_2: Optional[uuid.UUID] = None
    plan: str
    monthly_fee: Optional[Decimal] = None
    due_day: int
    pause_period: Optional[PausePeriodSchema] = None
    age: Optional[int] = None


class PaymentResponse(BaseModel):
    id: uuid.UUID
    student_id: uuid.UUID
    amount: Optional[Decimal] = None
    due_date: date
    status: str
    paid_at: Optional[datetime] = None
    month_ref: str
    display_status: str


class EnrollmentResponse(BaseModel):
    """Response for POST /v1/students"""

    student: StudentResponse
    payments: List[PaymentResponse]
    billing_error: Optional[str] = None


class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1)
    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday .. 6=Saturday")
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    activities: List[str] = Field(default_factory=list)


class ClassResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    day_of_week: int
    time: str
    activities: List[str]


class RosterResponse(BaseModel):
    """Response for GET /v1/classes/{class_id}/roster"""

    class_id: uuid.UUID
    date: date
    regular: List[StudentResponse]
    makeup: List[StudentResponse]


class AttendanceMarkRequest(BaseModel):
    date: date
    student_id: uuid.UUID
    class_id: uuid.UUID
    status: str = Field(..., pattern="^(present|absent|makeup)$")


class MakeupSeatRequest(BaseModel):
    date: date
    student_id: uuid.UUID
    class_id: uuid.UUID


class AttendanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    date: date
    student_id: uuid.UUID
    class_id: uuid.UUID
    status: str


class CreditResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    generated_from_date: date
    origin_class_id: Optional[uuid.UUID] = None
    used_at_date: Optional[date] = None


class CreditsResponse(BaseModel):
    """Response for GET /v1/students/{student_id}/credits"""

    student_id: uuid.UUID
    balance: int
    credits: List[CreditResponse]
    monthly_presences: int
    plan_limit: int
    plan_limit_reached: bool


class PaymentCreateRequest(BaseModel):
    """Request body for POST /v1/payments"""

    student_id: uuid.UUID
    date: date
    amount: Optional[Decimal] = Field(None, ge=0)
    repeat_until_end_of_year: bool = False


class PaymentUpdateRequest(BaseModel):
    due_date: date
    amount: Optional[Decimal] = Field(None, ge=0)
    update_future: bool = False


class RescheduleRequest(BaseModel):
    """Request body for POST /v1/students/{student_id}/payments/reschedule"""

    from_date: date
    new_day: int = Field(..., ge=1, le=31)
    new_amount: Optional[Decimal] = Field(None, ge=0)


class BatchResponse(BaseModel):
    matched: int
    succeeded: List[uuid.UUID]
    failed: List[uuid.UUID]


class PaymentUpdateResponse(BaseModel):
    payment: PaymentResponse
    future: Optional[BatchResponse] = None


class DashboardResponse(BaseModel):
    active_students: int
    classes_today: int
    expected_students_today: int
    confirmed_attendance_today: int
    pending_makeups: int
    monthly_presences: Dict[str, int]
