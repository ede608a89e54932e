"""Students, classes, rosters and the dashboard"""

import uuid
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from studio_core.api.dependencies import get_request_id, get_studio, to_http_error
from studio_core.api.v1.payments import payment_response
from studio_core.api.v1.schemas import (
    ClassCreate,
    ClassResponse,
    CreditResponse,
    CreditsResponse,
    DashboardResponse,
    EnrollmentResponse,
    PausePeriodSchema,
    RosterResponse,
    StudentCreate,
    StudentResponse,
)
from studio_core.domain.exceptions import DomainException
from studio_core.domain.models import Student
from studio_core.domain.reports import dashboard_summary
from studio_core.services.studio import Studio

router = APIRouter()


def student_response(student: Student, studio: Studio, today: date) -> StudentResponse:
    pause = None
    if student.pause_period:
        pause = PausePeriodSchema(
            start_date=student.pause_period.start_date,
            end_date=student.pause_period.end_date,
        )
    return StudentResponse(
        id=student.id,
        name=student.name,
        active=student.active,
        birth_date=student.birth_date,
        parent_name=student.parent_name,
        phone=student.phone,
        class_id=student.class_id,
        class_id_2=student.class_id_2,
        plan=student.plan.value,
        monthly_fee=student.monthly_fee,
        due_day=student.due_day,
        pause_period=pause,
        age=studio.roster.age_of(student, today),
    )


@router.post("/students", response_model=EnrollmentResponse)
def enroll_student(body: StudentCreate, request: Request, studio: Studio = Depends(get_studio)):
    """
    Enroll a student and generate their dues.

    A billing failure is reported in billing_error; the student is stored
    regardless.
    """
    data = body.model_dump(exclude_none=True)
    today = date.today()
    try:
        result = studio.roster.enroll_student(data, today=today)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))

    return EnrollmentResponse(
        student=student_response(result.student, studio, today),
        payments=[payment_response(p, today) for p in result.payments],
        billing_error=result.billing_error,
    )


@router.get("/students", response_model=List[StudentResponse])
def list_students(studio: Studio = Depends(get_studio)):
    today = date.today()
    return [student_response(s, studio, today) for s in studio.state.students]


@router.get("/students/{student_id}/credits", response_model=CreditsResponse)
def get_credits(student_id: uuid.UUID, studio: Studio = Depends(get_studio)):
    """Unused makeup credits and this month's presences against the plan"""
    student = studio.state.student(student_id)
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found")

    today = date.today()
    available = studio.ledger.available_credits(student_id)
    return CreditsResponse(
        student_id=student_id,
        balance=len(available),
        credits=[CreditResponse.model_validate(c) for c in available],
        monthly_presences=studio.ledger.monthly_present_count(student_id, today.year, today.month),
        plan_limit=studio.ledger.plan_limit(student.plan),
        plan_limit_reached=studio.ledger.plan_limit_reached(student_id, today),
    )


@router.post("/classes", response_model=ClassResponse)
def add_class(body: ClassCreate, request: Request, studio: Studio = Depends(get_studio)):
    try:
        class_group = studio.roster.add_class(body.model_dump())
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))
    return ClassResponse.model_validate(class_group)


@router.get("/classes", response_model=List[ClassResponse])
def list_classes(studio: Studio = Depends(get_studio)):
    return [ClassResponse.model_validate(c) for c in studio.state.classes]


@router.get("/classes/{class_id}/roster", response_model=RosterResponse)
def get_roster(
    class_id: uuid.UUID,
    on_date: date = Query(..., alias="date"),
    studio: Studio = Depends(get_studio),
):
    """Home members not on pause, plus students seated for a makeup"""
    if studio.state.class_group(class_id) is None:
        raise HTTPException(status_code=404, detail="Class not found")

    roster = studio.ledger.class_roster(class_id, on_date)
    return RosterResponse(
        class_id=class_id,
        date=on_date,
        regular=[student_response(s, studio, on_date) for s in roster.regular],
        makeup=[student_response(s, studio, on_date) for s in roster.makeup],
    )


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(studio: Studio = Depends(get_studio)):
    summary = dashboard_summary(studio.state)
    return DashboardResponse(
        active_students=summary.active_students,
        classes_today=summary.classes_today,
        expected_students_today=summary.expected_students_today,
        confirmed_attendance_today=summary.confirmed_attendance_today,
        pending_makeups=summary.pending_makeups,
        monthly_presences=summary.monthly_presences,
    )
