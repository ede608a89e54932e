"""Attendance marks and makeup seats"""

from fastapi import APIRouter, Depends, Request

from studio_core.api.dependencies import get_request_id, get_studio, to_http_error
from studio_core.api.v1.schemas import AttendanceMarkRequest, AttendanceResponse, MakeupSeatRequest
from studio_core.domain.exceptions import DomainException
from studio_core.domain.models import AttendanceRecord
from studio_core.services.studio import Studio

router = APIRouter()


def attendance_response(record: AttendanceRecord) -> AttendanceResponse:
    return AttendanceResponse(
        id=record.id,
        date=record.date,
        student_id=record.student_id,
        class_id=record.class_id,
        status=record.status.value,
    )


@router.post("/attendance", response_model=AttendanceResponse)
def mark_attendance(body: AttendanceMarkRequest, request: Request, studio: Studio = Depends(get_studio)):
    """Record or correct a mark; the makeup-credit bank follows"""
    try:
        record = studio.ledger.mark_attendance(body.date, body.student_id, body.status, body.class_id)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))
    return attendance_response(record)


@router.post("/attendance/makeup", response_model=AttendanceResponse)
def add_makeup_student(body: MakeupSeatRequest, request: Request, studio: Studio = Depends(get_studio)):
    """Seat a student with credit in another class; no credit is spent yet"""
    try:
        record = studio.ledger.add_makeup_student(body.date, body.student_id, body.class_id)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))
    return attendance_response(record)
