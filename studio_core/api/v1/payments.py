"""Monthly dues: listing, manual creation, edits, payment and deletion"""

import uuid
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query, Request

from studio_core.api.dependencies import get_request_id, get_studio, to_http_error
from studio_core.api.v1.schemas import (
    BatchResponse,
    PaymentCreateRequest,
    PaymentResponse,
    PaymentUpdateRequest,
    PaymentUpdateResponse,
    RescheduleRequest,
)
from studio_core.domain.exceptions import DomainException
from studio_core.domain.models import BatchResult, Payment
from studio_core.domain.schedule import display_status
from studio_core.services.studio import Studio
from studio_core.utils.date_utils import month_ref

router = APIRouter()


def payment_response(payment: Payment, today: date) -> PaymentResponse:
    return PaymentResponse(
        id=payment.id,
        student_id=payment.student_id,
        amount=payment.amount,
        due_date=payment.due_date,
        status=payment.status.value,
        paid_at=payment.paid_at,
        month_ref=payment.month_ref,
        display_status=display_status(payment, today),
    )


def batch_response(result: BatchResult) -> BatchResponse:
    return BatchResponse(matched=result.matched, succeeded=result.succeeded, failed=result.failed)


@router.get("/payments", response_model=List[PaymentResponse])
def list_payments(
    month: str = Query(None, pattern=r"^\d{4}-\d{2}$", description="YYYY-MM, defaults to the current month"),
    studio: Studio = Depends(get_studio),
):
    today = date.today()
    payments = studio.billing.payments_for_month(month or month_ref(today))
    return [payment_response(p, today) for p in payments]


@router.get("/payments/next", response_model=List[PaymentResponse])
def list_next_due(studio: Studio = Depends(get_studio)):
    """Earliest pending due of each active student"""
    today = date.today()
    return [payment_response(p, today) for p in studio.billing.next_due()]


@router.post("/payments", response_model=List[PaymentResponse])
def create_payments(
    body: PaymentCreateRequest,
    request: Request,
    studio: Studio = Depends(get_studio),
):
    """
    Create dues from a single date.

    The date's day is used as the due day; with repeat_until_end_of_year one
    due is created per month through December, clamped to each month's length.
    """
    try:
        created = studio.billing.create_repeating_payments(
            body.student_id, body.date, body.amount, body.repeat_until_end_of_year
        )
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))
    today = date.today()
    return [payment_response(p, today) for p in created]


@router.patch("/payments/{payment_id}", response_model=PaymentUpdateResponse)
def update_payment(
    payment_id: uuid.UUID,
    body: PaymentUpdateRequest,
    request: Request,
    studio: Studio = Depends(get_studio),
):
    try:
        future = studio.billing.amend_payment(payment_id, body.due_date, body.amount, body.update_future)
        payment = studio.state.payment(payment_id)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))

    return PaymentUpdateResponse(
        payment=payment_response(payment, date.today()),
        future=batch_response(future) if future else None,
    )


@router.post("/payments/{payment_id}/pay", response_model=PaymentResponse)
def pay(payment_id: uuid.UUID, request: Request, studio: Studio = Depends(get_studio)):
    try:
        payment = studio.billing.mark_as_paid(payment_id)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))
    return payment_response(payment, date.today())


@router.delete("/payments/{payment_id}", response_model=BatchResponse)
def delete_payment(
    payment_id: uuid.UUID,
    request: Request,
    delete_future: bool = Query(False, description="Also delete later pending dues of the same student"),
    studio: Studio = Depends(get_studio),
):
    try:
        result = studio.billing.delete_payment(payment_id, delete_future)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))
    return batch_response(result)


@router.post("/students/{student_id}/payments/reschedule", response_model=BatchResponse)
def reschedule(
    student_id: uuid.UUID,
    body: RescheduleRequest,
    request: Request,
    studio: Studio = Depends(get_studio),
):
    """Move every pending due after from_date to new_day of its own month"""
    try:
        result = studio.billing.update_future_payments(student_id, body.from_date, body.new_day, body.new_amount)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))
    return batch_response(result)
