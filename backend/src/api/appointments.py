"""
Appointment API endpoints.

Booking, cancellation, rescheduling and deletion. Every mutation commits its
notifications to the outbox and then schedules a best-effort drain in the
background so delivery never blocks the response.
"""

import logging
from datetime import date, time
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from api.responses import AppointmentResponse, CamelModel, parse_optional_time, parse_required_date
from core.database import get_db
from services.appointment_service import AppointmentService
from services.notification_service import get_notification_dispatcher
from services.plan_limit_service import get_plan_limit_policy
from utils.phone_validator import validate_phone_optional

logger = logging.getLogger(__name__)

router = APIRouter()


class AppointmentCreateRequest(CamelModel):
    """Request body for booking an appointment."""
    professional_id: int
    appointment_date: date
    start_time: time
    end_time: time
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    professional_service_id: Optional[int] = None
    notes: Optional[str] = None

    @field_validator('appointment_date', mode='before')
    @classmethod
    def validate_date(cls, v: object) -> date:
        return parse_required_date(v)

    @field_validator('start_time', 'end_time', mode='before')
    @classmethod
    def validate_time(cls, v: object) -> Optional[time]:
        return parse_optional_time(v)

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Name cannot be empty')
        return v

    @field_validator('email')
    @classmethod
    def blank_email_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator('phone')
    @classmethod
    def validate_phone_number(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone_optional(v)


class AppointmentCancelRequest(CamelModel):
    cancelled_by: str = "professional"


class AppointmentRescheduleRequest(CamelModel):
    """Request body for moving an appointment to a new interval."""
    appointment_date: date
    start_time: time
    end_time: time
    rescheduled_by: str = "professional"

    @field_validator('appointment_date', mode='before')
    @classmethod
    def validate_date(cls, v: object) -> date:
        return parse_required_date(v)

    @field_validator('start_time', 'end_time', mode='before')
    @classmethod
    def validate_time(cls, v: object) -> Optional[time]:
        return parse_optional_time(v)


@router.post(
    "",
    summary="Book an appointment",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED
)
def create_appointment(
    request: AppointmentCreateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    policy=Depends(get_plan_limit_policy),
    dispatch_notifications=Depends(get_notification_dispatcher)
) -> AppointmentResponse:
    """
    Book an appointment for a patient.

    Responds 409 when the interval overlaps an active appointment, 400 when it
    is not a bookable slot, and 403 with ``limitReached`` when the plan cap
    is hit.
    """
    appointment = AppointmentService.create_appointment(
        db,
        professional_id=request.professional_id,
        appointment_date=request.appointment_date,
        start_time=request.start_time,
        end_time=request.end_time,
        first_name=request.first_name,
        last_name=request.last_name,
        email=request.email,
        phone=request.phone,
        service_id=request.professional_service_id,
        notes=request.notes,
        policy=policy,
    )
    background_tasks.add_task(dispatch_notifications)
    return AppointmentResponse.from_model(appointment)


@router.get("/{appointment_id}", summary="Get an appointment", response_model=AppointmentResponse)
def get_appointment(appointment_id: int, db: Session = Depends(get_db)) -> AppointmentResponse:
    appointment = AppointmentService.get_appointment(db, appointment_id)
    return AppointmentResponse.from_model(appointment)


@router.patch("/{appointment_id}/cancel", summary="Cancel an appointment", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    background_tasks: BackgroundTasks,
    request: Optional[AppointmentCancelRequest] = None,
    db: Session = Depends(get_db),
    dispatch_notifications=Depends(get_notification_dispatcher)
) -> AppointmentResponse:
    """
    Cancel an appointment.

    Idempotent: cancelling a cancelled appointment returns it unchanged. The
    freed interval is offered to the professional's waitlist.
    """
    cancelled_by = request.cancelled_by if request else "professional"
    appointment = AppointmentService.cancel_appointment(db, appointment_id, cancelled_by=cancelled_by)
    background_tasks.add_task(dispatch_notifications)
    return AppointmentResponse.from_model(appointment)


@router.patch(
    "/{appointment_id}/reschedule",
    summary="Reschedule an appointment",
    response_model=AppointmentResponse
)
def reschedule_appointment(
    appointment_id: int,
    request: AppointmentRescheduleRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatch_notifications=Depends(get_notification_dispatcher)
) -> AppointmentResponse:
    """Move an appointment; returns the new appointment linked to the old one."""
    appointment = AppointmentService.reschedule_appointment(
        db,
        appointment_id,
        new_date=request.appointment_date,
        start_time=request.start_time,
        end_time=request.end_time,
        rescheduled_by=request.rescheduled_by,
    )
    background_tasks.add_task(dispatch_notifications)
    return AppointmentResponse.from_model(appointment)


@router.delete(
    "/{appointment_id}",
    summary="Delete an appointment",
    status_code=status.HTTP_204_NO_CONTENT
)
def delete_appointment(
    appointment_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatch_notifications=Depends(get_notification_dispatcher)
) -> Response:
    AppointmentService.delete_appointment(db, appointment_id)
    background_tasks.add_task(dispatch_notifications)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/cancel/{cancellation_token}",
    summary="Cancel an appointment with its link token",
    response_model=AppointmentResponse
)
def cancel_appointment_by_token(
    cancellation_token: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatch_notifications=Depends(get_notification_dispatcher)
) -> AppointmentResponse:
    """Public self-service cancellation from the link in the confirmation message."""
    appointment = AppointmentService.cancel_appointment_by_token(db, cancellation_token)
    background_tasks.add_task(dispatch_notifications)
    return AppointmentResponse.from_model(appointment)
