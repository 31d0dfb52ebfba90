"""
Waitlist API endpoints for clients.

A client joins a professional's waitlist and receives an opaque token. When a
matching slot frees up the entry is offered the slot through a priority link;
the token holder can then confirm (book) or release it within the offer
window.
"""

import logging
from datetime import date, time
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from api.responses import (
    AppointmentResponse, CamelModel, WaitlistEntryResponse,
    parse_optional_time, parse_required_date,
)
from core.database import get_db
from services.notification_service import get_notification_dispatcher
from services.plan_limit_service import get_plan_limit_policy
from services.waitlist_service import WaitlistService
from utils.phone_validator import validate_phone

logger = logging.getLogger(__name__)

router = APIRouter()


class WaitlistJoinRequest(CamelModel):
    """Request body for joining a professional's waitlist."""
    professional_id: int
    first_name: str
    last_name: str
    phone: str
    email: Optional[str] = None
    preferred_date: date
    preferred_time_start: Optional[time] = None
    preferred_time_end: Optional[time] = None
    professional_service_id: Optional[int] = None
    notes: Optional[str] = None

    @field_validator('preferred_date', mode='before')
    @classmethod
    def validate_date(cls, v: object) -> date:
        return parse_required_date(v)

    @field_validator('preferred_time_start', 'preferred_time_end', mode='before')
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

    @field_validator('phone')
    @classmethod
    def validate_phone_number(cls, v: str) -> str:
        return validate_phone(v)


@router.post(
    "",
    summary="Join a waitlist",
    response_model=WaitlistEntryResponse,
    status_code=status.HTTP_201_CREATED
)
def join_waitlist(
    request: WaitlistJoinRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatch_notifications=Depends(get_notification_dispatcher)
) -> WaitlistEntryResponse:
    """Create a pending entry; the response carries the holder's token."""
    entry = WaitlistService.create_entry(
        db,
        professional_id=request.professional_id,
        first_name=request.first_name,
        last_name=request.last_name,
        phone=request.phone,
        preferred_date=request.preferred_date,
        email=request.email,
        preferred_time_start=request.preferred_time_start,
        preferred_time_end=request.preferred_time_end,
        service_id=request.professional_service_id,
        notes=request.notes,
    )
    background_tasks.add_task(dispatch_notifications)
    return WaitlistEntryResponse.from_model(entry, include_token=True)


@router.get(
    "/priority/{token}",
    summary="Get a priority offer",
    response_model=WaitlistEntryResponse
)
def get_priority_offer(
    token: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatch_notifications=Depends(get_notification_dispatcher)
) -> WaitlistEntryResponse:
    """Look up an entry by token; a stale offer is expired (and cascaded) on read."""
    entry = WaitlistService.get_entry_by_token(db, token)
    background_tasks.add_task(dispatch_notifications)
    return WaitlistEntryResponse.from_model(entry, include_token=True)


@router.post(
    "/priority/{token}/confirm",
    summary="Confirm a priority offer",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED
)
def confirm_priority_offer(
    token: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    policy=Depends(get_plan_limit_policy),
    dispatch_notifications=Depends(get_notification_dispatcher)
) -> AppointmentResponse:
    """
    Book the offered slot.

    Responds 410 once the offer expired and 400 if the entry is not awaiting
    confirmation.
    """
    appointment = WaitlistService.confirm_entry(db, token, policy=policy)
    background_tasks.add_task(dispatch_notifications)
    return AppointmentResponse.from_model(appointment)


@router.post(
    "/priority/{token}/release",
    summary="Release a priority offer",
    response_model=WaitlistEntryResponse
)
def release_priority_offer(
    token: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatch_notifications=Depends(get_notification_dispatcher)
) -> WaitlistEntryResponse:
    """Give the slot up; it is offered to the next matching entry."""
    entry = WaitlistService.release_entry(db, token)
    background_tasks.add_task(dispatch_notifications)
    return WaitlistEntryResponse.from_model(entry, include_token=True)


@router.delete("/{token}", summary="Leave a waitlist", response_model=WaitlistEntryResponse)
def leave_waitlist(
    token: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatch_notifications=Depends(get_notification_dispatcher)
) -> WaitlistEntryResponse:
    entry = WaitlistService.cancel_entry(db, token)
    background_tasks.add_task(dispatch_notifications)
    return WaitlistEntryResponse.from_model(entry, include_token=True)
