"""
Professional-facing API endpoints: timeslots, weekly schedule, breaks and
the professional's view of the waitlist.

Authentication and role checks are handled upstream; these routes assume the
caller may act on the professional in the path.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.orm import Session

from api.responses import (
    BreakCreateRequest, BreakResponse, ScheduleDayResponse, SlotResponse,
    WaitlistEntryResponse, WeeklyScheduleRequest,
)
from core.database import get_db
from core.exceptions import ValidationError
from services.availability_service import AvailabilityService
from services.catalog_service import CatalogService
from services.notification_service import get_notification_dispatcher
from services.schedule_service import ScheduleService
from services.waitlist_service import WaitlistService
from utils.datetime_utils import parse_date_string

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_date_param(value: str, name: str):
    try:
        return parse_date_string(value)
    except ValueError:
        raise ValidationError(f"Invalid {name} (expected YYYY-MM-DD)")


# ===== Timeslots =====

@router.get("/{professional_id}/timeslots", summary="List bookable slots", response_model=List[SlotResponse])
def get_timeslots(
    professional_id: int,
    from_date: str = Query(..., alias="fromDate"),
    to_date: str = Query(..., alias="toDate"),
    professional_service_id: Optional[int] = Query(None, alias="professionalServiceId"),
    exclude_appointment_id: Optional[int] = Query(None, alias="excludeAppointmentId"),
    db: Session = Depends(get_db)
) -> List[SlotResponse]:
    """
    Get the bookable slots of a professional between fromDate and toDate (inclusive).

    The optional service selects the slot duration and buffer; an excluded
    appointment does not block slots (used when rescheduling it).
    """
    start = _parse_date_param(from_date, "fromDate")
    end = _parse_date_param(to_date, "toDate")
    AvailabilityService.validate_date_range(start, end)

    slots = AvailabilityService.generate_slots(
        db,
        professional_id,
        start,
        end,
        service_id=professional_service_id,
        exclude_appointment_id=exclude_appointment_id,
    )
    return [SlotResponse.model_validate(slot.to_dict()) for slot in slots]


# ===== Weekly schedule =====

@router.get("/{professional_id}/schedule", summary="Get weekly schedule", response_model=List[ScheduleDayResponse])
def get_schedule(professional_id: int, db: Session = Depends(get_db)) -> List[ScheduleDayResponse]:
    CatalogService.get_professional(db, professional_id)
    windows = ScheduleService.get_weekly_schedule(db, professional_id)
    return [ScheduleDayResponse.from_model(w) for w in windows]


@router.put("/{professional_id}/schedule", summary="Replace weekly schedule", response_model=List[ScheduleDayResponse])
def update_schedule(
    professional_id: int,
    request: WeeklyScheduleRequest,
    db: Session = Depends(get_db)
) -> List[ScheduleDayResponse]:
    """Replace the weekly schedule; weekdays not enabled in the request become unavailable."""
    windows = ScheduleService.update_weekly_schedule(
        db, professional_id, [day.model_dump() for day in request.days]
    )
    return [ScheduleDayResponse.from_model(w) for w in windows]


# ===== Breaks =====

@router.post(
    "/{professional_id}/breaks",
    summary="Create a break",
    response_model=BreakResponse,
    status_code=status.HTTP_201_CREATED
)
def create_break(
    professional_id: int,
    request: BreakCreateRequest,
    db: Session = Depends(get_db)
) -> BreakResponse:
    break_interval = ScheduleService.create_break(
        db, professional_id, request.date, request.start_time, request.end_time, request.reason
    )
    return BreakResponse.from_model(break_interval)


@router.get("/{professional_id}/breaks", summary="List breaks", response_model=List[BreakResponse])
def list_breaks(
    professional_id: int,
    from_date: str = Query(..., alias="fromDate"),
    to_date: str = Query(..., alias="toDate"),
    db: Session = Depends(get_db)
) -> List[BreakResponse]:
    start = _parse_date_param(from_date, "fromDate")
    end = _parse_date_param(to_date, "toDate")
    if end < start:
        raise ValidationError("toDate must not be before fromDate")
    CatalogService.get_professional(db, professional_id)
    breaks = ScheduleService.list_breaks(db, professional_id, start, end)
    return [BreakResponse.from_model(b) for b in breaks]


@router.delete(
    "/{professional_id}/breaks/{break_id}",
    summary="Delete a break",
    status_code=status.HTTP_204_NO_CONTENT
)
def delete_break(professional_id: int, break_id: int, db: Session = Depends(get_db)) -> Response:
    ScheduleService.delete_break(db, professional_id, break_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ===== Waitlist (professional view) =====

@router.get("/{professional_id}/waitlist", summary="List waitlist entries", response_model=List[WaitlistEntryResponse])
def list_waitlist(
    professional_id: int,
    background_tasks: BackgroundTasks,
    entry_status: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    dispatch_notifications=Depends(get_notification_dispatcher)
) -> List[WaitlistEntryResponse]:
    """FIFO-ordered waitlist; stale offers are expired (and cascaded) first."""
    entries = WaitlistService.list_entries(db, professional_id, status=entry_status)
    background_tasks.add_task(dispatch_notifications)
    return [WaitlistEntryResponse.from_model(e) for e in entries]


@router.patch(
    "/{professional_id}/waitlist/{entry_id}/cancel",
    summary="Cancel a waitlist entry",
    response_model=WaitlistEntryResponse
)
def cancel_waitlist_entry(
    professional_id: int,
    entry_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatch_notifications=Depends(get_notification_dispatcher)
) -> WaitlistEntryResponse:
    """Cancel a pending or notified entry; a cancelled offer cascades to the next entry."""
    entry = WaitlistService.cancel_entry_by_id(db, professional_id, entry_id)
    background_tasks.add_task(dispatch_notifications)
    return WaitlistEntryResponse.from_model(entry)
