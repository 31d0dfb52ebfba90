"""
Shared request/response models for API endpoints.

The public wire format is camelCase with ISO dates (YYYY-MM-DD) and
zero-padded 24h times (HH:MM); Python attributes stay snake_case.
"""

from datetime import date, date as date_type, datetime, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from models import Appointment, BreakInterval, ScheduleWindow, WaitlistEntry
from utils.datetime_utils import format_time, parse_date_string, parse_time_string


class CamelModel(BaseModel):
    """Base model serialized with camelCase field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def parse_optional_time(v: Optional[object]) -> Optional[time]:
    """Validator helper: accept "HH:MM" strings, time objects or None."""
    if v is None or isinstance(v, time):
        return v
    if isinstance(v, str):
        if not v.strip():
            return None
        return parse_time_string(v)
    raise ValueError('Time must be a "HH:MM" string')


def parse_required_date(v: object) -> date:
    """Validator helper: accept "YYYY-MM-DD" strings or date objects."""
    if isinstance(v, date) and not isinstance(v, datetime):
        return v
    if isinstance(v, str):
        return parse_date_string(v)
    raise ValueError('Date must be a "YYYY-MM-DD" string')


def _fmt(value: Optional[time]) -> Optional[str]:
    return format_time(value) if value is not None else None


# ===== Slots =====

class SlotResponse(CamelModel):
    """A bookable slot."""
    slot_date: str  # Format: "YYYY-MM-DD"
    start_time: str  # Format: "HH:MM"
    end_time: str  # Format: "HH:MM"


# ===== Schedule =====

class ScheduleDayRequest(CamelModel):
    """One weekday of the weekly schedule (0=Sunday)."""
    day_of_week: int
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_available: bool = True

    @field_validator('start_time', 'end_time', mode='before')
    @classmethod
    def validate_time(cls, v: object) -> Optional[time]:
        return parse_optional_time(v)


class WeeklyScheduleRequest(CamelModel):
    """The complete weekly schedule; omitted weekdays are unavailable."""
    days: List[ScheduleDayRequest]


class ScheduleDayResponse(CamelModel):
    day_of_week: int
    start_time: str
    end_time: str
    is_available: bool

    @classmethod
    def from_model(cls, window: ScheduleWindow) -> "ScheduleDayResponse":
        return cls(
            day_of_week=window.day_of_week,
            start_time=format_time(window.start_time),
            end_time=format_time(window.end_time),
            is_available=window.is_available,
        )


class BreakCreateRequest(CamelModel):
    date: date_type
    start_time: time
    end_time: time
    reason: Optional[str] = None

    @field_validator('date', mode='before')
    @classmethod
    def validate_date(cls, v: object) -> date_type:
        return parse_required_date(v)

    @field_validator('start_time', 'end_time', mode='before')
    @classmethod
    def validate_time(cls, v: object) -> Optional[time]:
        return parse_optional_time(v)


class BreakResponse(CamelModel):
    id: int
    professional_id: int
    date: str
    start_time: str
    end_time: str
    reason: Optional[str] = None

    @classmethod
    def from_model(cls, break_interval: BreakInterval) -> "BreakResponse":
        return cls(
            id=break_interval.id,
            professional_id=break_interval.professional_id,
            date=break_interval.date.isoformat(),
            start_time=format_time(break_interval.start_time),
            end_time=format_time(break_interval.end_time),
            reason=break_interval.reason,
        )


# ===== Appointments =====

class AppointmentResponse(CamelModel):
    """Response model for an appointment."""
    id: int
    professional_id: int
    patient_id: int
    professional_service_id: Optional[int] = None
    appointment_date: str
    start_time: str
    end_time: str
    status: str
    cancellation_token: str
    rescheduled_from_id: Optional[int] = None
    rescheduled_by: Optional[str] = None
    rescheduled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_model(cls, appointment: Appointment) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            professional_id=appointment.professional_id,
            patient_id=appointment.patient_id,
            professional_service_id=appointment.service_id,
            appointment_date=appointment.date.isoformat(),
            start_time=format_time(appointment.start_time),
            end_time=format_time(appointment.end_time),
            status=appointment.status,
            cancellation_token=appointment.cancellation_token,
            rescheduled_from_id=appointment.rescheduled_from_id,
            rescheduled_by=appointment.rescheduled_by,
            rescheduled_at=appointment.rescheduled_at,
            cancelled_by=appointment.cancelled_by,
            cancelled_at=appointment.cancelled_at,
            notes=appointment.notes,
            created_at=appointment.created_at,
        )


# ===== Waitlist =====

class WaitlistEntryResponse(CamelModel):
    """
    Response model for a waitlist entry.

    ``token`` is only included for the entry's holder (creation and token
    lookups), never in the professional's list.
    """
    id: int
    professional_id: int
    professional_service_id: Optional[int] = None
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: str
    preferred_date: str
    preferred_time_start: Optional[str] = None
    preferred_time_end: Optional[str] = None
    status: str
    token: Optional[str] = None
    notified_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    available_date: Optional[str] = None
    available_start_time: Optional[str] = None
    available_end_time: Optional[str] = None
    fulfilled_appointment_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_model(cls, entry: WaitlistEntry, include_token: bool = False) -> "WaitlistEntryResponse":
        return cls(
            id=entry.id,
            professional_id=entry.professional_id,
            professional_service_id=entry.service_id,
            first_name=entry.first_name,
            last_name=entry.last_name,
            email=entry.email,
            phone=entry.phone,
            preferred_date=entry.preferred_date.isoformat(),
            preferred_time_start=_fmt(entry.preferred_time_start),
            preferred_time_end=_fmt(entry.preferred_time_end),
            status=entry.status,
            token=entry.token if include_token else None,
            notified_at=entry.notified_at,
            expires_at=entry.expires_at,
            available_date=entry.available_date.isoformat() if entry.available_date else None,
            available_start_time=_fmt(entry.available_start_time),
            available_end_time=_fmt(entry.available_end_time),
            fulfilled_appointment_id=entry.fulfilled_appointment_id,
            notes=entry.notes,
            created_at=entry.created_at,
        )
