"""
Helpers for building test data.

Dates are fixed in 2030 so they stay in the future for API tests that run
against the real clock. 2030-01-07 is a Monday.
"""

import secrets
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from models import (
    Appointment, BreakInterval, Patient, Professional, ProfessionalService, ScheduleWindow, WaitlistEntry,
)
from utils.datetime_utils import to_instant

MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)

# A reference "now" well before the test dates
NOW = to_instant(date(2030, 1, 1), time(8, 0))


def create_professional(
    db_session: Session,
    email: str = "dr.house@example.com",
    appointment_duration: int = 30,
    buffer_time: int = 0,
    plan_type: str = "pro",
    clinic_id: Optional[int] = None,
    **kwargs
) -> Professional:
    """Create an active professional and commit."""
    professional = Professional(
        first_name=kwargs.pop("first_name", "Gregory"),
        last_name=kwargs.pop("last_name", "House"),
        email=email,
        appointment_duration=appointment_duration,
        buffer_time=buffer_time,
        min_advance_minutes=kwargs.pop("min_advance_minutes", 0),
        plan_type=plan_type,
        clinic_id=clinic_id,
        is_active=kwargs.pop("is_active", True),
        **kwargs
    )
    db_session.add(professional)
    db_session.commit()
    return professional


def create_service(
    db_session: Session,
    professional: Professional,
    name: str = "Physiotherapy",
    duration: int = 45,
    buffer_time: int = 15
) -> ProfessionalService:
    service = ProfessionalService(
        professional_id=professional.id,
        name=name,
        duration=duration,
        buffer_time=buffer_time,
        is_visible=True,
    )
    db_session.add(service)
    db_session.commit()
    return service


def add_schedule_window(
    db_session: Session,
    professional: Professional,
    day_of_week: int,
    start_time: time,
    end_time: time
) -> ScheduleWindow:
    """Enable a weekday (0=Sunday) for the professional."""
    window = ScheduleWindow(
        professional_id=professional.id,
        day_of_week=day_of_week,
        start_time=start_time,
        end_time=end_time,
        is_available=True,
    )
    db_session.add(window)
    db_session.commit()
    return window


def add_break(
    db_session: Session,
    professional: Professional,
    break_date: date,
    start_time: time,
    end_time: time
) -> BreakInterval:
    break_interval = BreakInterval(
        professional_id=professional.id,
        date=break_date,
        start_time=start_time,
        end_time=end_time,
        reason="Lunch",
    )
    db_session.add(break_interval)
    db_session.commit()
    return break_interval


def create_patient(
    db_session: Session,
    professional: Professional,
    email: Optional[str] = "patient@example.com",
    phone: Optional[str] = "5145550100"
) -> Patient:
    patient = Patient(
        professional_id=professional.id,
        clinic_id=professional.clinic_id,
        first_name="Jane",
        last_name="Doe",
        email=email,
        phone=phone,
    )
    db_session.add(patient)
    db_session.commit()
    return patient


def insert_appointment(
    db_session: Session,
    professional: Professional,
    patient: Patient,
    appointment_date: date,
    start_time: time,
    end_time: time,
    status: str = "confirmed"
) -> Appointment:
    """Insert an appointment row directly, bypassing the booking facade and its claims."""
    appointment = Appointment(
        professional_id=professional.id,
        patient_id=patient.id,
        date=appointment_date,
        start_time=start_time,
        end_time=end_time,
        status=status,
        cancellation_token=secrets.token_urlsafe(16),
    )
    db_session.add(appointment)
    db_session.commit()
    return appointment


def create_waitlist_entry(
    db_session: Session,
    professional: Professional,
    preferred_date: date,
    created_at: datetime,
    first_name: str = "Wait",
    preferred_time_start: Optional[time] = None,
    preferred_time_end: Optional[time] = None,
    service_id: Optional[int] = None,
    status: str = "pending",
    email: Optional[str] = "client@example.com"
) -> WaitlistEntry:
    """Insert a waitlist entry directly with an explicit creation time."""
    entry = WaitlistEntry(
        professional_id=professional.id,
        service_id=service_id,
        first_name=first_name,
        last_name="Listed",
        email=email,
        phone="5145550199",
        preferred_date=preferred_date,
        preferred_time_start=preferred_time_start,
        preferred_time_end=preferred_time_end,
        token=secrets.token_urlsafe(16),
        status=status,
        created_at=created_at,
    )
    db_session.add(entry)
    db_session.commit()
    return entry


def minutes_after(instant: datetime, minutes: int) -> datetime:
    return instant + timedelta(minutes=minutes)
