"""
Conflict service: overlap detection and the store-level booking guard.

``find_conflicts`` is the advisory check used before writing. The
authoritative guard is the appointment_time_claims table: ``claim_interval``
inserts one row per occupied minute and the primary key rejects any overlap
with an IntegrityError, which the booking facade maps to the same 409 as
the advisory check.
"""

import logging
from datetime import date, time
from typing import List, Optional

from sqlalchemy import delete, insert
from sqlalchemy.orm import Session

from core.constants import ACTIVE_APPOINTMENT_STATUSES
from core.exceptions import ConflictError
from models import Appointment, AppointmentTimeClaim, BreakInterval
from utils.datetime_utils import time_to_minutes
from utils.interval_utils import times_overlap

logger = logging.getLogger(__name__)


class ConflictService:
    """Service class for conflict checks on a professional's calendar."""

    @staticmethod
    def find_conflicts(
        db: Session,
        professional_id: int,
        appointment_date: date,
        start_time: time,
        end_time: time,
        exclude_appointment_id: Optional[int] = None
    ) -> List[Appointment]:
        """
        Return the active appointments overlapping [start_time, end_time).

        Only 'draft' and 'confirmed' appointments are considered; touching
        endpoints do not overlap.
        """
        query = db.query(Appointment).filter(
            Appointment.professional_id == professional_id,
            Appointment.date == appointment_date,
            Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES)
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)

        return [
            appointment
            for appointment in query.order_by(Appointment.start_time, Appointment.id).all()
            if times_overlap(appointment.start_time, appointment.end_time, start_time, end_time)
        ]

    @staticmethod
    def ensure_no_conflict(
        db: Session,
        professional_id: int,
        appointment_date: date,
        start_time: time,
        end_time: time,
        exclude_appointment_id: Optional[int] = None
    ) -> None:
        """
        Raises:
            ConflictError: If any active appointment overlaps the interval
        """
        conflicts = ConflictService.find_conflicts(
            db, professional_id, appointment_date, start_time, end_time, exclude_appointment_id
        )
        if conflicts:
            logger.info(
                f"Conflict for professional {professional_id} on {appointment_date} "
                f"{start_time}-{end_time}: appointments {[a.id for a in conflicts]}"
            )
            raise ConflictError()

    @staticmethod
    def find_overlapping_breaks(
        db: Session,
        professional_id: int,
        slot_date: date,
        start_time: time,
        end_time: time
    ) -> List[BreakInterval]:
        """Breaks on the same civil date whose window overlaps the interval."""
        breaks = db.query(BreakInterval).filter(
            BreakInterval.professional_id == professional_id,
            BreakInterval.date == slot_date
        ).all()
        return [b for b in breaks if times_overlap(b.start_time, b.end_time, start_time, end_time)]

    @staticmethod
    def claim_interval(db: Session, appointment: Appointment) -> None:
        """
        Insert the arena rows for an appointment and flush them.

        The appointment must already have an id.

        Raises:
            sqlalchemy.exc.IntegrityError: If another active appointment
                already claims one of the minutes
        """
        start = time_to_minutes(appointment.start_time)
        end = time_to_minutes(appointment.end_time)
        rows = [
            {
                "professional_id": appointment.professional_id,
                "date": appointment.date,
                "minute_of_day": minute,
                "appointment_id": appointment.id,
            }
            for minute in range(start, end)
        ]
        if rows:
            db.execute(insert(AppointmentTimeClaim), rows)

    @staticmethod
    def release_claims(db: Session, appointment_id: int) -> None:
        """Delete the arena rows of an appointment (no-op if it holds none)."""
        db.execute(
            delete(AppointmentTimeClaim).where(AppointmentTimeClaim.appointment_id == appointment_id)
        )
