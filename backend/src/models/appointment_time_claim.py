"""
Appointment time claim model: the database-level double-booking guard.

Every active appointment owns one row per minute it occupies, keyed by
(professional_id, date, minute_of_day). Two overlapping appointments for the
same professional and date would need the same key, so the second insert
fails with an IntegrityError no matter how the requests interleave. Claims
are written in the same transaction as the appointment and deleted when the
appointment stops being active.
"""

from datetime import date as date_type

from sqlalchemy import Date, ForeignKey, Integer, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base


class AppointmentTimeClaim(Base):
    """One occupied minute of a professional's calendar."""

    __tablename__ = "appointment_time_claims"

    professional_id: Mapped[int] = mapped_column(ForeignKey("professionals.id"), primary_key=True)
    date: Mapped[date_type] = mapped_column(Date, primary_key=True)
    minute_of_day: Mapped[int] = mapped_column(Integer, primary_key=True)
    """Minutes since midnight of the occupied minute [minute, minute + 1)."""

    appointment_id: Mapped[int] = mapped_column(ForeignKey("appointments.id", ondelete="CASCADE"))

    __table_args__ = (
        CheckConstraint('minute_of_day >= 0 AND minute_of_day < 1440', name='check_claim_minute_range'),
        Index('idx_appointment_time_claims_appointment', 'appointment_id'),
    )
