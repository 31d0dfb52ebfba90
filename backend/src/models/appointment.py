"""
Appointment model representing a booked interval on a professional's calendar.

Appointments are immutable once cancelled or rescheduled (apart from audit
fields). A reschedule never moves the old row: it creates a new appointment
linked through ``rescheduled_from_id`` and marks the old one 'rescheduled'.
"""

from datetime import date as date_type, datetime, time
from typing import Optional

from sqlalchemy import String, ForeignKey, Index, Date, Time, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import ACTIVE_APPOINTMENT_STATUSES
from core.database import Base
from models.types import UTCDateTime


class Appointment(Base):
    """
    Appointment entity linking a professional, a patient and an optional service.

    For a fixed professional, no two appointments whose status is 'draft' or
    'confirmed' may overlap on the same date. The AppointmentTimeClaim table
    enforces this at the database level.
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    professional_id: Mapped[int] = mapped_column(ForeignKey("professionals.id"))
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"))

    service_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("professional_services.id", ondelete="SET NULL"), nullable=True
    )
    """Service booked; NULL means the professional's default duration/buffer."""

    date: Mapped[date_type] = mapped_column(Date)
    """Civil date (clinic zone)."""

    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)

    status: Mapped[str] = mapped_column(String(20), default='confirmed')
    """Valid values: 'draft', 'confirmed', 'cancelled', 'rescheduled'."""

    cancellation_token: Mapped[str] = mapped_column(String(128), unique=True)
    """Opaque capability used by the patient's self-service cancel link."""

    rescheduled_from_id: Mapped[Optional[int]] = mapped_column(ForeignKey("appointments.id"), nullable=True)
    rescheduled_by: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    rescheduled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    cancelled_by: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    # Relationships
    professional = relationship("Professional")
    patient = relationship("Patient", back_populates="appointments")
    service = relationship("ProfessionalService")

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'confirmed', 'cancelled', 'rescheduled')",
            name='check_appointment_status'
        ),
        CheckConstraint('start_time < end_time', name='check_appointment_time_range'),
        Index('idx_appointments_professional_date', 'professional_id', 'date'),
        Index('idx_appointments_professional_date_status', 'professional_id', 'date', 'status'),
        Index('idx_appointments_patient', 'patient_id'),
    )

    @property
    def is_active(self) -> bool:
        """Whether the appointment occupies the professional's calendar."""
        return self.status in ACTIVE_APPOINTMENT_STATUSES

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, professional_id={self.professional_id}, date={self.date}, {self.start_time}-{self.end_time}, status={self.status})>"
