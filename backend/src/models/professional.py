"""
Professional model representing a bookable practitioner.

A professional owns a weekly schedule, one-off breaks, a catalog of services
and the appointments booked against them. Booking defaults (duration, buffer,
minimum advance notice) live here and are used when a booking does not
reference a specific service.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import DEFAULT_APPOINTMENT_DURATION_MINUTES, DEFAULT_BUFFER_MINUTES, PLAN_FREE
from core.database import Base
from models.types import UTCDateTime


class Professional(Base):
    """Professional entity (the owner of a bookable calendar)."""

    __tablename__ = "professionals"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the professional."""

    clinic_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """
    Clinic (tenant) the professional belongs to.
    NULL for independent professionals, whose tenant scope is themselves.
    """

    first_name: Mapped[str] = mapped_column(String(255))
    last_name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255), unique=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    appointment_duration: Mapped[int] = mapped_column(Integer, default=DEFAULT_APPOINTMENT_DURATION_MINUTES)
    """Default slot length in minutes when no service is selected."""

    buffer_time: Mapped[int] = mapped_column(Integer, default=DEFAULT_BUFFER_MINUTES)
    """Default minutes blocked after each appointment when no service is selected."""

    min_advance_minutes: Mapped[int] = mapped_column(Integer, default=0)
    """Minimum lead time between now and a slot's start for public booking."""

    plan_type: Mapped[str] = mapped_column(String(20), default=PLAN_FREE)
    """Billing plan ('free' or 'pro'), consulted by the plan-limit policy."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    # Relationships
    services = relationship("ProfessionalService", back_populates="professional")
    schedule_windows = relationship("ScheduleWindow", back_populates="professional")
    breaks = relationship("BreakInterval", back_populates="professional")

    __table_args__ = (
        Index('idx_professionals_clinic', 'clinic_id'),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def tenant_scope(self) -> tuple[str, int]:
        """Scope used for patient de-duplication: the clinic when set, else the professional."""
        if self.clinic_id is not None:
            return ("clinic", self.clinic_id)
        return ("professional", self.id)

    def __repr__(self) -> str:
        return f"<Professional(id={self.id}, name={self.full_name!r})>"
