"""
Patient model.

Patients are created on first booking and de-duplicated by e-mail or phone
within the tenant scope (the clinic, or the professional when independent).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from models.types import UTCDateTime


class Patient(Base):
    """Patient entity."""

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    professional_id: Mapped[Optional[int]] = mapped_column(ForeignKey("professionals.id"), nullable=True)
    """Professional that first registered the patient."""

    clinic_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Clinic scope of the patient, when the professional belongs to a clinic."""

    first_name: Mapped[str] = mapped_column(String(255))
    last_name: Mapped[str] = mapped_column(String(255))
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    appointments = relationship("Appointment", back_populates="patient")

    __table_args__ = (
        Index('idx_patients_professional_email', 'professional_id', 'email'),
        Index('idx_patients_clinic_email', 'clinic_id', 'email'),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
