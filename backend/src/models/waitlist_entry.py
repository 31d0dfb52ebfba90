"""
Waitlist entry model.

Represents a client's request to be offered a slot with a professional when
one frees up. Entries move through a one-directional state machine:

    pending --notify--> notified --confirm--> fulfilled
                        notified --expire---> expired
                        notified --release--> cancelled
    pending/notified --cancel--> cancelled

Only the reconciliation engine moves an entry to 'notified'. The token is the
capability behind the public confirm/release links.
"""

from datetime import date as date_type, datetime, time
from typing import Optional

from sqlalchemy import String, ForeignKey, Index, Date, Time, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from models.types import UTCDateTime


class WaitlistEntry(Base):
    """Waitlist entry entity."""

    __tablename__ = "waitlist_entries"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    professional_id: Mapped[int] = mapped_column(ForeignKey("professionals.id"))

    service_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("professional_services.id", ondelete="SET NULL"), nullable=True
    )
    """Requested service; NULL matches any freed slot of the professional."""

    first_name: Mapped[str] = mapped_column(String(255))
    last_name: Mapped[str] = mapped_column(String(255))
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[str] = mapped_column(String(50))

    preferred_date: Mapped[date_type] = mapped_column(Date)
    preferred_time_start: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    preferred_time_end: Mapped[Optional[time]] = mapped_column(Time, nullable=True)

    token: Mapped[str] = mapped_column(String(128), unique=True)

    status: Mapped[str] = mapped_column(String(20), default='pending')
    """Valid values: 'pending', 'notified', 'fulfilled', 'expired', 'cancelled'."""

    notified_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    """End of the priority window; set when the entry is notified."""

    # Slot stamped on the entry when it is notified
    available_date: Mapped[Optional[date_type]] = mapped_column(Date, nullable=True)
    available_start_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    available_end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    available_service_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("professional_services.id", ondelete="SET NULL"), nullable=True
    )
    """Service of the freed appointment; the confirmed booking uses it."""

    fulfilled_appointment_id: Mapped[Optional[int]] = mapped_column(ForeignKey("appointments.id"), nullable=True)
    """Appointment created when the offer was confirmed."""

    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """FIFO ordering key (ties broken by id)."""

    professional = relationship("Professional")
    service = relationship("ProfessionalService", foreign_keys=[service_id])

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'notified', 'fulfilled', 'expired', 'cancelled')",
            name='check_waitlist_status'
        ),
        # Matching query: professional + status, FIFO by created_at
        Index('idx_waitlist_professional_status_created', 'professional_id', 'status', 'created_at'),
        Index('idx_waitlist_status_expires', 'status', 'expires_at'),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<WaitlistEntry(id={self.id}, professional_id={self.professional_id}, status={self.status})>"
