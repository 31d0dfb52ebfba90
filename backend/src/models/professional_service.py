"""
Professional service model (the service a booking or waitlist entry refers to).

Each service carries its own duration and post-appointment buffer which
override the professional's defaults during slot generation.
"""

from datetime import datetime

from sqlalchemy import String, Integer, Boolean, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import DEFAULT_BUFFER_MINUTES
from core.database import Base
from models.types import UTCDateTime


class ProfessionalService(Base):
    """Service offered by a professional."""

    __tablename__ = "professional_services"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    professional_id: Mapped[int] = mapped_column(ForeignKey("professionals.id", ondelete="CASCADE"))
    """Reference to the professional offering this service."""

    name: Mapped[str] = mapped_column(String(255))

    duration: Mapped[int] = mapped_column(Integer)
    """Length of one appointment in minutes."""

    buffer_time: Mapped[int] = mapped_column(Integer, default=DEFAULT_BUFFER_MINUTES)
    """Minutes blocked after each appointment of this service."""

    is_visible: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    professional = relationship("Professional", back_populates="services")

    __table_args__ = (
        CheckConstraint('duration > 0', name='check_service_duration_positive'),
        CheckConstraint('buffer_time >= 0', name='check_service_buffer_non_negative'),
        Index('idx_professional_services_professional', 'professional_id'),
    )

    def __repr__(self) -> str:
        return f"<ProfessionalService(id={self.id}, name={self.name!r}, {self.duration}+{self.buffer_time}min)>"
