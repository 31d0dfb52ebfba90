"""
Break interval model representing one-off unavailability on a specific date.

Breaks are independent of the weekly schedule and take precedence over it:
no slot is generated inside a break and a freed slot overlapping a break is
never offered to the waitlist.
"""

from datetime import date as date_type, time, datetime
from typing import Optional

from sqlalchemy import Date, Time, String, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from models.types import UTCDateTime


class BreakInterval(Base):
    """Blocked window on a given calendar date."""

    __tablename__ = "professional_breaks"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    professional_id: Mapped[int] = mapped_column(ForeignKey("professionals.id", ondelete="CASCADE"))

    date: Mapped[date_type] = mapped_column(Date)
    """Civil date (clinic zone) of the break."""

    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)

    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    professional = relationship("Professional", back_populates="breaks")

    __table_args__ = (
        CheckConstraint('start_time < end_time', name='check_break_time_range'),
        Index('idx_professional_breaks_professional_date', 'professional_id', 'date'),
    )

    def __repr__(self) -> str:
        return f"<BreakInterval(professional_id={self.professional_id}, date={self.date}, {self.start_time}-{self.end_time})>"
