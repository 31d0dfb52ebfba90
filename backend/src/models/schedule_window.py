"""
Schedule window model for the recurring weekly schedule.

One row per enabled weekday per professional. A weekday without a row (or
with ``is_available`` false) means the professional does not work that day.
"""

from datetime import time, datetime

from sqlalchemy import Time, Boolean, ForeignKey, Index, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from models.types import UTCDateTime


class ScheduleWindow(Base):
    """Weekly opening window of a professional for one day of the week."""

    __tablename__ = "professional_schedules"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    professional_id: Mapped[int] = mapped_column(ForeignKey("professionals.id", ondelete="CASCADE"))

    day_of_week: Mapped[int] = mapped_column()
    """Day of the week (0=Sunday, 1=Monday, ..., 6=Saturday)."""

    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)

    is_available: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    professional = relationship("Professional", back_populates="schedule_windows")

    __table_args__ = (
        UniqueConstraint('professional_id', 'day_of_week', name='uq_professional_schedule_day'),
        CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='check_schedule_day_of_week'),
        CheckConstraint('start_time < end_time', name='check_schedule_time_range'),
        Index('idx_professional_schedules_professional_day', 'professional_id', 'day_of_week'),
    )

    def __repr__(self) -> str:
        return f"<ScheduleWindow(professional_id={self.professional_id}, day={self.day_of_week}, {self.start_time}-{self.end_time})>"
