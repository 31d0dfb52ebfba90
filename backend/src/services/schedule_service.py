"""
Schedule service: the professional's recurring weekly windows and one-off breaks.

The slot generator and the waitlist engine only read from here; writes come
from the professional's settings endpoints.
"""

import logging
from datetime import date, time
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from core.exceptions import NotFoundError, ValidationError
from models import BreakInterval, ScheduleWindow
from services.catalog_service import CatalogService

logger = logging.getLogger(__name__)


class ScheduleService:
    """Service class for availability schedule operations."""

    @staticmethod
    def get_schedule_window(db: Session, professional_id: int, day_of_week: int) -> Optional[ScheduleWindow]:
        """
        Get the enabled window for a weekday (0=Sunday).

        Returns None when the professional does not work that day.
        """
        return db.query(ScheduleWindow).filter(
            ScheduleWindow.professional_id == professional_id,
            ScheduleWindow.day_of_week == day_of_week,
            ScheduleWindow.is_available == True  # noqa: E712
        ).first()

    @staticmethod
    def get_weekly_schedule(db: Session, professional_id: int) -> List[ScheduleWindow]:
        """Get all schedule rows of a professional ordered by weekday."""
        return db.query(ScheduleWindow).filter(
            ScheduleWindow.professional_id == professional_id
        ).order_by(ScheduleWindow.day_of_week).all()

    @staticmethod
    def get_enabled_windows_by_weekday(db: Session, professional_id: int) -> Dict[int, ScheduleWindow]:
        """Map weekday -> enabled window, for generating several days at once."""
        windows = db.query(ScheduleWindow).filter(
            ScheduleWindow.professional_id == professional_id,
            ScheduleWindow.is_available == True  # noqa: E712
        ).all()
        return {w.day_of_week: w for w in windows}

    @staticmethod
    def update_weekly_schedule(
        db: Session,
        professional_id: int,
        days: List[Dict[str, Any]]
    ) -> List[ScheduleWindow]:
        """
        Replace a professional's weekly schedule.

        ``days`` is the complete week: each item has ``day_of_week``,
        ``start_time``, ``end_time`` and ``is_available``. Enabled days are
        upserted; disabled or omitted days are deleted.

        Raises:
            ValidationError: On an out-of-range weekday, a duplicated weekday or start >= end
        """
        CatalogService.get_professional(db, professional_id)

        enabled: Dict[int, Dict[str, Any]] = {}
        seen: set[int] = set()
        for day in days:
            day_of_week = day["day_of_week"]
            if not 0 <= day_of_week <= 6:
                raise ValidationError(f"Invalid day of week: {day_of_week}")
            if day_of_week in seen:
                raise ValidationError(f"Duplicate day of week: {day_of_week}")
            seen.add(day_of_week)

            if not day.get("is_available", True):
                continue
            if day.get("start_time") is None or day.get("end_time") is None:
                raise ValidationError("Start and end times are required for an available day")
            if day["start_time"] >= day["end_time"]:
                raise ValidationError("Start time must be before end time")
            enabled[day_of_week] = day

        existing = {w.day_of_week: w for w in ScheduleService.get_weekly_schedule(db, professional_id)}

        for day_of_week, window in existing.items():
            if day_of_week not in enabled:
                db.delete(window)

        for day_of_week, day in enabled.items():
            window = existing.get(day_of_week)
            if window is None:
                window = ScheduleWindow(professional_id=professional_id, day_of_week=day_of_week)
                db.add(window)
            window.start_time = day["start_time"]
            window.end_time = day["end_time"]
            window.is_available = True

        db.commit()
        logger.info(f"Updated weekly schedule for professional {professional_id}: days={sorted(enabled)}")
        return ScheduleService.get_weekly_schedule(db, professional_id)

    @staticmethod
    def list_breaks(
        db: Session,
        professional_id: int,
        from_date: date,
        to_date: date
    ) -> List[BreakInterval]:
        """All breaks of a professional with from_date <= date <= to_date, ordered."""
        return db.query(BreakInterval).filter(
            BreakInterval.professional_id == professional_id,
            BreakInterval.date >= from_date,
            BreakInterval.date <= to_date
        ).order_by(BreakInterval.date, BreakInterval.start_time, BreakInterval.id).all()

    @staticmethod
    def create_break(
        db: Session,
        professional_id: int,
        break_date: date,
        start_time: time,
        end_time: time,
        reason: Optional[str] = None
    ) -> BreakInterval:
        """
        Block a window on a specific date.

        Existing appointments inside the break are left untouched; only new
        slots and waitlist offers are affected.
        """
        CatalogService.get_professional(db, professional_id)
        if start_time >= end_time:
            raise ValidationError("Start time must be before end time")

        break_interval = BreakInterval(
            professional_id=professional_id,
            date=break_date,
            start_time=start_time,
            end_time=end_time,
            reason=reason,
        )
        db.add(break_interval)
        db.commit()
        db.refresh(break_interval)

        logger.info(
            f"Created break {break_interval.id} for professional {professional_id} "
            f"on {break_date} {start_time}-{end_time}"
        )
        return break_interval

    @staticmethod
    def delete_break(db: Session, professional_id: int, break_id: int) -> None:
        """
        Delete a break.

        Raises:
            NotFoundError: If the break does not exist for this professional
        """
        break_interval = db.query(BreakInterval).filter(
            BreakInterval.id == break_id,
            BreakInterval.professional_id == professional_id
        ).first()
        if not break_interval:
            raise NotFoundError("Break not found")

        db.delete(break_interval)
        db.commit()
        logger.info(f"Deleted break {break_id} for professional {professional_id}")
