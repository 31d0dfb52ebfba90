"""
Availability service: the slot generator.

Turns a professional's weekly schedule, one-off breaks and existing bookings
into the ordered list of bookable slots for a date range. The computation
reads current rows and has no side effects, so the booking facade calls it
again right before persisting to catch slots that went stale.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from core.config import MAX_TIMESLOT_RANGE_DAYS
from core.constants import ACTIVE_APPOINTMENT_STATUSES
from core.exceptions import ValidationError
from models import Appointment
from services.catalog_service import CatalogService
from services.schedule_service import ScheduleService
from shared_types.availability import SlotData
from utils.datetime_utils import add_days, clinic_now, clinic_weekday, ensure_clinic_tz, to_instant
from utils.interval_utils import Interval, subtract, to_minutes_interval, to_time_interval

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Service class for slot generation.

    ``calculate_day_slots`` is the pure per-day algorithm; ``generate_slots``
    loads the rows it needs and applies it across a date range.
    """

    @staticmethod
    def validate_date_range(from_date: date, to_date: date) -> None:
        """
        Reject inverted or oversized ranges.

        Raises:
            ValidationError: If to_date < from_date or the range is too long
        """
        if to_date < from_date:
            raise ValidationError("toDate must not be before fromDate")
        if (to_date - from_date).days + 1 > MAX_TIMESLOT_RANGE_DAYS:
            raise ValidationError(f"Date range cannot exceed {MAX_TIMESLOT_RANGE_DAYS} days")

    @staticmethod
    def calculate_day_slots(
        slot_date: date,
        window: Optional[Interval],
        breaks: Iterable[Interval],
        appointments: Iterable[Interval],
        duration: int,
        buffer: int
    ) -> List[SlotData]:
        """
        Compute the slots of one day.

        Args:
            slot_date: The civil date the slots belong to
            window: Working window in minutes, or None if the day is off
            breaks: Break intervals in minutes
            appointments: Booked [start, end) intervals in minutes; each one
                additionally blocks ``buffer`` minutes after its end
            duration: Slot length in minutes
            buffer: Minutes blocked after each appointment

        Returns:
            Slots in ascending start order
        """
        if window is None or duration <= 0:
            return []

        blocked: List[Interval] = list(breaks)
        blocked.extend((start, end + buffer) for start, end in appointments)

        slots: List[SlotData] = []
        for free_start, free_end in subtract(window, blocked):
            cursor = free_start
            while cursor + duration <= free_end:
                start_time, end_time = to_time_interval((cursor, cursor + duration))
                slots.append(SlotData(date=slot_date, start_time=start_time, end_time=end_time))
                cursor += duration
        return slots

    @staticmethod
    def generate_slots(
        db: Session,
        professional_id: int,
        from_date: date,
        to_date: date,
        service_id: Optional[int] = None,
        skip_min_advance: bool = False,
        exclude_appointment_id: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> List[SlotData]:
        """
        Generate bookable slots for a professional over [from_date, to_date].

        Args:
            db: Database session
            professional_id: Professional whose calendar is computed
            from_date: First civil date (inclusive)
            to_date: Last civil date (inclusive)
            service_id: Service providing duration/buffer; professional defaults if None
            skip_min_advance: Keep slots inside the minimum-advance lead time
            exclude_appointment_id: Appointment ignored as a blocker (used when
                rescheduling it)
            now: Reference instant for the lead-time filter (defaults to clinic_now())

        Returns:
            Slots strictly ascending by (date, start_time)

        Raises:
            NotFoundError: Unknown professional or service
        """
        professional = CatalogService.get_professional(db, professional_id)
        service = CatalogService.get_service(db, professional_id, service_id)
        duration, buffer = CatalogService.resolve_duration_and_buffer(professional, service)

        if to_date < from_date:
            return []

        windows = ScheduleService.get_enabled_windows_by_weekday(db, professional_id)

        breaks_by_date: Dict[date, List[Interval]] = defaultdict(list)
        for b in ScheduleService.list_breaks(db, professional_id, from_date, to_date):
            breaks_by_date[b.date].append(to_minutes_interval(b.start_time, b.end_time))

        appointments_by_date: Dict[date, List[Interval]] = defaultdict(list)
        for appointment in AvailabilityService._get_active_appointments(
            db, professional_id, from_date, to_date, exclude_appointment_id
        ):
            appointments_by_date[appointment.date].append(
                to_minutes_interval(appointment.start_time, appointment.end_time)
            )

        earliest_start: Optional[datetime] = None
        if not skip_min_advance:
            reference = ensure_clinic_tz(now) if now is not None else clinic_now()
            assert reference is not None
            earliest_start = reference + timedelta(minutes=professional.min_advance_minutes or 0)

        slots: List[SlotData] = []
        current = from_date
        while current <= to_date:
            window = windows.get(clinic_weekday(current))
            day_slots = AvailabilityService.calculate_day_slots(
                current,
                to_minutes_interval(window.start_time, window.end_time) if window else None,
                breaks_by_date.get(current, []),
                appointments_by_date.get(current, []),
                duration,
                buffer,
            )
            if earliest_start is not None:
                day_slots = [
                    s for s in day_slots
                    if to_instant(s.date, s.start_time) >= earliest_start
                ]
            slots.extend(day_slots)
            current = add_days(current, 1)

        logger.debug(
            f"Generated {len(slots)} slots for professional {professional_id} "
            f"{from_date}..{to_date} (duration={duration}, buffer={buffer})"
        )
        return slots

    @staticmethod
    def is_slot_available(
        db: Session,
        professional_id: int,
        slot_date: date,
        start_time: time,
        end_time: time,
        service_id: Optional[int] = None,
        skip_min_advance: bool = False,
        exclude_appointment_id: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> bool:
        """Whether the exact slot is present in a fresh computation for its date."""
        candidate = SlotData(date=slot_date, start_time=start_time, end_time=end_time)
        slots = AvailabilityService.generate_slots(
            db,
            professional_id,
            slot_date,
            slot_date,
            service_id=service_id,
            skip_min_advance=skip_min_advance,
            exclude_appointment_id=exclude_appointment_id,
            now=now,
        )
        return candidate in slots

    @staticmethod
    def _get_active_appointments(
        db: Session,
        professional_id: int,
        from_date: date,
        to_date: date,
        exclude_appointment_id: Optional[int] = None
    ) -> List[Appointment]:
        """Draft/confirmed appointments of a professional within the date range."""
        query = db.query(Appointment).filter(
            Appointment.professional_id == professional_id,
            Appointment.date >= from_date,
            Appointment.date <= to_date,
            Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES)
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.order_by(Appointment.date, Appointment.start_time).all()
