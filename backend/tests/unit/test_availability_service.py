"""
Unit tests for the slot generator.
"""

import pytest
from datetime import date, time, timedelta

from core.exceptions import NotFoundError, ValidationError
from services.availability_service import AvailabilityService
from shared_types.availability import SlotData
from tests.factories import (
    MONDAY, NOW, TUESDAY, add_break, add_schedule_window, create_patient, create_professional,
    create_service, insert_appointment,
)
from utils.datetime_utils import to_instant
from utils.interval_utils import times_overlap


def _starts(slots):
    return [s.start_time.strftime("%H:%M") for s in slots]


class TestCalculateDaySlots:
    """The pure per-day algorithm."""

    def test_day_off_has_no_slots(self):
        assert AvailabilityService.calculate_day_slots(MONDAY, None, [], [], 30, 0) == []

    def test_chunks_free_intervals_by_duration(self):
        slots = AvailabilityService.calculate_day_slots(MONDAY, (540, 660), [(570, 600)], [], 30, 0)

        assert slots == [
            SlotData(MONDAY, time(9, 0), time(9, 30)),
            SlotData(MONDAY, time(10, 0), time(10, 30)),
            SlotData(MONDAY, time(10, 30), time(11, 0)),
        ]

    def test_buffer_extends_appointment_block(self):
        slots = AvailabilityService.calculate_day_slots(MONDAY, (540, 660), [], [(540, 570)], 30, 10)

        assert _starts(slots) == ["09:40", "10:10"]

    def test_partial_remainder_is_dropped(self):
        slots = AvailabilityService.calculate_day_slots(MONDAY, (540, 600), [], [], 45, 0)

        assert _starts(slots) == ["09:00"]


class TestGenerateSlots:
    """Slot generation against the database."""

    def test_monday_with_break_scenario(self, db_session):
        """09:00-12:00 with a 10:00-10:30 break, 30 min slots, no buffer."""
        professional = create_professional(db_session, appointment_duration=30, buffer_time=0)
        add_schedule_window(db_session, professional, 1, time(9, 0), time(12, 0))
        add_break(db_session, professional, MONDAY, time(10, 0), time(10, 30))

        slots = AvailabilityService.generate_slots(db_session, professional.id, MONDAY, MONDAY, now=NOW)

        assert [(s.start_time, s.end_time) for s in slots] == [
            (time(9, 0), time(9, 30)),
            (time(9, 30), time(10, 0)),
            (time(10, 30), time(11, 0)),
            (time(11, 0), time(11, 30)),
            (time(11, 30), time(12, 0)),
        ]
        assert slots[0].to_dict() == {"slotDate": "2030-01-07", "startTime": "09:00", "endTime": "09:30"}

    def test_slots_are_disjoint_from_breaks(self, db_session):
        professional = create_professional(db_session, appointment_duration=20)
        add_schedule_window(db_session, professional, 1, time(8, 0), time(17, 0))
        breaks = [
            add_break(db_session, professional, MONDAY, time(9, 10), time(9, 50)),
            add_break(db_session, professional, MONDAY, time(12, 0), time(13, 0)),
            add_break(db_session, professional, MONDAY, time(16, 45), time(18, 0)),
        ]

        slots = AvailabilityService.generate_slots(db_session, professional.id, MONDAY, MONDAY, now=NOW)

        assert slots
        for slot in slots:
            for b in breaks:
                assert not times_overlap(slot.start_time, slot.end_time, b.start_time, b.end_time)

    def test_slots_start_after_appointment_end_plus_buffer(self, db_session):
        professional = create_professional(db_session, appointment_duration=30, buffer_time=10)
        add_schedule_window(db_session, professional, 1, time(9, 0), time(12, 0))
        patient = create_patient(db_session, professional)
        appointment = insert_appointment(db_session, professional, patient, MONDAY, time(9, 0), time(9, 30))

        slots = AvailabilityService.generate_slots(db_session, professional.id, MONDAY, MONDAY, now=NOW)

        assert _starts(slots) == ["09:40", "10:10", "10:40", "11:10"]
        blocked_until = to_instant(MONDAY, time(9, 40))
        assert all(to_instant(s.date, s.start_time) >= blocked_until for s in slots)
        assert appointment.end_time == time(9, 30)

    def test_cancelled_appointments_do_not_block(self, db_session):
        professional = create_professional(db_session)
        add_schedule_window(db_session, professional, 1, time(9, 0), time(10, 0))
        patient = create_patient(db_session, professional)
        insert_appointment(db_session, professional, patient, MONDAY, time(9, 0), time(9, 30), status="cancelled")

        slots = AvailabilityService.generate_slots(db_session, professional.id, MONDAY, MONDAY, now=NOW)

        assert _starts(slots) == ["09:00", "09:30"]

    def test_excluded_appointment_does_not_block(self, db_session):
        professional = create_professional(db_session)
        add_schedule_window(db_session, professional, 1, time(9, 0), time(10, 0))
        patient = create_patient(db_session, professional)
        appointment = insert_appointment(db_session, professional, patient, MONDAY, time(9, 0), time(9, 30))

        blocked = AvailabilityService.generate_slots(db_session, professional.id, MONDAY, MONDAY, now=NOW)
        freed = AvailabilityService.generate_slots(
            db_session, professional.id, MONDAY, MONDAY, exclude_appointment_id=appointment.id, now=NOW
        )

        assert _starts(blocked) == ["09:30"]
        assert _starts(freed) == ["09:00", "09:30"]

    def test_service_duration_and_buffer_override_defaults(self, db_session):
        professional = create_professional(db_session, appointment_duration=30, buffer_time=0)
        service = create_service(db_session, professional, duration=45, buffer_time=15)
        add_schedule_window(db_session, professional, 1, time(9, 0), time(12, 0))

        slots = AvailabilityService.generate_slots(
            db_session, professional.id, MONDAY, MONDAY, service_id=service.id, now=NOW
        )

        assert _starts(slots) == ["09:00", "09:45", "10:30", "11:15"]
        assert slots[-1].end_time == time(12, 0)

    def test_min_advance_filters_near_slots(self, db_session):
        professional = create_professional(db_session, min_advance_minutes=120)
        add_schedule_window(db_session, professional, 1, time(9, 0), time(12, 0))
        now = to_instant(MONDAY, time(8, 30))

        slots = AvailabilityService.generate_slots(db_session, professional.id, MONDAY, MONDAY, now=now)
        unfiltered = AvailabilityService.generate_slots(
            db_session, professional.id, MONDAY, MONDAY, skip_min_advance=True, now=now
        )

        assert _starts(slots) == ["10:30", "11:00", "11:30"]
        assert len(unfiltered) == 6

    def test_range_is_ordered_and_skips_days_off(self, db_session):
        professional = create_professional(db_session, appointment_duration=60)
        add_schedule_window(db_session, professional, 1, time(9, 0), time(11, 0))  # Monday
        add_schedule_window(db_session, professional, 3, time(14, 0), time(15, 0))  # Wednesday

        slots = AvailabilityService.generate_slots(
            db_session, professional.id, MONDAY, MONDAY + timedelta(days=6), now=NOW
        )

        assert [(s.date, s.start_time) for s in slots] == [
            (MONDAY, time(9, 0)),
            (MONDAY, time(10, 0)),
            (date(2030, 1, 9), time(14, 0)),
        ]
        assert slots == sorted(slots)

    def test_unknown_professional(self, db_session):
        with pytest.raises(NotFoundError):
            AvailabilityService.generate_slots(db_session, 999, MONDAY, MONDAY, now=NOW)

    def test_service_of_another_professional(self, db_session):
        professional = create_professional(db_session, email="a@example.com")
        other = create_professional(db_session, email="b@example.com")
        service = create_service(db_session, other)

        with pytest.raises(NotFoundError):
            AvailabilityService.generate_slots(
                db_session, professional.id, MONDAY, MONDAY, service_id=service.id, now=NOW
            )


class TestIsSlotAvailable:

    def test_exact_slot_only(self, db_session):
        professional = create_professional(db_session)
        add_schedule_window(db_session, professional, 1, time(9, 0), time(12, 0))

        assert AvailabilityService.is_slot_available(
            db_session, professional.id, MONDAY, time(9, 30), time(10, 0), now=NOW
        )
        assert not AvailabilityService.is_slot_available(
            db_session, professional.id, MONDAY, time(9, 15), time(9, 45), now=NOW
        )
        assert not AvailabilityService.is_slot_available(
            db_session, professional.id, TUESDAY, time(9, 0), time(9, 30), now=NOW
        )


class TestValidateDateRange:

    def test_inverted_range(self):
        with pytest.raises(ValidationError):
            AvailabilityService.validate_date_range(TUESDAY, MONDAY)

    def test_maximum_range(self):
        AvailabilityService.validate_date_range(MONDAY, MONDAY + timedelta(days=61))
        with pytest.raises(ValidationError):
            AvailabilityService.validate_date_range(MONDAY, MONDAY + timedelta(days=62))
