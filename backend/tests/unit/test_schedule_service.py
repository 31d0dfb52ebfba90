"""
Unit tests for weekly schedules and breaks.
"""

import pytest
from datetime import time, timedelta

from core.exceptions import NotFoundError, ValidationError
from services.schedule_service import ScheduleService
from tests.factories import MONDAY, TUESDAY, add_schedule_window, create_professional


def day(day_of_week, start=time(9, 0), end=time(17, 0), is_available=True):
    return {"day_of_week": day_of_week, "start_time": start, "end_time": end, "is_available": is_available}


class TestWeeklySchedule:

    def test_replaces_the_whole_week(self, db_session):
        professional = create_professional(db_session)
        add_schedule_window(db_session, professional, 1, time(8, 0), time(12, 0))
        add_schedule_window(db_session, professional, 2, time(8, 0), time(12, 0))

        windows = ScheduleService.update_weekly_schedule(db_session, professional.id, [
            day(1, time(9, 0), time(17, 0)),
            day(2, is_available=False),
            day(3, time(10, 0), time(14, 0)),
        ])

        assert [(w.day_of_week, w.start_time, w.end_time) for w in windows] == [
            (1, time(9, 0), time(17, 0)),
            (3, time(10, 0), time(14, 0)),
        ]
        assert ScheduleService.get_schedule_window(db_session, professional.id, 2) is None
        assert sorted(ScheduleService.get_enabled_windows_by_weekday(db_session, professional.id)) == [1, 3]

    def test_disabled_day_needs_no_times(self, db_session):
        professional = create_professional(db_session)

        windows = ScheduleService.update_weekly_schedule(db_session, professional.id, [
            {"day_of_week": 0, "start_time": None, "end_time": None, "is_available": False},
        ])

        assert windows == []

    @pytest.mark.parametrize("days", [
        [day(7)],
        [day(-1)],
        [day(1), day(1)],
        [day(1, time(12, 0), time(9, 0))],
        [day(1, time(9, 0), time(9, 0))],
        [{"day_of_week": 1, "start_time": None, "end_time": time(12, 0), "is_available": True}],
    ])
    def test_rejects_invalid_days(self, db_session, days):
        professional = create_professional(db_session)

        with pytest.raises(ValidationError):
            ScheduleService.update_weekly_schedule(db_session, professional.id, days)

    def test_unknown_professional(self, db_session):
        with pytest.raises(NotFoundError):
            ScheduleService.update_weekly_schedule(db_session, 999, [day(1)])


class TestBreaks:

    def test_create_and_list_breaks_in_range(self, db_session):
        professional = create_professional(db_session)
        afternoon = ScheduleService.create_break(db_session, professional.id, MONDAY, time(15, 0), time(16, 0))
        lunch = ScheduleService.create_break(
            db_session, professional.id, MONDAY, time(12, 0), time(13, 0), reason="Lunch"
        )
        ScheduleService.create_break(db_session, professional.id, MONDAY + timedelta(days=7), time(12, 0), time(13, 0))

        breaks = ScheduleService.list_breaks(db_session, professional.id, MONDAY, TUESDAY)

        assert [b.id for b in breaks] == [lunch.id, afternoon.id]
        assert lunch.reason == "Lunch"

    def test_create_break_with_inverted_interval(self, db_session):
        professional = create_professional(db_session)

        with pytest.raises(ValidationError):
            ScheduleService.create_break(db_session, professional.id, MONDAY, time(13, 0), time(12, 0))

    def test_delete_break(self, db_session):
        professional = create_professional(db_session)
        lunch = ScheduleService.create_break(db_session, professional.id, MONDAY, time(12, 0), time(13, 0))

        ScheduleService.delete_break(db_session, professional.id, lunch.id)

        assert ScheduleService.list_breaks(db_session, professional.id, MONDAY, MONDAY) == []

    def test_delete_break_of_another_professional(self, db_session):
        professional = create_professional(db_session, email="a@example.com")
        other = create_professional(db_session, email="b@example.com")
        lunch = ScheduleService.create_break(db_session, professional.id, MONDAY, time(12, 0), time(13, 0))

        with pytest.raises(NotFoundError):
            ScheduleService.delete_break(db_session, other.id, lunch.id)
