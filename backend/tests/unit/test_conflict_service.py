"""
Unit tests for conflict detection and the time-claim guard.
"""

import pytest
from datetime import time

from sqlalchemy.exc import IntegrityError

from core.exceptions import ConflictError
from models import AppointmentTimeClaim
from services.conflict_service import ConflictService
from tests.factories import MONDAY, TUESDAY, add_break, create_patient, create_professional, insert_appointment


@pytest.fixture
def booked(db_session):
    """A professional with a confirmed 09:00-09:30 appointment on Monday."""
    professional = create_professional(db_session)
    patient = create_patient(db_session, professional)
    appointment = insert_appointment(db_session, professional, patient, MONDAY, time(9, 0), time(9, 30))
    return professional, patient, appointment


class TestFindConflicts:

    def test_overlapping_interval(self, db_session, booked):
        professional, _, appointment = booked

        conflicts = ConflictService.find_conflicts(db_session, professional.id, MONDAY, time(9, 15), time(9, 45))

        assert [a.id for a in conflicts] == [appointment.id]

    def test_touching_interval_is_not_a_conflict(self, db_session, booked):
        professional, _, _ = booked

        assert ConflictService.find_conflicts(db_session, professional.id, MONDAY, time(9, 30), time(10, 0)) == []
        assert ConflictService.find_conflicts(db_session, professional.id, MONDAY, time(8, 30), time(9, 0)) == []

    def test_other_date_is_not_a_conflict(self, db_session, booked):
        professional, _, _ = booked

        assert ConflictService.find_conflicts(db_session, professional.id, TUESDAY, time(9, 0), time(9, 30)) == []

    def test_cancelled_and_rescheduled_do_not_conflict(self, db_session, booked):
        professional, patient, appointment = booked
        appointment.status = "cancelled"
        insert_appointment(db_session, professional, patient, MONDAY, time(10, 0), time(10, 30), status="rescheduled")
        db_session.commit()

        assert ConflictService.find_conflicts(db_session, professional.id, MONDAY, time(9, 0), time(11, 0)) == []

    def test_draft_conflicts(self, db_session, booked):
        professional, patient, _ = booked
        draft = insert_appointment(db_session, professional, patient, MONDAY, time(11, 0), time(11, 30), status="draft")

        conflicts = ConflictService.find_conflicts(db_session, professional.id, MONDAY, time(11, 0), time(11, 30))

        assert [a.id for a in conflicts] == [draft.id]

    def test_excluded_appointment(self, db_session, booked):
        professional, _, appointment = booked

        assert ConflictService.find_conflicts(
            db_session, professional.id, MONDAY, time(9, 0), time(9, 30), exclude_appointment_id=appointment.id
        ) == []

    def test_ensure_no_conflict_raises(self, db_session, booked):
        professional, _, _ = booked

        with pytest.raises(ConflictError) as exc_info:
            ConflictService.ensure_no_conflict(db_session, professional.id, MONDAY, time(9, 0), time(9, 30))

        assert exc_info.value.status_code == 409
        assert exc_info.value.to_response() == {"error": "Time slot is already booked"}


class TestFindOverlappingBreaks:

    def test_breaks_on_same_date_only(self, db_session):
        professional = create_professional(db_session)
        lunch = add_break(db_session, professional, MONDAY, time(12, 0), time(13, 0))
        add_break(db_session, professional, TUESDAY, time(12, 0), time(13, 0))

        assert [b.id for b in ConflictService.find_overlapping_breaks(
            db_session, professional.id, MONDAY, time(12, 30), time(13, 30)
        )] == [lunch.id]
        assert ConflictService.find_overlapping_breaks(
            db_session, professional.id, MONDAY, time(13, 0), time(13, 30)
        ) == []


class TestTimeClaims:

    def test_claim_interval_inserts_one_row_per_minute(self, db_session, booked):
        professional, _, appointment = booked

        ConflictService.claim_interval(db_session, appointment)
        db_session.commit()

        claims = db_session.query(AppointmentTimeClaim).filter(
            AppointmentTimeClaim.appointment_id == appointment.id
        ).all()
        assert len(claims) == 30
        assert min(c.minute_of_day for c in claims) == 540
        assert max(c.minute_of_day for c in claims) == 569

    def test_overlapping_claim_is_rejected_by_the_store(self, db_session, booked):
        professional, patient, appointment = booked
        ConflictService.claim_interval(db_session, appointment)
        db_session.commit()

        # Bypass the advisory check: the primary key alone must reject the overlap
        overlapping = insert_appointment(db_session, professional, patient, MONDAY, time(9, 29), time(10, 0))

        with pytest.raises(IntegrityError):
            ConflictService.claim_interval(db_session, overlapping)
        db_session.rollback()

    def test_adjacent_claims_coexist(self, db_session, booked):
        professional, patient, appointment = booked
        adjacent = insert_appointment(db_session, professional, patient, MONDAY, time(9, 30), time(10, 0))

        ConflictService.claim_interval(db_session, appointment)
        ConflictService.claim_interval(db_session, adjacent)
        db_session.commit()

        assert db_session.query(AppointmentTimeClaim).count() == 60

    def test_release_claims(self, db_session, booked):
        _, _, appointment = booked
        ConflictService.claim_interval(db_session, appointment)
        db_session.commit()

        ConflictService.release_claims(db_session, appointment.id)
        db_session.commit()

        assert db_session.query(AppointmentTimeClaim).count() == 0
