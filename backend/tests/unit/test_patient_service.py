"""
Unit tests for patient de-duplication.
"""

import pytest

from core.exceptions import ValidationError
from models import Patient
from services.patient_service import PatientService
from tests.factories import create_patient, create_professional


class TestFindOrCreatePatient:

    def test_matches_email_case_insensitively(self, db_session):
        professional = create_professional(db_session)
        existing = create_patient(db_session, professional, email="Jane.Doe@Example.com", phone=None)

        patient = PatientService.find_or_create_patient(
            db_session, professional, "Jane", "Doe", email="jane.doe@example.com"
        )

        assert patient.id == existing.id
        assert db_session.query(Patient).count() == 1

    def test_matches_normalized_phone_and_fills_missing_email(self, db_session):
        professional = create_professional(db_session)
        existing = create_patient(db_session, professional, email=None, phone="514-555-0100")

        patient = PatientService.find_or_create_patient(
            db_session, professional, "Jane", "Doe", email="jane@example.com", phone="+1 (514) 555 0100"
        )

        assert patient.id == existing.id
        assert patient.email == "jane@example.com"

    def test_creates_patient_when_no_match(self, db_session):
        professional = create_professional(db_session)
        create_patient(db_session, professional, email="someone@example.com", phone="5145550100")

        patient = PatientService.find_or_create_patient(
            db_session, professional, " John ", "Smith", email="john@example.com"
        )
        db_session.commit()

        assert patient.first_name == "John"
        assert patient.professional_id == professional.id
        assert db_session.query(Patient).count() == 2

    def test_scope_is_the_clinic_when_professional_belongs_to_one(self, db_session):
        first = create_professional(db_session, email="a@example.com", clinic_id=7)
        second = create_professional(db_session, email="b@example.com", clinic_id=7)
        existing = create_patient(db_session, first, email="shared@example.com")

        patient = PatientService.find_or_create_patient(
            db_session, second, "Jane", "Doe", email="shared@example.com"
        )

        assert patient.id == existing.id

    def test_independent_professionals_do_not_share_patients(self, db_session):
        first = create_professional(db_session, email="a@example.com")
        second = create_professional(db_session, email="b@example.com")
        existing = create_patient(db_session, first, email="shared@example.com")

        patient = PatientService.find_or_create_patient(
            db_session, second, "Jane", "Doe", email="shared@example.com"
        )

        assert patient.id != existing.id
        assert patient.professional_id == second.id

    def test_requires_email_or_phone(self, db_session):
        professional = create_professional(db_session)

        with pytest.raises(ValidationError):
            PatientService.find_or_create_patient(db_session, professional, "Jane", "Doe", email=" ", phone=None)
