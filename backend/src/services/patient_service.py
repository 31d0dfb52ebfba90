"""
Patient service for shared patient business logic.

Bookings and waitlist confirmations never create duplicate patients: a
patient is matched by e-mail (case-insensitive) or by normalized phone
number within the tenant scope of the professional being booked.
"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.exceptions import ValidationError
from models import Patient, Professional
from utils.phone_validator import normalize_phone_for_match

logger = logging.getLogger(__name__)


class PatientService:
    """
    Service class for patient operations.

    Contains business logic for patient management that is shared
    across the booking and waitlist flows.
    """

    @staticmethod
    def _scope_query(db: Session, professional: Professional):
        """Patients visible in the professional's tenant scope."""
        scope, scope_id = professional.tenant_scope
        if scope == "clinic":
            return db.query(Patient).filter(Patient.clinic_id == scope_id)
        return db.query(Patient).filter(
            Patient.professional_id == scope_id,
            Patient.clinic_id.is_(None)
        )

    @staticmethod
    def find_patient(
        db: Session,
        professional: Professional,
        email: Optional[str] = None,
        phone: Optional[str] = None
    ) -> Optional[Patient]:
        """
        Find an existing patient by e-mail or phone within the tenant scope.

        E-mail takes precedence over phone when both match different patients.
        """
        query = PatientService._scope_query(db, professional)

        if email and email.strip():
            patient = query.filter(
                func.lower(Patient.email) == email.strip().lower()
            ).order_by(Patient.id).first()
            if patient:
                return patient

        normalized = normalize_phone_for_match(phone)
        if normalized:
            candidates = query.filter(Patient.phone.isnot(None)).order_by(Patient.id).all()
            for candidate in candidates:
                if normalize_phone_for_match(candidate.phone) == normalized:
                    return candidate

        return None

    @staticmethod
    def find_or_create_patient(
        db: Session,
        professional: Professional,
        first_name: str,
        last_name: str,
        email: Optional[str] = None,
        phone: Optional[str] = None
    ) -> Patient:
        """
        Find the patient matching the contact details or create a new one.

        The new row is flushed, not committed; it becomes durable with the
        caller's transaction.

        Raises:
            ValidationError: If neither e-mail nor phone is provided
        """
        if not (email and email.strip()) and not (phone and phone.strip()):
            raise ValidationError("An e-mail address or phone number is required")

        existing = PatientService.find_patient(db, professional, email=email, phone=phone)
        if existing:
            # Fill in contact details the patient did not have yet
            if email and not existing.email:
                existing.email = email.strip()
            if phone and not existing.phone:
                existing.phone = phone.strip()
            logger.info(f"Matched existing patient {existing.id} for professional {professional.id}")
            return existing

        patient = Patient(
            professional_id=professional.id,
            clinic_id=professional.clinic_id,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email.strip() if email else None,
            phone=phone.strip() if phone else None,
        )
        db.add(patient)
        db.flush()
        logger.info(f"Created patient {patient.id} for professional {professional.id}")
        return patient
