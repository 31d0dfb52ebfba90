"""
Appointment service: the booking facade.

Every change to an appointment goes through here. Creation runs the
advisory checks (conflict, fresh slot, plan limit), finds or creates the
patient, and persists the appointment together with its arena claims and its
notifications in one transaction. Cancellation, deletion and reschedule free
the old interval and hand it to the waitlist cascade.
"""

import logging
import secrets
from datetime import date, datetime, time
from typing import Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from core.constants import (
    ACTIVE_APPOINTMENT_STATUSES, APPOINTMENT_STATUS_CANCELLED, APPOINTMENT_STATUS_CONFIRMED,
    APPOINTMENT_STATUS_RESCHEDULED, CANCELLATION_TOKEN_BYTES,
)
from core.exceptions import ConflictError, InvalidStateError, LimitReachedError, NotFoundError, ValidationError
from models import Appointment, WaitlistEntry
from services.availability_service import AvailabilityService
from services.catalog_service import CatalogService
from services.conflict_service import ConflictService
from services.notification_service import NotificationService
from services.patient_service import PatientService
from services.plan_limit_service import PlanLimitPolicy
from services.waitlist_service import WaitlistService
from shared_types.availability import FreedSlot
from utils.datetime_utils import clinic_now, ensure_clinic_tz

logger = logging.getLogger(__name__)


class AppointmentService:
    """
    Service class for appointment operations.

    Contains the business logic behind the booking, cancellation and
    reschedule endpoints as well as waitlist confirmations.
    """

    @staticmethod
    def _generate_cancellation_token() -> str:
        return secrets.token_urlsafe(CANCELLATION_TOKEN_BYTES)

    @staticmethod
    def _resolve_now(now: Optional[datetime]) -> datetime:
        resolved = ensure_clinic_tz(now) if now is not None else clinic_now()
        assert resolved is not None
        return resolved

    @staticmethod
    def _validate_interval(start_time: time, end_time: time) -> None:
        if start_time >= end_time:
            raise ValidationError("Start time must be before end time")

    @staticmethod
    def get_appointment(db: Session, appointment_id: int) -> Appointment:
        """
        Raises:
            NotFoundError: If the appointment does not exist
        """
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    @staticmethod
    def _get_appointment_for_update(db: Session, appointment_id: int) -> Appointment:
        """Load an appointment with a row lock held until the transaction ends."""
        try:
            appointment = db.query(Appointment).filter(
                Appointment.id == appointment_id
            ).with_for_update(nowait=True).first()
        except OperationalError:
            # Another transaction is modifying this appointment
            db.rollback()
            raise ConflictError("This appointment is being modified, please try again")

        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    @staticmethod
    def create_appointment(
        db: Session,
        professional_id: int,
        appointment_date: date,
        start_time: time,
        end_time: time,
        first_name: str,
        last_name: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        service_id: Optional[int] = None,
        notes: Optional[str] = None,
        status: str = APPOINTMENT_STATUS_CONFIRMED,
        policy: Optional[PlanLimitPolicy] = None,
        validate_slot: bool = True,
        skip_min_advance: bool = False,
        now: Optional[datetime] = None,
        commit: bool = True
    ) -> Appointment:
        """
        Book an appointment.

        Args:
            db: Database session
            professional_id: Professional being booked
            appointment_date: Civil date of the appointment
            start_time: Start time-of-day
            end_time: End time-of-day
            first_name, last_name, email, phone: Patient details used for find-or-create
            service_id: Booked service (professional defaults if None)
            notes: Free-text notes
            status: 'confirmed' or 'draft'
            policy: Plan-limit predicate; no limit is applied when None
            validate_slot: Require the exact slot in a fresh slot computation.
                When False only the conflict check runs (waitlist confirmations
                reuse a freed interval that need not align with the slot grid).
            skip_min_advance: Ignore the professional's minimum-advance lead time
            now: Reference instant (defaults to clinic_now())
            commit: Commit the transaction; when False the appointment is only
                flushed so the caller can finish its own transition atomically

        Returns:
            The persisted appointment

        Raises:
            ValidationError: Malformed interval or missing contact details (400)
            NotFoundError: Unknown professional or service (404)
            ConflictError: Interval overlaps an active appointment (409)
            ValidationError: Slot absent from a fresh computation (400)
            LimitReachedError: Plan limit reached (403)
        """
        AppointmentService._validate_interval(start_time, end_time)
        if status not in ACTIVE_APPOINTMENT_STATUSES:
            raise ValidationError(f"Invalid appointment status: {status}")

        now = AppointmentService._resolve_now(now)
        professional = CatalogService.get_professional(db, professional_id)
        service = CatalogService.get_service(db, professional_id, service_id)

        # Advisory checks; the arena claims below are authoritative
        ConflictService.ensure_no_conflict(db, professional_id, appointment_date, start_time, end_time)

        if validate_slot and not AvailabilityService.is_slot_available(
            db, professional_id, appointment_date, start_time, end_time,
            service_id=service_id, skip_min_advance=skip_min_advance, now=now
        ):
            raise ValidationError("Time slot is not available")

        if policy is not None and policy.is_limit_reached(db, professional, appointment_date):
            raise LimitReachedError()

        try:
            patient = PatientService.find_or_create_patient(
                db, professional, first_name, last_name, email=email, phone=phone
            )

            appointment = Appointment(
                professional=professional,
                patient=patient,
                service=service,
                date=appointment_date,
                start_time=start_time,
                end_time=end_time,
                status=status,
                cancellation_token=AppointmentService._generate_cancellation_token(),
                notes=notes,
            )
            db.add(appointment)
            db.flush()

            ConflictService.claim_interval(db, appointment)
            NotificationService.enqueue_appointment_confirmation(db, appointment)

            if commit:
                db.commit()
        except IntegrityError as e:
            logger.warning(f"Appointment booking conflict: {e}")
            db.rollback()
            raise ConflictError()

        logger.info(
            f"Created appointment {appointment.id} for professional {professional_id} "
            f"on {appointment_date} {start_time}-{end_time} (patient {appointment.patient_id})"
        )
        return appointment

    @staticmethod
    def cancel_appointment(
        db: Session,
        appointment_id: int,
        cancelled_by: str,
        now: Optional[datetime] = None
    ) -> Appointment:
        """
        Cancel an appointment and offer the freed slot to the waitlist.

        This method is idempotent - if the appointment is already cancelled,
        it is returned without changes and no cascade runs.

        Raises:
            NotFoundError: If the appointment does not exist
            InvalidStateError: If the appointment was rescheduled
        """
        now = AppointmentService._resolve_now(now)
        appointment = AppointmentService._get_appointment_for_update(db, appointment_id)

        if appointment.status == APPOINTMENT_STATUS_CANCELLED:
            logger.info(f"Appointment {appointment_id} already cancelled")
            db.rollback()
            return appointment
        if appointment.status == APPOINTMENT_STATUS_RESCHEDULED:
            db.rollback()
            raise InvalidStateError("A rescheduled appointment cannot be cancelled")

        appointment.status = APPOINTMENT_STATUS_CANCELLED
        appointment.cancelled_by = cancelled_by
        appointment.cancelled_at = now
        ConflictService.release_claims(db, appointment.id)
        NotificationService.enqueue_appointment_cancellation(db, appointment)
        db.commit()

        logger.info(f"Appointment {appointment_id} cancelled by {cancelled_by}")

        AppointmentService._offer_freed_slot(db, AppointmentService._freed_slot_of(appointment), now)
        return appointment

    @staticmethod
    def cancel_appointment_by_token(
        db: Session,
        cancellation_token: str,
        now: Optional[datetime] = None
    ) -> Appointment:
        """
        Self-service cancellation through the link sent to the patient.

        Raises:
            NotFoundError: If no appointment has this token
        """
        appointment = db.query(Appointment).filter(
            Appointment.cancellation_token == cancellation_token
        ).first()
        if not appointment:
            raise NotFoundError("Appointment not found")
        return AppointmentService.cancel_appointment(db, appointment.id, cancelled_by="patient", now=now)

    @staticmethod
    def reschedule_appointment(
        db: Session,
        appointment_id: int,
        new_date: date,
        start_time: time,
        end_time: time,
        rescheduled_by: str,
        validate_slot: bool = True,
        skip_min_advance: bool = False,
        now: Optional[datetime] = None
    ) -> Appointment:
        """
        Move an appointment to a new interval.

        The old row keeps its time and becomes 'rescheduled'; a new row linked
        through ``rescheduled_from_id`` takes over its claims. Whatever part
        of the old interval is no longer occupied is offered to the waitlist.

        Returns:
            The new appointment

        Raises:
            NotFoundError: If the appointment does not exist
            InvalidStateError: If the appointment is no longer active
            ConflictError: If the new interval overlaps another appointment
            ValidationError: If the new slot is absent from a fresh computation
        """
        AppointmentService._validate_interval(start_time, end_time)
        now = AppointmentService._resolve_now(now)
        previous = AppointmentService._get_appointment_for_update(db, appointment_id)

        if previous.status not in ACTIVE_APPOINTMENT_STATUSES:
            db.rollback()
            raise InvalidStateError(f"Cannot reschedule a {previous.status} appointment")

        ConflictService.ensure_no_conflict(
            db, previous.professional_id, new_date, start_time, end_time,
            exclude_appointment_id=previous.id
        )
        if validate_slot and not AvailabilityService.is_slot_available(
            db, previous.professional_id, new_date, start_time, end_time,
            service_id=previous.service_id, skip_min_advance=skip_min_advance,
            exclude_appointment_id=previous.id, now=now
        ):
            raise ValidationError("Time slot is not available")

        try:
            ConflictService.release_claims(db, previous.id)
            previous.status = APPOINTMENT_STATUS_RESCHEDULED
            previous.rescheduled_by = rescheduled_by
            previous.rescheduled_at = now

            appointment = Appointment(
                professional_id=previous.professional_id,
                patient=previous.patient,
                service_id=previous.service_id,
                date=new_date,
                start_time=start_time,
                end_time=end_time,
                status=APPOINTMENT_STATUS_CONFIRMED,
                cancellation_token=AppointmentService._generate_cancellation_token(),
                rescheduled_from_id=previous.id,
                notes=previous.notes,
            )
            db.add(appointment)
            db.flush()

            ConflictService.claim_interval(db, appointment)
            NotificationService.enqueue_appointment_rescheduled(db, previous, appointment)
            db.commit()
        except IntegrityError as e:
            logger.warning(f"Appointment reschedule conflict: {e}")
            db.rollback()
            raise ConflictError()

        logger.info(
            f"Rescheduled appointment {previous.id} -> {appointment.id} "
            f"({new_date} {start_time}-{end_time}) by {rescheduled_by}"
        )

        AppointmentService._offer_freed_slot(db, AppointmentService._freed_slot_of(previous), now)
        return appointment

    @staticmethod
    def delete_appointment(db: Session, appointment_id: int, now: Optional[datetime] = None) -> None:
        """
        Permanently remove an appointment.

        An active appointment's interval is offered to the waitlist afterwards.

        Raises:
            NotFoundError: If the appointment does not exist
        """
        now = AppointmentService._resolve_now(now)
        appointment = AppointmentService._get_appointment_for_update(db, appointment_id)
        was_active = appointment.status in ACTIVE_APPOINTMENT_STATUSES
        freed_slot = AppointmentService._freed_slot_of(appointment)

        ConflictService.release_claims(db, appointment.id)

        # Detach rows that point at this appointment
        db.query(WaitlistEntry).filter(
            WaitlistEntry.fulfilled_appointment_id == appointment.id
        ).update({WaitlistEntry.fulfilled_appointment_id: None}, synchronize_session=False)
        db.query(Appointment).filter(
            Appointment.rescheduled_from_id == appointment.id
        ).update({Appointment.rescheduled_from_id: None}, synchronize_session=False)

        db.delete(appointment)
        db.commit()
        logger.info(f"Deleted appointment {appointment_id}")

        if was_active:
            AppointmentService._offer_freed_slot(db, freed_slot, now)

    @staticmethod
    def _freed_slot_of(appointment: Appointment) -> FreedSlot:
        return FreedSlot(
            professional_id=appointment.professional_id,
            date=appointment.date,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            service_id=appointment.service_id,
        )

    @staticmethod
    def _offer_freed_slot(db: Session, freed_slot: FreedSlot, now: datetime) -> None:
        """Run the waitlist cascade; the cancellation itself is already committed."""
        try:
            WaitlistService.handle_freed_slot(db, freed_slot, now=now)
        except Exception as e:
            logger.exception(
                f"Waitlist cascade failed for professional {freed_slot.professional_id} "
                f"on {freed_slot.date} {freed_slot.start_time}: {e}"
            )
            db.rollback()
