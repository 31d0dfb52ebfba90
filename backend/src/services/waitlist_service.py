"""
Waitlist service: the reconciliation engine.

Entries follow a one-directional state machine:

    pending --notify--> notified --confirm--> fulfilled
                        notified --expire---> expired
                        notified --release--> cancelled
    pending/notified --cancel--> cancelled

When an interval is freed (cancellation, deletion, reschedule, or an offer
that is released or expires), ``handle_freed_slot`` offers it to the oldest
matching pending entry. The ``pending -> notified`` claim is a conditional
UPDATE committed together with the outbox rows, before any delivery I/O, so
two cascades can never notify the same entry and a failed delivery never
undoes an offer.
"""

import logging
import secrets
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from core.config import WAITLIST_MATCH_LOOKBACK_DAYS, WAITLIST_MATCH_TIME_WINDOW, WAITLIST_OFFER_HOURS
from core.constants import (
    WAITLIST_STATUS_CANCELLED, WAITLIST_STATUS_EXPIRED, WAITLIST_STATUS_FULFILLED,
    WAITLIST_STATUS_NOTIFIED, WAITLIST_STATUS_PENDING, WAITLIST_STATUSES, WAITLIST_TOKEN_BYTES,
)
from core.exceptions import (
    ConflictError, ExpiredError, InvalidStateError, NotFoundError, UnauthorizedError, ValidationError
)
from models import Appointment, WaitlistEntry
from services.catalog_service import CatalogService
from services.conflict_service import ConflictService
from services.notification_service import NotificationService
from services.plan_limit_service import PlanLimitPolicy
from shared_types.availability import FreedSlot
from utils.datetime_utils import add_days, clinic_now, ensure_clinic_tz, to_civil, to_instant
from utils.interval_utils import times_overlap

logger = logging.getLogger(__name__)


class WaitlistService:
    """Service class for waitlist entries and the freed-slot cascade."""

    @staticmethod
    def _resolve_now(now: Optional[datetime]) -> datetime:
        resolved = ensure_clinic_tz(now) if now is not None else clinic_now()
        assert resolved is not None
        return resolved

    @staticmethod
    def _generate_token() -> str:
        return secrets.token_urlsafe(WAITLIST_TOKEN_BYTES)

    # ===== Entry lifecycle =====

    @staticmethod
    def create_entry(
        db: Session,
        professional_id: int,
        first_name: str,
        last_name: str,
        phone: str,
        preferred_date: date,
        email: Optional[str] = None,
        preferred_time_start: Optional[time] = None,
        preferred_time_end: Optional[time] = None,
        service_id: Optional[int] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> WaitlistEntry:
        """
        Add a client to a professional's waitlist.

        Raises:
            NotFoundError: Unknown professional or service
            ValidationError: Preferred date before today (clinic zone) or an
                invalid preferred time window
        """
        now = WaitlistService._resolve_now(now)
        professional = CatalogService.get_professional(db, professional_id)
        CatalogService.get_service(db, professional_id, service_id)

        today, _ = to_civil(now)
        if preferred_date < today:
            raise ValidationError("Preferred date cannot be in the past")

        if (preferred_time_start is None) != (preferred_time_end is None):
            raise ValidationError("Both preferred start and end times are required")
        if preferred_time_start is not None and preferred_time_end is not None \
                and preferred_time_start >= preferred_time_end:
            raise ValidationError("Preferred start time must be before end time")

        entry = WaitlistEntry(
            professional=professional,
            service_id=service_id,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email.strip() if email else None,
            phone=phone.strip(),
            preferred_date=preferred_date,
            preferred_time_start=preferred_time_start,
            preferred_time_end=preferred_time_end,
            token=WaitlistService._generate_token(),
            status=WAITLIST_STATUS_PENDING,
            notes=notes,
            created_at=now,
        )
        db.add(entry)
        db.flush()

        NotificationService.enqueue_waitlist_joined(db, entry)
        db.commit()

        logger.info(
            f"Created waitlist entry {entry.id} for professional {professional_id} "
            f"on {preferred_date}"
        )
        return entry

    @staticmethod
    def _get_entry_by_token(db: Session, token: str) -> WaitlistEntry:
        entry = db.query(WaitlistEntry).filter(WaitlistEntry.token == token).first()
        if not entry:
            raise NotFoundError("Waitlist entry not found")
        return entry

    @staticmethod
    def get_entry_by_token(db: Session, token: str, now: Optional[datetime] = None) -> WaitlistEntry:
        """
        Return the entry for a token, expiring a stale offer first.

        Raises:
            NotFoundError: If no entry has this token
        """
        entry = WaitlistService._get_entry_by_token(db, token)
        WaitlistService.expire_entry_if_stale(db, entry, now=now)
        return entry

    @staticmethod
    def list_entries(
        db: Session,
        professional_id: int,
        status: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> List[WaitlistEntry]:
        """
        A professional's waitlist in FIFO order, optionally filtered by status.

        Stale offers are expired before listing.
        """
        if status is not None and status not in WAITLIST_STATUSES:
            raise ValidationError(f"Invalid waitlist status: {status}")
        CatalogService.get_professional(db, professional_id)

        WaitlistService.expire_stale_entries(db, now=now, professional_id=professional_id)

        query = db.query(WaitlistEntry).filter(WaitlistEntry.professional_id == professional_id)
        if status is not None:
            query = query.filter(WaitlistEntry.status == status)
        return query.order_by(WaitlistEntry.created_at, WaitlistEntry.id).all()

    @staticmethod
    def _transition(
        db: Session,
        entry: WaitlistEntry,
        from_statuses: tuple[str, ...],
        values: dict
    ) -> bool:
        """
        Conditionally move an entry out of ``from_statuses``.

        Returns False when another transaction already moved it. Not committed.
        """
        updated = db.query(WaitlistEntry).filter(
            WaitlistEntry.id == entry.id,
            WaitlistEntry.status.in_(from_statuses)
        ).update(values, synchronize_session=False)
        db.refresh(entry)
        return updated == 1

    @staticmethod
    def _is_stale(entry: WaitlistEntry, now: datetime) -> bool:
        return (
            entry.status == WAITLIST_STATUS_NOTIFIED
            and entry.expires_at is not None
            and now > entry.expires_at
        )

    @staticmethod
    def _stamped_slot(entry: WaitlistEntry) -> Optional[FreedSlot]:
        if entry.available_date is None or entry.available_start_time is None \
                or entry.available_end_time is None:
            return None
        return FreedSlot(
            professional_id=entry.professional_id,
            date=entry.available_date,
            start_time=entry.available_start_time,
            end_time=entry.available_end_time,
            service_id=entry.available_service_id,
        )

    @staticmethod
    def expire_entry_if_stale(db: Session, entry: WaitlistEntry, now: Optional[datetime] = None) -> bool:
        """
        Expire a notified entry whose offer window has passed.

        Idempotent: an entry that is not a stale offer (including one that
        is already expired) is left untouched. An expired offer is re-offered
        to the next matching pending entry.

        Returns:
            True if this call performed the transition
        """
        now = WaitlistService._resolve_now(now)
        if not WaitlistService._is_stale(entry, now):
            return False

        if not WaitlistService._transition(
            db, entry, (WAITLIST_STATUS_NOTIFIED,), {WaitlistEntry.status: WAITLIST_STATUS_EXPIRED}
        ):
            db.commit()
            return False

        NotificationService.enqueue_waitlist_offer_expired(db, entry)
        db.commit()
        logger.info(f"Waitlist entry {entry.id} expired (offer ended {entry.expires_at})")

        freed_slot = WaitlistService._stamped_slot(entry)
        if freed_slot is not None:
            WaitlistService.handle_freed_slot(db, freed_slot, now=now)
        return True

    @staticmethod
    def expire_stale_entries(
        db: Session,
        now: Optional[datetime] = None,
        professional_id: Optional[int] = None
    ) -> int:
        """
        Sweep all stale offers (periodic job and list views).

        Returns:
            Number of entries expired by this call
        """
        now = WaitlistService._resolve_now(now)
        query = db.query(WaitlistEntry).filter(
            WaitlistEntry.status == WAITLIST_STATUS_NOTIFIED,
            WaitlistEntry.expires_at < now
        )
        if professional_id is not None:
            query = query.filter(WaitlistEntry.professional_id == professional_id)

        expired = 0
        for entry in query.order_by(WaitlistEntry.expires_at, WaitlistEntry.id).all():
            if WaitlistService.expire_entry_if_stale(db, entry, now=now):
                expired += 1

        if expired:
            logger.info(f"Expired {expired} stale waitlist offers")
        return expired

    # ===== Freed-slot cascade =====

    @staticmethod
    def find_matching_entries(db: Session, freed_slot: FreedSlot) -> List[WaitlistEntry]:
        """
        Pending entries that may take the freed slot, oldest first.

        Matching rules:
        - same professional;
        - service: a slot of service S matches entries for S or for no
          service; a slot without a service only matches entries without one;
        - date: ``slot date - WAITLIST_MATCH_LOOKBACK_DAYS <= preferred_date <= slot date``;
        - time (when WAITLIST_MATCH_TIME_WINDOW is on): an entry with a
          preferred window must contain the whole slot.
        """
        earliest_date = add_days(freed_slot.date, -WAITLIST_MATCH_LOOKBACK_DAYS)

        query = db.query(WaitlistEntry).filter(
            WaitlistEntry.professional_id == freed_slot.professional_id,
            WaitlistEntry.status == WAITLIST_STATUS_PENDING,
            WaitlistEntry.preferred_date <= freed_slot.date,
            WaitlistEntry.preferred_date >= earliest_date
        )
        if freed_slot.service_id is not None:
            query = query.filter(or_(
                WaitlistEntry.service_id == freed_slot.service_id,
                WaitlistEntry.service_id.is_(None)
            ))
        else:
            query = query.filter(WaitlistEntry.service_id.is_(None))

        entries = query.order_by(WaitlistEntry.created_at, WaitlistEntry.id).all()

        if not WAITLIST_MATCH_TIME_WINDOW:
            return entries
        return [
            e for e in entries
            if e.preferred_time_start is None or e.preferred_time_end is None
            or (e.preferred_time_start <= freed_slot.start_time
                and freed_slot.end_time <= e.preferred_time_end)
        ]

    @staticmethod
    def _has_active_offer(db: Session, freed_slot: FreedSlot, now: datetime) -> bool:
        """Whether an unexpired notified entry already owns part of this interval."""
        offers = db.query(WaitlistEntry).filter(
            WaitlistEntry.professional_id == freed_slot.professional_id,
            WaitlistEntry.status == WAITLIST_STATUS_NOTIFIED,
            WaitlistEntry.available_date == freed_slot.date,
            WaitlistEntry.expires_at >= now
        ).all()
        return any(
            o.available_start_time is not None and o.available_end_time is not None
            and times_overlap(o.available_start_time, o.available_end_time,
                              freed_slot.start_time, freed_slot.end_time)
            for o in offers
        )

    @staticmethod
    def handle_freed_slot(
        db: Session,
        freed_slot: FreedSlot,
        now: Optional[datetime] = None
    ) -> Optional[WaitlistEntry]:
        """
        Offer a freed interval to the first matching pending entry.

        Does nothing when the interval is in the past, overlaps a break, was
        already rebooked or is still owned by another offer.

        Returns:
            The entry that was notified, or None
        """
        now = WaitlistService._resolve_now(now)
        slot_desc = (
            f"professional {freed_slot.professional_id} {freed_slot.date} "
            f"{freed_slot.start_time}-{freed_slot.end_time}"
        )

        if to_instant(freed_slot.date, freed_slot.start_time) <= now:
            logger.debug(f"Freed slot in the past, not offered: {slot_desc}")
            return None

        if ConflictService.find_overlapping_breaks(
            db, freed_slot.professional_id, freed_slot.date, freed_slot.start_time, freed_slot.end_time
        ):
            logger.info(f"Freed slot overlaps a break, not offered: {slot_desc}")
            return None

        if ConflictService.find_conflicts(
            db, freed_slot.professional_id, freed_slot.date, freed_slot.start_time, freed_slot.end_time
        ):
            logger.info(f"Freed slot already rebooked, not offered: {slot_desc}")
            return None

        if WaitlistService._has_active_offer(db, freed_slot, now):
            logger.info(f"Freed slot already offered to another entry: {slot_desc}")
            return None

        expires_at = now + timedelta(hours=WAITLIST_OFFER_HOURS)
        for candidate in WaitlistService.find_matching_entries(db, freed_slot):
            claimed = WaitlistService._transition(
                db, candidate, (WAITLIST_STATUS_PENDING,), {
                    WaitlistEntry.status: WAITLIST_STATUS_NOTIFIED,
                    WaitlistEntry.notified_at: now,
                    WaitlistEntry.expires_at: expires_at,
                    WaitlistEntry.available_date: freed_slot.date,
                    WaitlistEntry.available_start_time: freed_slot.start_time,
                    WaitlistEntry.available_end_time: freed_slot.end_time,
                    WaitlistEntry.available_service_id: freed_slot.service_id,
                }
            )
            if not claimed:
                # Claimed by a concurrent cascade; try the next one in line
                continue

            NotificationService.enqueue_waitlist_slot_available(db, candidate)
            db.commit()
            logger.info(f"Waitlist entry {candidate.id} notified for {slot_desc}, expires {expires_at}")
            return candidate

        logger.info(f"No pending waitlist entry matches {slot_desc}")
        return None

    # ===== Token holder / admin actions =====

    @staticmethod
    def _ensure_offer_open(db: Session, entry: WaitlistEntry, now: datetime) -> None:
        """
        Guard shared by confirm and release.

        Raises:
            ExpiredError: If the offer is past its window (the entry is expired first)
            InvalidStateError: If the entry is not awaiting confirmation
        """
        if WaitlistService._is_stale(entry, now):
            WaitlistService.expire_entry_if_stale(db, entry, now=now)
            raise ExpiredError()
        if entry.status == WAITLIST_STATUS_EXPIRED:
            raise ExpiredError()
        if entry.status != WAITLIST_STATUS_NOTIFIED:
            raise InvalidStateError("Waitlist entry is not awaiting confirmation")

    @staticmethod
    def confirm_entry(
        db: Session,
        token: str,
        policy: Optional[PlanLimitPolicy] = None,
        now: Optional[datetime] = None
    ) -> Appointment:
        """
        Book the offered slot for the token holder.

        Returns:
            The created appointment

        Raises:
            NotFoundError: Unknown token
            ExpiredError: Offer window passed (410)
            InvalidStateError: Entry not notified (400)
            ConflictError: The slot was taken in the meantime (409)
            LimitReachedError: Plan limit reached (403)
        """
        # Import here to avoid circular import
        from services.appointment_service import AppointmentService

        now = WaitlistService._resolve_now(now)
        entry = WaitlistService._get_entry_by_token(db, token)
        WaitlistService._ensure_offer_open(db, entry, now)

        slot = WaitlistService._stamped_slot(entry)
        if slot is None:
            raise InvalidStateError("Waitlist entry has no offered slot")

        appointment = AppointmentService.create_appointment(
            db,
            professional_id=entry.professional_id,
            appointment_date=slot.date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            first_name=entry.first_name,
            last_name=entry.last_name,
            email=entry.email,
            phone=entry.phone,
            service_id=slot.service_id,
            notes=entry.notes,
            policy=policy,
            validate_slot=False,
            now=now,
            commit=False,
        )

        if not WaitlistService._transition(
            db, entry, (WAITLIST_STATUS_NOTIFIED,), {
                WaitlistEntry.status: WAITLIST_STATUS_FULFILLED,
                WaitlistEntry.fulfilled_appointment_id: appointment.id,
            }
        ):
            # Expired or cancelled by a concurrent request
            db.rollback()
            db.refresh(entry)
            if entry.status == WAITLIST_STATUS_EXPIRED:
                raise ExpiredError()
            raise ConflictError("Waitlist entry changed while confirming")

        db.commit()
        logger.info(f"Waitlist entry {entry.id} fulfilled with appointment {appointment.id}")
        return appointment

    @staticmethod
    def release_entry(db: Session, token: str, now: Optional[datetime] = None) -> WaitlistEntry:
        """
        Give the offered slot up so it cascades to the next entry in line.

        Raises:
            NotFoundError: Unknown token
            ExpiredError: Offer window passed (410)
            InvalidStateError: Entry not notified (400)
        """
        now = WaitlistService._resolve_now(now)
        entry = WaitlistService._get_entry_by_token(db, token)
        WaitlistService._ensure_offer_open(db, entry, now)

        if not WaitlistService._transition(
            db, entry, (WAITLIST_STATUS_NOTIFIED,), {WaitlistEntry.status: WAITLIST_STATUS_CANCELLED}
        ):
            db.rollback()
            raise InvalidStateError("Waitlist entry is not awaiting confirmation")
        db.commit()
        logger.info(f"Waitlist entry {entry.id} released its offer")

        freed_slot = WaitlistService._stamped_slot(entry)
        if freed_slot is not None:
            WaitlistService.handle_freed_slot(db, freed_slot, now=now)
        return entry

    @staticmethod
    def _cancel(db: Session, entry: WaitlistEntry, now: datetime, cancelled_by: str) -> WaitlistEntry:
        WaitlistService.expire_entry_if_stale(db, entry, now=now)

        if entry.status == WAITLIST_STATUS_CANCELLED:
            return entry
        if entry.status not in (WAITLIST_STATUS_PENDING, WAITLIST_STATUS_NOTIFIED):
            raise InvalidStateError(f"Cannot cancel a {entry.status} waitlist entry")

        was_notified = entry.status == WAITLIST_STATUS_NOTIFIED
        if not WaitlistService._transition(
            db, entry, (WAITLIST_STATUS_PENDING, WAITLIST_STATUS_NOTIFIED),
            {WaitlistEntry.status: WAITLIST_STATUS_CANCELLED}
        ):
            db.rollback()
            raise InvalidStateError("Waitlist entry changed while cancelling")

        NotificationService.enqueue_waitlist_cancelled(db, entry)
        db.commit()
        logger.info(f"Waitlist entry {entry.id} cancelled by {cancelled_by}")

        if was_notified:
            freed_slot = WaitlistService._stamped_slot(entry)
            if freed_slot is not None:
                WaitlistService.handle_freed_slot(db, freed_slot, now=now)
        return entry

    @staticmethod
    def cancel_entry(db: Session, token: str, now: Optional[datetime] = None) -> WaitlistEntry:
        """
        Holder cancellation through the token link. Idempotent.

        Raises:
            NotFoundError: Unknown token
            InvalidStateError: Entry already fulfilled or expired
        """
        now = WaitlistService._resolve_now(now)
        entry = WaitlistService._get_entry_by_token(db, token)
        return WaitlistService._cancel(db, entry, now, cancelled_by="client")

    @staticmethod
    def cancel_entry_by_id(
        db: Session,
        professional_id: int,
        entry_id: int,
        now: Optional[datetime] = None
    ) -> WaitlistEntry:
        """
        Professional-side cancellation. Idempotent.

        Raises:
            NotFoundError: Unknown entry
            UnauthorizedError: Entry belongs to another professional
            InvalidStateError: Entry already fulfilled or expired
        """
        now = WaitlistService._resolve_now(now)
        entry = db.query(WaitlistEntry).filter(WaitlistEntry.id == entry_id).first()
        if not entry:
            raise NotFoundError("Waitlist entry not found")
        if entry.professional_id != professional_id:
            raise UnauthorizedError("Waitlist entry belongs to another professional")
        return WaitlistService._cancel(db, entry, now, cancelled_by="professional")
