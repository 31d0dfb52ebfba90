"""
Notification service: the outbox for e-mail/SMS delivery.

State transitions (booking, cancellation, waitlist offers) enqueue
NotificationTask rows inside their own transaction. Delivery happens later,
from the scheduler or from a best-effort background drain after the
response, with retries and exponential backoff. A delivery failure is logged
and retried; it never reaches the request that caused the notification.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from core.constants import (
    ACTIVE_APPOINTMENT_STATUSES, NOTIFICATION_BATCH_SIZE, NOTIFICATION_MAX_RETRIES,
    WAITLIST_STATUS_NOTIFIED,
)
from core.database import get_db_context
from core.message_template_constants import (
    MESSAGE_APPOINTMENT_CANCELLED, MESSAGE_APPOINTMENT_CONFIRMATION, MESSAGE_APPOINTMENT_RESCHEDULED,
    MESSAGE_PROFESSIONAL_APPOINTMENT_CANCELLED, MESSAGE_PROFESSIONAL_NEW_BOOKING,
    MESSAGE_PROFESSIONAL_WAITLIST_JOINED, MESSAGE_WAITLIST_CANCELLED, MESSAGE_WAITLIST_JOINED,
    MESSAGE_WAITLIST_OFFER_EXPIRED, MESSAGE_WAITLIST_SLOT_AVAILABLE,
)
from models import Appointment, NotificationTask, WaitlistEntry
from services.message_template_service import MessageTemplateService
from services.notification_channels import CHANNEL_EMAIL, CHANNEL_SMS, get_channel
from utils.datetime_utils import clinic_now, ensure_clinic_tz, format_time

logger = logging.getLogger(__name__)

# Messages that only make sense while the appointment still occupies the calendar
_APPOINTMENT_BOUND_MESSAGES = (
    MESSAGE_APPOINTMENT_CONFIRMATION,
    MESSAGE_PROFESSIONAL_NEW_BOOKING,
    MESSAGE_APPOINTMENT_RESCHEDULED,
)


class NotificationService:
    """Service for enqueueing and delivering notifications."""

    @staticmethod
    def enqueue(
        db: Session,
        channel: str,
        recipient: Optional[str],
        message_type: str,
        context: Dict[str, Any],
        send_at: Optional[datetime] = None
    ) -> Optional[NotificationTask]:
        """
        Add a notification to the outbox in the caller's transaction.

        Returns None (and enqueues nothing) when there is no recipient.
        """
        if not recipient or not recipient.strip():
            return None

        task = NotificationTask(
            channel=channel,
            recipient=recipient.strip(),
            message_type=message_type,
            context=context,
            status='pending',
            retry_count=0,
            max_retries=NOTIFICATION_MAX_RETRIES,
            scheduled_send_time=send_at or clinic_now(),
        )
        db.add(task)
        return task

    @staticmethod
    def _enqueue_email_and_sms(
        db: Session,
        email: Optional[str],
        phone: Optional[str],
        message_type: str,
        context: Dict[str, Any]
    ) -> List[NotificationTask]:
        tasks = [
            NotificationService.enqueue(db, CHANNEL_EMAIL, email, message_type, context),
            NotificationService.enqueue(db, CHANNEL_SMS, phone, message_type, context),
        ]
        return [t for t in tasks if t is not None]

    @staticmethod
    def enqueue_appointment_confirmation(db: Session, appointment: Appointment) -> List[NotificationTask]:
        """Confirmation to the patient and new-booking notice to the professional."""
        context = MessageTemplateService.build_appointment_context(appointment)
        patient = appointment.patient
        tasks = NotificationService._enqueue_email_and_sms(
            db, patient.email, patient.phone, MESSAGE_APPOINTMENT_CONFIRMATION, context
        )
        professional_task = NotificationService.enqueue(
            db, CHANNEL_EMAIL, appointment.professional.email, MESSAGE_PROFESSIONAL_NEW_BOOKING, context
        )
        if professional_task:
            tasks.append(professional_task)
        return tasks

    @staticmethod
    def enqueue_appointment_cancellation(db: Session, appointment: Appointment) -> List[NotificationTask]:
        """Cancellation notice to the patient and the professional."""
        context = MessageTemplateService.build_appointment_context(appointment)
        patient = appointment.patient
        tasks = NotificationService._enqueue_email_and_sms(
            db, patient.email, patient.phone, MESSAGE_APPOINTMENT_CANCELLED, context
        )
        professional_task = NotificationService.enqueue(
            db, CHANNEL_EMAIL, appointment.professional.email,
            MESSAGE_PROFESSIONAL_APPOINTMENT_CANCELLED, context
        )
        if professional_task:
            tasks.append(professional_task)
        return tasks

    @staticmethod
    def enqueue_appointment_rescheduled(
        db: Session,
        previous: Appointment,
        appointment: Appointment
    ) -> List[NotificationTask]:
        """Tell the patient their appointment moved."""
        context = MessageTemplateService.build_appointment_context(appointment)
        context.update({
            "previous_date": previous.date.isoformat(),
            "previous_start_time": format_time(previous.start_time),
        })
        patient = appointment.patient
        return NotificationService._enqueue_email_and_sms(
            db, patient.email, patient.phone, MESSAGE_APPOINTMENT_RESCHEDULED, context
        )

    @staticmethod
    def enqueue_waitlist_joined(db: Session, entry: WaitlistEntry) -> List[NotificationTask]:
        """Join confirmation to the client and a notice to the professional."""
        context = MessageTemplateService.build_waitlist_context(entry)
        tasks = NotificationService._enqueue_email_and_sms(
            db, entry.email, entry.phone, MESSAGE_WAITLIST_JOINED, context
        )
        professional_task = NotificationService.enqueue(
            db, CHANNEL_EMAIL, entry.professional.email, MESSAGE_PROFESSIONAL_WAITLIST_JOINED, context
        )
        if professional_task:
            tasks.append(professional_task)
        return tasks

    @staticmethod
    def enqueue_waitlist_slot_available(db: Session, entry: WaitlistEntry) -> List[NotificationTask]:
        """Priority offer with the confirm/release links."""
        context = MessageTemplateService.build_waitlist_context(entry)
        return NotificationService._enqueue_email_and_sms(
            db, entry.email, entry.phone, MESSAGE_WAITLIST_SLOT_AVAILABLE, context
        )

    @staticmethod
    def enqueue_waitlist_offer_expired(db: Session, entry: WaitlistEntry) -> List[NotificationTask]:
        context = MessageTemplateService.build_waitlist_context(entry)
        return NotificationService._enqueue_email_and_sms(
            db, entry.email, None, MESSAGE_WAITLIST_OFFER_EXPIRED, context
        )

    @staticmethod
    def enqueue_waitlist_cancelled(db: Session, entry: WaitlistEntry) -> List[NotificationTask]:
        context = MessageTemplateService.build_waitlist_context(entry)
        return NotificationService._enqueue_email_and_sms(
            db, entry.email, None, MESSAGE_WAITLIST_CANCELLED, context
        )

    @staticmethod
    def is_still_relevant(db: Session, task: NotificationTask) -> bool:
        """
        Whether the state a task describes still holds.

        A booking confirmation for an appointment cancelled before delivery,
        or an offer for an entry that already left 'notified', is skipped.
        """
        if task.message_type in _APPOINTMENT_BOUND_MESSAGES:
            appointment_id = task.context.get("appointment_id")
            if not appointment_id:
                return True
            appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
            if not appointment or appointment.status not in ACTIVE_APPOINTMENT_STATUSES:
                logger.info(f"Appointment {appointment_id} no longer active, skipping notification {task.id}")
                return False

        if task.message_type == MESSAGE_WAITLIST_SLOT_AVAILABLE:
            entry_id = task.context.get("waitlist_entry_id")
            entry = db.query(WaitlistEntry).filter(WaitlistEntry.id == entry_id).first()
            if not entry or entry.status != WAITLIST_STATUS_NOTIFIED:
                logger.info(f"Waitlist entry {entry_id} no longer notified, skipping notification {task.id}")
                return False

        return True

    @staticmethod
    def deliver(db: Session, task: NotificationTask, now: Optional[datetime] = None) -> None:
        """
        Attempt delivery of a single task and record the outcome on it.

        Failures are retried with exponential backoff (2, 4, 8... minutes)
        until ``max_retries`` attempts have failed.
        """
        current_time = ensure_clinic_tz(now) if now is not None else clinic_now()
        try:
            if not NotificationService.is_still_relevant(db, task):
                task.status = 'skipped'
                task.error_message = 'No longer relevant'
                return

            channel = get_channel(task.channel)
            if channel is None or not channel.is_configured:
                logger.warning(f"Channel {task.channel} not configured, skipping notification {task.id}")
                task.status = 'skipped'
                task.error_message = f'Channel {task.channel} not configured'
                return

            subject, body = MessageTemplateService.render(task.message_type, task.context)
            channel.send(task.recipient, subject, body)

            task.status = 'sent'
            task.actual_send_time = current_time
            task.error_message = None
            logger.info(f"Sent {task.message_type} notification {task.id} via {task.channel}")
        except Exception as e:
            logger.exception(f"Failed to send notification {task.id}: {e}")
            task.status = 'failed'
            task.error_message = str(e)
            task.retry_count += 1

            # Retry logic with exponential backoff
            if task.retry_count < task.max_retries:
                backoff_minutes = 2 ** task.retry_count
                task.scheduled_send_time = current_time + timedelta(minutes=backoff_minutes)
                task.status = 'pending'
                logger.info(
                    f"Rescheduled notification {task.id} for retry {task.retry_count}/"
                    f"{task.max_retries} at {task.scheduled_send_time}"
                )
            else:
                logger.error(f"Notification {task.id} failed after {task.max_retries} retries: {e}")

    @staticmethod
    def send_pending(
        db: Session,
        batch_size: int = NOTIFICATION_BATCH_SIZE,
        now: Optional[datetime] = None
    ) -> int:
        """
        Deliver all due pending notifications.

        Processes tasks in batches and commits after each one so a crash
        mid-batch never re-sends what was already delivered.

        Returns:
            Number of tasks processed
        """
        current_time = ensure_clinic_tz(now) if now is not None else clinic_now()
        processed = 0

        while True:
            # Use SELECT FOR UPDATE SKIP LOCKED for concurrent dispatcher support
            pending = db.query(NotificationTask).filter(
                NotificationTask.status == 'pending',
                NotificationTask.scheduled_send_time <= current_time
            ).order_by(
                NotificationTask.scheduled_send_time, NotificationTask.id
            ).with_for_update(skip_locked=True).limit(batch_size).all()

            if not pending:
                break

            logger.info(f"Processing {len(pending)} pending notifications")
            for task in pending:
                NotificationService.deliver(db, task, now=current_time)
                db.commit()
                processed += 1

        return processed


def dispatch_pending_notifications() -> None:
    """
    Drain the outbox with a fresh session.

    Used as a FastAPI background task right after a request that enqueued
    notifications; the scheduler job catches anything this misses.
    """
    try:
        with get_db_context() as db:
            NotificationService.send_pending(db)
    except Exception as e:
        logger.exception(f"Error dispatching pending notifications: {e}")


def get_notification_dispatcher() -> Callable[[], None]:
    """FastAPI dependency returning the function that drains the outbox."""
    return dispatch_pending_notifications
