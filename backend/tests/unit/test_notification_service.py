"""
Unit tests for the notification outbox and its dispatcher.
"""

import pytest
from contextlib import contextmanager
from datetime import time, timedelta
from unittest.mock import Mock, patch

import httpx

from models import NotificationTask
from services.notification_service import NotificationService, dispatch_pending_notifications
from tests.factories import (
    MONDAY, NOW, create_patient, create_professional, create_waitlist_entry, insert_appointment,
)

WAITLIST_CANCELLED_CONTEXT = {
    "client_name": "Ana Silva",
    "professional_name": "Gregory House",
    "preferred_date": "2030-01-07",
}


@pytest.fixture
def channel():
    """A configured channel whose sends are recorded."""
    mock_channel = Mock()
    mock_channel.is_configured = True
    with patch("services.notification_service.get_channel", return_value=mock_channel):
        yield mock_channel


def enqueue(db_session, message_type="waitlist_cancelled", context=None, send_at=NOW):
    task = NotificationService.enqueue(
        db_session, "email", "ana@example.com", message_type,
        context if context is not None else WAITLIST_CANCELLED_CONTEXT, send_at=send_at
    )
    db_session.commit()
    return task


class TestEnqueue:

    def test_enqueue_pending_task(self, db_session):
        task = enqueue(db_session)

        assert task.status == "pending"
        assert task.retry_count == 0
        assert task.max_retries == 3
        assert task.scheduled_send_time == NOW

    def test_no_recipient_enqueues_nothing(self, db_session):
        assert NotificationService.enqueue(db_session, "sms", None, "waitlist_cancelled", {}) is None
        assert NotificationService.enqueue(db_session, "sms", "  ", "waitlist_cancelled", {}) is None
        db_session.commit()

        assert db_session.query(NotificationTask).count() == 0


class TestSendPending:

    def test_sends_due_tasks(self, db_session, channel):
        task = enqueue(db_session)

        processed = NotificationService.send_pending(db_session, now=NOW)

        assert processed == 1
        assert task.status == "sent"
        assert task.actual_send_time == NOW
        channel.send.assert_called_once()
        recipient, subject, body = channel.send.call_args.args
        assert recipient == "ana@example.com"
        assert subject == "You left the waitlist of Gregory House"
        assert "Ana Silva" in body

    def test_future_tasks_wait(self, db_session, channel):
        task = enqueue(db_session, send_at=NOW + timedelta(hours=1))

        assert NotificationService.send_pending(db_session, now=NOW) == 0
        assert task.status == "pending"
        channel.send.assert_not_called()

    def test_failed_delivery_is_retried_with_backoff(self, db_session, channel):
        channel.send.side_effect = httpx.ConnectError("connection refused")
        task = enqueue(db_session)

        NotificationService.send_pending(db_session, now=NOW)
        assert task.status == "pending"
        assert task.retry_count == 1
        assert task.scheduled_send_time == NOW + timedelta(minutes=2)
        assert "connection refused" in task.error_message

        # Not due yet
        assert NotificationService.send_pending(db_session, now=NOW + timedelta(minutes=1)) == 0

        NotificationService.send_pending(db_session, now=NOW + timedelta(minutes=2))
        assert task.retry_count == 2
        assert task.scheduled_send_time == NOW + timedelta(minutes=6)

        NotificationService.send_pending(db_session, now=NOW + timedelta(minutes=6))
        assert task.retry_count == 3
        assert task.status == "failed"
        assert channel.send.call_count == 3

    def test_unconfigured_channel_is_skipped(self, db_session):
        # No e-mail API is configured in the test environment
        task = enqueue(db_session)

        NotificationService.send_pending(db_session, now=NOW)

        assert task.status == "skipped"
        assert "not configured" in task.error_message

    def test_unknown_message_type_fails(self, db_session, channel):
        task = enqueue(db_session, message_type="birthday_greeting")
        task.max_retries = 1
        db_session.commit()

        NotificationService.send_pending(db_session, now=NOW)

        assert task.status == "failed"
        channel.send.assert_not_called()

    def test_processes_in_batches(self, db_session, channel):
        for _ in range(5):
            enqueue(db_session)

        assert NotificationService.send_pending(db_session, batch_size=2, now=NOW) == 5
        assert channel.send.call_count == 5


class TestRelevance:

    def test_confirmation_for_cancelled_appointment_is_skipped(self, db_session, channel):
        professional = create_professional(db_session)
        patient = create_patient(db_session, professional)
        appointment = insert_appointment(
            db_session, professional, patient, MONDAY, time(9, 0), time(9, 30), status="cancelled"
        )
        task = enqueue(db_session, message_type="appointment_confirmation", context={"appointment_id": appointment.id})

        NotificationService.send_pending(db_session, now=NOW)

        assert task.status == "skipped"
        channel.send.assert_not_called()

    def test_cancellation_notice_is_still_sent(self, db_session, channel):
        professional = create_professional(db_session)
        patient = create_patient(db_session, professional)
        appointment = insert_appointment(
            db_session, professional, patient, MONDAY, time(9, 0), time(9, 30), status="cancelled"
        )
        task = enqueue(db_session, message_type="appointment_cancelled", context={"appointment_id": appointment.id})

        NotificationService.send_pending(db_session, now=NOW)

        assert task.status == "sent"

    def test_offer_for_entry_no_longer_notified_is_skipped(self, db_session, channel):
        professional = create_professional(db_session)
        entry = create_waitlist_entry(db_session, professional, MONDAY, NOW, status="expired")
        task = enqueue(db_session, message_type="waitlist_slot_available", context={"waitlist_entry_id": entry.id})

        assert NotificationService.is_still_relevant(db_session, task) is False


class TestDispatchPendingNotifications:

    def test_drains_outbox_with_fresh_session(self, db_session):
        @contextmanager
        def fake_context():
            yield db_session

        with patch("services.notification_service.get_db_context", fake_context), \
             patch.object(NotificationService, "send_pending", return_value=0) as send_pending:
            dispatch_pending_notifications()

        send_pending.assert_called_once_with(db_session)

    def test_errors_are_logged_not_raised(self):
        with patch("services.notification_service.get_db_context", side_effect=RuntimeError("db down")):
            dispatch_pending_notifications()
