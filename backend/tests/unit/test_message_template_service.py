"""
Unit tests for message template rendering.
"""

import pytest
from datetime import time, timedelta

from services.message_template_service import MessageTemplateService
from services.waitlist_service import WaitlistService
from shared_types.availability import FreedSlot
from tests.factories import (
    MONDAY, NOW, create_patient, create_professional, create_service, create_waitlist_entry, insert_appointment,
)


class TestRenderMessage:

    def test_replaces_placeholders(self):
        result = MessageTemplateService.render_message(
            "Hello {client_name}, see you at {start_time}.",
            {"client_name": "Ana", "start_time": "14:00"}
        )

        assert result == "Hello Ana, see you at 14:00."

    def test_longer_placeholders_win(self):
        result = MessageTemplateService.render_message(
            "{available_start_time} / {start_time}",
            {"start_time": "09:00", "available_start_time": "14:00"}
        )

        assert result == "14:00 / 09:00"

    def test_empty_optional_lines_are_dropped(self):
        result = MessageTemplateService.render_message(
            "Line one\n{service_line}\nLine three",
            {"service_line": None}
        )

        assert result == "Line one\nLine three"

    def test_unknown_message_type(self):
        with pytest.raises(ValueError):
            MessageTemplateService.render("birthday_greeting", {})


class TestContexts:

    def test_appointment_context(self, db_session):
        professional = create_professional(db_session)
        patient = create_patient(db_session, professional)
        appointment = insert_appointment(db_session, professional, patient, MONDAY, time(9, 0), time(9, 30))

        context = MessageTemplateService.build_appointment_context(appointment)
        subject, body = MessageTemplateService.render("appointment_confirmation", context)

        assert context["appointment_id"] == appointment.id
        assert context["appointment_date"] == "2030-01-07"
        assert context["cancellation_url"].endswith(f"/appointments/cancel/{appointment.cancellation_token}")
        assert subject == "Your appointment with Gregory House is confirmed"
        assert "2030-01-07 from 09:00 to 09:30" in body
        assert "Service:" not in body

    def test_appointment_context_with_service(self, db_session):
        professional = create_professional(db_session)
        service = create_service(db_session, professional, name="Massage")
        patient = create_patient(db_session, professional)
        appointment = insert_appointment(db_session, professional, patient, MONDAY, time(9, 0), time(9, 30))
        appointment.service_id = service.id
        db_session.commit()
        db_session.refresh(appointment)

        context = MessageTemplateService.build_appointment_context(appointment)

        assert context["service_line"] == "Service: Massage"

    def test_waitlist_offer_context(self, db_session):
        professional = create_professional(db_session)
        entry = create_waitlist_entry(
            db_session, professional, MONDAY, NOW,
            preferred_time_start=time(13, 0), preferred_time_end=time(15, 0)
        )
        WaitlistService.handle_freed_slot(
            db_session, FreedSlot(professional.id, MONDAY, time(14, 0), time(14, 30)), now=NOW
        )

        context = MessageTemplateService.build_waitlist_context(entry)
        _, body = MessageTemplateService.render("waitlist_slot_available", context)

        assert context["preferred_window"] == " between 13:00 and 15:00"
        assert context["available_start_time"] == "14:00"
        assert context["expires_at"] == (NOW + timedelta(hours=24)).strftime("%Y-%m-%d %H:%M")
        assert context["confirm_url"].endswith(f"/waitlist/priority/{entry.token}")
        assert "from 14:00 to 14:30" in body
        assert "{" not in body
