"""
Message template service for rendering notification messages with placeholders.

Contexts are built when a notification is enqueued and stored on the outbox
row, so a message renders the same way whenever the dispatcher gets to it.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from core.config import API_BASE_URL, FRONTEND_URL
from core.message_template_constants import MESSAGE_TEMPLATES
from models import Appointment, Professional, WaitlistEntry
from utils.datetime_utils import ensure_clinic_tz, format_time

logger = logging.getLogger(__name__)


class MessageTemplateService:
    """Service for rendering message templates with placeholders."""

    @staticmethod
    def render_message(template: str, context: Dict[str, Any]) -> str:
        """
        Render message template with placeholders.

        Replacement order: longest placeholders first to avoid substring conflicts
        (e.g., {available_start_time} before {start_time}). Placeholders without
        a value render as an empty string.
        """
        message = template

        sorted_keys = sorted(context.keys(), key=len, reverse=True)
        for key in sorted_keys:
            placeholder = f"{{{key}}}"
            value = str(context.get(key) or "")
            message = message.replace(placeholder, value)

        # Drop lines left empty by optional placeholders
        return "\n".join(line for line in message.splitlines() if line.strip())

    @staticmethod
    def render(message_type: str, context: Dict[str, Any]) -> Tuple[str, str]:
        """
        Render (subject, body) for a message type.

        Raises:
            ValueError: If the message type is unknown
        """
        templates = MESSAGE_TEMPLATES.get(message_type)
        if templates is None:
            raise ValueError(f"Unsupported message_type: {message_type}")
        subject_template, body_template = templates
        return (
            MessageTemplateService.render_message(subject_template, context),
            MessageTemplateService.render_message(body_template, context),
        )

    @staticmethod
    def build_appointment_context(appointment: Appointment) -> Dict[str, Any]:
        """Context for appointment confirmation/cancellation/reschedule messages."""
        patient = appointment.patient
        professional = appointment.professional
        service = appointment.service

        return {
            "appointment_id": appointment.id,
            "patient_name": patient.full_name if patient else "",
            "professional_name": professional.full_name if professional else "",
            "appointment_date": appointment.date.isoformat(),
            "start_time": format_time(appointment.start_time),
            "end_time": format_time(appointment.end_time),
            "service_line": f"Service: {service.name}" if service else "",
            "cancellation_url": f"{FRONTEND_URL}/appointments/cancel/{appointment.cancellation_token}",
            "cancelled_by": appointment.cancelled_by or "",
        }

    @staticmethod
    def build_waitlist_context(entry: WaitlistEntry, professional: Optional[Professional] = None) -> Dict[str, Any]:
        """Context for waitlist messages, including the token links."""
        professional = professional or entry.professional

        preferred_window = ""
        if entry.preferred_time_start and entry.preferred_time_end:
            preferred_window = (
                f" between {format_time(entry.preferred_time_start)}"
                f" and {format_time(entry.preferred_time_end)}"
            )

        contact = ", ".join(c for c in (entry.email, entry.phone) if c)

        context: Dict[str, Any] = {
            "waitlist_entry_id": entry.id,
            "client_name": entry.full_name,
            "client_contact": contact,
            "professional_name": professional.full_name if professional else "",
            "preferred_date": entry.preferred_date.isoformat(),
            "preferred_window": preferred_window,
            "confirm_url": f"{FRONTEND_URL}/waitlist/priority/{entry.token}",
            "release_url": f"{FRONTEND_URL}/waitlist/priority/{entry.token}?action=release",
            "cancel_url": f"{API_BASE_URL}/waitlist/{entry.token}",
        }

        if entry.available_date is not None:
            context["available_date"] = entry.available_date.isoformat()
        if entry.available_start_time is not None:
            context["available_start_time"] = format_time(entry.available_start_time)
        if entry.available_end_time is not None:
            context["available_end_time"] = format_time(entry.available_end_time)
        if entry.expires_at is not None:
            expires_at = ensure_clinic_tz(entry.expires_at)
            assert isinstance(expires_at, datetime)
            context["expires_at"] = expires_at.strftime("%Y-%m-%d %H:%M")

        return context
