"""
Default message templates for booking and waitlist notifications.

Placeholders use ``{name}`` syntax and are filled by
MessageTemplateService.render_message(). Each message type has a subject
(e-mail only) and a body (e-mail and SMS).
"""

# Message types
MESSAGE_APPOINTMENT_CONFIRMATION = "appointment_confirmation"
MESSAGE_PROFESSIONAL_NEW_BOOKING = "professional_new_booking"
MESSAGE_APPOINTMENT_CANCELLED = "appointment_cancelled"
MESSAGE_PROFESSIONAL_APPOINTMENT_CANCELLED = "professional_appointment_cancelled"
MESSAGE_APPOINTMENT_RESCHEDULED = "appointment_rescheduled"
MESSAGE_WAITLIST_JOINED = "waitlist_joined"
MESSAGE_PROFESSIONAL_WAITLIST_JOINED = "professional_waitlist_joined"
MESSAGE_WAITLIST_SLOT_AVAILABLE = "waitlist_slot_available"
MESSAGE_WAITLIST_OFFER_EXPIRED = "waitlist_offer_expired"
MESSAGE_WAITLIST_CANCELLED = "waitlist_cancelled"

DEFAULT_APPOINTMENT_CONFIRMATION_SUBJECT = "Your appointment with {professional_name} is confirmed"
DEFAULT_APPOINTMENT_CONFIRMATION_MESSAGE = """Hello {patient_name},
Your appointment with {professional_name} is confirmed for {appointment_date} from {start_time} to {end_time}.
{service_line}
To cancel, use this link: {cancellation_url}"""

DEFAULT_PROFESSIONAL_NEW_BOOKING_SUBJECT = "New appointment: {patient_name} on {appointment_date}"
DEFAULT_PROFESSIONAL_NEW_BOOKING_MESSAGE = """New appointment booked.
Patient: {patient_name}
Date: {appointment_date} {start_time}-{end_time}
{service_line}"""

DEFAULT_APPOINTMENT_CANCELLED_SUBJECT = "Your appointment on {appointment_date} was cancelled"
DEFAULT_APPOINTMENT_CANCELLED_MESSAGE = """Hello {patient_name},
Your appointment with {professional_name} on {appointment_date} at {start_time} has been cancelled."""

DEFAULT_PROFESSIONAL_APPOINTMENT_CANCELLED_SUBJECT = "Appointment cancelled: {patient_name} on {appointment_date}"
DEFAULT_PROFESSIONAL_APPOINTMENT_CANCELLED_MESSAGE = """The appointment of {patient_name} on {appointment_date} at {start_time} was cancelled by {cancelled_by}."""

DEFAULT_APPOINTMENT_RESCHEDULED_SUBJECT = "Your appointment with {professional_name} was moved"
DEFAULT_APPOINTMENT_RESCHEDULED_MESSAGE = """Hello {patient_name},
Your appointment with {professional_name} on {previous_date} at {previous_start_time} was moved to {appointment_date} from {start_time} to {end_time}.
To cancel, use this link: {cancellation_url}"""

DEFAULT_WAITLIST_JOINED_SUBJECT = "You are on the waitlist of {professional_name}"
DEFAULT_WAITLIST_JOINED_MESSAGE = """Hello {client_name},
You joined the waitlist of {professional_name} for {preferred_date}{preferred_window}.
We will contact you as soon as a slot opens up.
To leave the waitlist, use this link: {cancel_url}"""

DEFAULT_PROFESSIONAL_WAITLIST_JOINED_SUBJECT = "New waitlist request from {client_name}"
DEFAULT_PROFESSIONAL_WAITLIST_JOINED_MESSAGE = """{client_name} joined your waitlist for {preferred_date}{preferred_window}.
Contact: {client_contact}"""

DEFAULT_WAITLIST_SLOT_AVAILABLE_SUBJECT = "A slot opened up with {professional_name}"
DEFAULT_WAITLIST_SLOT_AVAILABLE_MESSAGE = """Hello {client_name},
A slot is available with {professional_name} on {available_date} from {available_start_time} to {available_end_time}.
It is reserved for you until {expires_at}.
Confirm: {confirm_url}
Release it for the next person: {release_url}"""

DEFAULT_WAITLIST_OFFER_EXPIRED_SUBJECT = "Your priority offer with {professional_name} has expired"
DEFAULT_WAITLIST_OFFER_EXPIRED_MESSAGE = """Hello {client_name},
The slot on {available_date} at {available_start_time} with {professional_name} was not confirmed in time and has been offered to the next person."""

DEFAULT_WAITLIST_CANCELLED_SUBJECT = "You left the waitlist of {professional_name}"
DEFAULT_WAITLIST_CANCELLED_MESSAGE = """Hello {client_name},
Your waitlist request with {professional_name} for {preferred_date} has been cancelled."""

# message_type -> (subject template, body template)
MESSAGE_TEMPLATES = {
    MESSAGE_APPOINTMENT_CONFIRMATION: (
        DEFAULT_APPOINTMENT_CONFIRMATION_SUBJECT, DEFAULT_APPOINTMENT_CONFIRMATION_MESSAGE
    ),
    MESSAGE_PROFESSIONAL_NEW_BOOKING: (
        DEFAULT_PROFESSIONAL_NEW_BOOKING_SUBJECT, DEFAULT_PROFESSIONAL_NEW_BOOKING_MESSAGE
    ),
    MESSAGE_APPOINTMENT_CANCELLED: (
        DEFAULT_APPOINTMENT_CANCELLED_SUBJECT, DEFAULT_APPOINTMENT_CANCELLED_MESSAGE
    ),
    MESSAGE_PROFESSIONAL_APPOINTMENT_CANCELLED: (
        DEFAULT_PROFESSIONAL_APPOINTMENT_CANCELLED_SUBJECT, DEFAULT_PROFESSIONAL_APPOINTMENT_CANCELLED_MESSAGE
    ),
    MESSAGE_APPOINTMENT_RESCHEDULED: (
        DEFAULT_APPOINTMENT_RESCHEDULED_SUBJECT, DEFAULT_APPOINTMENT_RESCHEDULED_MESSAGE
    ),
    MESSAGE_WAITLIST_JOINED: (
        DEFAULT_WAITLIST_JOINED_SUBJECT, DEFAULT_WAITLIST_JOINED_MESSAGE
    ),
    MESSAGE_PROFESSIONAL_WAITLIST_JOINED: (
        DEFAULT_PROFESSIONAL_WAITLIST_JOINED_SUBJECT, DEFAULT_PROFESSIONAL_WAITLIST_JOINED_MESSAGE
    ),
    MESSAGE_WAITLIST_SLOT_AVAILABLE: (
        DEFAULT_WAITLIST_SLOT_AVAILABLE_SUBJECT, DEFAULT_WAITLIST_SLOT_AVAILABLE_MESSAGE
    ),
    MESSAGE_WAITLIST_OFFER_EXPIRED: (
        DEFAULT_WAITLIST_OFFER_EXPIRED_SUBJECT, DEFAULT_WAITLIST_OFFER_EXPIRED_MESSAGE
    ),
    MESSAGE_WAITLIST_CANCELLED: (
        DEFAULT_WAITLIST_CANCELLED_SUBJECT, DEFAULT_WAITLIST_CANCELLED_MESSAGE
    ),
}
